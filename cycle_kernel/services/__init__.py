"""Services for the cycle kernel (write side)."""

from cycle_kernel.services.cycle_repository import CycleRepository, parse_cycle_id

__all__ = ["CycleRepository", "parse_cycle_id"]
