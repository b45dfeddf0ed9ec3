"""
cycle-ledger -- line-oriented console over LedgerService.

Usage:
    cycle-ledger list
    cycle-ledger show 6
    cycle-ledger summary
    cycle-ledger releases 6
    cycle-ledger release 6 50000 --rate 80 --note "first tranche"
    cycle-ledger chat --session alice

Every command prints JSON (the wire dicts) to stdout, one document per
line.  ``chat`` reads utterances from stdin, one per line, and prints one
rendered IntakeOutcome per utterance.

Exit status is 0 when the operation succeeded and 1 when it returned a
structured error.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Sequence, TextIO

from cycle_config import get_active_settings
from cycle_kernel.domain.cycle import cycle_to_dict, release_to_dict
from cycle_kernel.domain.dtos import OperationResult
from cycle_services.bootstrap import build_ledger_service
from cycle_services.intake import IntakeEvent, IntakeOutcome
from cycle_services.ledger_service import LedgerService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cycle-ledger",
        description="Inspect and extend the cycle ledger.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  cycle-ledger list\n"
            "  cycle-ledger release 6 50000 --rate 80\n"
            "  echo 'create a new cycle' | cycle-ledger chat\n"
        ),
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="YAML settings file (default: CYCLE_LEDGER_CONFIG or packaged defaults)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List every cycle, ascending by id")
    show = commands.add_parser("show", help="Show one cycle")
    show.add_argument("cycle_id")
    commands.add_parser("summary", help="Totals and status counts across the ledger")
    releases = commands.add_parser("releases", help="List the releases of one cycle")
    releases.add_argument("cycle_id")

    release = commands.add_parser("release", help="Record a release against a cycle")
    release.add_argument("cycle_id")
    release.add_argument("amount", help="Released amount in the destination currency")
    release.add_argument("--rate", default=None, help="Conversion rate back to origin")
    release.add_argument("--received", default=None, help="Origin amount actually received")
    release.add_argument("--note", default="", help="Free-text note")

    chat = commands.add_parser("chat", help="Guided cycle creation, one utterance per line")
    chat.add_argument("--session", default="console", help="Intake session id")
    return parser


def render_outcome(outcome: IntakeOutcome) -> dict[str, Any]:
    """Wire rendering of one intake turn."""
    data = outcome.to_dict()
    if outcome.event == IntakeEvent.COMMITTED and outcome.result is not None:
        data["cycle"] = cycle_to_dict(outcome.result.data)
    return data


def _emit(stdout: TextIO, document: Any) -> None:
    stdout.write(json.dumps(document, ensure_ascii=False, default=str))
    stdout.write("\n")


def _emit_result(stdout: TextIO, result: OperationResult, render) -> int:
    if not result:
        _emit(stdout, {"error": result.error.to_dict()})
        return 1
    _emit(stdout, render(result))
    return 0


def _chat(service: LedgerService, session_id: str, stdin: TextIO, stdout: TextIO) -> int:
    for line in stdin:
        utterance = line.strip()
        if not utterance:
            continue
        _emit(stdout, render_outcome(service.advance_intake(session_id, utterance)))
    return 0


def main(
    argv: Sequence[str] | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    *,
    service: LedgerService | None = None,
) -> int:
    args = _build_parser().parse_args(argv)
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    if service is None:
        service = build_ledger_service(get_active_settings(args.config))

    if args.command == "list":
        return _emit_result(
            stdout, service.list_cycles(),
            lambda r: [cycle_to_dict(c) for c in r.data],
        )
    if args.command == "show":
        return _emit_result(
            stdout, service.get_cycle(args.cycle_id), lambda r: cycle_to_dict(r.data)
        )
    if args.command == "summary":
        return _emit_result(stdout, service.summarize(), lambda r: r.data.to_dict())
    if args.command == "releases":
        return _emit_result(
            stdout, service.list_releases(args.cycle_id),
            lambda r: [release_to_dict(rel) for rel in r.data],
        )
    if args.command == "release":
        payload = {
            "cycleId": args.cycle_id,
            "releasedAmount": args.amount,
            "conversionRate": args.rate,
            "receivedOriginAmount": args.received,
            "note": args.note,
        }
        return _emit_result(
            stdout, service.add_release(payload),
            lambda r: {
                "release": release_to_dict(r.extras["release"]),
                "cycle": cycle_to_dict(r.data),
            },
        )
    return _chat(service, args.session, stdin, stdout)


if __name__ == "__main__":
    sys.exit(main())
