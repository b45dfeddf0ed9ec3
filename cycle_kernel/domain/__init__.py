"""
Pure domain layer.

Numbers, cycle and release types, the recalculation engine, the utterance
classifier and the clock abstraction.  Nothing in here touches the disk,
the database or the network; timestamps come from an injected Clock.
"""
