"""Tests for :mod:`sourcekit.errors`."""

from __future__ import annotations

from sourcekit.errors import SourceKitError, collect_messages


def test_collect_messages_follows_cause_chain() -> None:
    root = OSError("disk full")
    middle = SourceKitError("write failed")
    middle.__cause__ = root
    top = SourceKitError("download failed")
    top.__cause__ = middle

    assert collect_messages(top).splitlines() == [
        "SourceKitError: download failed",
        "Caused by: SourceKitError: write failed",
        "Caused by: OSError: disk full",
    ]


def test_collect_messages_handles_empty_message_and_cycles() -> None:
    first = SourceKitError()
    second = SourceKitError("loop")
    first.__cause__ = second
    second.__cause__ = first

    assert collect_messages(first) == (
        "SourceKitError: <no message>\nCaused by: SourceKitError: loop"
    )
