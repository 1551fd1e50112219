"""Helpers for the free-text production_notes column."""

from __future__ import annotations

NOTE_SEPARATOR = "\n\n"


def append_note(existing: str | None, note: str) -> str:
    text = note.strip()
    if not existing or not existing.strip():
        return text
    return f"{existing}{NOTE_SEPARATOR}{text}"


def append_section(existing: str | None, heading: str, note: str) -> str:
    """`[Heading]\\nnote`, joined to earlier notes by a blank line."""
    return append_note(existing, f"{heading}\n{note.strip()}")
