"""Load-balanced selection for automatic role assignment."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class Candidate:
    user_id: Any
    full_name: str | None
    active_assignments: int


def pick_lowest_workload(candidates: Iterable[Candidate]) -> Candidate | None:
    """Fewest active assignments wins; ties fall back to name, then id."""
    ordered = sorted(
        candidates,
        key=lambda item: (item.active_assignments, (item.full_name or "").lower(), str(item.user_id)),
    )
    return ordered[0] if ordered else None
