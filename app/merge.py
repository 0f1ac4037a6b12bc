"""Merge-on-import of externally supplied season lists."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from .models import ShowSeason


@dataclass(slots=True)
class MergeResult:
    """Outcome of combining an incoming list with the current collection."""

    merged: list[ShowSeason]
    added: list[ShowSeason]
    skipped_ids: list[str] = field(default_factory=list)
    committed: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "committed": self.committed,
            "requiresConfirmation": not self.committed and bool(self.added),
            "incoming": len(self.added) + len(self.skipped_ids),
            "added": len(self.added),
            "addedIds": [season.id for season in self.added],
            "skipped": len(self.skipped_ids),
            "skippedIds": list(self.skipped_ids),
            "total": len(self.merged),
        }


def merge_incoming(
    existing: Sequence[ShowSeason], incoming: Sequence[ShowSeason]
) -> MergeResult:
    """Prepend incoming records whose id is not already present.

    Records are never merged field by field: a known id keeps the local copy
    and the incoming one is skipped. Repeated ids within ``incoming`` keep
    the first occurrence.
    """

    known = {season.id for season in existing}
    added: list[ShowSeason] = []
    skipped: list[str] = []
    for season in incoming:
        if season.id in known:
            skipped.append(season.id)
            continue
        known.add(season.id)
        added.append(season)
    return MergeResult(merged=[*added, *existing], added=added, skipped_ids=skipped)
