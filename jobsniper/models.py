"""Data models shared across the pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Posting:
    """A normalized job listing.

    ``id`` is stable across runs for the same listing.  ``date`` is None when
    the source gives no usable timestamp; such postings always count as
    recent.  ``remote`` marks postings from remote-only boards, which are
    exempt from location filtering.
    """

    id: str
    title: str
    link: str
    source: str
    date: datetime | None = None
    remote: bool = False

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "link": self.link,
            "source": self.source,
        }
        if self.date is not None:
            out["date"] = self.date.isoformat()
        if self.remote:
            out["remote"] = True
        return out


@dataclass(frozen=True)
class ScoreResult:
    score: int
    reason: str = ""


@dataclass(frozen=True)
class EnrichedPosting:
    """A posting that survived the scoring pass; ``score`` is None if unscored."""

    posting: Posting
    score: int | None = None
    reason: str = ""

    @property
    def scored(self) -> bool:
        return self.score is not None


@dataclass
class FetchReport:
    """Aggregate output of one fan-out over the enabled sources."""

    postings: list[Posting] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def total(self) -> int:
        return len(self.postings)
