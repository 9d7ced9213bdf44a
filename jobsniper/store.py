"""Persisted seen-set: posting id -> first-seen unix time.

The store only ever grows.  A recorded id keeps its first-seen time forever,
even when the posting disappears from later fetches.  Writes go to a
temporary file in the same directory which then replaces the store, so a
crash mid-write leaves the previous version intact.
"""
from __future__ import annotations

import fcntl
import json
import os
import tempfile
import time
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from jobsniper.log import get_logger
from jobsniper.models import Posting

log = get_logger(__name__)


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _now() -> int:
    return int(time.time())


def _parse_records(data: Any) -> dict[str, tuple[int, dict]] | None:
    """Timestamped shape: [{"posting": {...}, "first_seen": 123}, ...].

    Returns None when *data* is not in this shape.  ``"job"`` is accepted as
    an older name for the ``"posting"`` key.
    """
    if not isinstance(data, list) or not data:
        return None
    out: dict[str, tuple[int, dict]] = {}
    for item in data:
        if not isinstance(item, dict) or "first_seen" not in item:
            return None
        payload = item.get("posting", item.get("job"))
        if not isinstance(payload, dict) or not payload.get("id"):
            return None
        try:
            first_seen = int(item["first_seen"])
        except (TypeError, ValueError):
            return None
        pid = str(payload["id"])
        # duplicates in a hand-edited file: earliest time wins
        if pid in out and out[pid][0] <= first_seen:
            continue
        out[pid] = (first_seen, payload)
    return out


def _parse_bare(data: Any, now: int) -> dict[str, tuple[int, dict]] | None:
    """Legacy shape: a bare list of postings with no timestamps."""
    if not isinstance(data, list):
        return None
    out: dict[str, tuple[int, dict]] = {}
    for item in data:
        if not isinstance(item, dict) or not item.get("id"):
            return None
        out[str(item["id"])] = (now, item)
    return out


class SeenStore:
    """JSON-file backed seen-set.  Not safe for concurrent writers beyond the
    advisory lock; the pipeline only touches it in its sequential phases."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._payloads: dict[str, dict] = {}

    def load(self) -> dict[str, int]:
        """Read the store; missing or unreadable files give an empty map."""
        self._payloads = {}
        if not self.path.exists():
            log.info("No seen-store at %s, starting cold", self.path)
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                _lock(f, exclusive=False)
                try:
                    raw = f.read()
                finally:
                    _unlock(f)
            data = json.loads(raw) if raw.strip() else []
        except (OSError, ValueError) as exc:
            log.warning("Seen-store %s unreadable (%s), treating as empty", self.path, exc)
            return {}

        records = _parse_records(data)
        if records is None:
            records = _parse_bare(data, _now())
            if records is None:
                log.warning("Seen-store %s has an unknown shape, treating as empty", self.path)
                return {}
            if records:
                log.info("Seen-store %s is in the legacy untimestamped shape", self.path)

        self._payloads = {pid: payload for pid, (_, payload) in records.items()}
        seen = {pid: ts for pid, (ts, _) in records.items()}
        log.info("Loaded %d previously seen postings", len(seen))
        return seen

    @staticmethod
    def new_since(postings: Iterable[Posting], seen: Mapping[str, int]) -> list[Posting]:
        """Postings whose id is not in *seen*, one per id (last one wins)."""
        fresh: dict[str, Posting] = {}
        for p in postings:
            if p.id not in seen:
                fresh[p.id] = p
        return list(fresh.values())

    def merge(self, postings: Iterable[Posting], seen: Mapping[str, int]) -> dict[str, int]:
        """Add unseen ids at now, keep every existing record, and persist."""
        now = _now()
        merged: dict[str, int] = dict(seen)
        payloads: dict[str, dict] = {pid: self._payloads.get(pid, {"id": pid}) for pid in seen}
        added = 0
        for p in postings:
            if p.id in merged:
                continue
            merged[p.id] = now
            payloads[p.id] = p.to_dict()
            added += 1

        records = [
            {"posting": payloads[pid], "first_seen": ts}
            for pid, ts in sorted(merged.items(), key=lambda kv: (kv[1], kv[0]))
        ]
        self._write(records)
        self._payloads = payloads
        log.info("Seen-store: %d new, %d total → %s", added, len(merged), self.path)
        return merged

    def _write(self, records: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                _lock(f)
                json.dump(records, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
                _unlock(f)
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
