"""
One pass of the job sniper.

Runs: load seen-set → fetch all sources → keep new → filter → (optional) AI
scoring → notify → persist every fetched id.
"""
from __future__ import annotations

import time
from typing import Any, Sequence

from jobsniper.config import Settings
from jobsniper.enrich import enrich
from jobsniper.fanout import fetch_all
from jobsniper.filters import filter_eligible
from jobsniper.log import get_logger
from jobsniper.models import EnrichedPosting, Posting
from jobsniper.notify import Notifier, build_notifier
from jobsniper.oracle import ScoringError, ScoringOracle, build_oracle, load_resume
from jobsniper.render import render_messages
from jobsniper.sources import PostingSource, get_sources
from jobsniper.store import SeenStore

log = get_logger(__name__)


def _score(settings: Settings, candidates: list[Posting], oracle: ScoringOracle | None) -> list[EnrichedPosting]:
    ai = settings.ai
    try:
        resume = load_resume(ai.resume_path)
        oracle = oracle or build_oracle(ai)
    except ScoringError as exc:
        log.warning("AI scoring skipped: %s", exc)
        return [EnrichedPosting(p) for p in candidates]
    return enrich(
        candidates, oracle,
        threshold=ai.threshold, max_workers=ai.concurrency, timeout=ai.timeout, resume=resume,
    )


def _deliver(notifier: Notifier, messages: list[str]) -> int:
    sent = 0
    for i, msg in enumerate(messages, 1):
        try:
            ok = notifier.send(msg)
        except Exception as exc:
            log.error("Notifier %s raised on message %d/%d: %s", notifier.name, i, len(messages), exc)
            ok = False
        if ok:
            sent += 1
    return sent


def run(
    settings: Settings,
    *,
    sources: Sequence[PostingSource] | None = None,
    oracle: ScoringOracle | None = None,
    notifier: Notifier | None = None,
    store: SeenStore | None = None,
    dry_run: bool = False,
    use_ai: bool = True,
) -> dict[str, Any]:
    """Run one pass and return a summary dict.

    No failure category aborts the run.  Unless *dry_run* is set, every
    fetched posting id is recorded in the store even when nothing was
    eligible or notification failed.
    """
    started = time.monotonic()
    store = store or SeenStore(settings.store_path)
    seen = store.load()

    # 1. Fetch
    if sources is None:
        sources = get_sources(settings)
    report = fetch_all(sources, settings.fetch_concurrency)

    # 2. New + eligible
    new = SeenStore.new_since(report.postings, seen)
    eligible = filter_eligible(new, settings.filters)
    log.info("New: %d, eligible: %d", len(new), len(eligible))

    # 3. Score
    scored = 0
    if eligible and use_ai and settings.ai.enabled:
        enriched = _score(settings, eligible, oracle)
        scored = sum(1 for e in enriched if e.scored)
    else:
        enriched = [EnrichedPosting(p) for p in eligible]
    final = [e.posting for e in enriched]

    # 4. Notify
    messages = render_messages(final, settings.notify.max_length)
    sent = 0
    if messages:
        if dry_run:
            for msg in messages:
                log.info("[dry-run] would send:\n%s", msg)
        else:
            notifier = notifier or build_notifier(settings)
            sent = _deliver(notifier, messages)
            if sent < len(messages):
                log.warning("Delivered %d of %d message(s) via %s", sent, len(messages), notifier.name)
    else:
        log.info("No new eligible jobs this run")

    # 5. Persist
    persisted = False
    if dry_run:
        log.info("[dry-run] seen-set not updated")
    else:
        try:
            store.merge(report.postings, seen)
            persisted = True
        except OSError as exc:
            log.error("Could not save seen-set to %s: %s", store.path, exc)

    elapsed = time.monotonic() - started
    log.info(
        "Run complete: fetched=%d, new=%d, eligible=%d, notified=%d in %.1fs",
        report.total, len(new), len(eligible), len(final), elapsed,
    )
    return {
        "fetched": report.total,
        "per_source": dict(report.counts),
        "failed_sources": sorted(report.failed),
        "new": len(new),
        "eligible": len(eligible),
        "scored": scored,
        "notified": len(final),
        "postings": final,
        "messages": len(messages),
        "messages_sent": sent,
        "persisted": persisted,
        "elapsed": round(elapsed, 2),
    }
