"""Run every enabled source concurrently and gather one aggregate."""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

from jobsniper.log import get_logger
from jobsniper.models import FetchReport, Posting
from jobsniper.sources.base import PostingSource

log = get_logger(__name__)


def _fetch_source(source: PostingSource) -> list[Posting]:
    started = time.monotonic()
    jobs = source.fetch()
    log.info("[%s] returned %d jobs in %.1fs", source.name, len(jobs), time.monotonic() - started)
    return jobs


def fetch_all(sources: Sequence[PostingSource], max_workers: int = 8) -> FetchReport:
    """Fetch from *sources* on a bounded pool and wait for all of them.

    A failing source is logged and recorded in ``report.failed``; it never
    affects its siblings.  The order of ``report.postings`` is whatever order
    the sources finished in.
    """
    report = FetchReport()
    if not sources:
        return report

    started = time.monotonic()
    log.info("Fetching from %d source(s), %d at a time...", len(sources), max_workers)
    with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="fetch") as pool:
        futures = {pool.submit(_fetch_source, src): src for src in sources}
        for future in as_completed(futures):
            src = futures[future]
            try:
                jobs = future.result()
            except Exception as exc:
                log.error("[%s] FAILED: %s", src.name, exc)
                report.failed[src.name] = str(exc)[:200]
                report.counts[src.name] = 0
                continue
            report.counts[src.name] = report.counts.get(src.name, 0) + len(jobs)
            report.postings.extend(jobs)

    report.elapsed = time.monotonic() - started
    log.info(
        "Fetched %d jobs from %d source(s) in %.1fs (%d failed)",
        report.total, len(sources), report.elapsed, len(report.failed),
    )
    for name in sorted(report.counts):
        log.debug("  %-14s %d", name, report.counts[name])
    return report
