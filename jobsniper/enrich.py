"""Second fan-out: score eligible postings against the resume.

Scoring is fail-open.  A posting whose score call errors or never returns
within the stage timeout is kept unscored; only a successful score below the
threshold drops it.
"""
from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Sequence

from jobsniper.log import get_logger
from jobsniper.models import EnrichedPosting, Posting, ScoreResult
from jobsniper.oracle import ScoringOracle, build_prompt

log = get_logger(__name__)


def annotate(posting: Posting, score: int) -> Posting:
    return replace(posting, title=f"[AI: {score}] {posting.title}")


def _score_one(oracle: ScoringOracle, posting: Posting, resume: str) -> ScoreResult:
    return oracle.score(build_prompt(resume, posting))


def enrich(
    postings: Sequence[Posting],
    oracle: ScoringOracle,
    *,
    threshold: int,
    max_workers: int = 5,
    timeout: float | None = None,
    resume: str = "",
) -> list[EnrichedPosting]:
    """Score *postings* concurrently and keep the ones worth surfacing.

    Returned postings keep input order.  Scored survivors carry an
    ``[AI: n]`` title prefix.

    *timeout* bounds this stage only.  Queued calls are cancelled when it
    expires, but calls already in flight run on until the oracle's own
    request timeout (``ai.request_timeout``), and the interpreter joins those
    threads before exiting.  The per-request timeout is therefore what
    bounds the process.
    """
    if not postings:
        return []

    results: dict[int, EnrichedPosting] = {}
    dropped = 0
    started = time.monotonic()
    deadline = started + timeout if timeout else None

    pool = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="score")
    try:
        pending = {pool.submit(_score_one, oracle, p, resume): i for i, p in enumerate(postings)}
        while pending:
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                break
            done, _ = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
            for future in done:
                i = pending.pop(future)
                posting = postings[i]
                try:
                    res = future.result()
                except Exception as exc:
                    log.warning("Scoring failed for %s (%s), keeping it unscored", posting.id, exc)
                    results[i] = EnrichedPosting(posting)
                    continue
                if res.score >= threshold:
                    log.debug("AI %d >= %d: %s (%s)", res.score, threshold, posting.title, res.reason)
                    results[i] = EnrichedPosting(annotate(posting, res.score), res.score, res.reason)
                else:
                    dropped += 1
                    log.debug("AI %d < %d, dropping: %s (%s)", res.score, threshold, posting.title, res.reason)

        if pending:
            log.warning(
                "Scoring stage timed out after %.0fs, keeping %d unscored posting(s)",
                timeout, len(pending),
            )
            for i in pending.values():
                results[i] = EnrichedPosting(postings[i])
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    kept = [results[i] for i in sorted(results)]
    log.info(
        "Scored %d posting(s) in %.1fs: %d kept, %d below threshold, %d unscored",
        len(postings), time.monotonic() - started, len(kept), dropped,
        sum(1 for e in kept if not e.scored),
    )
    return kept
