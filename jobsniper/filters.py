"""Eligibility rules applied to new postings.

Each step is a small predicate over the posting and a FilterConfig; the
composite check runs them cheapest-first and stops at the first rejection.
"""
from __future__ import annotations

import re
from collections.abc import Collection, Mapping
from datetime import datetime, timedelta, timezone

from jobsniper.config import FilterConfig
from jobsniper.log import get_logger
from jobsniper.models import Posting

log = get_logger(__name__)

# Tried in this order; the first pattern that matches wins and its first
# group is the required years.
EXPERIENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(\d+)\+?\s*(?:to\s*\d+\s*)?(?:years?|yrs?)\s*(?:of\s*)?(?:experience|exp)?"),
    re.compile(r"(?:experience|exp)\s*(?:of\s*)?(\d+)\+?\s*(?:to\s*\d+\s*)?(?:years?|yrs?)"),
    re.compile(r"(\d+)\s*-\s*\d+\s*(?:years?|yrs?)"),
)

KEYWORD = "keyword"
EXCLUDED = "excluded"
STALE = "stale"
EXPERIENCE = "experience"
LOCATION = "location"


def _normalize(s: str) -> str:
    return (s or "").lower()


def combined_text(posting: Posting) -> str:
    return _normalize(f"{posting.title} {posting.link}")


def matches_keyword(title: str, keywords: Collection[str]) -> bool:
    if not keywords:
        return True
    t = _normalize(title)
    return any(k.lower() in t for k in keywords)


def has_excluded_keyword(title: str, excluded: Collection[str]) -> bool:
    t = _normalize(title)
    return any(k.lower() in t for k in excluded if k)


def is_recent(date: datetime | None, max_days_old: int, now: datetime | None = None) -> bool:
    if max_days_old <= 0 or date is None:
        return True
    now = now or datetime.now(timezone.utc)
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date > now - timedelta(days=max_days_old)


def extract_experience(text: str) -> int:
    """Required years inferred from *text*; 0 when nothing matches."""
    low = _normalize(text)
    for pattern in EXPERIENCE_PATTERNS:
        m = pattern.search(low)
        if m:
            return int(m.group(1))
    return 0


def matches_location(text: str, locations: Collection[str]) -> bool:
    if not locations:
        return True
    low = _normalize(text)
    return any(loc.lower() in low for loc in locations)


def rejection_reason(posting: Posting, cfg: FilterConfig, now: datetime | None = None) -> str | None:
    """Name of the first failing step, or None if the posting is eligible."""
    if not matches_keyword(posting.title, cfg.include_keywords):
        return KEYWORD
    if has_excluded_keyword(posting.title, cfg.exclude_keywords):
        return EXCLUDED
    if not is_recent(posting.date, cfg.max_days_old, now):
        return STALE

    combined = combined_text(posting)
    if extract_experience(combined) > cfg.max_experience_years:
        return EXPERIENCE

    if posting.remote:
        return None
    if not matches_location(combined, cfg.locations):
        return LOCATION
    return None


def is_eligible(posting: Posting, cfg: FilterConfig, now: datetime | None = None) -> bool:
    return rejection_reason(posting, cfg, now) is None


def is_new(posting: Posting, seen: Mapping[str, int]) -> bool:
    return posting.id not in seen


def filter_eligible(
    postings: list[Posting], cfg: FilterConfig, now: datetime | None = None
) -> list[Posting]:
    kept: list[Posting] = []
    rejected: dict[str, int] = {}
    for p in postings:
        reason = rejection_reason(p, cfg, now)
        if reason is None:
            kept.append(p)
        else:
            rejected[reason] = rejected.get(reason, 0) + 1
            log.debug("Rejected [%s] %s", reason, p.title)
    log.info("Eligibility: %d of %d kept, rejected by step %s", len(kept), len(postings), rejected or "{}")
    return kept
