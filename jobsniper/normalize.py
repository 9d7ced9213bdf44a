"""Map raw source records onto the canonical Posting.

Everything here is deterministic: the same raw record always produces the
same Posting, in particular the same ``id``, so dedup across runs works.
"""
from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import urljoin, urlsplit

from jobsniper.models import Posting

ID_HASH_LEN = 12

_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S", "%d %b %Y")


def stable_hash(text: str) -> str:
    """First 12 hex chars of sha256 over *text*."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:ID_HASH_LEN]


def source_prefix(name: str) -> str:
    """'Urban Company' -> 'urbancompany'."""
    return re.sub(r"\s+", "", name or "").lower()


def base_origin(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def canonical_link(link: str, base_url: str = "") -> str:
    """Resolve *link* against the origin of *base_url* when it is relative."""
    link = (link or "").strip()
    if not link:
        return ""
    if link.startswith(("http://", "https://")):
        return link
    if link.startswith("//"):
        return "https:" + link
    origin = base_origin(base_url)
    if not origin:
        return link
    if link.startswith("/"):
        return origin + link
    return urljoin(base_url, link)


def _squash(text: str) -> str:
    return " ".join((text or "").split())


def compose_title(role: str, company: str = "", location: str = "") -> str:
    """'{role} @ {company} ({location})' on a single line."""
    title = _squash(role)
    company = _squash(company)
    location = _squash(location)
    if company:
        title = f"{title} @ {company}"
    if location:
        title = f"{title} ({location})"
    return title


def parse_date(value: Any) -> datetime | None:
    """Best-effort timestamp parsing; anything unrecognized is None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if text.isdigit():
        return parse_date(int(text))
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        dt = None
        for fmt in _DATE_FORMATS:
            try:
                dt = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if dt is None:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _native_id(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_posting(
    raw: Mapping[str, Any],
    *,
    prefix: str,
    source: str,
    base_url: str = "",
    remote: bool = False,
) -> Posting | None:
    """Build a Posting from a raw record, or None if it is unusable.

    Recognized keys: ``id``, ``role`` (or ``title``), ``company``,
    ``location``, ``link`` (or ``url``) and ``date``.  A record needs a role
    and either a native id or a link.
    """
    role = str(raw.get("role") or raw.get("title") or "").strip()
    if not role:
        return None

    link = canonical_link(str(raw.get("link") or raw.get("url") or ""), base_url)
    native = _native_id(raw.get("id"))
    if not native and not link:
        return None

    posting_id = f"{prefix}-{native}" if native else f"{prefix}-{stable_hash(link)}"
    title = compose_title(role, str(raw.get("company") or ""), str(raw.get("location") or ""))

    return Posting(
        id=posting_id,
        title=title,
        link=link,
        source=source,
        date=parse_date(raw.get("date")),
        remote=remote,
    )


def dedupe_by_id(postings: list[Posting]) -> list[Posting]:
    """Collapse duplicate ids, keeping the last occurrence's data."""
    by_id: dict[str, Posting] = {}
    for p in postings:
        by_id[p.id] = p
    return list(by_id.values())
