"""Format the final postings into one or more bounded-length messages."""
from __future__ import annotations

from typing import Iterable

from jobsniper.models import Posting

HEADER = "\U0001f6a8 New Jobs Found:\n\n"
MAX_MESSAGE_LEN = 4000
LOOKBACK = 500


def render_entry(posting: Posting) -> str:
    return f"• {posting.title}\n{posting.link}\n\n"


def render_body(postings: Iterable[Posting]) -> str:
    return HEADER + "".join(render_entry(p) for p in postings)


def _cut_point(text: str, max_len: int, lookback: int) -> int:
    start = max(1, max_len - lookback)
    idx = text.rfind("\n\n", start, max_len)
    if idx != -1:
        return idx + 2
    idx = text.rfind("\n", start, max_len)
    if idx != -1:
        return idx + 1
    return max_len


def split_message(text: str, max_len: int = MAX_MESSAGE_LEN, lookback: int = LOOKBACK) -> list[str]:
    """Split *text* into chunks of at most *max_len* characters.

    Each cut is made at the last entry boundary (blank line) inside the final
    *lookback* characters of the window, else at the last newline there, else
    exactly at *max_len*.
    """
    if max_len <= 0:
        raise ValueError("max_len must be positive")
    chunks: list[str] = []
    rest = text
    while len(rest) > max_len:
        cut = _cut_point(rest, max_len, lookback)
        chunk = rest[:cut].rstrip("\n")
        if chunk:
            chunks.append(chunk)
        rest = rest[cut:]
    rest = rest.rstrip("\n")
    if rest:
        chunks.append(rest)
    return chunks


def render_messages(postings: Iterable[Posting], max_len: int = MAX_MESSAGE_LEN) -> list[str]:
    postings = list(postings)
    if not postings:
        return []
    return split_message(render_body(postings), max_len=max_len)
