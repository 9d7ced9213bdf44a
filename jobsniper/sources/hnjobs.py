"""Hacker News "Ask HN: Who is hiring?" thread via the Algolia HN API.

Each top-level comment on the latest thread is one company's post; its first
paragraph (company | role | location ...) becomes the title.
"""
from __future__ import annotations

import requests
from bs4 import BeautifulSoup

from jobsniper.log import get_logger
from jobsniper.models import Posting
from jobsniper.normalize import dedupe_by_id, normalize_posting
from jobsniper.retry import retry
from jobsniper.sources.base import USER_AGENT, PostingSource

log = get_logger(__name__)

SEARCH_URL = "https://hn.algolia.com/api/v1/search"
ITEM_URL = "https://hn.algolia.com/api/v1/items/{}"
COMMENT_URL = "https://news.ycombinator.com/item?id={}"

_MAX_COMMENTS = 50
_MIN_TEXT = 50
_TITLE_LIMIT = 100


def first_line(html: str) -> str:
    """Plain text of the first paragraph of an HN comment."""
    head = (html or "").split("<p>", 1)[0]
    text = BeautifulSoup(head, "html.parser").get_text(" ", strip=True)
    if len(text) > _TITLE_LIMIT:
        text = text[:_TITLE_LIMIT] + "..."
    return text


def find_thread(hits: list[dict]) -> str:
    for hit in hits:
        if "who is hiring" in str(hit.get("title", "")).lower():
            return str(hit.get("objectID") or "")
    return ""


class HNJobsSource(PostingSource):
    name = "HN Jobs"

    @retry(max_attempts=2, base_delay=1.5)
    def _get_json(self, url: str, **kwargs) -> dict:
        r = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout, **kwargs)
        r.raise_for_status()
        return r.json()

    def fetch(self) -> list[Posting]:
        found = self._get_json(SEARCH_URL, params={"query": "who is hiring", "tags": "ask_hn", "hitsPerPage": 5})
        thread_id = find_thread(found.get("hits", []))
        if not thread_id:
            log.info("No 'Who is hiring' thread found")
            return []

        item = self._get_json(ITEM_URL.format(thread_id))
        jobs: list[Posting] = []
        for child in item.get("children", [])[:_MAX_COMMENTS]:
            text = child.get("text") or ""
            if len(text) < _MIN_TEXT or child.get("id") is None:
                continue
            posting = normalize_posting(
                {
                    "id": child["id"],
                    "role": first_line(text),
                    "link": COMMENT_URL.format(child["id"]),
                    "date": child.get("created_at_i") or child.get("created_at"),
                },
                prefix="hn",
                source=self.name,
            )
            if posting:
                jobs.append(posting)
        log.debug("HN thread %s gave %d posts", thread_id, len(jobs))
        return dedupe_by_id(jobs)
