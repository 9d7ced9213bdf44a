"""Hiring posts from job subreddits (public search.json, no auth)."""
from __future__ import annotations

import requests

from jobsniper.log import get_logger
from jobsniper.models import Posting
from jobsniper.normalize import dedupe_by_id, normalize_posting
from jobsniper.retry import retry
from jobsniper.sources.base import PostingSource, SourceError

log = get_logger(__name__)

SEARCH_URL = "https://www.reddit.com/r/{}/search.json"
BASE_URL = "https://www.reddit.com"
DEFAULT_SUBREDDITS = ("cscareerquestions", "forhire")
# Reddit throttles anonymous browser agents.
_USER_AGENT = "jobsniper/1.0"


def is_hiring_post(title: str) -> bool:
    low = title.lower()
    return "hiring" in low or "job" in low


class RedditSource(PostingSource):
    name = "Reddit"

    def __init__(self, subreddits: list[str] | tuple[str, ...] = DEFAULT_SUBREDDITS, timeout: float = 15.0) -> None:
        super().__init__(timeout=timeout)
        self.subreddits = list(subreddits)

    @retry(max_attempts=2, base_delay=1.5)
    def _search(self, sub: str) -> list[dict]:
        r = requests.get(
            SEARCH_URL.format(sub),
            params={"q": "hiring OR job", "sort": "new", "t": "week", "limit": 25, "restrict_sr": "on"},
            headers={"User-Agent": _USER_AGENT},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return [c.get("data", {}) for c in r.json().get("data", {}).get("children", [])]

    def fetch(self) -> list[Posting]:
        jobs: list[Posting] = []
        errors = 0
        for sub in self.subreddits:
            try:
                posts = self._search(sub)
            except (requests.RequestException, ValueError, AttributeError) as exc:
                errors += 1
                log.warning("Reddit r/%s error: %s", sub, exc)
                continue
            for post in posts:
                title = str(post.get("title") or "")
                if not is_hiring_post(title):
                    continue
                posting = normalize_posting(
                    {
                        "id": post.get("id"),
                        "role": title,
                        "link": post.get("permalink"),
                        "date": post.get("created_utc"),
                    },
                    prefix="reddit",
                    source=self.name,
                    base_url=BASE_URL,
                )
                if posting:
                    jobs.append(posting)
        if self.subreddits and errors == len(self.subreddits):
            raise SourceError("every subreddit search failed")
        return dedupe_by_id(jobs)
