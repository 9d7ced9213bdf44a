"""RemoteOK: public JSON feed of remote jobs (no API key required).

The first element of the feed is a legal notice, not a job; it has no
``position`` and is dropped by the normalizer.
"""
from __future__ import annotations

import requests

from jobsniper.log import get_logger
from jobsniper.models import Posting
from jobsniper.normalize import dedupe_by_id, normalize_posting
from jobsniper.retry import retry
from jobsniper.sources.base import USER_AGENT, PostingSource, SourceError

log = get_logger(__name__)

API_URL = "https://remoteok.com/api"
BASE_URL = "https://remoteok.com"


class RemoteOKSource(PostingSource):
    name = "RemoteOK"
    remote_only = True

    @retry(max_attempts=2, base_delay=1.5)
    def _fetch_feed(self) -> list[dict]:
        r = requests.get(API_URL, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, list):
            raise SourceError(f"unexpected RemoteOK payload: {type(data).__name__}")
        return data

    def fetch(self) -> list[Posting]:
        jobs: list[Posting] = []
        for hit in self._fetch_feed():
            if not isinstance(hit, dict) or hit.get("id") is None or not hit.get("position"):
                continue
            if not isinstance(hit.get("url"), str):
                continue
            posting = normalize_posting(
                {
                    "id": hit["id"],
                    "role": hit["position"],
                    "link": hit["url"],
                    "date": hit.get("date"),
                },
                prefix="remoteok",
                source=self.name,
                base_url=BASE_URL,
                remote=self.remote_only,
            )
            if posting:
                jobs.append(posting)
        return dedupe_by_id(jobs)
