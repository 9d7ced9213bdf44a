"""Remotive: free API for remote tech jobs (no API key required).

Docs: https://remotive.com/api/remote-jobs
"""
from __future__ import annotations

import requests

from jobsniper.log import get_logger
from jobsniper.models import Posting
from jobsniper.normalize import normalize_posting
from jobsniper.retry import retry
from jobsniper.sources.base import USER_AGENT, PostingSource, SourceError

log = get_logger(__name__)

API_URL = "https://remotive.com/api/remote-jobs"
BASE_URL = "https://remotive.com"


class RemotiveSource(PostingSource):
    name = "Remotive"
    remote_only = True

    def __init__(self, search_terms: list[str] | tuple[str, ...] = (), limit: int = 50, timeout: float = 15.0) -> None:
        super().__init__(timeout=timeout)
        # Remotive works best with short, broad terms: one request per keyword.
        self.search_terms = list(dict.fromkeys(t.strip().lower() for t in search_terms if t.strip())) or [""]
        self.limit = limit

    @retry(max_attempts=2, base_delay=1.5)
    def _fetch(self, search: str) -> list[Posting]:
        params: dict = {"limit": self.limit}
        if search:
            params["search"] = search

        r = requests.get(API_URL, params=params, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        r.raise_for_status()
        data = r.json()

        jobs: list[Posting] = []
        for hit in data.get("jobs", []):
            posting = normalize_posting(
                {
                    "id": hit.get("id"),
                    "role": hit.get("title"),
                    "company": hit.get("company_name"),
                    "link": hit.get("url"),
                    "date": hit.get("publication_date"),
                },
                prefix="remotive",
                source=self.name,
                base_url=BASE_URL,
                remote=self.remote_only,
            )
            if posting:
                jobs.append(posting)
        return jobs

    def fetch(self) -> list[Posting]:
        all_jobs: list[Posting] = []
        seen_ids: set[str] = set()
        errors: list[str] = []
        for term in self.search_terms:
            try:
                batch = self._fetch(term)
            except (requests.RequestException, ValueError) as exc:
                log.warning("Remotive search=%r error: %s", term, exc)
                errors.append(str(exc))
                continue
            for j in batch:
                if j.id not in seen_ids:
                    seen_ids.add(j.id)
                    all_jobs.append(j)
            log.debug("Remotive search=%r returned %d jobs", term, len(batch))

        if not all_jobs and errors:
            raise SourceError(f"all {len(errors)} Remotive queries failed: {errors[0]}")
        return all_jobs
