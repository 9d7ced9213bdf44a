"""Work at a Startup (Y Combinator) job board.

Tries the JSON endpoint first and falls back to scraping job links from the
public listing page when the API refuses or returns something unexpected.
"""
from __future__ import annotations

import re

import requests
from bs4 import BeautifulSoup

from jobsniper.log import get_logger
from jobsniper.models import Posting
from jobsniper.normalize import dedupe_by_id, normalize_posting
from jobsniper.retry import retry
from jobsniper.sources.base import USER_AGENT, PostingSource

log = get_logger(__name__)

BASE_URL = "https://www.workatastartup.com"
API_URL = f"{BASE_URL}/api/jobs"
LIST_URL = f"{BASE_URL}/jobs"
_JOB_PATH = re.compile(r"^/jobs/(\d+)")
_HTML_LIMIT = 30


class YCJobsSource(PostingSource):
    name = "YC Jobs"

    def __init__(self, query: str = "software engineer", timeout: float = 15.0) -> None:
        super().__init__(timeout=timeout)
        self.query = query

    @retry(max_attempts=2, base_delay=1.5)
    def _get(self, url: str, **kwargs) -> requests.Response:
        r = requests.get(url, headers={"User-Agent": USER_AGENT, **kwargs.pop("headers", {})}, timeout=self.timeout, **kwargs)
        r.raise_for_status()
        return r

    def _from_api(self) -> list[Posting]:
        r = self._get(API_URL, params={"query": self.query, "page": 1}, headers={"Accept": "application/json"})
        data = r.json()
        jobs: list[Posting] = []
        for hit in data.get("jobs", []):
            job_id = hit.get("id")
            posting = normalize_posting(
                {
                    "id": job_id,
                    "role": hit.get("title"),
                    "company": hit.get("company_name"),
                    "location": "Remote" if hit.get("remote") else hit.get("location"),
                    "link": hit.get("url") or (f"/jobs/{job_id}" if job_id else ""),
                },
                prefix="yc",
                source=self.name,
                base_url=BASE_URL,
            )
            if posting:
                jobs.append(posting)
        return jobs

    def _from_html(self) -> list[Posting]:
        soup = BeautifulSoup(self._get(LIST_URL).text, "html.parser")
        jobs: list[Posting] = []
        for a in soup.find_all("a", href=_JOB_PATH):
            m = _JOB_PATH.match(a["href"])
            text = a.get_text(" ", strip=True)
            posting = normalize_posting(
                {
                    "id": m.group(1),
                    "role": text if 0 < len(text) <= 150 else "Software Engineer",
                    "company": "" if text else "YC Startup",
                    "link": m.group(0),
                },
                prefix="yc",
                source=self.name,
                base_url=BASE_URL,
            )
            if posting:
                jobs.append(posting)
            if len(jobs) >= _HTML_LIMIT:
                break
        return jobs

    def fetch(self) -> list[Posting]:
        try:
            jobs = self._from_api()
        except (requests.RequestException, ValueError, AttributeError) as exc:
            log.info("YC API unavailable (%s), scraping listing page", exc)
            jobs = self._from_html()
        return dedupe_by_id(jobs)
