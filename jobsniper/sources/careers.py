"""Company career pages, driven by a declarative list of page configs.

Every page is scraped the same way: select anchors with a CSS selector, read
the link attribute, and take the anchor text as the role.  Pages are fetched
on a small internal pool; one broken page never affects the others.
"""
from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, Mapping

import requests
from bs4 import BeautifulSoup

from jobsniper.log import get_logger
from jobsniper.models import Posting
from jobsniper.normalize import canonical_link, dedupe_by_id, normalize_posting, source_prefix
from jobsniper.retry import retry
from jobsniper.sources.base import USER_AGENT, PostingSource, SourceError

log = get_logger(__name__)

_TRAILING_ID = re.compile(r"[\w-]+$")
_MAX_TITLE_LEN = 150


@dataclass(frozen=True)
class CareerPage:
    name: str
    url: str
    selector: str = "a[href*='job']"
    link_attr: str = "href"


DEFAULT_PAGES: tuple[CareerPage, ...] = (
    CareerPage("Razorpay", "https://razorpay.com/jobs/", "a[href*='/jobs/']"),
    CareerPage("Paytm", "https://jobs.lever.co/paytm", "a.posting-title"),
    CareerPage("Postman", "https://www.postman.com/company/careers/open-positions/"),
    CareerPage("Freshworks", "https://www.freshworks.com/company/careers/"),
    CareerPage("BrowserStack", "https://www.browserstack.com/careers"),
    CareerPage("Stripe", "https://stripe.com/jobs/search?office_locations=Asia+Pacific--Bengaluru", "a[href*='/jobs/']"),
    CareerPage("Cloudflare", "https://www.cloudflare.com/careers/jobs/?location=India"),
    CareerPage("GitLab", "https://about.gitlab.com/jobs/"),
    CareerPage("Atlassian", "https://www.atlassian.com/company/careers/all-jobs?location=India"),
    CareerPage("Zepto", "https://zeptonow.com/careers"),
    CareerPage("Thoughtworks", "https://www.thoughtworks.com/careers/jobs"),
    CareerPage("Plaid", "https://plaid.com/careers/"),
)


def pages_from_config(items: Iterable[Mapping[str, str]]) -> list[CareerPage]:
    pages: list[CareerPage] = []
    for i, item in enumerate(items):
        name, url = str(item.get("name") or "").strip(), str(item.get("url") or "").strip()
        if not name or not url:
            log.warning("careers[%d] needs 'name' and 'url', skipping", i)
            continue
        pages.append(
            CareerPage(
                name=name,
                url=url,
                selector=str(item.get("selector") or CareerPage.selector),
                link_attr=str(item.get("link_attr") or CareerPage.link_attr),
            )
        )
    return pages


def extract_postings(page: CareerPage, html: str) -> list[Posting]:
    """Pull postings out of one career page's HTML."""
    soup = BeautifulSoup(html, "html.parser")
    prefix = source_prefix(page.name)
    jobs: list[Posting] = []
    seen_links: set[str] = set()

    for el in soup.select(page.selector):
        link = el.get(page.link_attr)
        if not link or not isinstance(link, str):
            continue

        title = el.get_text(" ", strip=True)
        if not title:
            inner = el.find(["h2", "h3", "h4", "span"])
            title = inner.get_text(" ", strip=True) if inner else ""
        if not title or len(title) > _MAX_TITLE_LEN:
            continue

        link = canonical_link(link, page.url)
        if link in seen_links:
            continue
        seen_links.add(link)

        m = _TRAILING_ID.search(link)
        posting = normalize_posting(
            {"id": m.group(0) if m else None, "role": title, "company": page.name, "link": link},
            prefix=prefix,
            source=page.name,
            base_url=page.url,
        )
        if posting:
            jobs.append(posting)
    return jobs


class CareerPagesSource(PostingSource):
    name = "Companies"

    def __init__(self, pages: Iterable[CareerPage] = DEFAULT_PAGES, max_workers: int = 10, timeout: float = 15.0) -> None:
        super().__init__(timeout=timeout)
        self.pages = list(pages)
        self.max_workers = max(1, max_workers)

    @retry(max_attempts=2, base_delay=1.0)
    def _download(self, page: CareerPage) -> str:
        r = requests.get(
            page.url,
            headers={"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.text

    def _scrape(self, page: CareerPage) -> list[Posting]:
        return extract_postings(page, self._download(page))

    def fetch(self) -> list[Posting]:
        if not self.pages:
            return []
        all_jobs: list[Posting] = []
        failures = 0
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(self.pages)), thread_name_prefix="careers") as pool:
            futures = {pool.submit(self._scrape, p): p for p in self.pages}
            for future in as_completed(futures):
                page = futures[future]
                try:
                    jobs = future.result()
                except Exception as exc:
                    failures += 1
                    log.debug("[careers] %s failed: %s", page.name, exc)
                    continue
                if jobs:
                    log.debug("[careers] %s: %d jobs", page.name, len(jobs))
                all_jobs.extend(jobs)

        if failures == len(self.pages):
            raise SourceError(f"all {failures} career pages failed")
        if failures:
            log.info("[careers] %d of %d pages failed", failures, len(self.pages))
        return dedupe_by_id(all_jobs)
