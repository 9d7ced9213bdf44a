"""Public hiring spreadsheets (Google Sheets exported as CSV).

Column positions differ per sheet, so company/role/link/location columns are
guessed from the header row.
"""
from __future__ import annotations

import csv
import io

import requests

from jobsniper.log import get_logger
from jobsniper.models import Posting
from jobsniper.normalize import dedupe_by_id, normalize_posting, stable_hash
from jobsniper.retry import retry
from jobsniper.sources.base import USER_AGENT, PostingSource, SourceError

log = get_logger(__name__)

DEFAULT_ROLE = "Software Engineer"


def export_url(sheet_url: str) -> str:
    """Turn a .../edit sharing URL into its CSV export URL."""
    if "/edit" in sheet_url:
        return sheet_url.split("/edit", 1)[0] + "/export?format=csv"
    return sheet_url


def detect_columns(headers: list[str]) -> dict[str, int]:
    cols: dict[str, int] = {}
    for i, h in enumerate(headers):
        low = h.lower()
        if "company" in low or "name" in low:
            cols.setdefault("company", i)
        elif "role" in low or "position" in low or "title" in low:
            cols.setdefault("role", i)
        elif "link" in low or "url" in low or "apply" in low:
            cols.setdefault("link", i)
        elif "location" in low:
            cols.setdefault("location", i)
    return cols


def parse_sheet(text: str, sheet_url: str) -> list[Posting]:
    rows = list(csv.reader(io.StringIO(text)))
    if len(rows) < 2:
        raise SourceError("empty sheet")
    cols = detect_columns(rows[0])
    if "company" not in cols:
        raise SourceError("could not find a company column")

    def cell(row: list[str], key: str) -> str:
        idx = cols.get(key)
        if idx is None or idx >= len(row):
            return ""
        return row[idx].strip()

    jobs: list[Posting] = []
    for row in rows[1:]:
        company, role, link = cell(row, "company"), cell(row, "role"), cell(row, "link")
        if not company or (not role and not link):
            continue
        role = role or DEFAULT_ROLE
        # Rows without a usable link cannot be applied to.
        if not link.startswith("http"):
            continue
        # One careers link often serves several roles at a company.
        posting = normalize_posting(
            {
                "id": stable_hash(company + role + link),
                "role": role,
                "company": company,
                "location": cell(row, "location"),
                "link": link,
            },
            prefix="sheet",
            source="Shared Lists",
        )
        if posting:
            jobs.append(posting)
    return jobs


class SharedListsSource(PostingSource):
    name = "Shared Lists"

    def __init__(self, sheets: list[str] | tuple[str, ...] = (), timeout: float = 15.0) -> None:
        super().__init__(timeout=timeout)
        self.sheets = list(sheets)

    @retry(max_attempts=2, base_delay=1.0)
    def _download(self, url: str) -> str:
        r = requests.get(export_url(url), headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        r.raise_for_status()
        return r.text

    def fetch(self) -> list[Posting]:
        jobs: list[Posting] = []
        errors = 0
        for url in self.sheets:
            try:
                jobs.extend(parse_sheet(self._download(url), url))
            except (requests.RequestException, csv.Error, SourceError) as exc:
                errors += 1
                log.warning("Shared list %s error: %s", url, exc)
        if self.sheets and errors == len(self.sheets):
            raise SourceError("every shared list failed")
        return dedupe_by_id(jobs)
