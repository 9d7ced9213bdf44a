# tests/conftest.py
import os
import tempfile

# Keep test runs from writing into the project's logs/ directory.
os.environ.setdefault("SNIPER_LOG_DIR", tempfile.mkdtemp(prefix="sniper-logs-"))

import pytest

from jobsniper import retry as retry_mod
from jobsniper.config import AIConfig, FilterConfig, NotifyConfig, Settings
from jobsniper.models import Posting, ScoreResult
from jobsniper.notify import Notifier
from jobsniper.oracle import ScoringError, ScoringOracle
from jobsniper.sources.base import PostingSource, SourceError
from jobsniper.store import SeenStore

_SECRET_ENV = (
    "TG_TOKEN", "TG_CHAT",
    "SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD", "FROM_EMAIL", "TO_EMAIL",
    "GEMINI_API_KEY", "GROQ_API_KEY", "OPENAI_API_KEY",
)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for key in _SECRET_ENV:
        monkeypatch.delenv(key, raising=False)
    # retries must not sleep in tests
    monkeypatch.setattr(retry_mod, "_sleep", lambda _s: None)


# ---------------------------------------------------------------------
# Builders and stubs
# ---------------------------------------------------------------------
def make_posting(id="remoteok-1", title="Software Engineer @ Acme", link=None, source="RemoteOK", **kw) -> Posting:
    return Posting(id=id, title=title, link=link or f"https://example.com/jobs/{id}", source=source, **kw)


class StubSource(PostingSource):
    def __init__(self, name, postings=(), error=None):
        super().__init__()
        self.name = name
        self._postings = list(postings)
        self._error = error
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return list(self._postings)


class StubOracle(ScoringOracle):
    """Scores by title; a title mapped to an exception raises it."""

    provider = "stub"

    def __init__(self, scores=None, default=80):
        super().__init__()
        self.scores = dict(scores or {})
        self.default = default
        self.prompts = []

    def complete(self, prompt):
        raise AssertionError("StubOracle.score is overridden")

    def score(self, text):
        self.prompts.append(text)
        for title, value in self.scores.items():
            if f"Job Title: {title}\n" in text:
                if isinstance(value, Exception):
                    raise value
                return ScoreResult(value, f"stub {value}")
        return ScoreResult(self.default, "stub default")


class RecordingNotifier(Notifier):
    name = "recording"

    def __init__(self, ok=True):
        self.ok = ok
        self.messages = []

    def send(self, message):
        self.messages.append(message)
        return self.ok


@pytest.fixture
def posting_factory():
    return make_posting


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "jobs.json"


@pytest.fixture
def seen_store(store_path):
    return SeenStore(store_path)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def resume_file(tmp_path):
    path = tmp_path / "resume.txt"
    path.write_text(
        "Jane Doe. Computer science graduate. Python, Go, SQL, Docker. "
        "Built a distributed cache and a REST API during internships.",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def fresh_settings(store_path, resume_file):
    return Settings(
        filters=FilterConfig(include_keywords=("engineer", "developer", "backend")),
        sources={"remoteok": True},
        fetch_concurrency=4,
        store_path=store_path,
        ai=AIConfig(enabled=False, resume_path=resume_file),
        notify=NotifyConfig(channel="console"),
    )


__all__ = [
    "make_posting", "StubSource", "StubOracle", "RecordingNotifier",
    "SourceError", "ScoringError",
]
