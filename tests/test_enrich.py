# tests/test_enrich.py
import threading
import time

from conftest import StubOracle, make_posting
from jobsniper.enrich import enrich
from jobsniper.models import ScoreResult
from jobsniper.oracle import ScoringError, ScoringOracle


def _postings():
    return [
        make_posting(id="p-1", title="Backend Engineer"),
        make_posting(id="p-2", title="Frontend Engineer"),
        make_posting(id="p-3", title="Data Engineer"),
    ]


def test_fail_open_below_and_at_threshold():
    oracle = StubOracle({
        "Backend Engineer": ScoringError("ollama connection failed"),
        "Frontend Engineer": 49,
        "Data Engineer": 50,
    })

    out = enrich(_postings(), oracle, threshold=50, max_workers=3, resume="resume text")

    by_id = {e.posting.id: e for e in out}
    assert set(by_id) == {"p-1", "p-3"}
    assert not by_id["p-1"].scored
    assert by_id["p-1"].posting.title == "Backend Engineer"
    assert by_id["p-3"].score == 50
    assert by_id["p-3"].posting.title == "[AI: 50] Data Engineer"


def test_output_keeps_input_order():
    out = enrich(_postings(), StubOracle(default=90), threshold=50, max_workers=3)
    assert [e.posting.id for e in out] == ["p-1", "p-2", "p-3"]


def test_prompt_includes_resume_and_title():
    oracle = StubOracle(default=90)
    enrich([make_posting(title="SDE 1 @ Zepto", source="Zepto")], oracle, threshold=0, resume="my resume")
    (prompt,) = oracle.prompts
    assert "my resume" in prompt
    assert "Job Title: SDE 1 @ Zepto\n" in prompt
    assert "Company: Zepto" in prompt


def test_empty_input():
    assert enrich([], StubOracle(), threshold=50) == []


class _HangingOracle(ScoringOracle):
    provider = "hang"

    def __init__(self, release):
        super().__init__()
        self.release = release

    def complete(self, prompt):
        return ""

    def score(self, text):
        if "Slow" in text:
            self.release.wait(5)
            return ScoreResult(0, "too late")
        return ScoreResult(90, "fast")


def test_stage_timeout_keeps_pending_unscored():
    release = threading.Event()
    postings = [make_posting(id="fast", title="Fast Engineer"), make_posting(id="slow", title="Slow Engineer")]
    started = time.monotonic()
    try:
        out = enrich(postings, _HangingOracle(release), threshold=50, max_workers=2, timeout=0.3)
        # the in-flight call is still blocked; enrich did not wait for it
        elapsed = time.monotonic() - started
    finally:
        release.set()

    assert elapsed < 3
    by_id = {e.posting.id: e for e in out}
    assert by_id["fast"].score == 90
    assert not by_id["slow"].scored
    assert by_id["slow"].posting.title == "Slow Engineer"
