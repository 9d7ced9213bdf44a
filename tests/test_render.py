# tests/test_render.py
import pytest

from conftest import make_posting
from jobsniper.render import HEADER, render_body, render_messages, split_message


def test_body_format():
    body = render_body([make_posting(id="a", title="Dev @ Acme", link="https://x.io/a")])
    assert body == "\U0001f6a8 New Jobs Found:\n\n• Dev @ Acme\nhttps://x.io/a\n\n"


def test_no_postings_no_messages():
    assert render_messages([]) == []


def test_short_body_is_one_message():
    msgs = render_messages([make_posting(id="a")], max_len=4000)
    assert len(msgs) == 1
    assert msgs[0].startswith(HEADER.rstrip())


def test_long_body_splits_at_entry_boundaries():
    postings = [
        make_posting(id=f"p-{i}", title=f"Software Engineer {i} @ Company {i}", link=f"https://jobs.example.com/{i}")
        for i in range(120)
    ]
    max_len = 1000

    msgs = render_messages(postings, max_len=max_len)

    assert len(msgs) >= 2
    assert all(len(m) <= max_len for m in msgs)
    joined = "\n\n".join(msgs)
    for p in postings:
        assert f"• {p.title}\n{p.link}" in joined
    # every chunk after the first starts with a whole entry
    assert all(m.startswith("• ") for m in msgs[1:])


def test_split_falls_back_to_newline_then_hard_cut():
    text = ("x" * 30 + "\n") * 5
    chunks = split_message(text, max_len=50, lookback=40)
    assert all(len(c) <= 50 for c in chunks)
    assert all(set(c) <= {"x", "\n"} for c in chunks)
    assert chunks[0] == "x" * 30

    blob = "y" * 120
    assert split_message(blob, max_len=50) == ["y" * 50, "y" * 50, "y" * 20]


def test_split_rejects_non_positive_length():
    with pytest.raises(ValueError):
        split_message("abc", max_len=0)
