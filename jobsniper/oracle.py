"""Scoring oracles: rate how well a posting fits the candidate's resume.

Three providers are supported:
  - ollama  : local model server (``/api/generate`` with ``format=json``)
  - gemini  : Google Generative Language REST API (``GEMINI_API_KEY``)
  - openai  : any OpenAI-compatible chat endpoint via the ``openai`` client;
              defaults to Groq (``GROQ_API_KEY``, or ``OPENAI_API_KEY``)

Every provider returns a ``ScoreResult`` or raises ``ScoringError``.
"""
from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path

import requests

from jobsniper.config import AIConfig, get_env
from jobsniper.log import get_logger
from jobsniper.models import Posting, ScoreResult
from jobsniper.retry import retry

log = get_logger(__name__)

MIN_RESUME_CHARS = 50

OLLAMA_URL = "http://localhost:11434"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
GROQ_URL = "https://api.groq.com/openai/v1"

_DEFAULT_MODELS = {
    "ollama": "llama3",
    "gemini": "gemini-1.5-flash",
    "openai": "llama-3.3-70b-versatile",
}

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ScoringError(Exception):
    """The oracle could not produce a usable score."""


PROMPT_TEMPLATE = """Role: Hiring Manager.
Task: Evaluate match for a Fresher/Entry-Level Candidate (0-2 YOE).

Candidate Resume:
{resume}

Job Title: {title}
Company: {source}

CRITICAL RULES:
1. IF Job Title contains "Senior", "Staff", "Lead", "Principal", "Architect", or requires >2 years experience: SCORE MUST BE 0.
2. IF Job is for "Intern", "New Grad", "Associate", "Junior", or "0-2 years": Score normally based on skill match.
3. IGNORE skill match if Rule #1 is violated.

Constraint: Return ONLY a JSON object with "score" (0-100) and "reason" (short string).
Example: {{"score": 0, "reason": "Senior role (3+ years) not for fresher"}}"""


def build_prompt(resume: str, posting: Posting) -> str:
    return PROMPT_TEMPLATE.format(resume=resume.strip(), title=posting.title, source=posting.source)


def load_resume(path: Path | str) -> str:
    """Read the plain-text resume used as scoring context."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ScoringError(f"cannot read resume {path}: {exc}") from exc
    if len(text.strip()) < MIN_RESUME_CHARS:
        raise ScoringError(f"resume {path} is too short ({len(text.strip())} chars), paste the full text")
    return text


def parse_score(raw: str) -> ScoreResult:
    """Parse an oracle reply like ``{"score": 72, "reason": "..."}``.

    Markdown code fences around the JSON are tolerated.  Scores outside
    0-100 are clamped.
    """
    text = _FENCE.sub("", (raw or "").strip()).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ScoringError(f"oracle reply is not JSON: {text[:80]!r}") from exc
    if not isinstance(data, dict):
        raise ScoringError(f"oracle reply is not an object: {text[:80]!r}")

    value = data.get("score")
    if isinstance(value, bool):
        raise ScoringError(f"invalid score {value!r}")
    try:
        score = int(float(value))
    except (TypeError, ValueError) as exc:
        raise ScoringError(f"invalid score {value!r}") from exc

    reason = data.get("reason") or ""
    return ScoreResult(score=min(max(score, 0), 100), reason=str(reason).strip()[:300])


class ScoringOracle(ABC):
    provider = ""

    def __init__(self, model: str = "", timeout: float = 120.0) -> None:
        self.model = model or _DEFAULT_MODELS.get(self.provider, "")
        self.timeout = timeout

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Send *prompt* and return the raw text reply."""

    def score(self, text: str) -> ScoreResult:
        try:
            raw = self.complete(text)
        except ScoringError:
            raise
        except Exception as exc:
            raise ScoringError(f"{self.provider} call failed: {exc}") from exc
        return parse_score(raw)


class OllamaOracle(ScoringOracle):
    provider = "ollama"

    def __init__(self, model: str = "", timeout: float = 120.0, base_url: str = "") -> None:
        super().__init__(model, timeout)
        self.base_url = (base_url or OLLAMA_URL).rstrip("/")

    @retry(max_attempts=2, base_delay=2.0)
    def complete(self, prompt: str) -> str:
        r = requests.post(
            f"{self.base_url}/api/generate",
            json={"model": self.model, "prompt": prompt, "stream": False, "format": "json"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json().get("response", "")


class GeminiOracle(ScoringOracle):
    provider = "gemini"

    def __init__(self, model: str = "", timeout: float = 120.0, api_key: str = "") -> None:
        super().__init__(model, timeout)
        self.model = self.model.removeprefix("models/")
        self.api_key = api_key or get_env("GEMINI_API_KEY")

    @retry(max_attempts=2, base_delay=2.0)
    def _generate(self, prompt: str) -> dict:
        r = requests.post(
            GEMINI_URL.format(model=self.model),
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json()

    def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise ScoringError("GEMINI_API_KEY not set")
        data = self._generate(prompt)
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ScoringError("empty response from gemini") from exc


class OpenAIOracle(ScoringOracle):
    provider = "openai"

    def __init__(self, model: str = "", timeout: float = 120.0, base_url: str = "", api_key: str = "") -> None:
        super().__init__(model, timeout)
        self.base_url = base_url or GROQ_URL
        self.api_key = api_key or get_env("GROQ_API_KEY") or get_env("OPENAI_API_KEY")
        self._client = None

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    @retry(max_attempts=2, base_delay=2.0, retryable=(Exception,), giveup=lambda exc: isinstance(exc, ScoringError))
    def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise ScoringError("no API key (set GROQ_API_KEY or OPENAI_API_KEY)")
        r = self._get_client().chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=200,
            temperature=0,
        )
        return (r.choices[0].message.content or "").strip()


_PROVIDERS: dict[str, type[ScoringOracle]] = {
    "ollama": OllamaOracle,
    "gemini": GeminiOracle,
    "openai": OpenAIOracle,
    "groq": OpenAIOracle,
}


def build_oracle(cfg: AIConfig) -> ScoringOracle:
    cls = _PROVIDERS.get(cfg.provider)
    if cls is None:
        raise ScoringError(f"unknown AI provider {cfg.provider!r} (choose from {', '.join(sorted(_PROVIDERS))})")
    kwargs: dict = {"model": cfg.model, "timeout": cfg.request_timeout}
    if cfg.base_url and cls is not GeminiOracle:
        kwargs["base_url"] = cfg.base_url
    oracle = cls(**kwargs)
    log.info("Scoring with %s (model=%s)", oracle.provider, oracle.model)
    return oracle
