"""Load run configuration from config.yaml and environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from jobsniper.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_PATH: Path = Path(os.environ.get("SNIPER_CONFIG", ROOT_DIR / "config.yaml"))
DATA_DIR: Path = ROOT_DIR / "data"
RESUME_PATH: Path = ROOT_DIR / "resume.txt"

DEFAULT_MAX_EXPERIENCE_YEARS = 2

# Seniority markers and experience phrases that disqualify a title for an
# early-career search.  Substring matched against the lowercased title.
DEFAULT_EXCLUDE_KEYWORDS: tuple[str, ...] = (
    "senior", "sr.", "sr ", "lead", "principal", "staff", "manager", "director",
    "head of", "vp ", "vice president", "architect",
    "3+", "4+", "5+", "6+", "7+", "8+", "10+",
    "3-5", "4-6", "5-7", "5-8", "6-8", "7-10", "8-10",
    "3 years", "4 years", "5 years", "6 years", "7 years", "8 years", "10 years",
    "three years", "four years", "five years",
)

DEFAULT_SOURCES: dict[str, bool] = {"remoteok": True}


class ConfigError(ValueError):
    """A config value has the wrong shape."""


@dataclass(frozen=True)
class FilterConfig:
    include_keywords: tuple[str, ...] = ()
    exclude_keywords: tuple[str, ...] = DEFAULT_EXCLUDE_KEYWORDS
    locations: tuple[str, ...] = ()
    max_experience_years: int = DEFAULT_MAX_EXPERIENCE_YEARS
    max_days_old: int = 0


@dataclass(frozen=True)
class AIConfig:
    enabled: bool = False
    provider: str = "ollama"
    model: str = ""
    threshold: int = 50
    concurrency: int = 5
    timeout: float | None = None
    request_timeout: float = 120.0
    base_url: str = ""
    resume_path: Path = RESUME_PATH


@dataclass(frozen=True)
class NotifyConfig:
    channel: str = "auto"
    max_length: int = 4000


@dataclass(frozen=True)
class Settings:
    filters: FilterConfig = field(default_factory=FilterConfig)
    sources: Mapping[str, bool] = field(default_factory=lambda: dict(DEFAULT_SOURCES))
    fetch_concurrency: int = 8
    http_timeout: float = 15.0
    store_path: Path = DATA_DIR / "jobs.json"
    ai: AIConfig = field(default_factory=AIConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)
    careers: tuple[Mapping[str, str], ...] = ()
    sheets: tuple[str, ...] = ()

    def enabled_sources(self) -> list[str]:
        return sorted(name for name, on in self.sources.items() if on)


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _str_list(data: Mapping[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{key}' must be a list of strings")
    return tuple(str(v).strip() for v in value if str(v).strip())


def _int(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be an integer, got {value!r}") from exc


def _float(data: Mapping[str, Any], key: str, default: float | None) -> float | None:
    value = data.get(key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be a number, got {value!r}") from exc


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{key}' must be a mapping")
    return value


def parse_filters(data: Mapping[str, Any]) -> FilterConfig:
    exclude = _str_list(data, "exclude_keywords") if "exclude_keywords" in data else DEFAULT_EXCLUDE_KEYWORDS
    max_exp = _int(data, "max_experience_years", 0)
    if max_exp <= 0:
        max_exp = DEFAULT_MAX_EXPERIENCE_YEARS
    return FilterConfig(
        include_keywords=_str_list(data, "keywords"),
        exclude_keywords=exclude,
        locations=_str_list(data, "locations"),
        max_experience_years=max_exp,
        max_days_old=max(_int(data, "max_days_old", 0), 0),
    )


def parse_ai(data: Mapping[str, Any]) -> AIConfig:
    section = _section(data, "ai")
    resume = section.get("resume_path")
    return AIConfig(
        enabled=bool(section.get("enabled", False)),
        provider=str(section.get("provider") or "ollama").strip().lower(),
        model=str(section.get("model") or "").strip(),
        threshold=_int(section, "threshold", 50),
        concurrency=max(_int(section, "concurrency", 5), 1),
        timeout=_float(section, "timeout", None) or None,
        request_timeout=_float(section, "request_timeout", 120.0) or 120.0,
        base_url=str(section.get("base_url") or "").strip(),
        resume_path=Path(resume) if resume else RESUME_PATH,
    )


def parse_settings(data: Mapping[str, Any]) -> Settings:
    """Build Settings from an already-parsed YAML mapping."""
    sources = data.get("sources")
    if sources is None:
        sources = dict(DEFAULT_SOURCES)
    elif not isinstance(sources, Mapping):
        raise ConfigError("'sources' must map source names to true/false")

    careers = data.get("careers") or []
    if not isinstance(careers, list) or not all(isinstance(c, Mapping) for c in careers):
        raise ConfigError("'careers' must be a list of mappings")

    concurrency = _section(data, "concurrency")
    notify = _section(data, "notify")
    store_path = data.get("store_path")

    return Settings(
        filters=parse_filters(data),
        sources={str(k).strip().lower(): bool(v) for k, v in sources.items()},
        fetch_concurrency=max(_int(concurrency, "fetch", 8), 1),
        http_timeout=_float(data, "http_timeout", 15.0) or 15.0,
        store_path=Path(store_path) if store_path else DATA_DIR / "jobs.json",
        ai=parse_ai(data),
        notify=NotifyConfig(
            channel=str(notify.get("channel") or "auto").strip().lower(),
            max_length=max(_int(notify, "max_length", 4000), 200),
        ),
        careers=tuple(dict(c) for c in careers),
        sheets=_str_list(data, "sheets"),
    )


def load_settings(path: Path | str | None = None) -> Settings:
    """Read config.yaml; a missing or malformed file yields default Settings."""
    path = Path(path) if path else CONFIG_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        log.warning("Config %s not found, using defaults", path)
        return Settings()
    except (OSError, yaml.YAMLError) as exc:
        log.warning("Could not parse %s (%s), using defaults", path, exc)
        return Settings()

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        log.warning("Config %s is not a mapping, using defaults", path)
        return Settings()

    try:
        settings = parse_settings(data)
    except ConfigError as exc:
        log.warning("Invalid config in %s (%s), using defaults", path, exc)
        return Settings()

    log.info(
        "Loaded config: %d keyword(s), %d location(s), sources=%s",
        len(settings.filters.include_keywords),
        len(settings.filters.locations),
        ",".join(settings.enabled_sources()) or "none",
    )
    return settings
