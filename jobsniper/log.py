"""Logging for the sniper: stdout plus one file per day under logs/.

Values of secret environment variables (bot token, SMTP password, API keys)
are masked in every record before it reaches a handler.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_LOG_DIR = Path(os.environ.get("SNIPER_LOG_DIR", Path(__file__).resolve().parent.parent / "logs"))
_FORMAT = "%(asctime)s  %(levelname)-8s  [%(threadName)s]  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_SECRET_ENV = ("TG_TOKEN", "SMTP_PASSWORD", "GEMINI_API_KEY", "GROQ_API_KEY", "OPENAI_API_KEY")
_configured = False


class RedactSecrets(logging.Filter):
    """Replace known secret values with *** in the formatted message."""

    def filter(self, record: logging.LogRecord) -> bool:
        secrets = [v for v in (os.environ.get(k, "").strip() for k in _SECRET_ENV) if len(v) >= 6]
        if not secrets:
            return True
        msg = record.getMessage()
        masked = msg
        for s in secrets:
            masked = masked.replace(s, "***")
        if masked != msg:
            record.msg, record.args = masked, None
        return True


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; the root handlers are installed on first call."""
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def set_level(level_name: str) -> None:
    """Change the console level at runtime (the daily file always gets DEBUG)."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(min(level, logging.DEBUG) if _has_file_handler(root) else level)
    for h in root.handlers:
        if not isinstance(h, logging.FileHandler):
            h.setLevel(level)


def _has_file_handler(root: logging.Logger) -> bool:
    return any(isinstance(h, logging.FileHandler) for h in root.handlers)


def _configure() -> None:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    redact = RedactSecrets()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    console.addFilter(redact)
    root.addHandler(console)

    # urllib3 logs one line per pooled connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    try:
        _LOG_DIR.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(_LOG_DIR / f"sniper_{datetime.now():%Y-%m-%d}.log", encoding="utf-8")
    except OSError as exc:
        root.warning("File logging disabled, cannot write to %s: %s", _LOG_DIR, exc)
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    fh.addFilter(redact)
    root.addHandler(fh)
    root.setLevel(logging.DEBUG)
