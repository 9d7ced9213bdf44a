#!/usr/bin/env python3
"""Entry point: run one pass of the job sniper.

Meant to be invoked periodically by cron (see setup_cron.py); every run is a
single pass and exits 0 once it completes.
"""
from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from jobsniper.config import load_settings
from jobsniper.log import get_logger, set_level

log = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Fetch new job postings and send the eligible ones.")
    p.add_argument("--config", type=Path, default=None, help="path to config.yaml")
    p.add_argument("--store", type=Path, default=None, help="override the seen-store path")
    p.add_argument("--dry-run", action="store_true", help="log messages instead of sending; do not update the store")
    p.add_argument("--no-ai", action="store_true", help="skip AI scoring even if enabled in config")
    p.add_argument("-v", "--verbose", action="store_true", help="debug output on the console")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        set_level("DEBUG")
    settings = load_settings(args.config)
    if args.store:
        settings = replace(settings, store_path=args.store)

    from jobsniper.pipeline import run

    result = run(settings, dry_run=args.dry_run, use_ai=not args.no_ai)
    log.info("Run complete.")
    log.info("  Fetched: %d (failed sources: %s)", result["fetched"], ", ".join(result["failed_sources"]) or "none")
    log.info("  New: %d, eligible: %d, scored: %d", result["new"], result["eligible"], result["scored"])
    log.info("  Notified: %d job(s) in %d message(s)", result["notified"], result["messages_sent"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
