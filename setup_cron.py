#!/usr/bin/env python3
"""
Install a cron job that runs run_sniper.py every SNIPER_INTERVAL_MINUTES
(from .env, default 30).  Cron is the retry loop: a failed pass is simply
followed by the next one.
Run once: python setup_cron.py
"""
from __future__ import annotations

import os
import subprocess
from pathlib import Path

from dotenv import load_dotenv

# Project root
ROOT = Path(__file__).resolve().parent
load_dotenv(ROOT / ".env")
venv_python = ROOT / ".venv" / "bin" / "python"
MARKER = "# jobsniper"


def interval_minutes() -> int:
    try:
        minutes = int(os.environ.get("SNIPER_INTERVAL_MINUTES", "30"))
    except ValueError:
        minutes = 30
    return min(max(minutes, 1), 59)


def build_entry(minutes: int, root: Path = ROOT, python: Path = venv_python) -> str:
    log_file = root / "logs" / "cron.log"
    return (
        f"*/{minutes} * * * * cd {root} && {python} {root / 'run_sniper.py'} "
        f">> {log_file} 2>&1 {MARKER}"
    )


def merge_crontab(existing: str, entry: str) -> str:
    """Replace any previous jobsniper line with *entry*; keep everything else."""
    kept = [line for line in existing.splitlines() if line.strip() and not line.rstrip().endswith(MARKER)]
    kept.append(entry)
    return "\n".join(kept)


def main():
    if not venv_python.exists():
        print("Error: .venv not found. Run: python -m venv .venv && pip install -e .")
        return 1
    entry = build_entry(interval_minutes())
    try:
        out = subprocess.run(
            ["crontab", "-l"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        existing = (out.stdout or "").strip() if out.returncode == 0 else ""
        if entry in existing.splitlines():
            print("Cron entry already present. No change.")
            return 0
        new_crontab = merge_crontab(existing, entry)
        proc = subprocess.run(
            ["crontab", "-"],
            input=new_crontab + "\n",
            capture_output=True,
            text=True,
            timeout=5,
        )
        if proc.returncode != 0:
            _write_crontab_file(new_crontab)
            print("Could not install crontab automatically. Run manually:")
            print(f"  crontab {ROOT / 'crontab.txt'}")
            return 1
        print(f"Cron installed: every {interval_minutes()} minutes")
        print(f"  Entry: {entry}")
        return 0
    except subprocess.TimeoutExpired:
        _write_crontab_file(entry)
        print("Crontab timed out. To install manually, run:")
        print(f"  crontab {ROOT / 'crontab.txt'}")
        return 1
    except FileNotFoundError:
        print("crontab not found. On Windows use Task Scheduler; on Mac/Linux ensure cron is available.")
        _write_crontab_file(entry)
        return 1


def _write_crontab_file(content: str) -> None:
    path = ROOT / "crontab.txt"
    path.write_text(content + "\n", encoding="utf-8")
    print(f"Wrote {path}")


if __name__ == "__main__":
    raise SystemExit(main())
