from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path


def get_run_log_path() -> Path | None:
    env_val = os.getenv("COUNTGATE_RUN_LOG")
    if env_val:
        return Path(env_val)
    return None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _append(log_path: Path, entry: dict) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry) + "\n")


def log_run_start(
    log_path: Path,
    run_id: str,
    query: str,
    comparison: str,
    threshold: int,
) -> None:
    """Log the start of a gate evaluation."""
    _append(log_path, {
        "run_id": run_id,
        "status": "started",
        "started_at": _utc_now(),
        "query": query,
        "comparison": comparison,
        "threshold": threshold,
    })


def log_run_end(
    log_path: Path,
    run_id: str,
    status: str,  # "passed", "failed" or "error"
    count: int | None = None,
    url: str | None = None,
    error: str | None = None
) -> None:
    """Log the end of a gate evaluation."""
    entry = {
        "run_id": run_id,
        "status": status,
        "ended_at": _utc_now(),
    }

    if status in ("passed", "failed"):
        entry.update({
            "count": count,
            "url": url,
        })
    if status == "error":
        entry["error"] = error

    _append(log_path, entry)


def read_runs(
    log_path: Path,
    completed_only: bool = False
) -> list[dict]:
    """
    Read gate runs from JSONL log.
    If completed_only=True, return only end records, excluding start records.
    """
    if not log_path.exists():
        return []

    runs = []
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            if line.strip():
                runs.append(json.loads(line))

    if not completed_only:
        return runs

    return [r for r in runs if r["status"] in ("passed", "failed", "error")]
