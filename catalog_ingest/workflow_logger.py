# catalog_ingest/workflow_logger.py
from __future__ import annotations

from datetime import datetime, timezone
import json
import os
from pathlib import Path
_LOG_PATH: Path | None = None

# One file produced per run
# First call creates <WORKFLOW_LOG_DIR>/run_YYYYMMDDTHHMMSSZ.log
def _get_log_path() -> Path:
    global _LOG_PATH
    if _LOG_PATH is None:
        log_dir = Path(os.getenv("WORKFLOW_LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        _LOG_PATH = log_dir / f"run_{timestamp}.log"
    return _LOG_PATH


def reset_log_path() -> None:
    """Start a new run file on the next event (used when WORKFLOW_LOG_DIR changes)."""
    global _LOG_PATH
    _LOG_PATH = None


def log_event(
    *,
    status: str,
    actor: str,
    event: str,
    document: str = "-",
    extra: dict | None = None,
) -> None:
    ts = datetime.now(timezone.utc).isoformat(timespec="seconds")
    extra = extra or {}

    line = (
        f"{ts} | document={document} | status={status} | actor={actor} | "
        f"{event} | json={json.dumps(extra, ensure_ascii=False, default=str)}"
    )

    # print to console for real-time monitoring
    print(line, flush=True)
    with _get_log_path().open("a", encoding="utf-8") as f:
        f.write(line + "\n")
