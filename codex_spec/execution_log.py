"""Per-attempt execution logs."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from .models import utc_timestamp
from .codex_logging import log_execution_log_written

_UNSAFE_ID_RE = re.compile(r"[\\/:]+")


def log_timestamp(now: Optional[datetime] = None) -> str:
    """Filesystem-safe form of :func:`utc_timestamp`."""
    return utc_timestamp(now).replace(":", "-").replace(".", "-")


def write_execution_log(
    logs_dir: Path,
    task_id: str,
    transcript: str,
    now: Optional[datetime] = None,
) -> Path:
    """Write the raw transcript of one attempt and return the log path.

    Logs are never overwritten: if a file with the same name already exists
    a numeric suffix is added.
    """
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    stem = f"{_UNSAFE_ID_RE.sub('_', task_id)}-{log_timestamp(now)}"
    candidate = logs_dir / f"{stem}.log"
    attempt = 1
    while True:
        try:
            with candidate.open("x", encoding="utf-8", newline="") as handle:
                handle.write(transcript)
            break
        except FileExistsError:
            attempt += 1
            candidate = logs_dir / f"{stem}-{attempt}.log"

    log_execution_log_written(task_id, candidate, size=len(transcript))
    return candidate
