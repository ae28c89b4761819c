"""Environment-driven settings."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .generator import SANDBOX_MODES
from .output import DEFAULT_SUMMARY_LINES


@dataclass(slots=True)
class Settings:
    """Runtime configuration, usually read from the environment."""

    project_root: Optional[Path] = None
    storage_dir: str = ".codex-specs"
    spec_name: Optional[str] = None
    codex_command: Tuple[str, ...] = ("codex",)
    model: Optional[str] = None
    sandbox: str = "workspace-write"
    summary_lines: int = DEFAULT_SUMMARY_LINES
    timeout: Optional[float] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        root = env.get("CODEX_SPEC_PROJECT_ROOT")
        log_file = env.get("CODEX_SPEC_LOG_FILE")
        settings = cls(
            project_root=Path(root).expanduser() if root else None,
            storage_dir=env.get("CODEX_SPEC_STORAGE_DIR") or ".codex-specs",
            spec_name=env.get("CODEX_SPEC_NAME") or None,
            codex_command=tuple(shlex.split(env.get("CODEX_BIN") or "codex")),
            model=env.get("CODEX_MODEL") or None,
            sandbox=env.get("CODEX_SANDBOX") or "workspace-write",
            summary_lines=_int(env, "CODEX_SPEC_SUMMARY_LINES", DEFAULT_SUMMARY_LINES),
            timeout=_float(env, "CODEX_SPEC_TIMEOUT"),
            log_level=(env.get("CODEX_SPEC_LOG_LEVEL") or "INFO").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.codex_command:
            raise ValueError("CODEX_BIN must name an executable")
        if self.sandbox not in SANDBOX_MODES:
            raise ValueError(f"CODEX_SANDBOX must be one of: {', '.join(SANDBOX_MODES)}")
        if self.summary_lines < 1:
            raise ValueError("CODEX_SPEC_SUMMARY_LINES must be at least 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("CODEX_SPEC_TIMEOUT must be positive")


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


def _float(env: Mapping[str, str], name: str) -> Optional[float]:
    raw = env.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None
