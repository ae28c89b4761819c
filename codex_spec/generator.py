"""Boundary to the external code generator (the Codex CLI).

The orchestrator only depends on the :class:`Generator` protocol, so tests
and alternative backends can provide their own implementation.
"""

from __future__ import annotations

import codecs
import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

logger = logging.getLogger("codex_spec.generator")

SANDBOX_MODES = ("none", "read-only", "workspace-write")


class GeneratorError(Exception):
    """The generator failed to produce a transcript."""

    def __init__(self, message: str, exit_code: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class GeneratorCancelled(GeneratorError):
    """The run was cancelled or exceeded its timeout."""


class CancellationToken:
    """Cooperative cancellation flag shared with a running generation."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


@dataclass(slots=True)
class GenerationOptions:
    """Options recognised by generators."""

    mode: str = "code"
    sandbox: Optional[str] = None
    on_progress: Optional[Callable[[str], None]] = None
    model: Optional[str] = None

    def __post_init__(self):
        if self.sandbox is not None and self.sandbox not in SANDBOX_MODES:
            raise ValueError(
                f"Invalid sandbox '{self.sandbox}', expected one of: {', '.join(SANDBOX_MODES)}"
            )


class Generator(Protocol):
    def generate(
        self,
        prompt: str,
        options: GenerationOptions,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Run the prompt and return the full transcript."""
        ...


class CodexCLIGenerator:
    """Run prompts through ``codex exec`` in a subprocess."""

    POLL_INTERVAL = 0.1

    def __init__(
        self,
        command: Sequence[str] = ("codex",),
        cwd: Optional[Path | str] = None,
        timeout: Optional[float] = None,
    ):
        self.command = list(command)
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout

    def build_args(self, prompt: str, options: GenerationOptions) -> List[str]:
        args = list(self.command)
        if options.model:
            args.extend(["--model", options.model])
        args.extend(["exec", prompt])
        if options.sandbox and options.sandbox != "none":
            args.extend(["-s", options.sandbox])
        return args

    def generate(
        self,
        prompt: str,
        options: GenerationOptions,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        args = self.build_args(prompt, options)
        logger.info(f"Starting generator: {self.command[0]} (mode={options.mode}, sandbox={options.sandbox})")

        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.cwd,
            )
        except OSError as e:
            raise GeneratorError(f"Could not start {self.command[0]}: {e}") from e

        stdout_parts: List[str] = []
        stderr_parts: List[str] = []
        readers = [
            threading.Thread(
                target=_pump, args=(process.stdout, stdout_parts, options.on_progress), daemon=True
            ),
            threading.Thread(target=_pump, args=(process.stderr, stderr_parts, None), daemon=True),
        ]
        for reader in readers:
            reader.start()

        deadline = time.monotonic() + self.timeout if self.timeout else None
        reason = None
        while process.poll() is None:
            if cancel_token is not None and cancel_token.cancelled:
                reason = "cancelled"
            elif deadline is not None and time.monotonic() >= deadline:
                reason = f"timed out after {self.timeout}s"
            if reason:
                _terminate(process)
                break
            time.sleep(self.POLL_INTERVAL)

        for reader in readers:
            reader.join()
        exit_code = process.wait()
        stderr = "".join(stderr_parts)

        if reason:
            raise GeneratorCancelled(f"Codex CLI {reason}", exit_code=exit_code, stderr=stderr)
        if exit_code != 0:
            raise GeneratorError(
                f"Codex CLI failed (exit code {exit_code}): {stderr}",
                exit_code=exit_code,
                stderr=stderr,
            )
        return "".join(stdout_parts)


def _pump(stream, sink: List[str], on_progress: Optional[Callable[[str], None]]) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            chunk = stream.read1(4096)
            if not chunk:
                break
            text = decoder.decode(chunk)
            if not text:
                continue
            sink.append(text)
            if on_progress is not None:
                try:
                    on_progress(text)
                except Exception as e:
                    logger.warning(f"Progress callback failed: {e}")
        tail = decoder.decode(b"", final=True)
        if tail:
            sink.append(tail)
    finally:
        stream.close()


def _terminate(process: subprocess.Popen) -> None:
    process.terminate()
    try:
        process.wait(timeout=5)
    except subprocess.TimeoutExpired:
        process.kill()
