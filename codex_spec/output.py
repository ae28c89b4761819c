"""Post-processing of generator transcripts.

The Codex CLI prints free-form text: progress chatter, patches in the
apply-patch envelope format, plain diffs and a closing summary. Nothing here
is a contract with the tool. These functions recover what they can with
line heuristics and never touch processes or files, so they can be tested
against literal transcripts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .models import ChangedFile

DEFAULT_SUMMARY_LINES = 12

# CSI (colors, cursor movement), OSC (titles, hyperlinks) and the remaining
# two-character escapes.
_ANSI_RE = re.compile(
    r"""
    \x1b\[[0-?]*[ -/]*[@-~]
    | \x1b\][^\x07\x1b]*(?:\x07|\x1b\\)
    | \x1b[@-Z\\-_]
    """,
    re.VERBOSE,
)

_NOISE_PREFIXES = (
    "diff --git",
    "index ",
    "--- ",
    "+++ ",
    "@@",
    "*** Begin Patch",
    "*** End Patch",
    "*** Add File:",
    "*** Update File:",
    "*** Delete File:",
    "*** Move to:",
    "+",
    "-",
)

_PATCH_FILE_RE = re.compile(r"^\s*\*\*\* (?P<action>Add|Update) File:\s*(?P<path>.+?)\s*$")
_BARE_FILE_RE = re.compile(r"^(?P<prefix>.*?)\bFile:\s*(?P<path>\S+)\s*$")
_ACTION_VERB_RE = re.compile(r"\b(add|added|update|updated|delete|deleted|move|moved|create|created)\s*$", re.I)
_URL_RE = re.compile(r"^(?:[a-z][a-z0-9+.-]*://|www\.)", re.I)


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences and normalise line endings."""
    cleaned = _ANSI_RE.sub("", text)
    return cleaned.replace("\r\n", "\n").replace("\r", "\n")


def is_diff_noise(line: str) -> bool:
    """Return True for lines that belong to a diff or patch body."""
    return line.startswith(_NOISE_PREFIXES)


def summarize_tail(text: str, max_lines: int = DEFAULT_SUMMARY_LINES) -> List[str]:
    """Return the last ``max_lines`` meaningful lines of a transcript.

    Diff noise is filtered out first. When the filter leaves two lines or
    fewer the transcript is mostly patch content, and the unfiltered tail is
    more useful than a near-empty summary.
    """
    if max_lines < 1:
        raise ValueError("max_lines must be at least 1")

    lines = [line.rstrip() for line in text.split("\n")]
    lines = [line for line in lines if line.strip()]
    filtered = [line for line in lines if not is_diff_noise(line)]
    chosen = filtered if len(filtered) > 2 else lines
    return chosen[-max_lines:]


def _clean_path(raw: str) -> str:
    return raw.strip().strip("`'\"").rstrip(".,;:")


def extract_changed_files(text: str) -> List[ChangedFile]:
    """Infer added and updated files from a sanitised transcript.

    ``*** Add File:`` / ``*** Update File:`` lines are authoritative. A bare
    ``File: <path>`` at the end of a line counts as an update only when the
    path has not been seen in a patch header. Records keep first-seen order.
    """
    records: Dict[str, Tuple[str, bool]] = {}

    for line in text.split("\n"):
        match = _PATCH_FILE_RE.match(line)
        if match:
            path = _clean_path(match.group("path"))
            if not path:
                continue
            action = match.group("action")
            current = records.get(path)
            if current is None or not current[1]:
                records[path] = (action, True)
            elif action == ChangedFile.ACTION_ADD:
                records[path] = (ChangedFile.ACTION_ADD, True)
            continue

        if is_diff_noise(line):
            continue
        match = _BARE_FILE_RE.match(line)
        if not match:
            continue
        prefix = match.group("prefix")
        if "***" in prefix or _ACTION_VERB_RE.search(prefix):
            continue
        path = _clean_path(match.group("path"))
        if not path or _URL_RE.match(path):
            continue
        if path not in records:
            records[path] = (ChangedFile.ACTION_UPDATE, False)

    return [ChangedFile(action=action, path=path) for path, (action, _) in records.items()]


@dataclass(slots=True)
class TranscriptDigest:
    """Structured view of one generator transcript."""

    summary: List[str] = field(default_factory=list)
    changed_files: List[ChangedFile] = field(default_factory=list)

    @property
    def files_created(self) -> List[str]:
        return [f.path for f in self.changed_files if f.action == ChangedFile.ACTION_ADD]

    @property
    def files_updated(self) -> List[str]:
        return [f.path for f in self.changed_files if f.action == ChangedFile.ACTION_UPDATE]


def digest_transcript(raw: str, max_lines: int = DEFAULT_SUMMARY_LINES) -> TranscriptDigest:
    """Sanitise a raw transcript and derive its summary and changed files."""
    text = strip_ansi(raw)
    return TranscriptDigest(
        summary=summarize_tail(text, max_lines),
        changed_files=extract_changed_files(text),
    )
