# app/services/patching.py
from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from app.errors import EditNotFound, OperationFailed
from app.services.sandbox import ValidatedPath

logger = logging.getLogger(__name__)

NO_NEWLINE_MARKER = "\\ No newline at end of file\n"

_LEADING_WS = re.compile(r"^\s*")
_BACKTICKS = re.compile(r"`+")


@dataclass(frozen=True)
class Edit:
    old_text: str
    new_text: str


@dataclass(frozen=True)
class DiffResult:
    diff: str
    fenced: str


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n")


def _indent(line: str) -> str:
    return _LEADING_WS.match(line).group(0)


def _diff_lines(lines: Iterable[str]) -> Iterable[str]:
    # difflib leaves a final line without "\n" glued to whatever follows it
    for line in lines:
        if line.endswith("\n"):
            yield line
        else:
            yield line + "\n"
            yield NO_NEWLINE_MARKER


def unified_diff(original: str, modified: str, label: str = "file") -> str:
    header = f"--- {label}\toriginal\n+++ {label}\tmodified\n"
    lines = difflib.unified_diff(
        normalize_line_endings(original).splitlines(keepends=True),
        normalize_line_endings(modified).splitlines(keepends=True),
        fromfile=label,
        tofile=label,
        fromfiledate="original",
        tofiledate="modified",
    )
    # difflib yields nothing for identical inputs; the header still names the file
    return "".join(_diff_lines(lines)) or header


def fence_for(text: str, minimum: int = 3) -> str:
    longest = max((len(m) for m in _BACKTICKS.findall(text)), default=0)
    return "`" * max(minimum, longest + 1)


def render_fenced_diff(diff: str) -> str:
    fence = fence_for(diff)
    return f"{fence}diff\n{diff}{fence}\n\n"


def _rebuild_lines(window: Sequence[str], old_lines: Sequence[str], new_lines: Sequence[str]) -> List[str]:
    """
    Re-derive indentation for a whitespace-tolerant match.

    Every line is anchored on the indentation of the window's first line.
    Later lines add the indent change between the paired old and new lines
    (a negative change trims); without leading whitespace on both sides the new
    line is kept as-is.
    """
    base = _indent(window[0])
    rebuilt = []
    for j, line in enumerate(new_lines):
        if j == 0:
            rebuilt.append(base + line.lstrip())
            continue
        old_indent = _indent(old_lines[j]) if j < len(old_lines) else ""
        new_indent = _indent(line)
        if not old_indent or not new_indent:
            rebuilt.append(line)
            continue
        delta = len(new_indent) - len(old_indent)
        if delta >= 0:
            indent = base + " " * delta
        else:
            indent = base[:max(0, len(base) + delta)]
        rebuilt.append(indent + line.lstrip())
    return rebuilt


def _replace_window(content: str, old_text: str, new_text: str) -> Optional[str]:
    old_lines = old_text.split("\n")
    content_lines = content.split("\n")
    wanted = [l.strip() for l in old_lines]
    span = len(old_lines)
    for i in range(len(content_lines) - span + 1):
        window = content_lines[i:i + span]
        if all(w.strip() == o for w, o in zip(window, wanted)):
            content_lines[i:i + span] = _rebuild_lines(window, old_lines, new_text.split("\n"))
            return "\n".join(content_lines)
    return None


def apply_to_text(content: str, edits: Sequence[Edit]) -> str:
    """Apply edits left to right to an in-memory buffer. Raises EditNotFound."""
    buffer = normalize_line_endings(content)
    for edit in edits:
        old = normalize_line_endings(edit.old_text)
        new = normalize_line_endings(edit.new_text)
        if old in buffer:
            buffer = buffer.replace(old, new, 1)
            continue
        replaced = _replace_window(buffer, old, new)
        if replaced is None:
            raise EditNotFound(edit.old_text)
        buffer = replaced
    return buffer


class PatchEngine:
    """
    Sequential, whitespace-tolerant text edits on a single file:
    - exact substring first, then a trimmed line window
    - all-or-nothing: a missing edit discards the whole batch
    - returns a unified diff fenced so its content cannot close the fence
    """

    def apply_edits(self, path: ValidatedPath, edits: Sequence[Edit], dry_run: bool = False) -> DiffResult:
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                raw = f.read()
        except OSError as e:
            raise OperationFailed("read", str(path), e) from e

        original = normalize_line_endings(raw)
        try:
            modified = apply_to_text(original, edits)
        except EditNotFound as e:
            e.path = str(path)
            raise

        diff = unified_diff(original, modified, str(path))
        result = DiffResult(diff=diff, fenced=render_fenced_diff(diff))
        if dry_run:
            return result

        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(modified)
        except OSError as e:
            raise OperationFailed("write", str(path), e) from e
        logger.info("edited %s (%d edits)", path, len(edits))
        return result
