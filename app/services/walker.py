# app/services/walker.py
from __future__ import annotations

import fnmatch
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from app.errors import OperationFailed, SandboxError
from app.services.sandbox import PathSandbox, ValidatedPath

logger = logging.getLogger(__name__)

FILE = "file"
DIRECTORY = "directory"

_WILDCARDS = ("*", "?", "[")


@dataclass(frozen=True)
class DirEntry:
    name: str
    kind: str

    def render(self) -> str:
        return f"{'[DIR]' if self.kind == DIRECTORY else '[FILE]'} {self.name}"


@dataclass
class TreeNode:
    name: str
    kind: str
    children: Optional[List["TreeNode"]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "type": self.kind}
        if self.kind == DIRECTORY:
            out["children"] = [c.to_dict() for c in self.children or []]
        return out


def _entries(path: os.PathLike | str) -> List[os.DirEntry]:
    with os.scandir(path) as it:
        return sorted(it, key=lambda e: e.name)


def _kind(entry: os.DirEntry) -> str:
    # Symlinks are never followed while walking
    return DIRECTORY if entry.is_dir(follow_symlinks=False) else FILE


def _glob_segments(parts: Sequence[str], pattern: str) -> bool:
    """
    Match a relative path against a "/"-separated glob one segment at a time:
    `*`, `?` and `[...]` stay inside a segment, a `**` segment spans zero or more.
    """
    reachable = {0}
    for seg in (s for s in pattern.split("/") if s):
        if seg == "**":
            reachable = set(range(min(reachable), len(parts) + 1))
        else:
            reachable = {i + 1 for i in reachable
                         if i < len(parts) and fnmatch.fnmatchcase(parts[i], seg)}
        if not reachable:
            return False
    return len(parts) in reachable


def _is_excluded(rel_path: str, patterns: Sequence[str], is_dir: bool = False) -> bool:
    parts = Path(rel_path).parts
    # plain names only ever name directories
    dir_parts = parts if is_dir else parts[:-1]
    for pattern in patterns:
        if not any(w in pattern for w in _WILDCARDS):
            if pattern in dir_parts:
                return True
        elif _glob_segments(parts, pattern):
            return True
    return False


class HierarchyWalker:
    """
    Listing, tree building and name search below a validated directory.
    Walks are iterative; every directory is re-validated before it is read.
    """

    def __init__(self, sandbox: PathSandbox):
        self.sandbox = sandbox

    def list(self, path: ValidatedPath) -> List[DirEntry]:
        try:
            return [DirEntry(e.name, _kind(e)) for e in _entries(path)]
        except OSError as e:
            raise OperationFailed("list directory", str(path), e) from e

    def tree(self, path: ValidatedPath) -> List[TreeNode]:
        top: List[TreeNode] = []
        stack: List[Tuple[str, List[TreeNode]]] = [(str(path), top)]
        while stack:
            current, sink = stack.pop()
            validated = self.sandbox.validate(current)
            try:
                entries = _entries(validated)
            except OSError as e:
                raise OperationFailed("read directory", current, e) from e
            for entry in entries:
                kind = _kind(entry)
                node = TreeNode(entry.name, kind)
                if kind == DIRECTORY:
                    node.children = []
                    stack.append((os.path.join(str(validated), entry.name), node.children))
                sink.append(node)
        return top

    def tree_json(self, path: ValidatedPath) -> str:
        return json.dumps([n.to_dict() for n in self.tree(path)], indent=2)

    def search(self, root: ValidatedPath, pattern: str,
               exclude_patterns: Sequence[str] = ()) -> List[str]:
        """
        Depth-first, pre-order. Entries that fail validation are skipped, not
        reported: one hostile or dangling entry must not abort the search.
        """
        needle = pattern.lower()
        root_dir = str(root)
        results: List[str] = []

        try:
            stack: List[Tuple[str, Iterator[os.DirEntry]]] = [(root_dir, iter(_entries(root)))]
        except OSError as e:
            raise OperationFailed("search", root_dir, e) from e

        while stack:
            current, entries = stack[-1]
            entry = next(entries, None)
            if entry is None:
                stack.pop()
                continue

            full_path = os.path.join(current, entry.name)
            try:
                self.sandbox.validate(full_path)
            except SandboxError as e:
                logger.debug("search skipped %s: %s", full_path, e)
                continue

            is_dir = _kind(entry) == DIRECTORY
            if _is_excluded(os.path.relpath(full_path, root_dir), exclude_patterns, is_dir):
                continue
            if needle in entry.name.lower():
                results.append(full_path)

            if is_dir:
                try:
                    stack.append((full_path, iter(_entries(full_path))))
                except OSError as e:
                    logger.debug("search skipped %s: %s", full_path, e)
        return results
