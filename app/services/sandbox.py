# app/services/sandbox.py
from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple

from app.errors import AccessDenied, ConfigError, ParentUnreachable


def expand_home(raw: str) -> str:
    if raw == "~" or raw.startswith("~/"):
        return str(Path.home()) + raw[1:]
    return raw


def normalize(raw: str) -> str:
    """Home shorthand, absolute against the cwd, redundant segments collapsed."""
    expanded = expand_home(raw)
    if not os.path.isabs(expanded):
        expanded = os.path.join(os.getcwd(), expanded)
    return os.path.normpath(expanded)


def is_within(path: str, root: str) -> bool:
    # Segment-aware: /data admits /data/x but never /data2
    return Path(path).is_relative_to(root)


@dataclass(frozen=True)
class AllowedRoot:
    path: str   # normalized, as configured
    real: str   # symlinks resolved

    def contains(self, candidate: str) -> bool:
        return is_within(candidate, self.path) or is_within(candidate, self.real)


class AllowedRoots:
    """
    Immutable, non-empty set of directory roots. Built once at startup and
    handed to every component that needs it.
    """

    def __init__(self, roots: Iterable[AllowedRoot]):
        self._roots: Tuple[AllowedRoot, ...] = tuple(roots)
        if not self._roots:
            raise ConfigError("At least one allowed directory is required")

    def __iter__(self) -> Iterator[AllowedRoot]:
        return iter(self._roots)

    def __len__(self) -> int:
        return len(self._roots)

    def owner(self, candidate: str) -> Optional[AllowedRoot]:
        # Most specific root wins when roots are nested
        matches = [r for r in self._roots if r.contains(candidate)]
        if not matches:
            return None
        return max(matches, key=lambda r: len(r.real))

    def describe(self) -> str:
        return ", ".join(r.path for r in self._roots)


def load_allowed_roots(directories: Iterable[str]) -> AllowedRoots:
    """
    Startup contract: every directory must exist and be a directory.
    Raises ConfigError otherwise; callers treat that as fatal.
    """
    roots = []
    for raw in directories:
        path = normalize(raw)
        try:
            st = os.stat(path)
        except OSError as e:
            raise ConfigError(f"Error accessing directory {raw}: {e.strerror or e}", raw) from e
        if not stat.S_ISDIR(st.st_mode):
            raise ConfigError(f"Error: {raw} is not a directory", raw)
        roots.append(AllowedRoot(path=path, real=os.path.realpath(path)))
    return AllowedRoots(roots)


@dataclass(frozen=True)
class ValidatedPath:
    """A path proven to resolve inside an allowed root, symlinks included."""
    path: Path
    exists: bool
    root: AllowedRoot

    def __fspath__(self) -> str:
        return str(self.path)

    def __str__(self) -> str:
        return str(self.path)

    @property
    def name(self) -> str:
        return self.path.name


class PathSandbox:
    """
    Gatekeeper for every filesystem access:
    - expand ~, make absolute, normalize
    - segment-aware containment against the allowed roots
    - re-check containment on the real (symlink-resolved) target
    - for new paths, the parent must resolve inside a root
    Read-only: never touches the filesystem beyond stat/realpath.
    """

    def __init__(self, roots: AllowedRoots):
        self.roots = roots

    def validate(self, requested: str) -> ValidatedPath:
        absolute = normalize(requested)
        if self.roots.owner(absolute) is None:
            raise AccessDenied(
                f"Access denied - path outside allowed directories: {absolute} "
                f"not in {self.roots.describe()}",
                requested,
            )

        try:
            real = Path(absolute).resolve(strict=True)
        except (OSError, RuntimeError):
            real = None
        if real is not None:
            root = self.roots.owner(str(real))
            if root is None:
                raise AccessDenied("Access denied - symlink target outside allowed directories", requested)
            return ValidatedPath(path=real, exists=True, root=root)

        if os.path.islink(absolute):
            # Dangling link: writing through it would land wherever it points
            target = os.path.realpath(absolute)
            if self.roots.owner(target) is None:
                raise AccessDenied("Access denied - symlink target outside allowed directories", requested)

        parent = os.path.dirname(absolute)
        try:
            real_parent = Path(parent).resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise ParentUnreachable(f"Parent directory does not exist: {parent}", requested) from e
        if not real_parent.is_dir():
            raise ParentUnreachable(f"Parent directory does not exist: {parent}", requested)
        root = self.roots.owner(str(real_parent))
        if root is None:
            raise ParentUnreachable(
                f"Access denied - parent directory outside allowed directories: {parent}", requested
            )
        return ValidatedPath(path=Path(absolute), exists=False, root=root)
