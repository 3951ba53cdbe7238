# app/services/trash.py
from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from app.errors import AccessDenied, AlreadyTrashed, OperationFailed
from app.services.sandbox import ValidatedPath

logger = logging.getLogger(__name__)


def _trash_stamp(dt: Optional[datetime] = None) -> str:
    # Sortable and free of ':' / '.' so it is safe on every filesystem
    dt = dt or datetime.now(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


@dataclass(frozen=True)
class TrashEntry:
    source: Path
    destination: Path


@dataclass
class TrashService:
    """
    Soft delete: items are moved into <root>/<trash_dirname> instead of erased.

    Copy-then-remove rather than rename, so a trash dir on another volume works.
    A crash between the two steps leaves both copies in place.
    """
    trash_dirname: str = "Trash"

    def trash_dir_for(self, path: ValidatedPath) -> Path:
        return Path(path.root.real) / self.trash_dirname

    def move_to_trash(self, path: ValidatedPath) -> TrashEntry:
        source = path.path
        trash_dir = self.trash_dir_for(path)

        if source.is_relative_to(trash_dir):
            raise AlreadyTrashed(
                f"Cannot delete files that are already in Trash. Please delete manually from: {source}",
                str(source),
            )
        if source == Path(path.root.real):
            raise AccessDenied(f"Cannot delete an allowed directory: {source}", str(source))

        try:
            trash_dir.mkdir(parents=True, exist_ok=True)
            destination = self._free_name(trash_dir, source.name)
            if source.is_dir() and not source.is_symlink():
                shutil.copytree(source, destination, symlinks=True)
            else:
                shutil.copy2(source, destination, follow_symlinks=False)
        except OSError as e:
            raise OperationFailed("move to trash", str(source), e) from e

        try:
            if source.is_dir() and not source.is_symlink():
                shutil.rmtree(source)
            else:
                source.unlink()
        except OSError as e:
            # The copy is already in the trash; report, do not roll back
            raise OperationFailed("remove original after trashing", str(source), e) from e

        logger.info("trashed %s -> %s", source, destination)
        return TrashEntry(source=source, destination=destination)

    def _free_name(self, trash_dir: Path, name: str) -> Path:
        candidate = trash_dir / name
        if not os.path.lexists(candidate):
            return candidate
        stem, suffix = os.path.splitext(name)
        stamp = _trash_stamp()
        candidate = trash_dir / f"{stem}_{stamp}{suffix}"
        n = 1
        while os.path.lexists(candidate):
            candidate = trash_dir / f"{stem}_{stamp}-{n}{suffix}"
            n += 1
        return candidate
