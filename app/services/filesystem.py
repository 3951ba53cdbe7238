# app/services/filesystem.py
from __future__ import annotations

import asyncio
import os
import shutil
import stat
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Sequence

import aiofiles

from app.errors import AlreadyExists, OperationFailed, SandboxError
from app.services.sandbox import PathSandbox, ValidatedPath


@dataclass(frozen=True)
class FileInfo:
    size: int
    created: str
    modified: str
    accessed: str
    isDirectory: bool
    isFile: bool
    permissions: str

    def render(self) -> str:
        return "\n".join(f"{k}: {v}" for k, v in asdict(self).items())


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts).astimezone().isoformat()


def _occupied(path: ValidatedPath) -> bool:
    return path.exists or os.path.lexists(path)


class FileSystemService:
    """
    Plain file I/O on paths that already went through the sandbox.
    Only read_many takes raw strings: it validates each one itself so a bad
    path fails alone.
    """

    def __init__(self, sandbox: PathSandbox):
        self.sandbox = sandbox

    def read_text(self, path: ValidatedPath) -> str:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise OperationFailed("read", str(path), e) from e

    async def _read_one(self, raw: str) -> str:
        try:
            path = self.sandbox.validate(raw)
            async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
                content = await f.read()
            return f"{raw}:\n{content}\n"
        except (SandboxError, OSError, UnicodeDecodeError) as e:
            return f"{raw}: Error - {e}"

    async def read_many(self, paths: Sequence[str]) -> str:
        results: List[str] = await asyncio.gather(*(self._read_one(p) for p in paths))
        return "\n---\n".join(results)

    def write_text(self, path: ValidatedPath, content: str) -> str:
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise OperationFailed("write", str(path), e) from e
        return str(path)

    def copy(self, source: ValidatedPath, destination: ValidatedPath) -> None:
        if _occupied(destination):
            raise AlreadyExists(f"Destination already exists: {destination}", str(destination))
        try:
            if source.path.is_dir():
                shutil.copytree(source, destination, symlinks=True)
            else:
                shutil.copy2(source, destination)
        except OSError as e:
            raise OperationFailed("copy", str(source), e) from e

    def move(self, source: ValidatedPath, destination: ValidatedPath) -> None:
        if _occupied(destination):
            raise AlreadyExists(f"Destination already exists: {destination}", str(destination))
        try:
            # shutil.move falls back to copy+delete across volumes
            shutil.move(os.fspath(source), os.fspath(destination))
        except OSError as e:
            raise OperationFailed("move", str(source), e) from e

    def make_directory(self, path: ValidatedPath) -> None:
        try:
            path.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OperationFailed("create directory", str(path), e) from e

    def info(self, path: ValidatedPath) -> FileInfo:
        try:
            st = os.stat(path)
        except OSError as e:
            raise OperationFailed("stat", str(path), e) from e
        created = getattr(st, "st_birthtime", st.st_ctime)
        return FileInfo(
            size=st.st_size,
            created=_iso(created),
            modified=_iso(st.st_mtime),
            accessed=_iso(st.st_atime),
            isDirectory=stat.S_ISDIR(st.st_mode),
            isFile=stat.S_ISREG(st.st_mode),
            permissions=oct(st.st_mode)[-3:],
        )

    def allowed_directories(self) -> str:
        return "Allowed directories:\n" + "\n".join(r.path for r in self.sandbox.roots)
