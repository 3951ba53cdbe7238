# app/di.py
from dataclasses import dataclass
from typing import Optional, Sequence

from app.config import Settings
from app.services.filesystem import FileSystemService
from app.services.patching import PatchEngine
from app.services.probes import EnvironmentProbeService
from app.services.sandbox import AllowedRoots, PathSandbox, load_allowed_roots
from app.services.trash import TrashService
from app.services.walker import HierarchyWalker

@dataclass
class Container:
    settings: Settings
    roots: AllowedRoots
    sandbox: PathSandbox
    fs_service: FileSystemService
    trash_service: TrashService
    walker: HierarchyWalker
    patch_engine: PatchEngine
    probe_service: EnvironmentProbeService

def build_container(settings: Optional[Settings] = None,
                    directories: Optional[Sequence[str]] = None) -> Container:
    """
    Directories given explicitly (CLI) win over ALLOWED_DIRECTORIES.
    Raises ConfigError when none are usable.
    """
    s = settings or Settings()
    roots = load_allowed_roots(directories or s.allowed_directories())

    sandbox = PathSandbox(roots)
    fs = FileSystemService(sandbox)
    trash = TrashService(trash_dirname=s.TRASH_DIRNAME)
    walker = HierarchyWalker(sandbox)
    patcher = PatchEngine()

    first_root = next(iter(roots)).real
    probes = EnvironmentProbeService(timeout_sec=s.PROBE_TIMEOUT_SEC, disk_path=first_root)

    return Container(s, roots, sandbox, fs, trash, walker, patcher, probes)
