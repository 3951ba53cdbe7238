# app/services/probes.py
from __future__ import annotations

import platform
import shutil
import socket
import subprocess
import sys
import time
from datetime import datetime
from typing import Dict, Optional, Sequence, Tuple

import psutil

from app.errors import ProbeFailed

GB = 1024 ** 3

# probe name -> candidate argv lists, first one found on PATH wins
COMMAND_PROBES: Dict[str, Tuple[Tuple[str, ...], ...]] = {
    "get_python_version": (("python3", "--version"), ("python", "--version"), ("py", "-V")),
    "get_pip_version": (("pip3", "--version"), ("pip", "--version")),
    "get_node_version": (("node", "-v"),),
    "get_npm_version": (("npm", "-v"),),
    "get_git_version": (("git", "--version"),),
    "get_sqlite3_version": (("sqlite3", "--version"),),
    "get_freebasic_version": (("fbc64", "-version"), ("fbc", "-version")),
    "get_dotnet_info": (("dotnet", "--info"),),
    "get_pip_packages": (("pip3", "list"), ("pip", "list")),
    "get_npm_global_packages": (("npm", "list", "-g"),),
    "get_npm_project_packages": (("npm", "list"),),
    "get_nvidia_smi": (("nvidia-smi",),),
    "get_network_info": ((("ipconfig",),) if sys.platform == "win32"
                         else (("ip", "addr"), ("ifconfig",))),
}

_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _gb(n: float) -> str:
    return f"{n / GB:.2f}"


class EnvironmentProbeService:
    """
    Read-only probes of the host environment: installed tool versions,
    hardware, disk space and local time. Commands run without a shell.
    """

    def __init__(self, timeout_sec: float = 30.0, disk_path: Optional[str] = None):
        self.timeout = timeout_sec
        self.disk_path = disk_path

    def _resolve(self, candidates: Sequence[Sequence[str]]) -> Optional[list]:
        for argv in candidates:
            exe = shutil.which(argv[0])
            if exe:
                return [exe, *argv[1:]]
        return None

    def run_command(self, name: str) -> str:
        if name not in COMMAND_PROBES:
            raise ProbeFailed(f"Unknown probe: {name}")
        candidates = COMMAND_PROBES[name]
        argv = self._resolve(candidates)
        if argv is None:
            tried = ", ".join(c[0] for c in candidates)
            raise ProbeFailed(f"Command failed: not found on PATH ({tried})")
        try:
            proc = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise ProbeFailed(f"Command failed: timed out after {self.timeout}s") from e
        except OSError as e:
            raise ProbeFailed(f"Command failed: {e}") from e

        stdout, stderr = proc.stdout.strip(), proc.stderr.strip()
        if proc.returncode != 0 and not stdout:
            raise ProbeFailed(f"Command failed: {stderr or f'exit status {proc.returncode}'}")
        # some tools print their version on stderr
        return stdout or stderr

    def system_info(self) -> str:
        freq = psutil.cpu_freq()
        mem = psutil.virtual_memory()
        uptime_h = int((time.time() - psutil.boot_time()) // 3600)
        return "\n".join([
            "CPU Information:",
            f"  Model: {platform.processor() or platform.machine()}",
            f"  Cores: {psutil.cpu_count(logical=True)}",
            f"  Speed: {int(freq.current) if freq else 'unknown'} MHz",
            f"  Architecture: {platform.machine()}",
            f"  Platform: {sys.platform}",
            "",
            "RAM Information:",
            f"  Total Memory: {_gb(mem.total)} GB",
            f"  Used Memory: {_gb(mem.total - mem.available)} GB ({mem.percent:.2f}%)",
            f"  Free Memory: {_gb(mem.available)} GB",
            "",
            "System:",
            f"  Hostname: {socket.gethostname()}",
            f"  Uptime: {uptime_h} hours",
        ])

    def drive_info(self) -> str:
        if not self.disk_path:
            raise ProbeFailed("No directory configured for disk usage")
        try:
            usage = psutil.disk_usage(self.disk_path)
        except OSError as e:
            raise ProbeFailed(f"Error checking disk space: {e}") from e
        return "\n".join([
            f"Drive Info for {self.disk_path}",
            f"  Total Size: {_gb(usage.total)} GB",
            f"  Free Space: {_gb(usage.free)} GB",
            f"  Used Space: {_gb(usage.used)} GB",
            f"  Used: {usage.percent:.2f}%",
        ])

    def local_time(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now().astimezone()
        tz = now.tzname() or "local"
        value = f"{_DAYS[now.weekday()]} {now:%d-%m-%Y %H:%M}"
        return f"[timestamp format='Day DD-MM-YYYY HH:MM' timezone='{tz}' value='{value}'/]"
