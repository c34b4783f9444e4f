"""Host inspection: resources, processes, platform and binary architecture."""

import logging
import platform
import shutil
import subprocess

import psutil

from .advisor import SystemResources

logger = logging.getLogger("headless_mac.system")

GIB = 1024**3


class SystemProbe:
    """Read-only queries against the local machine."""

    def is_macos(self) -> bool:
        return platform.system() == "Darwin"

    def is_apple_silicon(self) -> bool:
        return platform.machine() == "arm64"

    def machine(self) -> str:
        return platform.machine()

    def macos_version(self) -> str:
        return platform.mac_ver()[0] or "unknown"

    def hostname(self) -> str:
        return platform.node()

    def resources(self) -> SystemResources:
        """Total installed RAM in whole GB and logical CPU count."""
        total_ram = int(psutil.virtual_memory().total / GIB)
        cpus = psutil.cpu_count() or 1
        return SystemResources(total_ram_gb=max(total_ram, 1), total_cpu_cores=cpus)

    def command_exists(self, name: str) -> bool:
        return shutil.which(name) is not None

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def pids(self, name: str) -> list[int]:
        """PIDs of processes whose name is exactly ``name``."""
        found = []
        for proc in psutil.process_iter(["name"]):
            if proc.info["name"] == name:
                found.append(proc.pid)
        return found

    def process_running(self, name: str) -> bool:
        return bool(self.pids(name))

    def process_rss_gb(self, name: str) -> int | None:
        """Resident memory of all ``name`` processes, in whole GB.

        Best effort: returns None when the processes vanish or can't be read.
        """
        total = 0
        seen = False
        for proc in psutil.process_iter(["name"]):
            if proc.info["name"] != name:
                continue
            try:
                total += proc.memory_info().rss
                seen = True
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                logger.debug("could not read memory of %s (pid %s)", name, proc.pid)
                continue
        if not seen:
            return None
        return int(total / GIB)

    def binary_architectures(self, path: str) -> str:
        """Output of ``file`` for a binary, empty if it can't be inspected."""
        try:
            result = subprocess.run(
                ["file", path], capture_output=True, text=True, check=False, stdin=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            return ""
        return result.stdout


def binary_supports_arm64(file_output: str) -> bool:
    """Decide from ``file`` output whether a binary can run natively on arm64."""
    return "arm64" in file_output
