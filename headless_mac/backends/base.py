"""Abstract interfaces for the external tools headless-mac drives."""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import SetupError

logger = logging.getLogger("headless_mac.backends")


def run_step(args: list[str], step: str, sudo: bool = False, **kwargs) -> subprocess.CompletedProcess:
    """Run an external command, raising ``SetupError`` naming ``step`` on failure."""
    if sudo:
        args = ["sudo"] + args
    kwargs.setdefault("check", True)
    logger.info("run: %s", " ".join(args))
    try:
        return subprocess.run(args, **kwargs)
    except subprocess.CalledProcessError as e:
        logger.error("failed (%s): %s", e.returncode, " ".join(args))
        raise SetupError(f"{step} failed (exit code {e.returncode})", step=step) from e
    except FileNotFoundError as e:
        logger.error("not found: %s", args[0])
        raise SetupError(f"{step} failed: {args[0]} not found", step=step) from e


def probe(args: list[str], timeout: int | None = None) -> subprocess.CompletedProcess | None:
    """Run a read-only query. Returns None when the binary is missing or hangs."""
    try:
        return subprocess.run(
            args, capture_output=True, text=True, check=False,
            timeout=timeout, stdin=subprocess.DEVNULL,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None


@dataclass
class ServiceUnit:
    """A program the service supervisor launches at boot or login."""

    label: str
    program_arguments: list[str]
    plist_path: Path
    run_at_load: bool = True
    keep_alive: bool = False
    working_directory: str | None = None
    environment: dict[str, str] = field(default_factory=dict)
    stdout_path: str | None = None
    stderr_path: str | None = None
    system: bool = False  # LaunchDaemon owned by root rather than a user LaunchAgent

    def to_plist(self) -> dict:
        plist = {
            "Label": self.label,
            "ProgramArguments": list(self.program_arguments),
            "RunAtLoad": self.run_at_load,
            "KeepAlive": self.keep_alive,
        }
        if self.stdout_path:
            plist["StandardOutPath"] = self.stdout_path
        if self.stderr_path:
            plist["StandardErrorPath"] = self.stderr_path
        if self.environment:
            plist["EnvironmentVariables"] = {k: str(v) for k, v in self.environment.items()}
        if self.working_directory:
            plist["WorkingDirectory"] = self.working_directory
        return plist


class PackageManager(ABC):
    """Install and remove command line packages."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the package manager itself is on PATH."""

    @abstractmethod
    def install(self, package: str):
        """Install a package."""

    @abstractmethod
    def upgrade(self, package: str):
        """Upgrade an installed package."""

    @abstractmethod
    def uninstall(self, package: str):
        """Uninstall a package."""

    @abstractmethod
    def update(self):
        """Refresh the package manager itself."""

    @abstractmethod
    def path(self) -> str | None:
        """Location of the package manager binary on PATH."""

    @abstractmethod
    def version(self) -> str:
        """Version string of the package manager."""

    @abstractmethod
    def prefix(self) -> str:
        """Installation prefix."""

    @abstractmethod
    def run_installer(self):
        """Install the package manager itself."""

    @abstractmethod
    def run_uninstaller(self):
        """Uninstall the package manager and everything it installed."""


class PowerControl(ABC):
    """Query and apply power-management settings."""

    @abstractmethod
    def get_settings(self) -> dict[str, str]:
        """Current settings, keyed by setting name."""

    @abstractmethod
    def describe(self) -> str:
        """Full human-readable dump of the current settings."""

    @abstractmethod
    def apply(self, settings: dict[str, int]):
        """Apply settings in order."""


class ServiceSupervisor(ABC):
    """Register programs to run at boot/login and control them by label."""

    @abstractmethod
    def install(self, unit: ServiceUnit) -> Path:
        """Write the unit's descriptor. Returns its path."""

    @abstractmethod
    def uninstall(self, unit: ServiceUnit) -> bool:
        """Unload and delete the descriptor. Returns True if one existed."""

    @abstractmethod
    def is_installed(self, unit: ServiceUnit) -> bool:
        """Check if the unit's descriptor exists."""

    @abstractmethod
    def is_loaded(self, unit: ServiceUnit) -> bool:
        """Check if the supervisor currently knows the unit."""

    @abstractmethod
    def load(self, unit: ServiceUnit):
        """Load (reload if already loaded) the unit."""

    @abstractmethod
    def unload(self, unit: ServiceUnit):
        """Unload the unit. Not an error if it isn't loaded."""

    @abstractmethod
    def start(self, unit: ServiceUnit):
        """Start the unit's program."""

    @abstractmethod
    def stop(self, unit: ServiceUnit):
        """Stop the unit's program. Not an error if it isn't running."""


class ContainerVM(ABC):
    """A named virtual machine hosting a container engine."""

    @abstractmethod
    def is_installed(self) -> bool:
        """Check if the VM manager is installed."""

    @abstractmethod
    def version(self) -> str:
        """Version string of the VM manager."""

    @abstractmethod
    def is_running(self) -> bool:
        """Check if the VM is running."""

    @abstractmethod
    def status(self) -> str:
        """Human-readable VM status."""

    @abstractmethod
    def start(self, cpu: int, memory: int, disk: int, apple_silicon: bool = True):
        """Start the VM with the given resources."""

    @abstractmethod
    def stop(self):
        """Stop the VM."""

    @abstractmethod
    def delete(self):
        """Delete the VM and all of its data."""

    @abstractmethod
    def docker_connected(self) -> bool:
        """Check if the container CLI can reach the VM."""

    @abstractmethod
    def docker_info(self) -> str:
        """Summary of the container engine running in the VM."""

    @abstractmethod
    def run_test_container(self) -> bool:
        """Run a throwaway container. Returns True on success."""

    @abstractmethod
    def buildx_available(self) -> bool:
        """Check if the container CLI has the buildx plugin."""
