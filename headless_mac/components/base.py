"""Shared plumbing for the component classes."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..advisor import AdvisorSettings
from ..backends.base import ContainerVM, PackageManager, PowerControl, ServiceSupervisor
from ..errors import EnvironmentMismatch
from ..system import SystemProbe
from ..ui import Console


@dataclass
class Host:
    """Everything a component needs to act on the machine."""

    console: Console
    probe: SystemProbe
    brew: PackageManager
    power: PowerControl
    supervisor: ServiceSupervisor
    vm: ContainerVM
    config: dict = field(default_factory=dict)

    @classmethod
    def default(cls, config: dict, console: Console | None = None) -> "Host":
        from ..backends.colima import ColimaVM
        from ..backends.homebrew import HomebrewPackageManager
        from ..backends.launchd import LaunchdSupervisor
        from ..backends.pmset import PmsetPowerControl

        return cls(
            console=console or Console(),
            probe=SystemProbe(),
            brew=HomebrewPackageManager(),
            power=PmsetPowerControl(),
            supervisor=LaunchdSupervisor(),
            vm=ColimaVM(vm_type=config.get("colima", {}).get("vm_type", "vz")),
            config=config,
        )

    @property
    def advisor_settings(self) -> AdvisorSettings:
        return AdvisorSettings.from_config(self.config)

    def require_macos(self):
        if not self.probe.is_macos():
            raise EnvironmentMismatch("This tool must be run on macOS", step="platform check")

    def require_apple_silicon(self):
        if not self.probe.is_apple_silicon():
            raise EnvironmentMismatch(
                f"Apple Silicon (arm64) is required, detected {self.probe.machine()}",
                step="architecture check",
            )

    def warn_unless_apple_silicon(self):
        if not self.probe.is_apple_silicon():
            self.console.warning("This setup is optimized for Apple Silicon (ARM64)")
            self.console.info(f"Detected architecture: {self.probe.machine()}")


class Component(ABC):
    """One installable piece of the headless setup.

    ``disable`` and ``remove`` take ``confirm`` so the "all" orchestration can
    ask once up front instead of once per component.
    """

    name: str = ""
    title: str = ""

    def __init__(self, host: Host):
        self.host = host
        self.console = host.console

    @abstractmethod
    def is_installed(self) -> bool:
        """Check if the component is present on this machine."""

    @abstractmethod
    def setup(self):
        """Install and configure."""

    @abstractmethod
    def enable(self):
        """Start or switch on."""

    @abstractmethod
    def disable(self, confirm: bool = True):
        """Stop or switch off, leaving it installed."""

    @abstractmethod
    def remove(self, confirm: bool = True):
        """Uninstall and clean up."""

    @abstractmethod
    def status(self):
        """Print a detailed status report."""

    @abstractmethod
    def summary(self) -> list[str]:
        """Short status lines for the combined status view."""
