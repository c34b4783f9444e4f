"""Adapters for the external tools: Homebrew, pmset, launchd and Colima."""

from .base import ContainerVM, PackageManager, PowerControl, ServiceSupervisor, ServiceUnit

__all__ = ["ContainerVM", "PackageManager", "PowerControl", "ServiceSupervisor", "ServiceUnit"]
