"""Homebrew package management."""

import shutil
import subprocess

from .base import PackageManager, run_step

INSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
UNINSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/uninstall.sh"

ARM64_PREFIX = "/opt/homebrew"
INTEL_PREFIX = "/usr/local"


def expected_prefix(apple_silicon: bool) -> str:
    return ARM64_PREFIX if apple_silicon else INTEL_PREFIX


def expected_brew_path(apple_silicon: bool) -> str:
    return f"{expected_prefix(apple_silicon)}/bin/brew"


class HomebrewPackageManager(PackageManager):
    def is_available(self) -> bool:
        return shutil.which("brew") is not None

    def install(self, package: str):
        run_step(["brew", "install", package], f"brew install {package}")

    def upgrade(self, package: str):
        run_step(["brew", "upgrade", package], f"brew upgrade {package}")

    def uninstall(self, package: str):
        run_step(["brew", "uninstall", package], f"brew uninstall {package}")

    def update(self):
        run_step(["brew", "update"], "brew update")

    def path(self) -> str | None:
        return shutil.which("brew")

    def version(self) -> str:
        result = subprocess.run(["brew", "--version"], capture_output=True, text=True, check=False)
        return result.stdout.splitlines()[0] if result.stdout else "unknown"

    def prefix(self) -> str:
        result = subprocess.run(["brew", "--prefix"], capture_output=True, text=True, check=False)
        return result.stdout.strip()

    def run_installer(self):
        """Run the official Homebrew install script."""
        _run_remote_script(INSTALL_SCRIPT_URL, "Homebrew installer")

    def run_uninstaller(self):
        """Run the official Homebrew uninstall script."""
        _run_remote_script(UNINSTALL_SCRIPT_URL, "Homebrew uninstaller")


def _run_remote_script(url: str, step: str):
    script = run_step(["curl", "-fsSL", url], f"Download {step}", capture_output=True, text=True)
    run_step(["/bin/bash", "-c", script.stdout], step)
