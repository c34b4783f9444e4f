"""Homebrew: install, PATH integration through ~/.zprofile, removal."""

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path

from ..backends.homebrew import INTEL_PREFIX, expected_brew_path, expected_prefix
from ..errors import SetupError
from .base import Component

logger = logging.getLogger("headless_mac.homebrew")

SHELL_CONFIG = Path.home() / ".zprofile"
MARKER = "# Homebrew"


def shellenv_line(prefix: str) -> str:
    return f'eval "$({prefix}/bin/brew shellenv)"'


def has_shellenv(path: Path) -> bool:
    """Check for an active (uncommented) ``brew shellenv`` line."""
    if not path.exists():
        return False
    return any(
        "brew shellenv" in line and not line.lstrip().startswith("#")
        for line in path.read_text().splitlines()
    )


def add_shellenv(path: Path, prefix: str) -> bool:
    """Append the shellenv line. Returns False if it was already there."""
    if has_shellenv(path):
        return False
    with open(path, "a") as f:
        f.write(f"\n{MARKER}\n{shellenv_line(prefix)}\n")
    return True


def comment_out_shellenv(path: Path) -> int:
    """Comment out active shellenv lines. Returns how many were changed."""
    lines = path.read_text().splitlines(keepends=True)
    changed = 0
    for i, line in enumerate(lines):
        if "brew shellenv" in line and not line.lstrip().startswith("#"):
            lines[i] = "# " + line
            changed += 1
    path.write_text("".join(lines))
    return changed


def strip_shellenv(path: Path) -> int:
    """Delete shellenv and marker lines. Returns how many were removed."""
    lines = path.read_text().splitlines(keepends=True)
    kept = [line for line in lines if "brew shellenv" not in line and line.strip() != MARKER]
    path.write_text("".join(kept))
    return len(lines) - len(kept)


def backup_file(path: Path) -> Path:
    """Copy ``path`` next to itself with a timestamp suffix."""
    backup = path.with_name(f"{path.name}.backup.{datetime.now():%Y%m%d_%H%M%S}")
    shutil.copy2(path, backup)
    return backup


def activate(prefix: str):
    """Put ``<prefix>/bin`` on PATH for this process and its children."""
    bin_dir = f"{prefix}/bin"
    parts = os.environ.get("PATH", "").split(os.pathsep)
    if bin_dir not in parts:
        os.environ["PATH"] = os.pathsep.join([bin_dir] + parts)


class HomebrewComponent(Component):
    name = "homebrew"
    title = "Homebrew"

    @property
    def _apple_silicon(self) -> bool:
        return self.host.probe.is_apple_silicon()

    def is_installed(self) -> bool:
        return self.host.brew.is_available()

    def _install(self):
        self.console.info("Installing Homebrew...")
        self.host.brew.run_installer()
        self._add_to_path()
        self.console.status("Homebrew installed successfully")

    def _add_to_path(self):
        prefix = expected_prefix(self._apple_silicon)
        if add_shellenv(SHELL_CONFIG, prefix):
            self.console.status(f"Added Homebrew to {SHELL_CONFIG}")
        activate(prefix)

    def setup(self):
        self.console.header("Homebrew Setup")
        self.host.require_macos()
        self.host.warn_unless_apple_silicon()

        self.console.info("This will install Homebrew package manager")
        self.console.require("Install Homebrew?", "Setup cancelled")

        brew = self.host.brew
        expected = expected_brew_path(self._apple_silicon)
        if brew.is_available():
            path = brew.path()
            self.console.status(f"Homebrew already installed at {path}")
            if path != expected:
                self.console.warning(f"Found Homebrew at {path}, but expected {expected}")
                if self._apple_silicon and path == f"{INTEL_PREFIX}/bin/brew":
                    self.console.warning("You have Intel Homebrew on Apple Silicon")
                    if self.console.confirm("Install ARM64 Homebrew alongside?"):
                        self._install()
            if self.console.confirm("Update Homebrew?"):
                self.console.info("Updating Homebrew...")
                brew.update()
                self.console.status("Homebrew updated")
        elif Path(expected).exists():
            self.console.info(f"Found Homebrew at {expected} (not in PATH)")
            self._add_to_path()
            self.console.status("Homebrew enabled")
        else:
            self._install()

        self.console.separator()
        self.console.status("Homebrew setup complete")
        if brew.is_available():
            self.console.detail(brew.version())

    def enable(self):
        self.console.header("Enable Homebrew")
        self.host.require_macos()

        expected = expected_brew_path(self._apple_silicon)
        if not Path(expected).exists():
            raise SetupError(f"Homebrew is not installed at {expected}", step="enable Homebrew")

        prefix = expected_prefix(self._apple_silicon)
        if add_shellenv(SHELL_CONFIG, prefix):
            self.console.status(f"Homebrew added to {SHELL_CONFIG}")
        else:
            self.console.status(f"Homebrew is already enabled in {SHELL_CONFIG}")
        activate(prefix)
        self.console.status("Homebrew enabled")
        self.console.info(f"Restart your shell or run: source {SHELL_CONFIG}")

    def disable(self, confirm: bool = True):
        self.console.header("Disable Homebrew")
        self.host.require_macos()

        if confirm:
            self.console.info("This will remove Homebrew from your shell PATH")
            self.console.warning("Homebrew will remain installed but not accessible")
            self.console.require("Disable Homebrew?")

        if not SHELL_CONFIG.exists():
            self.console.warning(f"{SHELL_CONFIG} not found")
            return
        backup = backup_file(SHELL_CONFIG)
        self.console.status(f"Backup created: {backup}")
        comment_out_shellenv(SHELL_CONFIG)
        self.console.status(f"Homebrew disabled in {SHELL_CONFIG}")
        self.console.info("Restart your shell for changes to take effect")

    def remove(self, confirm: bool = True):
        self.console.header("Remove Homebrew")
        self.host.require_macos()

        if confirm:
            self.console.info("This will completely uninstall Homebrew:")
            self.console.detail("• Remove all Homebrew files")
            self.console.detail("• Remove from shell PATH")
            self.console.detail("• Uninstall all Homebrew packages")
            self.console.warning("This is a destructive operation!")
            self.console.require("Completely remove Homebrew?")
            self.console.require("Are you absolutely sure? This will remove ALL Homebrew packages")

        if SHELL_CONFIG.exists():
            backup = backup_file(SHELL_CONFIG)
            self.console.status(f"Backup created: {backup}")
            strip_shellenv(SHELL_CONFIG)
            self.console.status(f"Removed from {SHELL_CONFIG}")

        if self.host.brew.is_available():
            self.console.info("Running Homebrew uninstaller...")
            self.host.brew.run_uninstaller()
            self.console.status("Homebrew uninstalled")
        else:
            self.console.warning("Homebrew command not found")
            prefix = expected_prefix(self._apple_silicon)
            if Path(prefix, "bin", "brew").exists():
                self.console.info(f"Leftover installation at {prefix}; remove it manually if no longer needed")

        self.console.separator()
        self.console.status("Homebrew removed")
        self.console.info("Restart your shell for changes to take effect")

    def status(self):
        self.console.header("Homebrew Status")
        brew = self.host.brew
        if not brew.is_available():
            self.console.warning("Homebrew is not installed")
            self.console.info("Run 'headless-mac setup homebrew' to install Homebrew")
            expected = expected_brew_path(self._apple_silicon)
            if Path(expected).exists():
                self.console.info(f"Found Homebrew at {expected} (not in PATH)")
                self.console.info("Run 'headless-mac enable homebrew' to add to PATH")
            return

        path = brew.path()
        self.console.status("Homebrew is installed")
        self.console.info(f"Path: {path}")
        self.console.info(f"Prefix: {brew.prefix()}")
        self.console.info(f"Version: {brew.version()}")

        self.console.separator()
        expected = expected_brew_path(self._apple_silicon)
        if path == expected:
            arch = "ARM64 Homebrew on Apple Silicon" if self._apple_silicon else "Intel Homebrew on Intel Mac"
            self.console.status(f"Correct architecture: {arch}")
        elif self._apple_silicon and path == f"{INTEL_PREFIX}/bin/brew":
            self.console.warning("Architecture mismatch: Intel Homebrew on Apple Silicon")
            self.console.info(f"ARM64 Homebrew should be at {expected}")

        self.console.separator()
        if has_shellenv(SHELL_CONFIG):
            self.console.status(f"Homebrew is configured in {SHELL_CONFIG}")
        else:
            self.console.warning("Homebrew may not be in your shell PATH")
            self.console.info(f"Run 'headless-mac enable homebrew' to add it to {SHELL_CONFIG}")

    def summary(self) -> list[str]:
        brew = self.host.brew
        if not brew.is_available():
            return ["Status: ✗ Not installed"]
        return ["Status: ✓ Installed", f"Path: {brew.path()}", f"Version: {brew.version()}"]
