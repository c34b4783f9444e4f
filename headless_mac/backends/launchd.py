"""launchd service registration.

User agents live in ~/Library/LaunchAgents/ and are written directly.
System daemons live in /Library/LaunchDaemons/, must be owned by root:wheel
and are managed through sudo.
"""

import logging
import plistlib
import subprocess
from datetime import datetime
from pathlib import Path

from .base import ServiceSupervisor, ServiceUnit, run_step

logger = logging.getLogger("headless_mac.launchd")

LAUNCH_AGENTS = Path.home() / "Library" / "LaunchAgents"
LAUNCH_DAEMONS = Path("/Library/LaunchDaemons")


class LaunchdSupervisor(ServiceSupervisor):
    def install(self, unit: ServiceUnit) -> Path:
        """Write the unit's plist, backing up any previous one."""
        dst = unit.plist_path
        if unit.system:
            if dst.exists():
                backup = f"{dst}.backup.{datetime.now():%Y%m%d_%H%M%S}"
                run_step(["cp", str(dst), backup], "Back up existing plist", sudo=True)
            data = plistlib.dumps(unit.to_plist())
            run_step(["tee", str(dst)], "Write launchd plist", sudo=True, input=data, capture_output=True)
            run_step(["chown", "root:wheel", str(dst)], "Set plist owner", sudo=True)
            run_step(["chmod", "644", str(dst)], "Set plist permissions", sudo=True)
        else:
            dst.parent.mkdir(parents=True, exist_ok=True)
            with open(dst, "wb") as f:
                plistlib.dump(unit.to_plist(), f)
        logger.info("wrote %s", dst)
        return dst

    def uninstall(self, unit: ServiceUnit) -> bool:
        if not unit.plist_path.exists():
            return False
        self.unload(unit)
        run_step(["rm", "-f", str(unit.plist_path)], "Remove launchd plist", sudo=unit.system)
        return True

    def is_installed(self, unit: ServiceUnit) -> bool:
        return unit.plist_path.exists()

    def is_loaded(self, unit: ServiceUnit) -> bool:
        if unit.label in _launchctl_list(sudo=False):
            return True
        return unit.system and unit.label in _launchctl_list(sudo=True)

    def load(self, unit: ServiceUnit):
        # launchctl load refuses to load a label twice
        self.unload(unit)
        run_step(["launchctl", "load", str(unit.plist_path)], f"Load {unit.label}", sudo=unit.system)

    def unload(self, unit: ServiceUnit):
        args = ["launchctl", "unload", str(unit.plist_path)]
        if unit.system:
            args = ["sudo"] + args
        subprocess.run(args, capture_output=True)

    def start(self, unit: ServiceUnit):
        run_step(["launchctl", "start", unit.label], f"Start {unit.label}", sudo=unit.system)

    def stop(self, unit: ServiceUnit):
        args = ["launchctl", "stop", unit.label]
        if unit.system:
            args = ["sudo"] + args
        subprocess.run(args, capture_output=True)


def _launchctl_list(sudo: bool) -> str:
    args = ["launchctl", "list"]
    if sudo:
        args = ["sudo", "-n"] + args
    try:
        result = subprocess.run(args, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        return ""
    return result.stdout
