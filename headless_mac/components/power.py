"""Power management: keep the Mac awake and reachable for 24/7 operation."""

from .. import config
from ..errors import SetupError
from .base import Component

# Applied when restoring without a backup, and for keys the backup lacks
CONSERVATIVE_DEFAULTS = {
    "sleep": 10,
    "disablesleep": 0,
    "disksleep": 10,
    "standby": 1,
    "autopoweroff": 1,
    "powernap": 0,
    "autorestart": 0,
    "networkoversleep": 0,
    "womp": 0,
    "displaysleep": 10,
    "tcpkeepalive": 1,
}


def restore_settings(backup: dict | None) -> dict[str, int]:
    """Settings that undo headless mode, preferring the saved backup."""
    if backup is None:
        return dict(CONSERVATIVE_DEFAULTS)
    restored = {}
    for key, default in CONSERVATIVE_DEFAULTS.items():
        value = backup.get(key, "")
        restored[key] = int(value) if str(value).isdigit() else default
    # sleep is only ever disabled by us; never restore the flag as set
    restored["disablesleep"] = 0
    return restored


def is_headless(settings: dict[str, str]) -> bool:
    return (
        settings.get("sleep") == "0"
        and settings.get("disablesleep") == "1"
        and settings.get("womp") == "1"
    )


class PowerComponent(Component):
    name = "power"
    title = "Power Management"

    @property
    def headless_profile(self) -> dict[str, int]:
        return dict(self.host.config.get("power", {}).get("headless", config.DEFAULT_CONFIG["power"]["headless"]))

    def is_installed(self) -> bool:
        # pmset ships with macOS
        return True

    def _backup(self):
        if config.PMSET_BACKUP_FILE.exists():
            self.console.info(f"Existing backup found at {config.PMSET_BACKUP_FILE}")
            return
        self.console.info("Backing up current power management settings...")
        current = self.host.power.get_settings()
        config.save_record(
            config.PMSET_BACKUP_FILE,
            {key: current.get(key, "") for key in CONSERVATIVE_DEFAULTS},
        )
        self.console.status(f"Settings backed up to {config.PMSET_BACKUP_FILE}")

    def _apply_headless(self):
        self.console.info("Applying headless power management settings...")
        profile = self.headless_profile
        self.host.power.apply(profile)
        for key, value in profile.items():
            self.console.status(f"{key} set to {value}")

    def _restore(self):
        self.console.info("Restoring default power management settings...")
        backup = config.load_record(config.PMSET_BACKUP_FILE)
        if backup is None:
            self.console.warning("No backup found, applying conservative defaults...")
        else:
            self.console.info("Found backup settings, restoring original values...")
        self.host.power.apply(restore_settings(backup))
        self.console.status("Original settings restored" if backup else "Default settings applied")

    def setup(self):
        self.console.header("Power Management Setup - Headless Mode")
        self.host.require_macos()

        self.console.info("This will configure your Mac for 24/7 headless operation:")
        self.console.detail("• Disable all sleep modes")
        self.console.detail("• Keep network alive")
        self.console.detail("• Enable Wake-on-LAN")
        self.console.detail("• Allow display sleep (saves power)")
        self.console.require("Configure power management for headless operation?", "Setup cancelled")

        self._backup()
        self._apply_headless()

        self.console.separator()
        self.console.info("Current settings after configuration:")
        self.console.raw(self.host.power.describe())
        self.console.separator()

        if not self.console.confirm("Do these settings look correct?"):
            self.console.info("You can restore original settings with: headless-mac disable power")
            raise SetupError("Settings not confirmed", step="confirm power settings")
        self.console.status("Power management configured for headless operation")
        self.console.info("Your Mac will not sleep and is ready for 24/7 operation")
        self.console.warning("Test after reboot to ensure settings persist")

    def enable(self):
        self.console.header("Enable Headless Power Management")
        self.host.require_macos()
        self._backup()
        self._apply_headless()
        self.console.separator()
        self.console.status("Headless power management enabled")
        self.console.info("System will not sleep")

    def disable(self, confirm: bool = True):
        self.console.header("Disable Headless Power Management")
        self.host.require_macos()
        if confirm:
            self.console.info("This will restore normal power management settings")
            self.console.warning("Your Mac will sleep when idle")
            self.console.require("Restore normal power settings?")

        self._restore()
        self.console.separator()
        self.console.info("Current settings after restore:")
        self.console.raw(self.host.power.describe())
        self.console.separator()
        self.console.status("Normal power management restored")

    def remove(self, confirm: bool = True):
        self.console.header("Remove Headless Power Management")
        self.host.require_macos()
        if confirm:
            self.console.info("This will:")
            self.console.detail("• Restore normal power management settings")
            self.console.detail("• Remove backup file")
            self.console.require("Remove headless power configuration?")

        self._restore()
        if config.delete_record(config.PMSET_BACKUP_FILE):
            self.console.status("Backup file removed")
        self.console.separator()
        self.console.status("Headless power management removed")
        self.console.info("Your Mac is back to normal operation")

    def status(self):
        self.console.header("Power Management Status")
        self.console.info("Current power management settings:")
        self.console.raw(self.host.power.describe())
        self.console.separator()

        if is_headless(self.host.power.get_settings()):
            self.console.status("Power management appears to be in HEADLESS mode")
            self.console.info("System will not sleep and supports Wake-on-LAN")
        else:
            self.console.warning("Power management appears to be in NORMAL mode")
            self.console.info("System may sleep when idle")

        self.console.separator()
        if config.PMSET_BACKUP_FILE.exists():
            self.console.info(f"Settings backup exists: {config.PMSET_BACKUP_FILE}")
            self.console.info("Original settings can be restored with: headless-mac disable power")
        else:
            self.console.warning("No settings backup found")
            self.console.info("Run 'headless-mac setup power' to create a backup before enabling headless mode")

    def summary(self) -> list[str]:
        if self.host.power.get_settings().get("sleep") == "0":
            return ["Status: ✓ Headless mode (sleep disabled)"]
        return ["Status: ⚠ Normal mode (will sleep)"]
