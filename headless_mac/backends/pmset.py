"""macOS power management through pmset."""

import logging
import subprocess

from .base import PowerControl, run_step

logger = logging.getLogger("headless_mac.pmset")


def parse_pmset(output: str) -> dict[str, str]:
    """Parse ``pmset -g`` output into {setting: value}.

    Only indented ``name value ...`` lines are settings; trailing notes such
    as "(sleep prevented by ...)" are dropped. The first occurrence wins.
    """
    settings: dict[str, str] = {}
    for line in output.splitlines():
        if not line.startswith((" ", "\t")):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        settings.setdefault(parts[0], parts[1])
    return settings


class PmsetPowerControl(PowerControl):
    def describe(self) -> str:
        try:
            result = subprocess.run(["pmset", "-g"], capture_output=True, text=True, check=False)
        except FileNotFoundError:
            return ""
        return result.stdout

    def get_settings(self) -> dict[str, str]:
        return parse_pmset(self.describe())

    def apply(self, settings: dict[str, int]):
        for key, value in settings.items():
            run_step(["pmset", "-a", key, str(value)], f"Set {key}={value}", sudo=True)
