"""Shared test fixtures for headless-mac."""

from pathlib import Path

import pytest

from headless_mac.advisor import SystemResources
from headless_mac.backends.base import (
    ContainerVM,
    PackageManager,
    PowerControl,
    ServiceSupervisor,
    ServiceUnit,
)
from headless_mac.components.base import Host
from headless_mac.config import DEFAULT_CONFIG, _deep_merge
from headless_mac.system import SystemProbe
from headless_mac.ui import Console


class MockBrew(PackageManager):
    """Mock package manager that records calls."""

    def __init__(self, available: bool = True):
        self.calls = []
        self.available = available

    def is_available(self) -> bool:
        return self.available

    def install(self, package: str):
        self.calls.append(("install", package))

    def upgrade(self, package: str):
        self.calls.append(("upgrade", package))

    def uninstall(self, package: str):
        self.calls.append(("uninstall", package))

    def update(self):
        self.calls.append(("update",))

    def path(self) -> str | None:
        return "/opt/homebrew/bin/brew" if self.available else None

    def version(self) -> str:
        return "Homebrew 4.4.0"

    def prefix(self) -> str:
        return "/opt/homebrew"

    def run_installer(self):
        self.calls.append(("run_installer",))
        self.available = True

    def run_uninstaller(self):
        self.calls.append(("run_uninstaller",))
        self.available = False


class MockPower(PowerControl):
    """Mock pmset: applying settings updates what get_settings reports."""

    def __init__(self, settings: dict[str, str] | None = None):
        self.applied: list[dict[str, int]] = []
        self.settings = dict(settings or {"sleep": "1", "disablesleep": "0", "womp": "0", "displaysleep": "10"})

    def get_settings(self) -> dict[str, str]:
        return dict(self.settings)

    def describe(self) -> str:
        return "\n".join(f" {k}\t\t{v}" for k, v in self.settings.items())

    def apply(self, settings: dict[str, int]):
        self.applied.append(dict(settings))
        self.settings.update({k: str(v) for k, v in settings.items()})


class MockSupervisor(ServiceSupervisor):
    """Mock launchd keyed by unit label."""

    def __init__(self):
        self.calls = []
        self.installed: dict[str, ServiceUnit] = {}
        self.loaded: set[str] = set()

    def install(self, unit: ServiceUnit) -> Path:
        self.calls.append(("install", unit.label))
        self.installed[unit.label] = unit
        return unit.plist_path

    def uninstall(self, unit: ServiceUnit) -> bool:
        self.calls.append(("uninstall", unit.label))
        self.loaded.discard(unit.label)
        return self.installed.pop(unit.label, None) is not None

    def is_installed(self, unit: ServiceUnit) -> bool:
        return unit.label in self.installed

    def is_loaded(self, unit: ServiceUnit) -> bool:
        return unit.label in self.loaded

    def load(self, unit: ServiceUnit):
        self.calls.append(("load", unit.label))
        self.loaded.add(unit.label)

    def unload(self, unit: ServiceUnit):
        self.calls.append(("unload", unit.label))
        self.loaded.discard(unit.label)

    def start(self, unit: ServiceUnit):
        self.calls.append(("start", unit.label))

    def stop(self, unit: ServiceUnit):
        self.calls.append(("stop", unit.label))


class MockVM(ContainerVM):
    """Mock Colima VM that records calls."""

    def __init__(self, installed: bool = True, running: bool = False):
        self.calls = []
        self.installed = installed
        self.running = running

    def is_installed(self) -> bool:
        return self.installed

    def version(self) -> str:
        return "colima version 0.8.1"

    def is_running(self) -> bool:
        return self.running

    def status(self) -> str:
        return "colima is running" if self.running else "colima is not running"

    def start(self, cpu: int, memory: int, disk: int, apple_silicon: bool = True):
        self.calls.append(("start", cpu, memory, disk, apple_silicon))
        self.running = True

    def stop(self):
        self.calls.append(("stop",))
        self.running = False

    def delete(self):
        self.calls.append(("delete",))

    def docker_connected(self) -> bool:
        return self.running

    def docker_info(self) -> str:
        return " Server Version: 27.3.1"

    def run_test_container(self) -> bool:
        self.calls.append(("run_test_container",))
        return True

    def buildx_available(self) -> bool:
        return True


class MockProbe(SystemProbe):
    """Fixed machine: macOS on arm64, 32 GB, 10 cores, nothing running."""

    def __init__(self, ram_gb: int = 32, cpus: int = 10, macos: bool = True, arm: bool = True):
        self.ram_gb = ram_gb
        self.cpus = cpus
        self.macos = macos
        self.arm = arm
        self.processes: dict[str, int | None] = {}  # name -> RSS in GB
        self.commands: set[str] = set()

    def is_macos(self) -> bool:
        return self.macos

    def is_apple_silicon(self) -> bool:
        return self.arm

    def machine(self) -> str:
        return "arm64" if self.arm else "x86_64"

    def macos_version(self) -> str:
        return "15.1"

    def hostname(self) -> str:
        return "mini.local"

    def resources(self) -> SystemResources:
        return SystemResources(total_ram_gb=self.ram_gb, total_cpu_cores=self.cpus)

    def command_exists(self, name: str) -> bool:
        return name in self.commands

    def which(self, name: str) -> str | None:
        return f"/opt/homebrew/bin/{name}" if name in self.commands else None

    def pids(self, name: str) -> list[int]:
        return [4242] if name in self.processes else []

    def process_rss_gb(self, name: str) -> int | None:
        return self.processes.get(name)

    def binary_architectures(self, path: str) -> str:
        return f"{path}: Mach-O 64-bit executable arm64"


class ScriptedConsole(Console):
    """Console that answers prompts from a script and records output.

    ``answers`` is consumed in order by ``confirm``; once exhausted the
    prompt's default is used. ``prompt_int`` returns queued ``numbers`` or
    the default.
    """

    def __init__(self, answers=None, numbers=None):
        self.answers = list(answers or [])
        self.numbers = list(numbers or [])
        self.prompts: list[str] = []
        self.lines: list[tuple[str, str]] = []

    def status(self, message: str):
        self.lines.append(("status", message))

    def error(self, message: str):
        self.lines.append(("error", message))

    def warning(self, message: str):
        self.lines.append(("warning", message))

    def info(self, message: str):
        self.lines.append(("info", message))

    def detail(self, message: str = ""):
        self.lines.append(("detail", message))

    def raw(self, text: str):
        self.lines.append(("raw", text))

    def header(self, title: str):
        self.lines.append(("header", title))

    def separator(self):
        pass

    def confirm(self, prompt: str, default: bool = False) -> bool:
        self.prompts.append(prompt)
        return self.answers.pop(0) if self.answers else default

    def prompt_int(self, prompt: str, default: int, minimum: int = 1) -> int:
        self.prompts.append(prompt)
        return self.numbers.pop(0) if self.numbers else default

    def prompt_text(self, prompt: str, default: str = "") -> str:
        self.prompts.append(prompt)
        return default

    def pause(self):
        pass

    def messages(self, kind: str) -> list[str]:
        return [text for k, text in self.lines if k == kind]


@pytest.fixture
def tmp_data_dir(tmp_path, monkeypatch):
    """Redirect all headless-mac data files to a temp directory."""
    import headless_mac.config as config

    data_dir = tmp_path / "headless-mac"
    data_dir.mkdir()
    monkeypatch.setattr(config, "DATA_DIR", data_dir)
    monkeypatch.setattr(config, "CONFIG_FILE", data_dir / "config.toml")
    monkeypatch.setattr(config, "COLIMA_FILE", data_dir / "colima.toml")
    monkeypatch.setattr(config, "OLLAMA_FILE", data_dir / "ollama.toml")
    monkeypatch.setattr(config, "PMSET_BACKUP_FILE", data_dir / "pmset-backup.toml")
    monkeypatch.setattr(config, "LOG_FILE", data_dir / "headless-mac.log")
    return data_dir


@pytest.fixture
def console():
    return ScriptedConsole()


@pytest.fixture
def host(console, tmp_data_dir):
    """A Host wired to mocks, with default configuration."""
    return Host(
        console=console,
        probe=MockProbe(),
        brew=MockBrew(),
        power=MockPower(),
        supervisor=MockSupervisor(),
        vm=MockVM(),
        config=_deep_merge(DEFAULT_CONFIG, {}),
    )
