"""Ollama: install the server, run it as a launchd daemon, tune its environment."""

import logging
import shutil
import subprocess
import tempfile
import time
import urllib.error
import urllib.request
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from .. import config
from ..backends.base import ServiceUnit, run_step
from ..errors import SetupError
from ..system import binary_supports_arm64
from .base import Component

logger = logging.getLogger("headless_mac.ollama")

DOWNLOAD_URL = "https://ollama.com/download/Ollama-darwin.zip"
API_URL = "http://localhost:11434/api/tags"
APP_BUNDLE = Path("/Applications/Ollama.app")
INSTALL_PATH = "/usr/local/bin/ollama"
BINARY_LOCATIONS = [
    INSTALL_PATH,
    "/opt/homebrew/bin/ollama",
    "/Applications/Ollama.app/Contents/Resources/ollama",
]
MODEL_DIR = Path.home() / ".ollama"

SERVICE_LABEL = "com.ollama.server"
PLIST_PATH = Path("/Library/LaunchDaemons") / f"{SERVICE_LABEL}.plist"
STDOUT_LOG = "/tmp/ollama.log"
STDERR_LOG = "/tmp/ollama.err"

STARTUP_WAIT = 3
SHUTDOWN_WAIT = 2


@dataclass
class OllamaSettings:
    max_loaded_models: int = 3
    keep_alive_hours: int = 24
    num_parallel: int = 4
    max_context: int = 32768
    host: str = "0.0.0.0:11434"
    binary: str = INSTALL_PATH

    @classmethod
    def from_mapping(cls, values: dict) -> "OllamaSettings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})

    @property
    def keep_alive_seconds(self) -> int:
        return self.keep_alive_hours * 3600

    def environment(self) -> dict[str, str]:
        return {
            "OLLAMA_MAX_LOADED_MODELS": str(self.max_loaded_models),
            "OLLAMA_KEEP_ALIVE": str(self.keep_alive_seconds),
            "OLLAMA_NUM_PARALLEL": str(self.num_parallel),
            "OLLAMA_MAX_CONTEXT": str(self.max_context),
            "OLLAMA_FLASH_ATTENTION": "1",
            "OLLAMA_NUM_GPU": "1",
            "OLLAMA_HOST": self.host,
        }

    def service_unit(self) -> ServiceUnit:
        return ServiceUnit(
            label=SERVICE_LABEL,
            program_arguments=[self.binary, "serve"],
            plist_path=PLIST_PATH,
            run_at_load=True,
            keep_alive=True,
            working_directory="/tmp",
            environment=self.environment(),
            stdout_path=STDOUT_LOG,
            stderr_path=STDERR_LOG,
            system=True,
        )


def find_binary() -> str | None:
    for location in BINARY_LOCATIONS:
        if Path(location).is_file():
            return location
    return None


def api_responding(timeout: float = 5) -> bool:
    try:
        with urllib.request.urlopen(API_URL, timeout=timeout) as response:
            return response.status == 200
    except (urllib.error.URLError, OSError):
        return False


class OllamaComponent(Component):
    name = "ollama"
    title = "Ollama"

    @property
    def process_name(self) -> str:
        return self.host.config.get("ollama", {}).get("process_name", "ollama")

    def is_installed(self) -> bool:
        return find_binary() is not None

    def is_running(self) -> bool:
        return self.host.probe.process_running(self.process_name)

    def saved_settings(self) -> OllamaSettings:
        """Saved settings, else configured defaults, pointing at the installed binary."""
        record = config.load_record(config.OLLAMA_FILE)
        values = record if record is not None else self.host.config.get("ollama", {})
        settings = OllamaSettings.from_mapping(values)
        if record is None:
            settings.binary = find_binary() or INSTALL_PATH
        return settings

    # -- installation -----------------------------------------------------

    def _install(self) -> str:
        self.console.info("Installing Ollama from ollama.com...")
        with tempfile.TemporaryDirectory() as tmp:
            archive = Path(tmp) / "Ollama.zip"
            self.console.info("Downloading Ollama installer...")
            run_step(["curl", "-L", DOWNLOAD_URL, "-o", str(archive)], "Download Ollama")
            self.console.status("Download complete")

            self.console.info("Extracting installer...")
            run_step(["unzip", "-q", str(archive), "-d", tmp], "Extract Ollama")
            self.console.status("Extraction complete")

            app = Path(tmp) / "Ollama.app"
            loose = Path(tmp) / "ollama"
            run_step(["mkdir", "-p", str(Path(INSTALL_PATH).parent)], "Create /usr/local/bin", sudo=True)
            if app.is_dir():
                self.console.info("Installing Ollama.app to /Applications...")
                run_step(["mv", str(app), "/Applications/"], "Install Ollama.app", sudo=True)
                run_step(
                    ["ln", "-sf", f"{APP_BUNDLE}/Contents/Resources/ollama", INSTALL_PATH],
                    "Link ollama binary",
                    sudo=True,
                )
            elif loose.is_file():
                self.console.info(f"Installing Ollama binary to {INSTALL_PATH}...")
                run_step(["mv", str(loose), INSTALL_PATH], "Install ollama binary", sudo=True)
                run_step(["chmod", "+x", INSTALL_PATH], "Make ollama executable", sudo=True)
            else:
                raise SetupError("Unexpected download contents", step="Install Ollama")
        self.console.status("Ollama installed successfully")

        if not Path(INSTALL_PATH).exists():
            raise SetupError("Installation failed - binary not found", step="Verify Ollama")
        self._verify_arm64(INSTALL_PATH, fatal=True)
        self.console.status(f"Verified: Ollama {self._version(INSTALL_PATH)} installed")
        return INSTALL_PATH

    def _verify_arm64(self, binary: str, fatal: bool) -> bool:
        output = self.host.probe.binary_architectures(binary)
        if binary_supports_arm64(output):
            return True
        if "x86_64" in output:
            self.console.error("Binary is x86_64 only (no ARM64 support)")
        else:
            self.console.warning(f"Could not determine architecture of {binary}")
        if fatal:
            raise SetupError("Installation verification failed", step="Verify Ollama")
        return False

    def _uninstall_binaries(self):
        for location in BINARY_LOCATIONS:
            if Path(location).is_file() or Path(location).is_symlink():
                run_step(["rm", "-f", location], f"Remove {location}", sudo=True)
                self.console.status(f"Removed {location}")
        if APP_BUNDLE.is_dir():
            run_step(["rm", "-rf", str(APP_BUNDLE)], f"Remove {APP_BUNDLE}", sudo=True)
            self.console.status(f"Removed {APP_BUNDLE}")

    def _version(self, binary: str) -> str:
        try:
            result = subprocess.run(
                [binary, "--version"], capture_output=True, text=True, check=False, timeout=10,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return "unknown"
        return result.stdout.strip() or "unknown"

    def _kill(self):
        subprocess.run(["pkill", self.process_name], capture_output=True)
        time.sleep(SHUTDOWN_WAIT)

    # -- configuration ----------------------------------------------------

    def _prompt_settings(self, binary: str) -> OllamaSettings:
        defaults = self.saved_settings()
        self.console.info("Ollama configuration:")
        settings = OllamaSettings(
            max_loaded_models=self.console.prompt_int("Max loaded models", defaults.max_loaded_models),
            keep_alive_hours=self.console.prompt_int("Keep alive time in hours", defaults.keep_alive_hours),
            num_parallel=self.console.prompt_int("Number of parallel requests", defaults.num_parallel),
            max_context=self.console.prompt_int("Max context window", defaults.max_context),
            binary=binary,
        )
        port = defaults.host.rsplit(":", 1)[-1]
        if self.console.confirm("Bind to all network interfaces?", default=True):
            settings.host = f"0.0.0.0:{port}"
            self.console.warning("Binding to all interfaces - ensure firewall is configured!")
        else:
            settings.host = f"127.0.0.1:{port}"

        self.console.info("Configuration:")
        self.console.detail(f"Max loaded models: {settings.max_loaded_models}")
        self.console.detail(
            f"Keep alive: {settings.keep_alive_hours} hours ({settings.keep_alive_seconds} seconds)"
        )
        self.console.detail(f"Parallel requests: {settings.num_parallel}")
        self.console.detail(f"Max context: {settings.max_context} tokens")
        self.console.detail(f"Bind address: {settings.host}")
        if not self.console.confirm("Confirm configuration?"):
            raise SetupError("Configuration cancelled", step="confirm Ollama configuration")
        return settings

    # -- verbs ------------------------------------------------------------

    def setup(self):
        self.console.header("Ollama Setup")
        self.host.require_macos()
        self.host.require_apple_silicon()

        self.console.info("This will:")
        self.console.detail("1. Install Ollama (if not present)")
        self.console.detail("2. Configure Ollama environment")
        self.console.detail("3. Create launchd service for auto-start")
        self.console.detail("4. Start Ollama service")
        self.console.require("Continue with Ollama setup?", "Setup cancelled")

        binary = find_binary()
        if binary is None:
            binary = self._install()
        else:
            self.console.status(f"Ollama found at {binary}")
            if not self._verify_arm64(binary, fatal=False):
                if not self.console.confirm("Remove and reinstall?"):
                    raise SetupError("Cannot proceed with problematic installation", step="Verify Ollama")
                self.console.info("Removing existing installation...")
                self._uninstall_binaries()
                binary = self._install()

        self.console.info("Stopping any running Ollama instances...")
        self._kill()
        self.console.status("Ollama stopped")
        self.console.separator()

        settings = self._prompt_settings(binary)
        config.save_record(config.OLLAMA_FILE, asdict(settings))
        self.console.status(f"Configuration saved to {config.OLLAMA_FILE}")
        self.console.separator()

        unit = settings.service_unit()
        self.console.info(f"Creating launchd service at {unit.plist_path}...")
        self.host.supervisor.install(unit)
        self.console.status("Launchd plist created")
        self.console.separator()

        self.console.info("Loading Ollama service...")
        self.host.supervisor.load(unit)
        self.console.status("Service loaded")
        self.console.info("Starting Ollama service...")
        self.host.supervisor.start(unit)
        time.sleep(STARTUP_WAIT)
        self.console.separator()

        if not self.is_running():
            self.console.info(f"Check logs: tail -f {STDERR_LOG}")
            raise SetupError("Ollama failed to start", step="Start Ollama")
        self.console.status("Ollama is running")
        self.console.info("Testing API endpoint...")
        if api_responding():
            self.console.status("API endpoint responding")
        else:
            self.console.warning("API not responding yet (may still be starting)")

        self.console.separator()
        self.console.status("Ollama setup complete")
        self.console.info("Next steps:")
        self.console.detail("Pull a model: ollama pull qwen2.5-coder:7b")
        self.console.detail("List models: ollama list")
        self.console.detail("Run a model: ollama run qwen2.5-coder:7b")

    def enable(self):
        self.console.header("Enable Ollama Service")
        self.host.require_macos()
        if not self.is_installed():
            raise SetupError("Ollama is not installed", step="enable Ollama")
        unit = self.saved_settings().service_unit()
        if not self.host.supervisor.is_installed(unit):
            raise SetupError("Launchd service not configured", step="enable Ollama")

        if self.host.supervisor.is_loaded(unit):
            self.console.status("Service already loaded")
        else:
            self.console.info("Loading service...")
            self.host.supervisor.load(unit)
            self.console.status("Service loaded")

        if self.is_running():
            self.console.status("Service already running")
        else:
            self.console.info("Starting service...")
            self.host.supervisor.start(unit)
            time.sleep(STARTUP_WAIT)
            if not self.is_running():
                raise SetupError("Failed to start service", step="Start Ollama")
            self.console.status("Service started")

        if api_responding():
            self.console.status("API is responding")
        else:
            self.console.warning("API not responding yet")

    def disable(self, confirm: bool = True):
        self.console.header("Disable Ollama Service")
        self.host.require_macos()
        if confirm:
            self.console.info("This will stop the Ollama service")
            self.console.warning("Ollama will remain installed but not running")
            self.console.require("Disable Ollama service?")

        unit = self.saved_settings().service_unit()
        if self.is_running():
            self.console.info("Stopping service...")
            self.host.supervisor.stop(unit)
            self._kill()
            self.console.status("Service stopped")
        else:
            self.console.status("Service not running")

        if self.host.supervisor.is_loaded(unit):
            self.console.info("Unloading service...")
            self.host.supervisor.unload(unit)
            self.console.status("Service unloaded")
        else:
            self.console.status("Service not loaded")
        self.console.separator()
        self.console.status("Ollama service disabled")

    def remove(self, confirm: bool = True):
        self.console.header("Remove Ollama")
        self.host.require_macos()
        if confirm:
            self.console.info("This will completely remove Ollama:")
            self.console.detail("• Stop and remove service")
            self.console.detail("• Remove Ollama binary")
            self.console.detail("• Remove launchd plist")
            self.console.detail("• Clean up logs")
            self.console.warning("This is a destructive operation!")
            self.console.info(f"Model data ({MODEL_DIR}) will NOT be removed")
            self.console.require("Completely remove Ollama?")

        unit = self.saved_settings().service_unit()
        if self.is_running() or self.host.supervisor.is_loaded(unit):
            self.console.info("Stopping service...")
            self.host.supervisor.stop(unit)
            self.host.supervisor.unload(unit)
            self._kill()
            self.console.status("Service stopped")

        if self.host.supervisor.uninstall(unit):
            self.console.status("Launchd plist removed")
        self._uninstall_binaries()

        # written by the root daemon
        logs = [log for log in (STDOUT_LOG, STDERR_LOG) if Path(log).exists()]
        if logs:
            run_step(["rm", "-f"] + logs, "Remove Ollama logs", sudo=True)
            self.console.status("Logs removed")

        if config.delete_record(config.OLLAMA_FILE):
            self.console.status("Configuration removed")

        if MODEL_DIR.is_dir():
            if self.console.confirm(f"Remove model data ({MODEL_DIR})?"):
                shutil.rmtree(MODEL_DIR)
                self.console.status("Model data removed")
            else:
                self.console.info(f"Model data preserved at {MODEL_DIR}")

        self.console.separator()
        self.console.status("Ollama removed")

    def status(self):
        self.console.header("Ollama Status")
        binary = find_binary()
        if binary is None:
            self.console.warning("Ollama is not installed")
            self.console.info("Run 'headless-mac setup ollama' to install Ollama")
            return
        self.console.status("Ollama is installed")
        self.console.info(f"Binary: {binary}")
        self.console.info(f"Version: {self._version(binary)}")
        self.console.separator()

        settings = self.saved_settings()
        unit = settings.service_unit()
        if self.host.supervisor.is_installed(unit):
            self.console.status("Launchd service is configured")
            self.console.info(f"Plist: {unit.plist_path}")
        else:
            self.console.warning("Launchd service is not configured")
            self.console.info("Run 'headless-mac setup ollama' to configure service")
        self.console.separator()

        if self.host.supervisor.is_loaded(unit):
            self.console.status("Service is loaded")
        else:
            self.console.warning("Service is not loaded")
        pids = self.host.probe.pids(self.process_name)
        if pids:
            self.console.status("Ollama process is running")
            self.console.info(f"PID: {' '.join(str(p) for p in pids)}")
        else:
            self.console.warning("Ollama process is not running")
        self.console.separator()

        if api_responding():
            self.console.status("API is responding")
            self.console.info("Endpoint: http://localhost:11434")
        else:
            self.console.warning("API is not responding")
            if pids:
                self.console.info("Process is running but API not ready yet")
        self.console.separator()

        if config.OLLAMA_FILE.exists():
            self.console.info(f"Configuration file: {config.OLLAMA_FILE}")
            self.console.detail(f"Max loaded models: {settings.max_loaded_models}")
            self.console.detail(f"Keep alive: {settings.keep_alive_hours} hours")
            self.console.detail(f"Parallel requests: {settings.num_parallel}")
            self.console.detail(f"Max context: {settings.max_context} tokens")
            self.console.detail(f"Bind address: {settings.host}")
            self.console.separator()

        self.console.info("Logs:")
        self.console.detail(f"Output: {STDOUT_LOG}")
        self.console.detail(f"Errors: {STDERR_LOG}")
        err = Path(STDERR_LOG)
        if err.exists() and err.stat().st_size > 0:
            self.console.warning("Error log has content - check for issues")

    def summary(self) -> list[str]:
        binary = find_binary()
        if binary is None:
            return ["Status: ✗ Not installed"]
        lines = ["Status: ✓ Installed", f"Path: {binary}"]
        if not self.is_running():
            return lines + ["Service: ✗ Not running"]
        lines.append("Service: ✓ Running")
        lines.append("API: ✓ Responding" if api_responding(timeout=2) else "API: ⚠ Not responding")
        return lines
