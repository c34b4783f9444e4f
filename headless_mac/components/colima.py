"""Colima + Docker, sized around a running Ollama server."""

import logging
import shutil
from pathlib import Path

from .. import config
from ..advisor import (
    InferenceWorkloadEstimate,
    ResourceRecommendation,
    SystemResources,
    estimate_inference_workload,
    format_recommendation,
    recommend_resources,
)
from ..backends.base import ServiceUnit
from ..errors import SetupError
from .base import Component, Host
from .homebrew import HomebrewComponent

logger = logging.getLogger("headless_mac.colima")

SERVICE_LABEL = "com.colima"
PLIST_PATH = Path.home() / "Library" / "LaunchAgents" / f"{SERVICE_LABEL}.plist"
STDOUT_LOG = "/tmp/colima.log"
STDERR_LOG = "/tmp/colima.err"
HOST_OLLAMA_URL = "http://host.docker.internal:11434"

DOCKER_PACKAGES = [
    # (command that proves it's installed, formula)
    ("docker", "docker"),
    ("docker-compose", "docker-compose"),
]


def gather_recommendation(
    host: Host,
) -> tuple[SystemResources, InferenceWorkloadEstimate, ResourceRecommendation]:
    """Query the machine and run the advisor on the result."""
    settings = host.advisor_settings
    process_name = host.config.get("ollama", {}).get("process_name", "ollama")
    resources = host.probe.resources()
    running = host.probe.process_running(process_name)
    observed = host.probe.process_rss_gb(process_name) if running else None
    workload = estimate_inference_workload(running, observed, settings)
    logger.info(
        "advisor inputs: ram=%sGB cpu=%s ollama_running=%s observed=%s",
        resources.total_ram_gb, resources.total_cpu_cores, running, observed,
    )
    return resources, workload, recommend_resources(resources, workload, settings)


def autostart_unit() -> ServiceUnit:
    return ServiceUnit(
        label=SERVICE_LABEL,
        program_arguments=[shutil.which("colima") or "colima", "start", "--foreground"],
        plist_path=PLIST_PATH,
        run_at_load=True,
        keep_alive=False,
        stdout_path=STDOUT_LOG,
        stderr_path=STDERR_LOG,
    )


class ColimaComponent(Component):
    name = "colima"
    title = "Colima"

    def is_installed(self) -> bool:
        return self.host.vm.is_installed()

    def _ollama_running(self) -> bool:
        name = self.host.config.get("ollama", {}).get("process_name", "ollama")
        return self.host.probe.process_running(name)

    def _start(self, cpu: int, memory: int, disk: int):
        self.console.info("Starting Colima...")
        self.host.vm.start(cpu, memory, disk, apple_silicon=self.host.probe.is_apple_silicon())
        self.console.status("Colima started successfully")

    def _ensure_homebrew(self):
        if self.host.brew.is_available():
            return
        self.console.info("Homebrew is required for Colima installation")
        if not self.console.confirm("Install Homebrew first?"):
            raise SetupError("Homebrew is required", step="install Homebrew")
        HomebrewComponent(self.host).setup()

    def _install_packages(self):
        self.console.header("Step 1: Install Colima")
        vm, brew = self.host.vm, self.host.brew
        if vm.is_installed():
            self.console.status("Colima already installed")
            self.console.info(f"Version: {vm.version()}")
            if self.console.confirm("Upgrade to latest version?"):
                brew.upgrade("colima")
                self.console.status("Colima upgraded")
        else:
            self.console.info("Installing Colima...")
            brew.install("colima")
            self.console.status("Colima installed")

        self.console.separator()
        self.console.header("Step 2: Install Docker Tools")
        for command, formula in DOCKER_PACKAGES:
            if self.host.probe.command_exists(command):
                self.console.status(f"{formula} already installed")
            else:
                self.console.info(f"Installing {formula}...")
                brew.install(formula)
                self.console.status(f"{formula} installed")
        if vm.buildx_available():
            self.console.status("Docker Buildx already available")
        else:
            self.console.info("Installing Docker Buildx...")
            brew.install("docker-buildx")
            self.console.status("Docker Buildx installed")

    def _choose_resources(self) -> dict:
        """Show the advisor's recommendation and let the operator adjust it."""
        resources, workload, rec = gather_recommendation(self.host)
        self.console.info("System resources:")
        for line in format_recommendation(resources, workload, rec, self.host.advisor_settings):
            self.console.detail(line)
        for warning in rec.warnings:
            self.console.warning(warning)

        self.console.info("Colima configuration:")
        selection = {
            "cpu": self.console.prompt_int("CPU cores for Colima", rec.cpu_cores),
            "memory": self.console.prompt_int("Memory in GB", rec.ram_gb),
            "disk": self.console.prompt_int("Disk size in GB", rec.disk_gb),
            "arch": self.host.probe.machine(),
        }
        self.console.info("Configuration summary:")
        self.console.detail(f"CPUs: {selection['cpu']}")
        self.console.detail(f"Memory: {selection['memory']}GB")
        self.console.detail(f"Disk: {selection['disk']}GB")
        self.console.detail(f"Architecture: {selection['arch']}")
        if not self.console.confirm("Start Colima with these settings?"):
            raise SetupError("Configuration cancelled", step="confirm Colima configuration")
        return selection

    def setup(self):
        self.console.header("Colima Setup")
        self.host.require_macos()
        self.host.warn_unless_apple_silicon()

        self.console.info("This will:")
        self.console.detail("1. Install Homebrew (if needed)")
        self.console.detail("2. Install Colima")
        self.console.detail("3. Install Docker CLI and Docker Compose")
        self.console.detail("4. Configure Colima for containers")
        self.console.detail("5. Set up auto-start (optional)")
        if self._ollama_running():
            self.console.warning("Ollama is running - will optimize resources accordingly")
        self.console.require("Continue with Colima setup?", "Setup cancelled")

        self._ensure_homebrew()
        self.console.separator()
        self._install_packages()

        self.console.separator()
        self.console.header("Step 3: Configure Colima")
        vm = self.host.vm
        if vm.is_running():
            self.console.warning("Colima is already running")
            self.console.raw(vm.status())
            if not self.console.confirm("Stop and reconfigure?"):
                self.console.info("Keeping current configuration")
                self.console.status("Setup complete")
                return
            self.console.info("Stopping Colima...")
            vm.stop()
            self.console.status("Colima stopped")

        selection = self._choose_resources()
        config.save_record(config.COLIMA_FILE, selection)
        self.console.status(f"Configuration saved to {config.COLIMA_FILE}")
        self._start(selection["cpu"], selection["memory"], selection["disk"])

        self.console.separator()
        self.console.header("Step 4: Verify Installation")
        if not vm.is_running():
            raise SetupError("Colima failed to start", step="verify Colima")
        self.console.status("Colima is running")
        self.console.info("Testing Docker CLI...")
        if not vm.docker_connected():
            raise SetupError("Docker CLI cannot connect to Colima", step="verify Docker")
        self.console.status("Docker CLI connected to Colima")
        self.console.info("Running test container...")
        if vm.run_test_container():
            self.console.status("Docker containers work correctly")
        else:
            self.console.warning("Test container failed")
        self.console.info("Docker environment:")
        self.console.raw(vm.docker_info())

        self.console.separator()
        self.console.header("Step 5: Auto-start Configuration (Optional)")
        self.console.info("Colima can start automatically on login using launchd")
        if self.console.confirm("Set up auto-start?"):
            unit = autostart_unit()
            self.host.supervisor.install(unit)
            self.host.supervisor.load(unit)
            self.console.status("Auto-start configured")
            self.console.info("Colima will start automatically on login")
        else:
            self.console.info("Skipping auto-start configuration")
            self.console.warning("You'll need to run 'colima start' manually after reboots")

        self.console.separator()
        self.console.status("Colima and Docker are ready to use")
        if self._ollama_running():
            self.console.info("Connecting to Ollama from containers:")
            self.console.detail(f"Host: {HOST_OLLAMA_URL}")
            self.console.detail(f"Example: docker run -e OLLAMA_BASE_URL={HOST_OLLAMA_URL} ...")

    def enable(self):
        self.console.header("Enable Colima")
        self.host.require_macos()
        vm = self.host.vm
        if not vm.is_installed():
            raise SetupError("Colima is not installed", step="enable Colima")
        if vm.is_running():
            self.console.status("Colima is already running")
            self.console.raw(vm.status())
            return

        settings = self.host.advisor_settings
        selection = config.load_record(config.COLIMA_FILE)
        if selection is None:
            self.console.info("No saved configuration found, using defaults")
            selection = {}
        # keys missing from a hand-edited record fall back individually
        self._start(
            selection.get("cpu", settings.default_cpu),
            selection.get("memory", settings.default_ram_gb),
            selection.get("disk", settings.default_disk_gb),
        )

        unit = autostart_unit()
        if self.host.supervisor.is_installed(unit):
            self.host.supervisor.load(unit)
            self.console.status("Auto-start enabled")

        self.console.separator()
        if not vm.is_running():
            raise SetupError("Failed to start Colima", step="start Colima")
        self.console.status("Colima is running")
        self.console.raw(vm.status())

    def disable(self, confirm: bool = True):
        self.console.header("Disable Colima")
        self.host.require_macos()
        vm = self.host.vm
        if not vm.is_installed():
            raise SetupError("Colima is not installed", step="disable Colima")
        if confirm:
            self.console.info("This will stop Colima and disable auto-start")
            self.console.warning("Colima will remain installed but not running")
            self.console.require("Disable Colima?")

        if vm.is_running():
            self.console.info("Stopping Colima...")
            vm.stop()
            self.console.status("Colima stopped")
        else:
            self.console.status("Colima is not running")

        unit = autostart_unit()
        if self.host.supervisor.is_installed(unit):
            self.host.supervisor.unload(unit)
            self.console.status("Auto-start disabled")
        self.console.separator()
        self.console.status("Colima disabled")

    def remove(self, confirm: bool = True):
        self.console.header("Remove Colima")
        self.host.require_macos()
        if confirm:
            self.console.info("This will completely remove Colima:")
            self.console.detail("• Stop Colima")
            self.console.detail("• Delete Colima VM and data")
            self.console.detail("• Remove auto-start configuration")
            self.console.detail("• Optionally uninstall via Homebrew")
            self.console.warning("This is a destructive operation!")
            self.console.warning("All containers and images will be deleted")
            self.console.require("Completely remove Colima?")

        vm = self.host.vm
        if vm.is_installed():
            if vm.is_running():
                self.console.info("Stopping Colima...")
                vm.stop()
                self.console.status("Colima stopped")
            self.console.info("Deleting Colima VM...")
            vm.delete()
            self.console.status("Colima VM deleted")

        if self.host.supervisor.uninstall(autostart_unit()):
            self.console.status("Auto-start configuration removed")
        if config.delete_record(config.COLIMA_FILE):
            self.console.status("Configuration removed")

        if vm.is_installed():
            if self.console.confirm("Uninstall Colima via Homebrew?"):
                self.host.brew.uninstall("colima")
                self.console.status("Colima uninstalled")
            else:
                self.console.info("Colima package left installed")

        self.console.separator()
        self.console.status("Colima removed")

    def status(self):
        self.console.header("Colima Status")
        vm = self.host.vm
        if not vm.is_installed():
            self.console.warning("Colima is not installed")
            self.console.info("Run 'headless-mac setup colima' to install Colima")
            return
        self.console.status("Colima is installed")
        self.console.info(f"Version: {vm.version()}")
        self.console.separator()

        if vm.is_running():
            self.console.status("Colima is running")
            self.console.raw(vm.status())
        else:
            self.console.warning("Colima is not running")
            self.console.info("Run 'headless-mac enable colima' to start Colima")
        self.console.separator()

        if self.host.probe.command_exists("docker"):
            self.console.status("Docker CLI is installed")
            if vm.docker_connected():
                self.console.status("Docker CLI connected to Colima")
            else:
                self.console.warning("Docker CLI cannot connect to Colima")
        else:
            self.console.warning("Docker CLI is not installed")
        self.console.separator()

        unit = autostart_unit()
        if self.host.supervisor.is_installed(unit):
            self.console.status("Auto-start is configured")
            self.console.info(f"Plist: {unit.plist_path}")
        else:
            self.console.warning("Auto-start is not configured")
            self.console.info("Run 'headless-mac setup colima' and enable auto-start")
        self.console.separator()

        self.console.info("Container to Host Ollama connectivity:")
        if self._ollama_running():
            self.console.status("Ollama is running on host")
            self.console.detail(f"Access from containers: {HOST_OLLAMA_URL}")
            self.console.detail(f"Environment variable: OLLAMA_BASE_URL={HOST_OLLAMA_URL}")
        else:
            self.console.warning("Ollama is not running on host")
            self.console.info("Install Ollama with: headless-mac setup ollama")

        selection = config.load_record(config.COLIMA_FILE)
        if selection is not None:
            self.console.separator()
            self.console.info(f"Configuration file: {config.COLIMA_FILE}")
            self.console.detail(f"CPUs: {selection.get('cpu')}")
            self.console.detail(f"Memory: {selection.get('memory')}GB")
            self.console.detail(f"Disk: {selection.get('disk')}GB")

    def summary(self) -> list[str]:
        vm = self.host.vm
        if not vm.is_installed():
            return ["Status: ✗ Not installed"]
        lines = ["Status: ✓ Installed"]
        if not vm.is_running():
            return lines + ["Service: ✗ Not running"]
        lines.append("Service: ✓ Running")
        lines.append("Docker: ✓ Connected" if vm.docker_connected() else "Docker: ✗ Not connected")
        return lines
