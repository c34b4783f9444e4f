"""Run a verb across every component ("all")."""

from .components import ColimaComponent, HomebrewComponent, OllamaComponent, PowerComponent
from .components.base import Host
from .errors import Cancelled


def setup_all(host: Host):
    console = host.console
    console.header("Full Headless Mac Setup")
    console.info("This will install and configure:")
    console.detail("1. Homebrew (package manager)")
    console.detail("2. Power Management (24/7 operation)")
    console.detail("3. Ollama (LLM inference)")
    console.detail("4. Colima + Docker (containers)")
    console.require("Proceed with full setup?", "Setup cancelled")

    console.separator()
    console.header("Step 1/4: Homebrew")
    homebrew = HomebrewComponent(host)
    if homebrew.is_installed():
        console.status("Homebrew already installed")
    else:
        homebrew.setup()

    steps = [
        ("Step 2/4: Power Management", "Configure power management for 24/7 operation?",
         "Skipping power management", PowerComponent),
        ("Step 3/4: Ollama", "Install and configure Ollama?", "Skipping Ollama", OllamaComponent),
        ("Step 4/4: Colima + Docker", "Install and configure Colima with Docker?",
         "Skipping Colima", ColimaComponent),
    ]
    for title, question, skipped, component_cls in steps:
        console.separator()
        console.header(title)
        if console.confirm(question):
            try:
                component_cls(host).setup()
            except Cancelled as e:
                console.warning(str(e))
        else:
            console.info(skipped)

    console.separator()
    console.header("Setup Complete!")
    console.status("All components installed and configured")
    console.info("Next steps:")
    console.detail("• Test reboot to verify auto-start")
    console.detail("• Pull an Ollama model: ollama pull qwen2.5-coder:7b")
    console.detail("• Test Ollama: ollama run qwen2.5-coder:7b 'hello'")
    console.detail("• Verify Docker: docker run hello-world")
    console.info("Check status anytime with: headless-mac status")


def enable_all(host: Host):
    console = host.console
    console.header("Enable All Services")
    console.info("This will start/enable all services")

    if console.confirm("Enable headless power management?"):
        PowerComponent(host).enable()
    console.separator()

    ollama = OllamaComponent(host)
    if ollama.is_installed() and console.confirm("Enable Ollama service?"):
        ollama.enable()
    console.separator()

    colima = ColimaComponent(host)
    if colima.is_installed() and console.confirm("Enable Colima?"):
        colima.enable()
    console.separator()
    console.status("Services enabled")


def disable_all(host: Host):
    console = host.console
    console.header("Disable All Services")
    console.info("This will stop/disable all services")
    console.warning("Components remain installed")
    console.require("Disable all services?")

    colima = ColimaComponent(host)
    if colima.is_installed():
        console.info("Disabling Colima...")
        colima.disable(confirm=False)
    console.separator()

    ollama = OllamaComponent(host)
    if ollama.is_installed():
        console.info("Disabling Ollama...")
        ollama.disable(confirm=False)
    console.separator()

    console.info("Restoring normal power management...")
    PowerComponent(host).disable(confirm=False)
    console.separator()
    console.status("All services disabled")


def remove_all(host: Host):
    console = host.console
    console.header("Remove All Components")
    console.warning("THIS WILL REMOVE ALL COMPONENTS")
    console.warning("This is a destructive operation!")
    console.info("The following will be removed:")
    console.detail("• Colima and Docker (VMs, containers, images)")
    console.detail("• Ollama (service and binary, optionally models)")
    console.detail("• Power management configuration")
    console.detail("• Optionally: Homebrew and all packages")
    console.require("Are you absolutely sure?")
    console.warning("This cannot be undone!")
    console.require("Confirm again to remove everything")

    colima = ColimaComponent(host)
    if colima.is_installed():
        console.separator()
        console.info("Removing Colima...")
        colima.remove(confirm=False)

    ollama = OllamaComponent(host)
    if ollama.is_installed():
        console.separator()
        console.info("Removing Ollama...")
        ollama.remove(confirm=False)

    console.separator()
    console.info("Restoring normal power management...")
    PowerComponent(host).remove(confirm=False)

    homebrew = HomebrewComponent(host)
    if homebrew.is_installed():
        console.separator()
        if console.confirm("Remove Homebrew? (This will remove ALL Homebrew packages)"):
            homebrew.remove(confirm=False)
        else:
            console.info("Homebrew kept installed")

    console.separator()
    console.status("All components removed")
    console.info("Your Mac has been restored to a clean state")


def status_all(host: Host):
    console, probe = host.console, host.probe
    console.header("System Status")

    resources = probe.resources()
    console.info("System Information:")
    console.detail(f"macOS: {probe.macos_version()}")
    console.detail(f"Architecture: {probe.machine()}")
    console.detail(f"Hostname: {probe.hostname()}")
    console.detail(f"RAM: {resources.total_ram_gb}GB")
    console.detail(f"CPUs: {resources.total_cpu_cores}")

    for component in (HomebrewComponent(host), PowerComponent(host), OllamaComponent(host), ColimaComponent(host)):
        console.separator()
        console.info(f"{component.title}:")
        for line in component.summary():
            console.detail(line)

    console.separator()
    console.info("Docker:")
    if probe.command_exists("docker"):
        console.detail("Status: ✓ Installed")
    else:
        console.detail("Status: ✗ Not installed")

    console.separator()
    console.info("For detailed status, use:")
    console.detail("headless-mac status <component>")
    console.detail("Components: homebrew, power, ollama, colima")
