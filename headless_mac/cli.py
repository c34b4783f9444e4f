"""CLI entry point for headless-mac."""

import json
import logging
import sys
from dataclasses import asdict

import click

from . import __version__, config
from .advisor import format_recommendation
from .components import COMPONENTS, get_component
from .components.base import Host
from .components.colima import gather_recommendation
from .errors import Cancelled, HeadlessMacError
from .orchestrate import disable_all, enable_all, remove_all, setup_all, status_all
from .ui import Console

logger = logging.getLogger("headless_mac")

COMPONENT_NAMES = list(COMPONENTS) + ["all"]

ALL_ACTIONS = {
    "setup": setup_all,
    "enable": enable_all,
    "disable": disable_all,
    "remove": remove_all,
    "status": status_all,
}


def _setup_logging(verbose: bool = False):
    """Log external commands to ~/.headless-mac/headless-mac.log."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    config.ensure_dirs()
    handler = logging.FileHandler(str(config.LOG_FILE))
    handler.setFormatter(
        logging.Formatter("%(asctime)s  %(name)s  %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if verbose:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(stream)


def _make_host() -> Host:
    return Host.default(config.load_config(), Console())


def _execute(host: Host, action) -> int:
    """Run an action, translating errors into an exit code."""
    try:
        action()
    except Cancelled as e:
        host.console.warning(str(e))
        return 0
    except HeadlessMacError as e:
        logger.error("failed%s: %s", f" at {e.step}" if e.step else "", e)
        host.console.error(str(e))
        return 1
    return 0


def _run_verb(verb: str, component: str | None):
    if component is None:
        if verb != "status":
            click.echo(f"No component specified. Choose one of: {', '.join(COMPONENT_NAMES)}", err=True)
            sys.exit(1)
        component = "all"
    if component not in COMPONENT_NAMES:
        click.echo(f"Unknown component: {component}", err=True)
        sys.exit(1)

    host = _make_host()
    logger.info("%s %s", verb, component)

    def action():
        host.require_macos()
        if component == "all":
            ALL_ACTIONS[verb](host)
        else:
            getattr(get_component(component, host), verb)()

    code = _execute(host, action)
    if code:
        sys.exit(code)


class HeadlessGroup(click.Group):
    """Lists the per-component verbs first, then the rest."""

    VERBS = ("setup", "enable", "disable", "remove", "status")

    def format_commands(self, ctx, formatter):
        verbs, other = [], []
        for name in self.list_commands(ctx):
            cmd = self.get_command(ctx, name)
            if cmd is None or cmd.hidden:
                continue
            row = (name, cmd.get_short_help_str(limit=formatter.width))
            (verbs if name in self.VERBS else other).append(row)
        if verbs:
            with formatter.section("Commands"):
                formatter.write_dl(verbs)
        if other:
            with formatter.section("Other"):
                formatter.write_dl(other)


@click.group(
    cls=HeadlessGroup,
    invoke_without_command=True,
    context_settings=dict(help_option_names=["-h", "--help"]),
)
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Echo debug logging to stderr.")
@click.pass_context
def main(ctx, verbose):
    """headless-mac: prepare a Mac for unattended 24/7 operation.

    Installs and manages Homebrew, headless power settings, an Ollama
    server and a Colima container VM. Run without a command for the
    interactive menu.

    \b
    Components: homebrew, power, ollama, colima, all

    \b
    Examples:
      headless-mac setup all        Full setup
      headless-mac setup ollama     Install only Ollama
      headless-mac enable ollama    Start the Ollama service
      headless-mac status           Status of every component
      headless-mac disable all      Stop all services
      headless-mac remove colima    Remove Colima
      headless-mac advise           Show the Colima sizing recommendation
    """
    _setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        ctx.invoke(menu)


def _verb_command(name: str, help_text: str, verb: str | None = None, hidden: bool = False):
    @click.argument("component", required=False)
    def command(component):
        _run_verb(verb or name, component)

    command.__doc__ = help_text
    return main.command(name, hidden=hidden)(command)


_verb_command("setup", "Install and configure a component.")
_verb_command("install", "Alias for setup.", verb="setup", hidden=True)
_verb_command("enable", "Enable or start a component.")
_verb_command("disable", "Disable or stop a component (stays installed).")
_verb_command("remove", "Remove or uninstall a component.")
_verb_command("status", "Show status (all components by default).")


@main.command("advise")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def advise(as_json):
    """Recommend CPU/RAM/disk for the Colima VM."""
    host = _make_host()

    def action():
        resources, workload, rec = gather_recommendation(host)
        if as_json:
            payload = {
                "resources": asdict(resources),
                "inference": asdict(workload),
                "recommendation": asdict(rec),
            }
            click.echo(json.dumps(payload, indent=2))
            return
        for line in format_recommendation(resources, workload, rec, host.advisor_settings):
            click.echo(line)
        for warning in rec.warnings:
            host.console.warning(warning)

    if _execute(host, action):
        sys.exit(1)


# ---------------------------------------------------------------------------
# interactive menu
# ---------------------------------------------------------------------------


def _component_action(name: str, verb: str):
    return lambda host: getattr(get_component(name, host), verb)()


MENU = [
    ("Installation", [
        ("1", "Install Homebrew", _component_action("homebrew", "setup")),
        ("2", "Configure Power Management", _component_action("power", "setup")),
        ("3", "Install Ollama", _component_action("ollama", "setup")),
        ("4", "Install Colima + Docker", _component_action("colima", "setup")),
        ("5", "Full Setup (All of the above)", setup_all),
    ]),
    ("Management", [
        ("6", "Enable All Services", enable_all),
        ("7", "Disable All Services", disable_all),
        ("8", "Show Status (All Components)", status_all),
    ]),
    ("Individual Status", [
        ("9", "Homebrew Status", _component_action("homebrew", "status")),
        ("10", "Power Management Status", _component_action("power", "status")),
        ("11", "Ollama Status", _component_action("ollama", "status")),
        ("12", "Colima Status", _component_action("colima", "status")),
    ]),
    ("Removal", [
        ("13", "Remove Ollama", _component_action("ollama", "remove")),
        ("14", "Remove Colima", _component_action("colima", "remove")),
        ("15", "Remove All Components", remove_all),
    ]),
]
MENU_ACTIONS = {key: action for _, entries in MENU for key, _, action in entries}


def _show_menu(console: Console):
    console.header("Headless Mac Setup")
    click.echo("Select an option:")
    for section, entries in MENU:
        click.echo()
        click.echo(f"  {section}:")
        for key, label, _ in entries:
            click.echo(f"   {key:>2}) {label}")
    click.echo()
    click.echo("    0) Exit")
    click.echo()


@main.command("menu")
def menu():
    """Interactive menu."""
    host = _make_host()
    if _execute(host, host.require_macos):
        sys.exit(1)
    while True:
        _show_menu(host.console)
        choice = click.prompt(f"Enter choice [0-{len(MENU_ACTIONS)}]", default="", show_default=False).strip()
        click.echo()
        if choice == "0":
            host.console.info("Exiting...")
            return
        action = MENU_ACTIONS.get(choice)
        if action is None:
            host.console.error(f"Invalid choice: {choice}")
        else:
            logger.info("menu choice %s", choice)
            _execute(host, lambda: action(host))
        click.echo()
        host.console.pause()


if __name__ == "__main__":
    main()
