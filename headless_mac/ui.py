"""Operator interaction: status lines, headers and prompts.

Everything that reads from the terminal goes through ``Console`` so the
components can be driven by a scripted console in tests.
"""

import click

from .errors import Cancelled

RULE = "=" * 50
SEPARATOR = "-" * 50


class Console:
    def status(self, message: str):
        click.echo(f"{click.style('[✓]', fg='green')} {message}")

    def error(self, message: str):
        click.echo(f"{click.style('[✗]', fg='red')} {message}", err=True)

    def warning(self, message: str):
        click.echo(f"{click.style('[!]', fg='yellow')} {message}")

    def info(self, message: str):
        click.echo(f"{click.style('[ℹ]', fg='blue')} {message}")

    def detail(self, message: str = ""):
        click.echo(f"  {message}" if message else "")

    def raw(self, text: str):
        click.echo(text.rstrip("\n"))

    def header(self, title: str):
        click.echo()
        click.echo(RULE)
        click.echo(title)
        click.echo(RULE)
        click.echo()

    def separator(self):
        click.echo()
        click.echo(SEPARATOR)
        click.echo()

    def confirm(self, prompt: str, default: bool = False) -> bool:
        return click.confirm(prompt, default=default)

    def require(self, prompt: str, message: str = "Operation cancelled", default: bool = False):
        """Confirm or raise ``Cancelled``."""
        if not self.confirm(prompt, default=default):
            raise Cancelled(message)

    def prompt_int(self, prompt: str, default: int, minimum: int = 1) -> int:
        return click.prompt(prompt, default=default, type=click.IntRange(min=minimum))

    def prompt_text(self, prompt: str, default: str = "") -> str:
        return click.prompt(prompt, default=default, show_default=bool(default))

    def pause(self):
        click.prompt("Press Enter to continue", default="", show_default=False, prompt_suffix="...")
