"""Installable components of the headless setup."""

from .base import Component, Host
from .colima import ColimaComponent
from .homebrew import HomebrewComponent
from .ollama import OllamaComponent
from .power import PowerComponent

# Install order; removal runs in reverse
COMPONENTS: dict[str, type[Component]] = {
    "homebrew": HomebrewComponent,
    "power": PowerComponent,
    "ollama": OllamaComponent,
    "colima": ColimaComponent,
}


def get_component(name: str, host: Host) -> Component:
    """Instantiate a component by name. Raises KeyError for unknown names."""
    return COMPONENTS[name](host)


__all__ = [
    "COMPONENTS",
    "ColimaComponent",
    "Component",
    "HomebrewComponent",
    "Host",
    "OllamaComponent",
    "PowerComponent",
    "get_component",
]
