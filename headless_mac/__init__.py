"""Install and configure Homebrew, Ollama, Colima and power settings for a headless Mac."""

__version__ = "0.1.0"
