"""Configuration management for headless-mac."""

import os
import sys
from datetime import datetime
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

# Override with HEADLESS_MAC_HOME environment variable
DATA_DIR = Path(os.environ.get("HEADLESS_MAC_HOME", Path.home() / ".headless-mac"))
CONFIG_FILE = DATA_DIR / "config.toml"
COLIMA_FILE = DATA_DIR / "colima.toml"
OLLAMA_FILE = DATA_DIR / "ollama.toml"
PMSET_BACKUP_FILE = DATA_DIR / "pmset-backup.toml"
LOG_FILE = DATA_DIR / "headless-mac.log"

DEFAULT_CONFIG = {
    "advisor": {
        "os_reserved_ram_gb": 4,
        "os_reserved_cpu": 2,
        "inference_buffer_gb": 2,
        "inference_fallback_ram_gb": 8,
        "default_cpu": 4,
        "default_ram_gb": 16,
        "default_disk_gb": 100,
        "min_ram_gb": 4,
        "min_cpu": 2,
    },
    "ollama": {
        "max_loaded_models": 3,
        "keep_alive_hours": 24,
        "num_parallel": 4,
        "max_context": 32768,
        "host": "0.0.0.0:11434",
        "process_name": "ollama",
    },
    "colima": {
        "vm_type": "vz",
    },
    "power": {
        "headless": {
            "sleep": 0,
            "disablesleep": 1,
            "disksleep": 0,
            "standby": 0,
            "autopoweroff": 0,
            "powernap": 0,
            "autorestart": 0,
            "networkoversleep": 0,
            "womp": 1,
            "displaysleep": 10,
            "tcpkeepalive": 1,
        },
    },
}


def ensure_dirs():
    """Create the data directory if it doesn't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def load_config() -> dict:
    """Load config, creating default if it doesn't exist."""
    ensure_dirs()
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            user_config = tomllib.load(f)
        # Merge with defaults (user overrides)
        config = _deep_merge(DEFAULT_CONFIG, user_config)
    else:
        config = _deep_merge(DEFAULT_CONFIG, {})
        save_config(config)
    return config


def save_config(config: dict):
    """Save config to disk."""
    ensure_dirs()
    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(config, f)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts, with override taking precedence."""
    result = {k: (_deep_merge(v, {}) if isinstance(v, dict) else v) for k, v in base.items()}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# ---------------------------------------------------------------------------
# Persisted records (flat key/value files: colima selection, ollama settings,
# pmset backup)
# ---------------------------------------------------------------------------


def load_record(path: Path) -> dict | None:
    """Load a saved record, or None if it was never written."""
    if not path.exists():
        return None
    with open(path, "rb") as f:
        return tomllib.load(f)


def save_record(path: Path, values: dict):
    """Write a record, replacing any previous one. Adds a ``created`` stamp."""
    path.parent.mkdir(parents=True, exist_ok=True)
    record = dict(values)
    record["created"] = datetime.now().isoformat(timespec="seconds")
    tmp = path.with_suffix(".tmp")
    with open(tmp, "wb") as f:
        tomli_w.dump(record, f)
    tmp.rename(path)


def delete_record(path: Path) -> bool:
    """Delete a record. Returns True if there was one."""
    if path.exists():
        path.unlink()
        return True
    return False
