"""Configuration loading and validation."""

import os
from pathlib import Path
from typing import Any

import yaml

from .agents import AGENT_FILE_BY_NAME

CONFIG_NAMES = ("config.yaml", "config.yml")
DEFAULT_OVERLAY_REPO = "~/clankover"
DEFAULT_AGENTS = ["agents", "claude", "gemini"]


class ConfigError(Exception):
    """Raised when config is invalid or not found."""
    pass


def get_config_dir() -> Path:
    """Directory holding clank's config: $XDG_CONFIG_HOME/clank."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "clank"


def find_config() -> Path | None:
    """Find the user's config file in the config directory.

    Returns:
        Path to the config file, or None if there is none.
    """
    config_dir = get_config_dir()
    for name in CONFIG_NAMES:
        config_path = config_dir / name
        if config_path.exists():
            return config_path
    return None


def default_config() -> dict[str, Any]:
    """Config used when no file exists."""
    return {
        "overlay_repo": DEFAULT_OVERLAY_REPO,
        "agents": list(DEFAULT_AGENTS),
        "ignore": [],
    }


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load and validate config from YAML file.

    Args:
        config_path: Explicit config file (from --config). When None the
            default location is searched and defaults are used if nothing
            is found.

    Returns:
        Validated config dict with every key present.

    Raises:
        ConfigError: If config is invalid, or an explicit path is missing.
    """
    if config_path is None:
        config_path = find_config()
        if config_path is None:
            return default_config()
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config: {e}")

    if config is None:
        return default_config()

    return validate_config(config)


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate config structure and fill in defaults.

    Args:
        config: Raw config dict.

    Returns:
        Validated config dict.

    Raises:
        ConfigError: If config is invalid.
    """
    if not isinstance(config, dict):
        raise ConfigError("Invalid config: expected mapping")

    if "version" in config and config["version"] != 1:
        raise ConfigError(f"Unsupported config version: {config['version']}")

    result = default_config()

    if "overlay_repo" in config:
        overlay_repo = config["overlay_repo"]
        if not isinstance(overlay_repo, str) or not overlay_repo:
            raise ConfigError("Invalid config: overlay_repo must be a string")
        result["overlay_repo"] = overlay_repo

    if "agents" in config:
        agents = config["agents"]
        if not isinstance(agents, list):
            raise ConfigError("Invalid config: agents must be a list")
        for i, agent in enumerate(agents):
            if agent not in AGENT_FILE_BY_NAME:
                known = ", ".join(AGENT_FILE_BY_NAME)
                raise ConfigError(f"Invalid agents[{i}]: {agent!r} (expected one of {known})")
        result["agents"] = list(agents)

    if "ignore" in config:
        ignore = config["ignore"]
        if ignore is None:
            ignore = []
        if not isinstance(ignore, list):
            raise ConfigError("Invalid config: ignore must be a list")
        for i, pattern in enumerate(ignore):
            if not isinstance(pattern, str):
                raise ConfigError(f"Invalid ignore[{i}]: must be a string")
        result["ignore"] = list(ignore)

    return result


def expand_path(path: str) -> Path:
    """Expand ~ in a configured path."""
    return Path(os.path.expanduser(path))


def get_overlay_path(config: dict[str, Any]) -> Path:
    """Absolute overlay root from config."""
    return expand_path(config["overlay_repo"]).absolute()


def create_default_config(config_path: Path, overlay_repo: str = DEFAULT_OVERLAY_REPO) -> None:
    """Write a config file with default settings.

    Args:
        config_path: File to write. Parent directories are created.
        overlay_repo: Overlay location to record.
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config = {"version": 1, **default_config(), "overlay_repo": overlay_repo}
    with open(config_path, "w") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)


def validate_overlay_exists(overlay_root: Path) -> None:
    """Raises ConfigError unless the overlay directory exists."""
    if not Path(overlay_root).is_dir():
        raise ConfigError(
            f"Overlay repository not found: {overlay_root}\n"
            "Run 'clank init' to create it"
        )
