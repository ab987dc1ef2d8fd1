"""SKAgents configuration — config file, overrides, and path resolution.

Config file:
    $XDG_CONFIG_HOME/skagents/config.yaml   (default ~/.config/skagents/config.yaml)

    skills-dir: /home/me/skills
    owner: me

Skills directory precedence, first match wins:
    1. --config skills-dir:<path>     per-invocation override
    2. --skills-dir <path>            command-line flag
    3. SKAGENTS_SKILLS_DIR            environment variable
    4. skills-dir in the config file
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

import yaml

from . import DEFAULT_AGENTS_PATH
from .errors import ConfigError, StoreIOError
from .models import SkagentsConfig

logger = logging.getLogger("skagents.config")

SKILLS_DIR_ENV = "SKAGENTS_SKILLS_DIR"
SKILLS_DIR_KEY = "skills-dir"
CONFIG_FILENAME = "config.yaml"


def default_config_path() -> Path:
    """Resolve the config file path, respecting XDG_CONFIG_HOME.

    Returns:
        Path: The config file location (may not exist yet).
    """
    env = os.environ.get("XDG_CONFIG_HOME")
    base = Path(env) if env else Path("~/.config").expanduser()
    return base / "skagents" / CONFIG_FILENAME


def expand_path(value: str, cwd: Optional[Path] = None) -> Path:
    """Expand ``~`` and environment variables; anchor relative paths at ``cwd``."""
    path = Path(os.path.expanduser(os.path.expandvars(value)))
    if not path.is_absolute():
        path = (cwd or Path.cwd()) / path
    return Path(os.path.normpath(path))


def load_config(path: Optional[Path] = None) -> SkagentsConfig:
    """Load the config file; a missing file is an empty config.

    Raises:
        ConfigError: If the file is not a YAML mapping.
        StoreIOError: If the file exists but cannot be read.
    """
    path = path or default_config_path()
    if not path.exists():
        return SkagentsConfig()
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise StoreIOError(f"Failed to read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc

    if raw is None:
        return SkagentsConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(raw).__name__}: {path}")
    return SkagentsConfig.model_validate(
        {str(k): str(v) for k, v in raw.items() if v is not None}
    )


def save_config(config: SkagentsConfig, path: Optional[Path] = None) -> Path:
    """Persist the config file, creating its directory.

    Raises:
        StoreIOError: If the file cannot be written.
    """
    path = path or default_config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.safe_dump(config.to_mapping(), default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )
    except OSError as exc:
        raise StoreIOError(f"Failed to write config file {path}: {exc}") from exc
    logger.debug("Saved config to %s", path)
    return path


def ensure_config_file(path: Optional[Path] = None) -> Path:
    """Create an empty config file if none exists."""
    path = path or default_config_path()
    if not path.exists():
        save_config(SkagentsConfig(), path)
    return path


def set_value(key: str, value: str, path: Optional[Path] = None) -> str:
    """Set one config key and persist it.

    ``skills-dir`` values are stored as absolute, expanded paths.

    Returns:
        str: The value actually stored.
    """
    if not key:
        raise ConfigError("Config key must not be empty")
    config = load_config(path)
    if key == SKILLS_DIR_KEY:
        value = str(expand_path(value))
    config.set(key, value)
    save_config(config, path)
    return value


def get_value(key: str, path: Optional[Path] = None) -> str:
    """Read one config key, creating the config file if it is missing.

    Raises:
        ConfigError: If the key is not set.
    """
    path = ensure_config_file(path)
    value = load_config(path).get(key)
    if value is None:
        raise ConfigError(f"Config key '{key}' is not set ({path})")
    return value


def parse_overrides(items: Iterable[str]) -> dict[str, str]:
    """Parse repeated ``key:value`` override arguments.

    Raises:
        ConfigError: If an item has no ``:`` or an empty key.
    """
    overrides: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition(":")
        if not sep or not key.strip():
            raise ConfigError(f"Config override must look like key:value, got '{item}'")
        overrides[key.strip()] = value.strip()
    return overrides


def resolve_skills_dir(
    overrides: Optional[dict[str, str]] = None,
    flag: Optional[str] = None,
    config_path: Optional[Path] = None,
) -> Path:
    """Resolve the skills directory by precedence.

    Args:
        overrides: Parsed ``--config`` overrides.
        flag: The ``--skills-dir`` value, if given.
        config_path: Config file to consult (default: default_config_path()).

    Returns:
        Path: Absolute skills directory.

    Raises:
        ConfigError: If no source provides a skills directory.
    """
    overrides = overrides or {}
    if overrides.get(SKILLS_DIR_KEY):
        return expand_path(overrides[SKILLS_DIR_KEY])
    if flag:
        return expand_path(flag)
    env = os.environ.get(SKILLS_DIR_ENV)
    if env:
        return expand_path(env)
    configured = load_config(config_path).get(SKILLS_DIR_KEY)
    if configured:
        return expand_path(configured)
    raise ConfigError(
        "Skills directory is not configured. Pass --skills-dir, set "
        f"{SKILLS_DIR_ENV}, or run: skagents config set {SKILLS_DIR_KEY} <path>"
    )


def resolve_agents_path(flag: Optional[str] = None) -> Path:
    """Resolve AGENTS.md: the ``--agents-path`` flag or ``./AGENTS.md``."""
    return expand_path(flag or DEFAULT_AGENTS_PATH)
