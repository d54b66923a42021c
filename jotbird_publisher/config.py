"""Configuration loading for JotBird Publisher."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from jotbird_publisher.version import __version__

DEFAULT_API_URL = "https://api.jotbird.com"
DEFAULT_SITE_URL = "https://jotbird.com"
STATE_DIR = ".jotbird"
STATE_FILE = "state.json"

ENV_OVERRIDES = {
    "JOTBIRD_API_URL": "api_base_url",
    "JOTBIRD_SITE_URL": "site_url",
    "JOTBIRD_TIMEOUT": "timeout",
}


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""


@dataclass
class PublisherConfig:
    """Where the service lives and where local state is kept."""
    api_base_url: str = DEFAULT_API_URL
    site_url: str = DEFAULT_SITE_URL
    user_agent: str = f"jotbird-publisher/{__version__}"
    timeout: float = 30.0
    state_path: Optional[Path] = None

    def resolve_state_path(self, vault_path: Path) -> Path:
        """State file location, defaulting to a hidden folder in the vault."""
        if self.state_path is not None:
            return Path(self.state_path)
        return Path(vault_path) / STATE_DIR / STATE_FILE


def load_config(path: Optional[Union[str, Path]] = None) -> PublisherConfig:
    """Load configuration from a YAML file and the environment.

    Environment variables take precedence over file values.

    Args:
        path: Optional YAML file with PublisherConfig keys

    Returns:
        PublisherConfig

    Raises:
        ConfigError: If the file is unreadable, not a mapping, or has unknown keys
    """
    data: Dict[str, Any] = {}

    if path is not None:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config {path} must be a mapping")

        known = {f.name for f in fields(PublisherConfig)}
        unknown = sorted(set(loaded) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
        data.update(loaded)

    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[key] = value

    if "timeout" in data:
        try:
            data["timeout"] = float(data["timeout"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid timeout: {data['timeout']!r}") from e
    if data.get("state_path") is not None:
        data["state_path"] = Path(data["state_path"]).expanduser()
    for key in ("api_base_url", "site_url"):
        if key in data:
            data[key] = str(data[key]).rstrip('/')

    return PublisherConfig(**data)
