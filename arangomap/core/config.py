"""
Configuration for arangomap connections.

Settings come from keyword arguments, a YAML file, or `ARANGOMAP_*`
environment variables, in increasing order of precedence when loaded through
:func:`load_config`.
"""
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "ARANGOMAP_"
CONFIG_SECTION = "arangomap"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class ODMConfig:
    """Configuration for a connection.

    Selects the storage backend and holds the database parameters used when
    the backend is ArangoDB.
    """

    # Backend: "memory" keeps documents in process, "arango" uses a server
    storage_type: Literal["memory", "arango"] = "memory"

    # Database parameters
    db_host: str = "localhost"
    db_port: int = 8529
    db_username: str = "root"
    db_password: str = ""
    db_name: str = "arangomap"
    db_use_ssl: bool = False
    timeout: int = 30

    # Mapping behaviour
    discriminator_key: str = "__t"
    collection_prefix: str = ""

    log_level: str = "INFO"

    # Additional parameters
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.storage_type = self.storage_type.lower()  # type: ignore[assignment]
        if self.storage_type not in ("memory", "arango"):
            raise ValueError(f"storage_type must be 'memory' or 'arango', got {self.storage_type!r}")

        if not 0 < int(self.db_port) < 65536:
            raise ValueError("db_port must be between 1 and 65535")

        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

        if not self.discriminator_key or "." in self.discriminator_key or self.discriminator_key.startswith("$"):
            raise ValueError(f"Invalid discriminator_key {self.discriminator_key!r}")

        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ODMConfig":
        """Build a config from a mapping; unknown keys go to `extra_params`."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known}
        extra = {k: v for k, v in values.items() if k not in known}
        if extra:
            kwargs["extra_params"] = {**kwargs.get("extra_params", {}), **extra}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If the configuration file does not exist
        yaml.YAMLError: If the YAML file is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        config = yaml.safe_load(f)

    logger.debug(f"Loaded configuration from {path}")
    return config or {}


def _coerce_env(name: str, raw: str) -> Any:
    target = {f.name: f.type for f in fields(ODMConfig)}.get(name)
    if target in (int, "int"):
        return int(raw)
    if target in (bool, "bool"):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return raw


def _env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    environ = dict(os.environ) if environ is None else environ
    known = {f.name for f in fields(ODMConfig)} - {"extra_params"}
    overrides: Dict[str, Any] = {}
    for key, raw in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in known:
            try:
                overrides[name] = _coerce_env(name, raw)
            except ValueError:
                raise ValueError(f"Invalid value for {key}: {raw!r}")
    return overrides


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ODMConfig:
    """
    Load configuration from an optional YAML file and the environment.

    The file may hold the settings at the top level or under an `arangomap:`
    section. Environment variables such as `ARANGOMAP_DB_HOST` override file
    values.

    Args:
        config_path: Optional path to a YAML file
        environ: Environment mapping (defaults to `os.environ`)

    Returns:
        Validated configuration
    """
    values: Dict[str, Any] = {}
    if config_path is not None:
        data = load_yaml_config(config_path)
        section = data.get(CONFIG_SECTION, data)
        if not isinstance(section, dict):
            raise ValueError(f"Configuration section '{CONFIG_SECTION}' must be a mapping")
        values.update(section)

    overrides = _env_overrides(environ)
    if overrides:
        logger.debug(f"Applying environment overrides: {sorted(overrides)}")
    values.update(overrides)
    return ODMConfig.from_dict(values)
