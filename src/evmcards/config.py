"""
Configuration for evmcards.

Settings come from ``~/.evmcards/config.json`` (written with defaults on
first use), then environment variables, then command line flags.
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from evmcards.utils.exceptions import ConfigError
from evmcards.utils.logging import get_logger

logger = get_logger("config")

DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_CONFIG_PATH = Path.home() / ".evmcards" / "config.json"

ENV_OVERRIDES = {
    "ETH_RPC_URL": "rpc_url",
    "PRIVATE_KEY": "private_key",
    "EVMCARDS_VIEWER": "viewer",
}


@dataclass
class Config:
    rpc_url: str = DEFAULT_RPC_URL
    address: Optional[str] = None
    private_key: Optional[str] = None
    poll_interval: float = 1.0
    max_poll_attempts: int = 600  # 0 polls forever
    request_timeout: int = 30
    viewer: Optional[str] = None

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.max_poll_attempts < 0:
            raise ConfigError(f"max_poll_attempts must be >= 0, got {self.max_poll_attempts}")
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.debug(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")
        try:
            return cls(**{k: v for k, v in data.items() if k in known})
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def with_overrides(self, **overrides) -> "Config":
        """Copy with every non-None override applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return Config.from_dict(data)


def apply_env(config: Config, env: Optional[Mapping[str, str]] = None) -> Config:
    env = os.environ if env is None else env
    overrides = {field: env[var] for var, field in ENV_OVERRIDES.items() if env.get(var)}
    if overrides:
        logger.debug(f"Environment overrides: {', '.join(sorted(overrides))}")
    return config.with_overrides(**overrides)


def save_config(config: Config, path: Path = DEFAULT_CONFIG_PATH) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    # Never write a key picked up from the environment
    data["private_key"] = None
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Config:
    """
    Load the configuration file and apply environment overrides.

    A missing file yields the defaults, which are written out so the user has
    a file to edit.

    Raises:
        ConfigError: if the file exists but is not a valid JSON object
    """
    config_path = Path(path).expanduser() if path else DEFAULT_CONFIG_PATH
    if config_path.exists():
        try:
            with open(config_path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {config_path}: {e}", path=str(config_path))
        except OSError as e:
            raise ConfigError(f"Cannot read {config_path}: {e}", path=str(config_path))
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a JSON object", path=str(config_path))
        config = Config.from_dict(data)
    else:
        config = Config()
        try:
            save_config(config, config_path)
            logger.info(f"Wrote default configuration to {config_path}")
        except OSError as e:
            logger.warning(f"Could not write default configuration to {config_path}: {e}")
    return apply_env(config, env)
