
from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from rtm_shared.log import get_logger

logger = get_logger(__name__)

DEFAULT_API_BASE = "https://slack.com/api"
DEFAULT_ORIGIN = "https://api.slack.com/"


@dataclass(frozen=True)
class Settings:
    """Connection settings shared by the bootstrapper, the session and the lookups."""
    api_base: str = DEFAULT_API_BASE
    discovery_method: str = "rtm.start"
    origin: str = DEFAULT_ORIGIN
    subprotocol: Optional[str] = None     # sent as Sec-WebSocket-Protocol when set
    ping_interval: Optional[float] = 15.0
    ping_timeout: Optional[float] = 45.0
    open_timeout: Optional[float] = None  # None waits for the transport to finish or fail
    http_timeout: Optional[float] = None

    @property
    def discovery_url(self) -> str:
        return self.method_url(self.discovery_method)

    def method_url(self, method: str) -> str:
        return f"{self.api_base.rstrip('/')}/{method}"

    @classmethod
    def from_env(cls) -> 'Settings':
        """Build settings from RTM_* environment variables, defaults elsewhere"""
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(f"RTM_{f.name.upper()}")
            if raw is not None:
                values[f.name] = _coerce(f.name, raw)
        return cls(**values)


_FLOAT_FIELDS = {"ping_interval", "ping_timeout", "open_timeout", "http_timeout"}
_OPTIONAL_FIELDS = _FLOAT_FIELDS | {"subprotocol"}


def _coerce(name: str, value: Any) -> Any:
    """Convert env/YAML values to the field's type. Empty string or 'none' means None."""
    if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none", "null")):
        if name not in _OPTIONAL_FIELDS:
            raise ValueError(f"{name} cannot be empty")
        return None
    if name in _FLOAT_FIELDS:
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be a number, got {value!r}")
    return str(value)


def default_config_path() -> Path:
    return Path(os.getenv("RTM_CONFIG", Path.home() / ".rtm" / "config.yaml"))


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Settings from the environment, overlaid with a YAML file if one exists.

    The file is a flat mapping of Settings field names, e.g.
        api_base: https://slack.com/api
        ping_interval: 30
    """
    settings = Settings.from_env()
    config_path = Path(path) if path is not None else default_config_path()

    if not config_path.exists():
        logger.info("No config file at %s; using environment and defaults", config_path)
        return settings

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a mapping at top level")

    known = {f.name for f in fields(Settings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"{config_path}: unknown settings {sorted(unknown)}")

    overrides = {k: _coerce(k, v) for k, v in data.items()}
    logger.debug("Loaded %d settings from %s", len(overrides), config_path)
    return replace(settings, **overrides)


def credential_from_env() -> Optional[str]:
    return os.getenv("RTM_TOKEN")
