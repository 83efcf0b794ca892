from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import platformdirs

from tabscope.backend.bridge_backend import DEFAULT_BRIDGE_URL
from tabscope.domain.scheduler import DEFAULT_DEBOUNCE_DELAY

APP_NAME = "tabscope"
CONFIG_FILENAME = "config.toml"
PREFERENCES_FILENAME = "preferences.json"
ENV_PREFIX = "TABSCOPE_"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class AppConfig:
    bridge_url: str = DEFAULT_BRIDGE_URL
    request_timeout: float = 5.0
    debounce_delay: float = DEFAULT_DEBOUNCE_DELAY
    log_level: str = "INFO"
    preferences_path: Path = Path(platformdirs.user_data_dir(APP_NAME)) / PREFERENCES_FILENAME
    log_dir: Path = Path(platformdirs.user_log_dir(APP_NAME))


def default_config_path() -> Path:
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILENAME


def load_config(
    path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """Defaults, then ``config.toml``, then ``TABSCOPE_*`` environment variables."""
    config_path = path or default_config_path()
    values: dict[str, Any] = {}

    if config_path.exists():
        try:
            with config_path.open("rb") as fh:
                values.update(tomllib.load(fh))
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to read {config_path}: {e}") from e

    environ = os.environ if env is None else env
    for f in fields(AppConfig):
        raw = environ.get(ENV_PREFIX + f.name.upper())
        if raw is not None and raw != "":
            values[f.name] = raw

    return _coerce(values)


def _coerce(values: Mapping[str, Any]) -> AppConfig:
    config = AppConfig()
    known = {f.name for f in fields(AppConfig)}
    updates: dict[str, Any] = {}
    for key, raw in values.items():
        if key not in known:
            continue
        try:
            if key in ("request_timeout", "debounce_delay"):
                value: Any = float(raw)
                if value < 0:
                    raise ValueError("must not be negative")
            elif key in ("preferences_path", "log_dir"):
                value = Path(str(raw)).expanduser()
            elif key == "log_level":
                value = str(raw).upper()
            else:
                value = str(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {key}: {raw!r} ({e})") from e
        updates[key] = value
    return replace(config, **updates)
