from __future__ import annotations

import json
import logging
from typing import Any

from result import Err, Ok, Result

from staleware.config.defaults import default_config
from staleware.config.schema import AppConfig
from staleware.services.fs import DEFAULT_FS, FileSystem

CONFIG_PATH = "~/.config/staleware/config.json"

logger = logging.getLogger(__name__)


def _read_payload(resolved: str, fs: FileSystem) -> Result[dict[str, Any], str]:
    try:
        payload = json.loads(fs.read_text(resolved))
    except (OSError, UnicodeDecodeError) as exc:
        return Err(f"Cannot read config at {resolved}: {exc}.")
    except json.JSONDecodeError as exc:
        return Err(f"Config at {resolved} is not valid JSON: {exc}.")
    if not isinstance(payload, dict):
        return Err(f"Config at {resolved} must be a JSON object.")
    return Ok(payload)


def load_config(path: str | None = None, fs: FileSystem = DEFAULT_FS) -> Result[AppConfig, str]:
    """Read the JSON config; a missing file means defaults, a broken one is an ``Err``.

    An unknown history format or a non-numeric threshold is reported with the
    offending value rather than silently replaced.
    """
    resolved = fs.expanduser(path or CONFIG_PATH)
    if not fs.exists(resolved):
        return Ok(default_config())

    match _read_payload(resolved, fs):
        case Err(message):
            return Err(message)
        case Ok(payload):
            try:
                return Ok(AppConfig.from_dict(payload, default_config()))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                return Err(f"Invalid setting in {resolved}: {exc}.")


def load_config_or_default(path: str | None = None, fs: FileSystem = DEFAULT_FS) -> AppConfig:
    """Like ``load_config`` but falls back to defaults on a broken config."""
    match load_config(path, fs):
        case Ok(config):
            return config
        case Err(message):
            logger.warning("%s Using defaults.", message)
            return default_config()


def sample_config_json() -> str:
    return json.dumps(default_config().to_dict(), indent=2)
