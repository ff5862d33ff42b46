"""Negotiation configuration loading."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import orjson

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION_ID = "io.modelcontextprotocol/feature-tags"

# Config file locations
CONFIG_FILENAME = "config.json"
LOCAL_CONFIG_DIR = ".content-negotiation"
GLOBAL_CONFIG = Path.home() / LOCAL_CONFIG_DIR / CONFIG_FILENAME


@dataclass(frozen=True)
class NegotiationConfig:
    """Configuration for the negotiation adapter."""

    extension_id: str = DEFAULT_EXTENSION_ID
    """Capability key under which clients declare their feature tags."""

    log_unknown_tags: bool = True
    """Log well-formed tags outside the standard vocabulary."""

    accept_experimental: bool = True
    """Also look for tags under ``capabilities.experimental``."""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NegotiationConfig":
        """Create from config dict, ignoring fields of the wrong type."""
        defaults = cls()
        extension_id = data.get("extensionId")
        log_unknown = data.get("logUnknownTags")
        accept_experimental = data.get("acceptExperimental")
        return cls(
            extension_id=extension_id
            if isinstance(extension_id, str) and extension_id
            else defaults.extension_id,
            log_unknown_tags=log_unknown
            if isinstance(log_unknown, bool)
            else defaults.log_unknown_tags,
            accept_experimental=accept_experimental
            if isinstance(accept_experimental, bool)
            else defaults.accept_experimental,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to config file format."""
        return {
            "extensionId": self.extension_id,
            "logUnknownTags": self.log_unknown_tags,
            "acceptExperimental": self.accept_experimental,
        }


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: expected a JSON object")
        return {}
    return data


def load_negotiation_config(
    working_dir: Path | None = None,
    global_config: Path | None = None,
) -> NegotiationConfig:
    """Load negotiation config from global and local config files.

    Global config (~/.content-negotiation/config.json) is loaded first.
    Local config ({working_dir}/.content-negotiation/config.json) overrides
    global, key by key.

    Returns:
        NegotiationConfig (defaults when no file is usable).
    """
    data = _read_config_file(global_config or GLOBAL_CONFIG)

    if working_dir:
        local_config = working_dir / LOCAL_CONFIG_DIR / CONFIG_FILENAME
        data.update(_read_config_file(local_config))

    return NegotiationConfig.from_dict(data)
