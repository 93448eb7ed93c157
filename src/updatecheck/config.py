"""
Mod Update Checker - Settings
Runtime settings with JSON file loading and defaults.
"""

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CORE_VERSION = "1.0.0"


@dataclass
class CheckerSettings:
    """Settings for the registry and its update checks."""
    core_version: str = CORE_VERSION    # Version registrations are gated against
    enable_api: bool = True             # Accept registrations at all
    auto_check_updates: bool = True     # Check when a known component re-registers
    request_timeout: float = 10.0       # Seconds per descriptor fetch
    user_agent: str = "ModUpdateChecker/1.0"
    max_workers: int = 4
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict) -> "CheckerSettings":
        """Build settings from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)


def load_config(config_path: Optional[Path]) -> dict:
    """Load a JSON config file, or an empty config if missing or broken."""
    if config_path and config_path.exists():
        try:
            with open(config_path) as f:
                data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning(f"Config {config_path} is not a JSON object")
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load config: {e}")
    return {}


def load_settings(config_path: Optional[Path]) -> CheckerSettings:
    """
    Load settings from the "settings" object of a config file.
    
    Args:
        config_path: Path to the JSON config file.
        
    Returns:
        CheckerSettings, with defaults for anything missing.
    """
    settings = load_config(config_path).get("settings", {})
    if not isinstance(settings, dict):
        logger.warning("Config 'settings' is not an object, using defaults")
        return CheckerSettings()
    return CheckerSettings.from_dict(settings)
