import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_ENV = "FIGHTLINE_CONFIG"
DEFAULT_CONFIG_FILE = Path.home() / ".fightline" / "config.json"


def deep_merge(dst: Dict[str, Any], src: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge `src` into `dst` in place; nested dicts are merged key by key."""
    for key, value in (src or {}).items():
        current = dst.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            deep_merge(current, value)
        else:
            dst[key] = value
    return dst


class Config:
    """Settings for a fightline run, layered over built-in defaults."""

    DEFAULT_CONFIG = {
        # Viewport
        "default_window_ms": 60000,  # first minute of the pull
        "zoom_min_ms": 10000,
        "zoom_key": "ctrlKey",
        "stack_items": False,
        # Logging
        "enable_logging": True,
        "log_level": "INFO",
        "enable_redaction": True,  # character names and report codes
        # Action data (.json/.yml/.yaml)
        "action_data_path": None,
        # Analyzers
        "plugin_dirs": [],
        "analyzers": {
            "casts": True,
            "buffs": True,
            "annotations": True,
        },
        # Item borders per annotation severity
        "marker_styles": {
            "error": "4px solid red",
            "warning": "4px solid yellow",
            "message": "4px solid green",
        },
        # GcdDrift plugin
        "gcd_recast_ms": 2500,
        "gcd_drift_tolerance_ms": 500,
    }

    def __init__(self, config_file: Path = None):
        if config_file is None:
            env_path = os.environ.get(CONFIG_ENV)
            config_file = Path(env_path) if env_path else DEFAULT_CONFIG_FILE
        self.config_file = Path(config_file)
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.load()

    def load(self) -> bool:
        """Merge the config file over the current values.

        A missing or unreadable file leaves the values untouched.
        """
        if not self.config_file.is_file():
            return False
        try:
            loaded = json.loads(self.config_file.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring config file %s: %s", self.config_file, e)
            return False
        if not isinstance(loaded, dict):
            logger.warning("Ignoring config file %s: root must be an object", self.config_file)
            return False
        deep_merge(self._config, loaded)
        return True

    def save(self) -> None:
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(json.dumps(self._config, indent=2))

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    def get(self, key: str, default=None):
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._config[key] = value

    def __getitem__(self, key: str):
        return self._config[key]

    def __setitem__(self, key: str, value: Any):
        self.set(key, value)
