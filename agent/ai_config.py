"""
AI Configuration

Loads and provides access to AI tuning values from a JSON configuration file.
This allows tuning agent behavior (intervals, thresholds, priority tables,
difficulty profiles) without code changes.

Usage:
    from agent.ai_config import AIConfig

    ai_config = AIConfig()

    # Key-path lookup (with fallback default)
    interval = ai_config.get('ai.decision_interval', 2000)
    hard_thresholds = ai_config.get('ai.difficulty.hard.resource_thresholds', {})

The config object is created once by the host and passed explicitly into
every controller and strategy.

Environment:
    AI_CONFIG - Path to JSON config file (default: configs/default.json)
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Default config path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "configs" / "default.json"

_MISSING = object()


class AIConfig:
    """
    Loads and provides key-path access to AI configuration values.

    Values are looked up with dotted paths ("ai.difficulty.hard.retreat_threshold").
    A missing key, or a missing/broken file, always yields the caller's default.
    """

    def __init__(self, config_path: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        """
        Initialize the AI config.

        Args:
            config_path: Path to JSON config file. If not provided, uses
                        AI_CONFIG env var or the default config.
            data: Pre-built config dict. When given, no file is read.
        """
        if config_path:
            self.path = Path(config_path)
        else:
            env_path = os.environ.get('AI_CONFIG')
            self.path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        self._config: Dict[str, Any] = {}
        self._loaded = False

        if data is not None:
            self._config = copy.deepcopy(data)
            self._loaded = True
        else:
            self._load()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AIConfig':
        """Build a config from an in-memory dict (tests, admin overrides)."""
        return cls(data=data)

    def _load(self):
        """Load configuration from JSON file."""
        try:
            if self.path.exists():
                with open(self.path, 'r', encoding='utf-8') as f:
                    self._config = json.load(f)
                self._loaded = True
                logger.info(f"Loaded AI config from: {self.path}")
                logger.info(f"  Config name: {self._config.get('name', 'unknown')}")
                logger.info(f"  Config version: {self._config.get('version', 'unknown')}")
                self._log_key_values()
            else:
                logger.warning(f"AI config not found: {self.path}, using defaults")
                self._config = {}
                self._loaded = False
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in AI config {self.path}: {e}")
            self._config = {}
            self._loaded = False
        except OSError as e:
            logger.error(f"Error loading AI config: {e}")
            self._config = {}
            self._loaded = False

    def _log_key_values(self):
        """Log key config values for verification."""
        logger.info(f"  [ai] decision_interval={self.get('ai.decision_interval')}, "
                    f"max_decision_time={self.get('ai.max_decision_time')}, "
                    f"strategy_evaluation_interval={self.get('ai.strategy_evaluation_interval')}")
        difficulties = self.get('ai.difficulty', {}) or {}
        logger.info(f"  [ai.difficulty] levels configured: {sorted(difficulties.keys())}")

    def reload(self):
        """Reload configuration from file."""
        self._load()

    @property
    def name(self) -> str:
        """Get config name."""
        return self._config.get('name', 'default')

    @property
    def version(self) -> str:
        """Get config version."""
        return self._config.get('version', '0.0.0')

    @property
    def is_loaded(self) -> bool:
        """Check if config was successfully loaded."""
        return self._loaded

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value by dotted key path.

        Args:
            key_path: Dotted path, e.g. 'ai.decision_interval'
            default: Value returned when any segment of the path is absent

        Returns:
            The config value or default
        """
        node: Any = self._config
        for part in key_path.split('.'):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        if node is None:
            return default
        return node

    def get_number(self, key_path: str, default: float) -> float:
        """Get a numeric value, falling back to default when absent or not a number."""
        value = self.get(key_path, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning(f"Config value {key_path}={value!r} is not a number, using {default}")
            return default
        return value

    def get_section(self, key_path: str) -> Dict[str, Any]:
        """
        Get an entire config section as a dict copy.

        Args:
            key_path: Dotted path of the section (e.g. 'ai.building_priorities')

        Returns:
            The section dict, or empty dict if not found
        """
        section = self.get(key_path, {})
        if not isinstance(section, dict):
            return {}
        return copy.deepcopy(section)

    def as_dict(self) -> Dict[str, Any]:
        """Get the full config as a dictionary."""
        return copy.deepcopy(self._config)
