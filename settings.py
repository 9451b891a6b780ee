"""
Admin Settings

Preferences chosen from the admin UI (per-player difficulty, gathering mode,
pause compensation) are kept in a small JSON file next to the logs so a
server restart brings the same agents back.
"""

import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from agent.difficulty import normalize_level

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path(os.environ.get('LOG_DIR', Path(__file__).parent / "logs")) / "user_settings.json"

DEFAULTS = {
    "default_difficulty": "medium",
    "parallel_gathering": False,
    "compensate_pause_duration": False,
    "player_difficulties": {},
}

# Socket handlers and the simulation worker both read settings
_lock = threading.RLock()
_cached: Optional[Dict[str, Any]] = None


def _read_file() -> Dict[str, Any]:
    merged = copy.deepcopy(DEFAULTS)
    if not SETTINGS_FILE.exists():
        logger.info(f"No settings at {SETTINGS_FILE}, using defaults")
        return merged

    try:
        stored = json.loads(SETTINGS_FILE.read_text())
    except (OSError, ValueError) as e:
        logger.error(f"Ignoring unreadable settings file {SETTINGS_FILE}: {e}")
        return merged

    if not isinstance(stored, dict):
        logger.error(f"Ignoring settings file {SETTINGS_FILE}: expected an object")
        return merged
    merged.update(stored)
    return merged


def load_settings(force_reload: bool = False) -> Dict[str, Any]:
    """Current settings merged over DEFAULTS. Callers get their own copy."""
    global _cached
    with _lock:
        if _cached is None or force_reload:
            _cached = _read_file()
        return copy.deepcopy(_cached)


def save_settings(values: Dict[str, Any]) -> bool:
    """Write settings to disk. Returns False (and keeps the old cache) on failure."""
    global _cached
    with _lock:
        try:
            SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
            SETTINGS_FILE.write_text(json.dumps(values, indent=2, sort_keys=True))
        except (OSError, TypeError) as e:
            logger.error(f"Could not save settings to {SETTINGS_FILE}: {e}")
            return False
        _cached = copy.deepcopy(values)
        logger.debug(f"Settings saved ({len(values)} keys)")
        return True


def get_setting(key: str, default: Any = None) -> Any:
    return load_settings().get(key, default)


def set_setting(key: str, value: Any) -> bool:
    with _lock:
        values = load_settings()
        values[key] = value
        return save_settings(values)


def get_player_difficulty(player_id: str) -> str:
    """The level saved for this player, else default_difficulty."""
    values = load_settings()
    saved = (values.get('player_difficulties') or {}).get(player_id)
    return normalize_level(saved or values.get('default_difficulty'))


def set_player_difficulty(player_id: str, level: str) -> bool:
    with _lock:
        values = load_settings()
        per_player = dict(values.get('player_difficulties') or {})
        per_player[player_id] = normalize_level(level)
        values['player_difficulties'] = per_player
        return save_settings(values)


def reset_cache():
    """Drop the cached copy; the next read goes back to the file."""
    global _cached
    with _lock:
        _cached = None
