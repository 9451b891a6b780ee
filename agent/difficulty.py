"""
Difficulty Profiles

A difficulty profile is a read-only bundle of overrides selected by difficulty
level: decision interval, a uniform priority multiplier, and per-strategy
thresholds/priority tables.

Resolution order (later wins):
    built-in medium defaults + base 'ai.*' tables
    -> config 'ai.difficulty.medium'
    -> built-in defaults for the requested level
    -> config 'ai.difficulty.<level>'

Dict-valued fields merge key by key, so a level that only overrides one
resource threshold still gets the others from medium.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class DifficultyLevel(Enum):
    """Supported difficulty levels"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


# =============================================================================
# Built-in defaults
# =============================================================================

DEFAULT_DECISION_INTERVAL_MS = 2000

DEFAULT_RESOURCE_THRESHOLDS = {
    'gold': 1000,
    'wood': 500,
    'stone': 300,
    'mana': 200,
}

DEFAULT_BUILDING_PRIORITIES = {
    'town_hall': 100,
    'gold_mine': 90,
    'lumber_mill': 85,
    'quarry': 80,
    'mage_tower': 75,
    'barracks': 70,
    'archery_range': 65,
    'stable': 60,
    'wall': 50,
}

DEFAULT_UNIT_PRIORITIES = {
    'swordsman': 80,
    'archer': 75,
    'knight': 90,
    'guard': 70,
    'wizard': 85,
}

DEFAULT_ARMY_COMPOSITION = {
    'balanced': {'swordsman': 0.4, 'archer': 0.4, 'knight': 0.2},
    'offensive': {'knight': 0.5, 'swordsman': 0.3, 'archer': 0.2},
    'defensive': {'guard': 0.5, 'archer': 0.3, 'swordsman': 0.2},
}

DEFAULT_SCOUTING_RANGE = 15
DEFAULT_RETREAT_THRESHOLD = 0.3

# Per-level scalar defaults (unset fields fall back to medium)
LEVEL_DEFAULTS: Dict[str, Dict[str, Any]] = {
    'easy': {'priority_multiplier': 0.8, 'decision_interval_ms': 3000},
    'medium': {'priority_multiplier': 1.0, 'decision_interval_ms': DEFAULT_DECISION_INTERVAL_MS},
    'hard': {'priority_multiplier': 1.2, 'decision_interval_ms': 1000},
    'expert': {'priority_multiplier': 1.4, 'decision_interval_ms': 750},
}

# Config keys (snake_case, as stored in JSON) for each profile field
_DICT_FIELDS = ('resource_thresholds', 'building_priorities', 'unit_priorities', 'army_composition')
_SCALAR_FIELDS = ('decision_interval_ms', 'priority_multiplier', 'scouting_range', 'retreat_threshold')

# Difficulty config may spell the interval like the top-level key
_FIELD_ALIASES = {'decision_interval': 'decision_interval_ms'}


@dataclass(frozen=True)
class DifficultyProfile:
    """Resolved, complete difficulty settings for one level"""
    level: str
    decision_interval_ms: int
    priority_multiplier: float
    resource_thresholds: Dict[str, float] = field(default_factory=dict)
    building_priorities: Dict[str, int] = field(default_factory=dict)
    unit_priorities: Dict[str, int] = field(default_factory=dict)
    army_composition: Dict[str, Dict[str, float]] = field(default_factory=dict)
    scouting_range: float = DEFAULT_SCOUTING_RANGE
    retreat_threshold: float = DEFAULT_RETREAT_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        return {
            'level': self.level,
            'decision_interval_ms': self.decision_interval_ms,
            'priority_multiplier': self.priority_multiplier,
            'resource_thresholds': dict(self.resource_thresholds),
            'building_priorities': dict(self.building_priorities),
            'unit_priorities': dict(self.unit_priorities),
            'army_composition': {k: dict(v) for k, v in self.army_composition.items()},
            'scouting_range': self.scouting_range,
            'retreat_threshold': self.retreat_threshold,
        }


def normalize_level(level: Union[str, DifficultyLevel, None]) -> str:
    """Return the level's string value, or 'medium' for unknown/missing levels."""
    if isinstance(level, DifficultyLevel):
        return level.value
    if level:
        try:
            return DifficultyLevel(str(level).lower()).value
        except ValueError:
            logger.warning(f"Unknown difficulty level '{level}', falling back to medium")
    return DifficultyLevel.MEDIUM.value


def _merge_layer(values: Dict[str, Any], layer: Optional[Dict[str, Any]]):
    """Merge one override layer into values (dict fields key-wise)."""
    if not layer:
        return
    for raw_key, value in layer.items():
        key = _FIELD_ALIASES.get(raw_key, raw_key)
        if value is None:
            continue
        if key in _DICT_FIELDS:
            if not isinstance(value, dict):
                logger.warning(f"Ignoring non-dict difficulty override for {key}: {value!r}")
                continue
            if key == 'army_composition':
                for name, ratios in value.items():
                    values[key][name] = dict(ratios)
            else:
                values[key].update(value)
        elif key in _SCALAR_FIELDS:
            values[key] = value


def _base_values(config) -> Dict[str, Any]:
    """Medium baseline from built-in defaults and the top-level 'ai.*' tables."""
    values: Dict[str, Any] = {
        'decision_interval_ms': DEFAULT_DECISION_INTERVAL_MS,
        'priority_multiplier': 1.0,
        'resource_thresholds': dict(DEFAULT_RESOURCE_THRESHOLDS),
        'building_priorities': dict(DEFAULT_BUILDING_PRIORITIES),
        'unit_priorities': dict(DEFAULT_UNIT_PRIORITIES),
        'army_composition': {k: dict(v) for k, v in DEFAULT_ARMY_COMPOSITION.items()},
        'scouting_range': DEFAULT_SCOUTING_RANGE,
        'retreat_threshold': DEFAULT_RETREAT_THRESHOLD,
    }
    if config is None:
        return values

    _merge_layer(values, {
        'decision_interval_ms': config.get('ai.decision_interval'),
        'resource_thresholds': config.get('ai.resource_thresholds'),
        'building_priorities': config.get('ai.building_priorities'),
        'unit_priorities': config.get('ai.unit_priorities'),
        'army_composition': config.get('ai.army_composition'),
        'scouting_range': config.get('ai.scouting_range'),
        'retreat_threshold': config.get('ai.retreat_threshold'),
    })
    return values


def resolve_profile(config, level: Union[str, DifficultyLevel, None]) -> DifficultyProfile:
    """
    Resolve a complete difficulty profile for a level.

    Args:
        config: AIConfig (or None for pure built-in defaults)
        level: Difficulty level name or enum

    Returns:
        A DifficultyProfile with every field populated
    """
    level_name = normalize_level(level)
    values = _base_values(config)

    if config is not None:
        _merge_layer(values, config.get('ai.difficulty.medium'))

    if level_name != DifficultyLevel.MEDIUM.value:
        _merge_layer(values, LEVEL_DEFAULTS.get(level_name))
        if config is not None:
            _merge_layer(values, config.get(f'ai.difficulty.{level_name}'))

    return DifficultyProfile(
        level=level_name,
        decision_interval_ms=int(values['decision_interval_ms']),
        priority_multiplier=float(values['priority_multiplier']),
        resource_thresholds=values['resource_thresholds'],
        building_priorities=values['building_priorities'],
        unit_priorities=values['unit_priorities'],
        army_composition=values['army_composition'],
        scouting_range=values['scouting_range'],
        retreat_threshold=values['retreat_threshold'],
    )


def all_profiles(config) -> Dict[str, DifficultyProfile]:
    """Resolve every difficulty level"""
    return {lvl.value: resolve_profile(config, lvl) for lvl in DifficultyLevel}
