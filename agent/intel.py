"""
Heuristic Intel

Reference situation-awareness provider for the strategies. Threat is a
strength ratio: hostile strength nearby versus hostile + friendly strength,
so 0.0 means nothing hostile in range and values near 1.0 mean we are
heavily outmatched.

Also provides the straight-line pathfinder used when no real pathfinding
system is wired in.
"""

import logging
from typing import Dict, List, Optional

from .interfaces import Intel, MilitaryAnalysis, Pathfinder, Position, Target
from .world import distance

logger = logging.getLogger(__name__)

# Fallback unit strength when units.<type>.power is not configured
DEFAULT_UNIT_POWER = {
    'swordsman': 10,
    'archer': 8,
    'knight': 15,
    'guard': 9,
    'wizard': 12,
}
UNKNOWN_UNIT_POWER = 8

# Building needed to produce each unit type
UNIT_PRODUCTION_BUILDINGS = {
    'swordsman': 'barracks',
    'guard': 'barracks',
    'archer': 'archery_range',
    'knight': 'stable',
    'wizard': 'mage_tower',
}

# Strategic value of targets (castles outrank armies)
CASTLE_TARGET_VALUE = 90
ARMY_TARGET_VALUE = 60

WALL_DEFENSE_BONUS = 10
VULNERABLE_THREAT = 0.3
UNEXPLORED_GRID_STEP = 5


class HeuristicIntel(Intel):
    """Strength-ratio threat assessment over a Snapshot"""

    def __init__(self, config=None):
        self.config = config
        self.threat_range = 10
        if config is not None:
            self.threat_range = config.get_number('ai.threat_analysis_range', 10)

    # =========================================================================
    # Strength
    # =========================================================================

    def unit_power(self, unit_type: str) -> float:
        if self.config is not None:
            configured = self.config.get(f'units.{unit_type}.power')
            if configured is not None:
                return float(configured)
        return float(DEFAULT_UNIT_POWER.get(unit_type, UNKNOWN_UNIT_POWER))

    def army_strength(self, army) -> float:
        return sum(self.unit_power(t) * n for t, n in army.units.items())

    def castle_strength(self, castle) -> float:
        walls = castle.buildings.count('wall')
        return castle.defense + walls * WALL_DEFENSE_BONUS

    def _strength_near(self, armies, position, radius) -> float:
        return sum(self.army_strength(a) for a in armies if distance(a.position, position) <= radius)

    # =========================================================================
    # Threat
    # =========================================================================

    def castle_threat(self, castle, snapshot) -> float:
        hostile = self._strength_near(snapshot.enemy_armies, castle.position, self.threat_range)
        if hostile <= 0:
            return 0.0
        friendly = self.castle_strength(castle) + self._strength_near(
            snapshot.my_armies, castle.position, self.threat_range)
        return hostile / (hostile + friendly)

    def army_threat(self, army, snapshot) -> float:
        hostile = self._strength_near(snapshot.enemy_armies, army.position, self.threat_range)
        hostile += sum(
            self.castle_strength(c) for c in snapshot.enemy_castles
            if distance(c.position, army.position) <= self.threat_range / 2
        )
        if hostile <= 0:
            return 0.0
        own = self.army_strength(army)
        return hostile / (hostile + own) if hostile + own > 0 else 0.0

    def is_castle_vulnerable(self, castle, snapshot) -> bool:
        if castle.has_building('wall'):
            return False
        return self.castle_threat(castle, snapshot) >= VULNERABLE_THREAT

    # =========================================================================
    # Composition
    # =========================================================================

    def military_strength(self, snapshot) -> MilitaryAnalysis:
        armies = snapshot.my_armies
        return MilitaryAnalysis(
            total_power=sum(self.army_strength(a) for a in armies),
            army_count=len(armies),
            unit_composition=self.army_composition(snapshot),
        )

    def army_composition(self, snapshot) -> Dict[str, float]:
        counts: Dict[str, int] = {}
        for army in snapshot.my_armies:
            for unit_type, n in army.units.items():
                counts[unit_type] = counts.get(unit_type, 0) + n
        total = sum(counts.values())
        if total == 0:
            return {}
        return {t: n / total for t, n in counts.items()}

    def can_produce_unit(self, castle, unit_type: str) -> bool:
        required = UNIT_PRODUCTION_BUILDINGS.get(unit_type)
        if required is None:
            return False
        return castle.has_building(required)

    # =========================================================================
    # Targeting
    # =========================================================================

    def find_targets(self, army, snapshot, search_range: float) -> List[Target]:
        targets = []
        for castle in snapshot.enemy_castles:
            if distance(army.position, castle.position) <= search_range:
                targets.append(Target(
                    kind='castle',
                    entity_id=castle.castle_id,
                    position=castle.position,
                    owner_id=castle.owner_id,
                    strategic_value=CASTLE_TARGET_VALUE,
                ))
        for enemy in snapshot.enemy_armies:
            if distance(army.position, enemy.position) <= search_range:
                targets.append(Target(
                    kind='army',
                    entity_id=enemy.army_id,
                    position=enemy.position,
                    owner_id=enemy.owner_id,
                    strategic_value=ARMY_TARGET_VALUE,
                ))
        return targets

    def win_probability(self, army, target: Target, snapshot) -> float:
        own = self.army_strength(army)
        if target.kind == 'castle':
            castle = next((c for c in snapshot.enemy_castles if c.castle_id == target.entity_id), None)
            enemy = self.castle_strength(castle) if castle else 0.0
            # Defenders standing on the castle fight too
            enemy += sum(
                self.army_strength(a) for a in snapshot.enemy_armies
                if distance(a.position, target.position) <= 1
            )
        else:
            enemy_army = next((a for a in snapshot.enemy_armies if a.army_id == target.entity_id), None)
            enemy = self.army_strength(enemy_army) if enemy_army else 0.0
        if own + enemy <= 0:
            return 0.0
        return own / (own + enemy)

    # =========================================================================
    # Map awareness
    # =========================================================================

    def unexplored_areas(self, army, snapshot, search_range: float) -> List[Position]:
        width, height = snapshot.map_size
        areas = []
        for x in range(0, width, UNEXPLORED_GRID_STEP):
            for y in range(0, height, UNEXPLORED_GRID_STEP):
                if (x, y) in snapshot.explored:
                    continue
                if distance(army.position, (x, y)) <= search_range:
                    areas.append((float(x), float(y)))
        return areas

    def scouting_coverage(self, snapshot) -> float:
        width, height = snapshot.map_size
        if width * height == 0:
            return 1.0
        return len(snapshot.explored) / float(width * height)


class StraightLinePathfinder(Pathfinder):
    """Direct path to any in-bounds goal"""

    def find_path(self, start: Position, goal: Position, snapshot) -> Optional[List[Position]]:
        if goal is None:
            return None
        if hasattr(snapshot, 'in_bounds') and not snapshot.in_bounds(goal):
            return None
        return [goal]
