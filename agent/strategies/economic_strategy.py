"""
Economic Strategy

Proposes construction decisions for every castle the player owns.

Decision factors:
- Building priority table (per difficulty)
- Resource shortages (gold/wood/stone/mana below threshold)
- Military threat to the castle (military buildings)
- Castle vulnerability (walls)

Independently of the priority table, every resource below its threshold gets
a fixed high-priority decision for its generator building, so the economy
always recovers even when the table would not surface it.
"""

import logging
from typing import Dict, List, Optional

from ..decision import Decision, DecisionKind
from .base import Strategy

logger = logging.getLogger(__name__)

# Priority boosts
GOLD_SHORTAGE_BONUS = 20
WOOD_SHORTAGE_BONUS = 15
STONE_SHORTAGE_BONUS = 15
MANA_SHORTAGE_BONUS = 10
THREAT_MILITARY_BONUS = 25
VULNERABLE_WALL_BONUS = 30

# Fixed priority/benefit for shortage recovery decisions
RESOURCE_RECOVERY_PRIORITY = 75
RESOURCE_RECOVERY_BENEFIT = 50

DEFAULT_THREAT_THRESHOLD = 0.5
DEFAULT_BUILDING_COST = {'gold': 100, 'wood': 50, 'stone': 25}

# Generator building for each resource
RESOURCE_BUILDINGS = {
    'gold': 'gold_mine',
    'wood': 'lumber_mill',
    'stone': 'quarry',
    'mana': 'mage_tower',
}

# Resource-building -> (resource it fixes, shortage bonus)
SHORTAGE_BONUSES = {
    'gold_mine': ('gold', GOLD_SHORTAGE_BONUS),
    'lumber_mill': ('wood', WOOD_SHORTAGE_BONUS),
    'quarry': ('stone', STONE_SHORTAGE_BONUS),
    'mage_tower': ('mana', MANA_SHORTAGE_BONUS),
}

MILITARY_BUILDINGS = {'barracks', 'archery_range', 'stable'}
DEFENSIVE_BUILDINGS = {'wall'}

# Buildings a castle may hold more than one of
MULTIPLE_ALLOWED = {'gold_mine', 'lumber_mill', 'quarry', 'wall'}

BUILDING_BENEFITS = {
    'town_hall': 80,
    'barracks': 70,
    'archery_range': 65,
    'gold_mine': 60,
    'stable': 60,
    'lumber_mill': 55,
    'quarry': 50,
    'mage_tower': 45,
    'wall': 40,
}
DEFAULT_BUILDING_BENEFIT = 30


class EconomicStrategy(Strategy):
    """
    Builds up castle economies.

    Considers:
    - Free construction slots
    - Duplicate rules per building type
    - Affordability
    - Resource thresholds and threat levels
    """

    def __init__(self, config=None, intel=None, rng=None):
        super().__init__("Economic", config, intel, rng)
        self.building_priorities: Dict[str, int] = {}
        self.resource_thresholds: Dict[str, float] = {}
        self.threat_threshold = DEFAULT_THREAT_THRESHOLD
        if config is not None:
            self.threat_threshold = config.get_number('ai.threat_threshold', DEFAULT_THREAT_THRESHOLD)
        self.set_difficulty(self.difficulty)

    def apply_profile(self, profile):
        self.building_priorities = dict(profile.building_priorities)
        self.resource_thresholds = dict(profile.resource_thresholds)

    def evaluate(self, snapshot) -> List[Decision]:
        decisions = []
        resources = self.player_resources(snapshot)

        for castle in snapshot.my_castles:
            decisions.extend(self.evaluate_building_needs(castle, resources, snapshot))
            decisions.extend(self.evaluate_resource_needs(castle, resources, snapshot))

        for decision in decisions:
            self.log_decision(decision)
        return decisions

    # =========================================================================
    # Building table
    # =========================================================================

    def evaluate_building_needs(self, castle, resources, snapshot) -> List[Decision]:
        if not castle.has_free_slot():
            return []

        decisions = []
        for building_type, base_priority in self.building_priorities.items():
            decision = self.evaluate_building_type(castle, building_type, base_priority, resources, snapshot)
            if decision:
                decisions.append(decision)
        return decisions

    def evaluate_building_type(self, castle, building_type: str, base_priority: int,
                               resources, snapshot) -> Optional[Decision]:
        if castle.has_building(building_type) and not self.can_have_multiple(building_type):
            return None

        cost = self.get_building_cost(building_type)
        if not self.can_afford(snapshot, cost):
            return None

        priority = self.calculate_building_priority(building_type, base_priority, castle, resources, snapshot)
        if priority <= 0:
            return None

        return Decision(
            kind=DecisionKind.BUILD,
            priority=priority,
            action_id=f"build_{building_type}",
            target=castle,
            cost=cost,
            expected_benefit=self.calculate_building_benefit(building_type),
            actor=castle,
        )

    def calculate_building_priority(self, building_type: str, base_priority: int,
                                    castle, resources, snapshot) -> int:
        priority = base_priority

        if building_type in SHORTAGE_BONUSES:
            resource, bonus = SHORTAGE_BONUSES[building_type]
            if self._is_short(resource, resources):
                priority += bonus
        elif building_type in MILITARY_BUILDINGS:
            if self.is_under_threat(castle, snapshot):
                priority += THREAT_MILITARY_BONUS
        elif building_type in DEFENSIVE_BUILDINGS:
            if self.is_castle_vulnerable(castle, snapshot):
                priority += VULNERABLE_WALL_BONUS

        priority = self.apply_difficulty_modifier(priority)
        return max(0, priority)

    # =========================================================================
    # Resource recovery
    # =========================================================================

    def evaluate_resource_needs(self, castle, resources, snapshot) -> List[Decision]:
        decisions = []
        for resource_type in self.resource_thresholds:
            if self._is_short(resource_type, resources):
                decision = self.create_resource_decision(resource_type, castle)
                if decision:
                    decisions.append(decision)
        return decisions

    def create_resource_decision(self, resource_type: str, castle) -> Optional[Decision]:
        building_type = RESOURCE_BUILDINGS.get(resource_type)
        if not building_type:
            return None

        return Decision(
            kind=DecisionKind.BUILD,
            priority=RESOURCE_RECOVERY_PRIORITY,
            action_id=f"build_{building_type}",
            target=castle,
            cost=self.get_building_cost(building_type),
            expected_benefit=RESOURCE_RECOVERY_BENEFIT,
            actor=castle,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _is_short(self, resource_type: str, resources) -> bool:
        threshold = self.resource_thresholds.get(resource_type)
        if threshold is None:
            return False
        return resources.get(resource_type, 0) < threshold

    @staticmethod
    def can_have_multiple(building_type: str) -> bool:
        return building_type in MULTIPLE_ALLOWED

    def get_building_cost(self, building_type: str) -> Dict[str, float]:
        return self.lookup_cost('buildings', building_type, DEFAULT_BUILDING_COST)

    @staticmethod
    def calculate_building_benefit(building_type: str) -> float:
        return BUILDING_BENEFITS.get(building_type, DEFAULT_BUILDING_BENEFIT)

    def is_under_threat(self, castle, snapshot) -> bool:
        return self.intel.castle_threat(castle, snapshot) > self.threat_threshold

    def is_castle_vulnerable(self, castle, snapshot) -> bool:
        return self.intel.is_castle_vulnerable(castle, snapshot)
