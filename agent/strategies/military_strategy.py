"""
Military Strategy

Three concerns per evaluation:
- Production: recruit units toward a target army composition
- Engagement: attack targets the army is likely to beat
- Defense: rush defensive units at castles under heavy threat

The target composition is chosen from the castle's threat level:
    threat > 0.7                    -> defensive
    threat < 0.3 and power > 100    -> offensive
    otherwise                       -> balanced
"""

import logging
from typing import Dict, List, Optional

from ..decision import Decision, DecisionKind, round_half_up
from .base import Strategy

logger = logging.getLogger(__name__)

MIN_WIN_PROBABILITY = 0.6

DEFENSIVE_THREAT = 0.7
OFFENSIVE_THREAT = 0.3
OFFENSIVE_MIN_POWER = 100
DEFENSE_THREAT = 0.5

DEFAULT_THREAT_ANALYSIS_RANGE = 10
DEFAULT_UNIT_COST = {'gold': 50, 'wood': 25}
DEFAULT_UNIT_PRIORITY = 50

DEFENSIVE_UNITS = ('guard', 'archer')
DEFENSE_BASE_PRIORITY = 80
DEFENSE_THREAT_WEIGHT = 20
DEFENSE_BENEFIT = 60

UNIT_BENEFITS = {
    'swordsman': 50,
    'archer': 55,
    'knight': 70,
    'guard': 45,
    'wizard': 65,
}
DEFAULT_UNIT_BENEFIT = 40

TARGET_VALUES = {
    'castle': 90,
    'army': 60,
}
DEFAULT_TARGET_VALUE = 30


class MilitaryStrategy(Strategy):
    """Unit production, attack and castle defense decisions"""

    def __init__(self, config=None, intel=None, rng=None):
        super().__init__("Military", config, intel, rng)
        self.unit_priorities: Dict[str, int] = {}
        self.army_composition: Dict[str, Dict[str, float]] = {}
        self.threat_analysis_range = DEFAULT_THREAT_ANALYSIS_RANGE
        if config is not None:
            self.threat_analysis_range = config.get_number(
                'ai.threat_analysis_range', DEFAULT_THREAT_ANALYSIS_RANGE)
        self.set_difficulty(self.difficulty)

    def apply_profile(self, profile):
        self.unit_priorities = dict(profile.unit_priorities)
        self.army_composition = {k: dict(v) for k, v in profile.army_composition.items()}

    def evaluate(self, snapshot) -> List[Decision]:
        decisions = []
        decisions.extend(self.evaluate_army_production(snapshot))
        decisions.extend(self.evaluate_combat_opportunities(snapshot))
        decisions.extend(self.evaluate_defensive_needs(snapshot))

        for decision in decisions:
            self.log_decision(decision)
        return decisions

    # =========================================================================
    # Production
    # =========================================================================

    def evaluate_army_production(self, snapshot) -> List[Decision]:
        decisions = []
        if not snapshot.my_castles:
            return decisions

        analysis = self.intel.military_strength(snapshot)
        current = self.intel.army_composition(snapshot)

        for castle in snapshot.my_castles:
            if not self.can_produce_units(castle):
                continue
            threat = self.intel.castle_threat(castle, snapshot)
            composition_name = self.determine_production_strategy(threat, analysis.total_power)
            composition = self.army_composition.get(composition_name) or self.army_composition.get('balanced', {})

            for unit_type, target_ratio in composition.items():
                decision = self.evaluate_unit_production(castle, unit_type, target_ratio, current, snapshot)
                if decision:
                    decisions.append(decision)
        return decisions

    @staticmethod
    def determine_production_strategy(threat: float, total_power: float) -> str:
        if threat > DEFENSIVE_THREAT:
            return 'defensive'
        if threat < OFFENSIVE_THREAT and total_power > OFFENSIVE_MIN_POWER:
            return 'offensive'
        return 'balanced'

    def evaluate_unit_production(self, castle, unit_type: str, target_ratio: float,
                                 current: Dict[str, float], snapshot) -> Optional[Decision]:
        if not self.intel.can_produce_unit(castle, unit_type):
            return None

        cost = self.get_unit_cost(unit_type)
        if not self.can_afford(snapshot, cost):
            return None

        current_ratio = current.get(unit_type, 0.0)
        priority = self.unit_priorities.get(unit_type, DEFAULT_UNIT_PRIORITY)
        if current_ratio < target_ratio:
            priority += round_half_up((target_ratio - current_ratio) * 100)

        priority = self.apply_difficulty_modifier(priority)
        if priority <= 0:
            return None

        return Decision(
            kind=DecisionKind.PRODUCE,
            priority=priority,
            action_id=f"produce_{unit_type}",
            target=castle,
            cost=cost,
            expected_benefit=self.calculate_unit_benefit(unit_type),
            actor=castle,
        )

    def can_produce_units(self, castle) -> bool:
        """A castle can recruit if it can produce at least one known unit type"""
        unit_types = set(self.unit_priorities)
        for composition in self.army_composition.values():
            unit_types.update(composition)
        return any(self.intel.can_produce_unit(castle, t) for t in unit_types)

    # =========================================================================
    # Engagement
    # =========================================================================

    def evaluate_combat_opportunities(self, snapshot) -> List[Decision]:
        decisions = []
        for army in snapshot.my_armies:
            if army.is_moving:
                continue
            for target in self.intel.find_targets(army, snapshot, self.threat_analysis_range):
                decision = self.evaluate_combat_target(army, target, snapshot)
                if decision:
                    decisions.append(decision)
        return decisions

    def evaluate_combat_target(self, army, target, snapshot) -> Optional[Decision]:
        win_chance = self.intel.win_probability(army, target, snapshot)
        if win_chance < MIN_WIN_PROBABILITY:
            return None

        value = self.calculate_target_value(target)
        return Decision(
            kind=DecisionKind.ATTACK,
            priority=round_half_up(win_chance * value),
            action_id=f"attack_{target.entity_id}",
            target=target,
            cost={},
            expected_benefit=value,
            actor=army,
        )

    @staticmethod
    def calculate_target_value(target) -> float:
        return TARGET_VALUES.get(getattr(target, 'kind', None), DEFAULT_TARGET_VALUE)

    # =========================================================================
    # Defense
    # =========================================================================

    def evaluate_defensive_needs(self, snapshot) -> List[Decision]:
        decisions = []
        for castle in snapshot.my_castles:
            threat = self.intel.castle_threat(castle, snapshot)
            if threat > DEFENSE_THREAT:
                decisions.append(self.create_defense_decision(castle, threat))
        return decisions

    def create_defense_decision(self, castle, threat: float) -> Decision:
        unit_type = self.rng.choice(DEFENSIVE_UNITS)
        return Decision(
            kind=DecisionKind.PRODUCE,
            priority=round_half_up(DEFENSE_BASE_PRIORITY + threat * DEFENSE_THREAT_WEIGHT),
            action_id=f"defend_{unit_type}",
            target=castle,
            cost=self.get_unit_cost(unit_type),
            expected_benefit=DEFENSE_BENEFIT,
            actor=castle,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def get_unit_cost(self, unit_type: str) -> Dict[str, float]:
        return self.lookup_cost('units', unit_type, DEFAULT_UNIT_COST)

    @staticmethod
    def calculate_unit_benefit(unit_type: str) -> float:
        return UNIT_BENEFITS.get(unit_type, DEFAULT_UNIT_BENEFIT)
