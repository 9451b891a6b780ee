"""
Movement Strategy

Proposes where idle armies should go. Every army that is not already in
transit is considered for five independent objectives, each contributing at
most one Move decision:

    attack_move     head for the most attractive enemy target in scouting range
    defensive_move  guard the nearest threatened friendly castle
    scout_move      small fast armies explore the nearest unexplored area
    retreat_move    fall back to the nearest friendly castle when in danger
    patrol_move     wander around the current position

Reinforcement runs per player: weak armies pull the nearest healthy idle army
toward them.

Each Move carries a MoveOrder (army, destination, path, objective). No path,
no decision.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..decision import Decision, DecisionKind, round_half_up
from ..difficulty import DEFAULT_RETREAT_THRESHOLD, DEFAULT_SCOUTING_RANGE
from ..world import distance
from .base import Strategy

logger = logging.getLogger(__name__)

Position = Tuple[float, float]

DEFAULT_REINFORCEMENT_THRESHOLD = 0.7
DEFAULT_EXPLORATION_PRIORITY = 40

# Scouting
SCOUT_MAX_SIZE = 3
SCOUT_MIN_SPEED = 8
LOW_COVERAGE = 0.6
LOW_COVERAGE_BONUS = 10
SCOUT_BENEFIT = 30

# Defense
CASTLE_THREAT = 0.5
DEFENSIVE_OFFSET = (2, 2)
DEFENSIVE_BASE_PRIORITY = 70
DEFENSIVE_THREAT_WEIGHT = 30
DEFENSIVE_BENEFIT = 70

# Retreat
RETREAT_BASE_PRIORITY = 90
RETREAT_THREAT_WEIGHT = 10
RETREAT_BENEFIT = 80

# Patrol
PATROL_RADIUS = 5
PATROL_PRIORITY = 20
PATROL_BENEFIT = 10

# Reinforcement
REINFORCE_PRIORITY = 50
REINFORCE_BENEFIT = 45

# Distance at which attack scores start to fall off
ATTACK_DISTANCE_SCALE = 10


@dataclass(frozen=True)
class MoveOrder:
    """Target payload of a Move decision"""
    army_id: str
    destination: Position
    path: Tuple[Position, ...]
    objective: str


class MovementStrategy(Strategy):
    """Army movement decisions"""

    def __init__(self, config=None, intel=None, rng=None, pathfinder=None):
        super().__init__("Movement", config, intel, rng)
        self.pathfinder = pathfinder
        self.scouting_range = DEFAULT_SCOUTING_RANGE
        self.retreat_threshold = DEFAULT_RETREAT_THRESHOLD
        self.reinforcement_threshold = DEFAULT_REINFORCEMENT_THRESHOLD
        self.exploration_priority = DEFAULT_EXPLORATION_PRIORITY
        if config is not None:
            self.reinforcement_threshold = config.get_number(
                'ai.reinforcement_threshold', DEFAULT_REINFORCEMENT_THRESHOLD)
            self.exploration_priority = config.get_number(
                'ai.exploration_priority', DEFAULT_EXPLORATION_PRIORITY)
        self.set_difficulty(self.difficulty)

    def apply_profile(self, profile):
        self.scouting_range = profile.scouting_range
        self.retreat_threshold = profile.retreat_threshold

    def set_pathfinder(self, pathfinder):
        self.pathfinder = pathfinder

    def evaluate(self, snapshot) -> List[Decision]:
        decisions = []
        coverage = self.intel.scouting_coverage(snapshot)

        for army in snapshot.my_armies:
            if army.is_moving:
                continue
            decisions.extend(self.evaluate_army_movement(army, snapshot, coverage))

        decisions.extend(self.evaluate_reinforcement_needs(snapshot))

        for decision in decisions:
            self.log_decision(decision)
        return decisions

    def evaluate_army_movement(self, army, snapshot, coverage: float = 1.0) -> List[Decision]:
        objectives = [
            lambda: self.evaluate_attack_movement(army, snapshot),
            lambda: self.evaluate_defensive_movement(army, snapshot),
            lambda: self.evaluate_scouting_movement(army, snapshot, coverage),
            lambda: self.evaluate_retreat_movement(army, snapshot),
            lambda: self.evaluate_patrol_movement(army, snapshot),
        ]
        decisions = []
        for evaluate_objective in objectives:
            decision = evaluate_objective()
            if decision:
                decisions.append(decision)
        return decisions

    # =========================================================================
    # Objectives
    # =========================================================================

    def evaluate_attack_movement(self, army, snapshot) -> Optional[Decision]:
        targets = self.intel.find_targets(army, snapshot, self.scouting_range)
        if not targets:
            return None

        best, best_score, best_odds = None, None, 0.0
        for target in targets:
            odds = self.intel.win_probability(army, target, snapshot)
            score = self.calculate_target_score(army, target, odds)
            if best_score is None or score > best_score:
                best, best_score, best_odds = target, score, odds

        value = best.strategic_value
        return self._move(
            army, best.position, 'attack_move', snapshot,
            priority=round_half_up(best_odds * value),
            benefit=value,
        )

    @staticmethod
    def calculate_target_score(army, target, odds: float) -> float:
        """Closer, easier, more valuable targets score higher"""
        dist = distance(army.position, target.position)
        return (target.strategic_value * odds) / max(1.0, dist / ATTACK_DISTANCE_SCALE)

    def evaluate_defensive_movement(self, army, snapshot) -> Optional[Decision]:
        threatened = []
        for castle in snapshot.my_castles:
            threat = self.intel.castle_threat(castle, snapshot)
            if threat > CASTLE_THREAT:
                threatened.append((castle, threat))
        if not threatened:
            return None

        castle, threat = min(threatened, key=lambda ct: distance(army.position, ct[0].position))
        destination = (castle.position[0] + DEFENSIVE_OFFSET[0], castle.position[1] + DEFENSIVE_OFFSET[1])
        return self._move(
            army, destination, 'defensive_move', snapshot,
            priority=round_half_up(DEFENSIVE_BASE_PRIORITY + threat * DEFENSIVE_THREAT_WEIGHT),
            benefit=DEFENSIVE_BENEFIT,
        )

    def evaluate_scouting_movement(self, army, snapshot, coverage: float = 1.0) -> Optional[Decision]:
        if not self.is_suitable_for_scouting(army):
            return None

        areas = self.intel.unexplored_areas(army, snapshot, self.scouting_range)
        if not areas:
            return None

        destination = self.find_nearest(army.position, areas)
        priority = self.exploration_priority
        if coverage < LOW_COVERAGE:
            priority += LOW_COVERAGE_BONUS
        return self._move(
            army, destination, 'scout_move', snapshot,
            priority=round_half_up(priority),
            benefit=SCOUT_BENEFIT,
        )

    def evaluate_retreat_movement(self, army, snapshot) -> Optional[Decision]:
        threat = self.intel.army_threat(army, snapshot)
        if threat < self.retreat_threshold:
            return None

        castles = snapshot.my_castles
        if not castles:
            return None
        destination = self.find_nearest(army.position, [c.position for c in castles])
        return self._move(
            army, destination, 'retreat_move', snapshot,
            priority=round_half_up(RETREAT_BASE_PRIORITY + threat * RETREAT_THREAT_WEIGHT),
            benefit=RETREAT_BENEFIT,
        )

    def evaluate_patrol_movement(self, army, snapshot) -> Optional[Decision]:
        angle = self.rng.random() * math.pi * 2
        radius = self.rng.random() * PATROL_RADIUS
        destination = (
            army.position[0] + math.cos(angle) * radius,
            army.position[1] + math.sin(angle) * radius,
        )
        return self._move(
            army, destination, 'patrol_move', snapshot,
            priority=PATROL_PRIORITY,
            benefit=PATROL_BENEFIT,
        )

    # =========================================================================
    # Reinforcement
    # =========================================================================

    def evaluate_reinforcement_needs(self, snapshot) -> List[Decision]:
        armies = list(snapshot.my_armies)
        if len(armies) < 2:
            return []

        strengths = {a.army_id: self.intel.army_strength(a) for a in armies}
        mean = sum(strengths.values()) / len(strengths)
        cutoff = mean * self.reinforcement_threshold
        weak_ids = {army_id for army_id, s in strengths.items() if s < cutoff}

        decisions = []
        committed = set()
        for weak in armies:
            if weak.army_id not in weak_ids:
                continue
            helpers = [
                a for a in armies
                if a.army_id not in weak_ids and a.army_id not in committed and not a.is_moving
            ]
            if not helpers:
                break
            helper = min(helpers, key=lambda a: distance(a.position, weak.position))
            decision = self._move(
                helper, weak.position, 'reinforce_move', snapshot,
                priority=REINFORCE_PRIORITY,
                benefit=REINFORCE_BENEFIT,
            )
            if decision:
                committed.add(helper.army_id)
                decisions.append(decision)
        return decisions

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def is_suitable_for_scouting(army) -> bool:
        return army.size <= SCOUT_MAX_SIZE and army.speed >= SCOUT_MIN_SPEED

    @staticmethod
    def find_nearest(origin: Position, positions: Sequence[Position]) -> Position:
        return min(positions, key=lambda p: distance(origin, p))

    def calculate_path(self, army, destination: Position, snapshot) -> Optional[List[Position]]:
        if self.pathfinder is None:
            # Direct path when no pathfinding system is wired in
            return [destination]
        return self.pathfinder.find_path(army.position, destination, snapshot)

    def _move(self, army, destination: Position, objective: str, snapshot,
              priority: int, benefit: float) -> Optional[Decision]:
        path = self.calculate_path(army, destination, snapshot)
        if not path:
            return None
        return Decision(
            kind=DecisionKind.MOVE,
            priority=priority,
            action_id=objective,
            target=MoveOrder(
                army_id=army.army_id,
                destination=destination,
                path=tuple(path),
                objective=objective,
            ),
            cost={},
            expected_benefit=benefit,
            actor=army,
        )
