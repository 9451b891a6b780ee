"""
Base Class for the Strategy System

Defines the contract every strategy evaluator implements. A strategy looks at
a read-only world snapshot and proposes Decisions for one concern (economy,
military, movement). The agent controller polls strategies on their own
evaluation interval, merges their proposals, and executes the best ones.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional

from ..decision import Decision, round_half_up
from ..difficulty import DifficultyProfile, normalize_level, resolve_profile
from ..intel import HeuristicIntel

logger = logging.getLogger(__name__)

DEFAULT_EVALUATION_INTERVAL_MS = 1000


class Strategy(ABC):
    """
    Base class for strategy evaluators.

    Lifecycle state:
        enabled: Whether the controller should poll this strategy
        last_evaluation_time: When evaluate() was last polled (ms)
        evaluation_interval_ms: Minimum time between polls

    Subclasses implement evaluate() and, if they keep difficulty-dependent
    tables, apply_profile().
    """

    def __init__(self, name: str, config=None, intel=None, rng: Optional[random.Random] = None):
        self.name = name
        self.config = config
        self.intel = intel if intel is not None else HeuristicIntel(config)
        self.rng = rng or random.Random()
        self.enabled = True
        self.last_evaluation_time = 0.0
        self.evaluation_interval_ms = DEFAULT_EVALUATION_INTERVAL_MS
        if config is not None:
            self.evaluation_interval_ms = config.get_number(
                'ai.strategy_evaluation_interval', DEFAULT_EVALUATION_INTERVAL_MS)

        self.difficulty = 'medium'
        self.priority_multiplier = 1.0
        self.profile: Optional[DifficultyProfile] = None
        self.logger = logging.getLogger(f"{__name__}.{name}")

    # =========================================================================
    # Scheduling
    # =========================================================================

    def should_evaluate(self, now: float) -> bool:
        """True once the evaluation interval has elapsed since the last poll"""
        return now - self.last_evaluation_time >= self.evaluation_interval_ms

    def mark_evaluated(self, now: float):
        self.last_evaluation_time = now

    @abstractmethod
    def evaluate(self, snapshot) -> List[Decision]:
        """
        Propose decisions for the current world state.

        Args:
            snapshot: Read-only world snapshot for the owning player

        Returns:
            Zero or more Decisions. The snapshot must not be modified.
        """
        pass

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def enable(self):
        self.enabled = True

    def disable(self):
        self.enabled = False

    def pause(self):
        """Override in subclasses if the strategy needs specific pause behavior"""
        self.enabled = False

    def resume(self):
        """Override in subclasses if the strategy needs specific resume behavior"""
        self.enabled = True

    # =========================================================================
    # Difficulty
    # =========================================================================

    def set_difficulty(self, level):
        """
        Reconfigure thresholds and priority tables for a difficulty level.

        Always rebuilt from the base tables, so calling it repeatedly with the
        same level gives the same result. Does not touch last_evaluation_time.
        """
        self.difficulty = normalize_level(level)
        self.profile = resolve_profile(self.config, self.difficulty)
        self.priority_multiplier = self.profile.priority_multiplier
        self.apply_profile(self.profile)
        self.logger.debug(f"Difficulty set to {self.difficulty} (x{self.priority_multiplier})")

    def apply_profile(self, profile: DifficultyProfile):
        """Hook for subclasses to pull their tables from the profile"""
        pass

    def apply_difficulty_modifier(self, priority: float) -> int:
        """Scale a priority by the difficulty multiplier (100 at hard -> 120)"""
        return round_half_up(priority * self.priority_multiplier)

    # =========================================================================
    # Helpers
    # =========================================================================

    def can_afford(self, snapshot, cost: Mapping[str, float]) -> bool:
        """Affordability check against the player's ledger"""
        player = snapshot.player
        ledger = getattr(player, 'ledger', None) if player is not None else None
        if ledger is None:
            return False
        return ledger.can_afford(cost)

    def player_resources(self, snapshot) -> Dict[str, float]:
        player = snapshot.player
        ledger = getattr(player, 'ledger', None) if player is not None else None
        if ledger is None:
            return {}
        return dict(ledger.resources)

    def lookup_cost(self, section: str, item_type: str, default: Mapping[str, float]) -> Dict[str, float]:
        """Cost for an item from '<section>.<type>.cost', or the default"""
        if self.config is not None:
            cost = self.config.get(f'{section}.{item_type}.cost')
            if isinstance(cost, dict) and cost:
                return dict(cost)
        return dict(default)

    def log_decision(self, decision: Decision):
        """Log a proposed decision for debugging"""
        self.logger.debug(f"  [{self.name}] {decision} benefit={decision.expected_benefit}")

    def __repr__(self):
        return f"{type(self).__name__}(enabled={self.enabled}, difficulty={self.difficulty})"
