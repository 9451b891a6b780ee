"""
Decision Value Type

A Decision is one proposed action emitted by a strategy during an evaluation
cycle. Decisions are created fresh every cycle, ranked by the agent
controller, and discarded after execution or rejection.
"""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple


class DecisionKind(Enum):
    """Kinds of actions an agent can take"""
    BUILD = "build"
    PRODUCE = "produce"
    MOVE = "move"
    ATTACK = "attack"


def _now_ms() -> float:
    return time.time() * 1000.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Decision:
    """
    An immutable proposal produced by a strategy.

    Attributes:
        kind: What sort of action this is (build/produce/move/attack)
        priority: Ranking priority, nominally 0-100 (higher = more urgent)
        action_id: Identifier of the concrete action, e.g. "build_wall"
        target: Opaque target reference (castle, position, move order...)
        cost: Resource cost map, e.g. {"gold": 100, "wood": 50}; read-only
        expected_benefit: Estimated benefit, used to break priority ties
        created_at: Creation timestamp (epoch milliseconds)
        actor: The entity that carries out the action (castle or army)
    """
    kind: Optional[DecisionKind]
    priority: int
    action_id: str
    target: Any = None
    cost: Mapping[str, float] = field(default_factory=dict)
    expected_benefit: float = 0.0
    created_at: float = field(default_factory=_now_ms)
    actor: Any = None

    def __post_init__(self):
        # Private copy behind a read-only view; the caller's dict stays theirs
        object.__setattr__(self, 'cost', MappingProxyType(dict(self.cost or {})))

    def is_valid(self) -> bool:
        """True iff kind is one of the known kinds, priority >= 0 and action_id is non-empty"""
        if not self.kind or self.kind_value is None:
            return False
        if self.priority is None or self.priority < 0:
            return False
        return bool(self.action_id)

    @property
    def kind_value(self) -> Optional[str]:
        """The kind as its string value, or None if it is not a known kind"""
        if isinstance(self.kind, DecisionKind):
            return self.kind.value
        try:
            return DecisionKind(self.kind).value
        except ValueError:
            return None

    @property
    def total_cost(self) -> float:
        """Numeric cost: the sum of all resource amounts"""
        if not self.cost:
            return 0.0
        return float(sum(self.cost.values()))

    def sort_key(self) -> Tuple[float, float]:
        """Ascending sort key that puts higher priority, then higher benefit, first"""
        return (-self.priority, -self.expected_benefit)

    def __str__(self):
        return f"Decision({self.kind_value or self.kind}: {self.action_id}, priority: {self.priority})"
