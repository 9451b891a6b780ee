"""
Collaborator Interfaces

The contract between the decision scheduler and the rest of the simulation.
The scheduler core assumes nothing beyond what is declared here:

- WorldSnapshot: read-only view of the world for one player
- ResourceLedger: afford/spend checks over a player's treasury
- ExecutionBackend: carries out accepted decisions, one entry point per kind
- EventSink: fire-and-forget telemetry notifications
- Intel: threat / composition / targeting lookups consumed by strategies
- Pathfinder: path queries consumed by the movement strategy

Reference implementations live in world.py, intel.py, execution.py and events.py.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple


Position = Tuple[float, float]


class ResourceLedger(Protocol):
    """A player's treasury"""

    resources: Mapping[str, float]

    def can_afford(self, cost: Mapping[str, float]) -> bool:
        ...

    def spend(self, cost: Mapping[str, float]) -> None:
        ...


class WorldSnapshot(Protocol):
    """
    Read-only view of the world from one player's point of view.

    Strategies must never mutate a snapshot or anything reachable from it.
    """

    player_id: str
    is_paused: bool

    @property
    def player(self) -> Any:
        ...

    @property
    def players(self) -> Sequence[Any]:
        ...

    @property
    def my_castles(self) -> Sequence[Any]:
        ...

    @property
    def my_armies(self) -> Sequence[Any]:
        ...

    @property
    def enemy_castles(self) -> Sequence[Any]:
        ...

    @property
    def enemy_armies(self) -> Sequence[Any]:
        ...


@dataclass(frozen=True)
class Target:
    """A hostile entity an army could engage"""
    kind: str  # "castle" or "army"
    entity_id: str
    position: Position
    owner_id: str
    strategic_value: float = 50.0


@dataclass(frozen=True)
class MilitaryAnalysis:
    """Summary of a player's military strength"""
    total_power: float = 0.0
    army_count: int = 0
    unit_composition: Dict[str, float] = field(default_factory=dict)


class ExecutionBackend(ABC):
    """
    Carries out accepted decisions against the live simulation.

    Each method returns True only if the action was actually applied.
    The controller treats False and a raised exception the same way.
    """

    @abstractmethod
    def execute_build(self, decision, snapshot) -> bool:
        pass

    @abstractmethod
    def execute_produce(self, decision, snapshot) -> bool:
        pass

    @abstractmethod
    def execute_move(self, decision, snapshot) -> bool:
        pass

    @abstractmethod
    def execute_attack(self, decision, snapshot) -> bool:
        pass


class EventSink(ABC):
    """Fire-and-forget notification channel (ai:decision-made, ai:paused, ...)"""

    @abstractmethod
    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        pass


class Intel(ABC):
    """
    Situation-awareness lookups consumed by the strategies.

    Threat values are normalized to 0.0 (safe) .. 1.0 (extreme danger).
    """

    @abstractmethod
    def castle_threat(self, castle, snapshot) -> float:
        pass

    @abstractmethod
    def army_threat(self, army, snapshot) -> float:
        pass

    @abstractmethod
    def is_castle_vulnerable(self, castle, snapshot) -> bool:
        pass

    @abstractmethod
    def military_strength(self, snapshot) -> MilitaryAnalysis:
        pass

    @abstractmethod
    def army_composition(self, snapshot) -> Dict[str, float]:
        """Current unit-type ratios across all of the player's armies (sums to 1.0 or empty)"""
        pass

    @abstractmethod
    def army_strength(self, army) -> float:
        pass

    @abstractmethod
    def find_targets(self, army, snapshot, search_range: float) -> List[Target]:
        pass

    @abstractmethod
    def win_probability(self, army, target: Target, snapshot) -> float:
        pass

    @abstractmethod
    def can_produce_unit(self, castle, unit_type: str) -> bool:
        pass

    @abstractmethod
    def unexplored_areas(self, army, snapshot, search_range: float) -> List[Position]:
        pass

    @abstractmethod
    def scouting_coverage(self, snapshot) -> float:
        pass


class Pathfinder(ABC):
    """Path queries. A None or empty result means the goal is unreachable."""

    @abstractmethod
    def find_path(self, start: Position, goal: Position, snapshot) -> Optional[List[Position]]:
        pass
