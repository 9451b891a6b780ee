"""
In-Memory World

Reference implementation of the world store and resource ledger the agents
consume. The live GameWorld is mutable and owned by the game loop; agents only
ever see a frozen Snapshot built from deep copies, which is what makes the
Gathering phase safe to run in parallel.
"""

import copy
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Set, Tuple

logger = logging.getLogger(__name__)

Position = Tuple[float, float]

# Cells around a castle or army that count as explored
VISION_RADIUS = 3


def distance(a: Position, b: Position) -> float:
    """Euclidean distance between two positions"""
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    return math.sqrt(dx * dx + dy * dy)


@dataclass
class Ledger:
    """A player's treasury with per-minute generation rates"""
    resources: Dict[str, float] = field(default_factory=dict)
    generation: Dict[str, float] = field(default_factory=dict)

    def can_afford(self, cost: Mapping[str, float]) -> bool:
        if cost is None:
            return False
        for resource, amount in cost.items():
            if resource not in self.resources:
                return False  # Unknown resource type
            if self.resources[resource] < amount:
                return False
        return True

    def spend(self, cost: Mapping[str, float]) -> bool:
        """Deduct cost. Returns False (and spends nothing) if unaffordable."""
        if not self.can_afford(cost):
            return False
        for resource, amount in cost.items():
            self.resources[resource] = max(0.0, self.resources[resource] - amount)
        return True

    def add(self, gains: Mapping[str, float]):
        for resource, amount in gains.items():
            if resource in self.resources and amount > 0:
                self.resources[resource] += amount

    def update(self, delta_ms: float):
        """Apply generation rates (per minute) for the elapsed time"""
        for resource, per_minute in self.generation.items():
            if resource in self.resources:
                self.resources[resource] += per_minute * delta_ms / 60000.0


@dataclass
class Castle:
    castle_id: str
    owner_id: str
    position: Position
    buildings: List[str] = field(default_factory=list)
    building_slots: int = 6
    defense: float = 20.0

    @property
    def id(self) -> str:
        return self.castle_id

    def has_free_slot(self) -> bool:
        return len(self.buildings) < self.building_slots

    def has_building(self, building_type: str) -> bool:
        return building_type in self.buildings


@dataclass
class Army:
    army_id: str
    owner_id: str
    position: Position
    units: Dict[str, int] = field(default_factory=dict)
    speed: float = 5.0
    destination: Optional[Position] = None
    path: List[Position] = field(default_factory=list)
    attack_target: Optional[str] = None

    @property
    def id(self) -> str:
        return self.army_id

    @property
    def is_moving(self) -> bool:
        return self.destination is not None

    @property
    def size(self) -> int:
        return sum(self.units.values())


@dataclass
class PlayerState:
    player_id: str
    name: str
    is_ai: bool = False
    ledger: Ledger = field(default_factory=Ledger)
    eliminated: bool = False

    @property
    def id(self) -> str:
        return self.player_id


@dataclass(frozen=True)
class Snapshot:
    """
    Frozen view of the world for one player.

    Entities inside are private deep copies; mutating them would not affect
    the live world, but strategies must treat them as read-only anyway.
    """
    player_id: str
    players: Tuple[PlayerState, ...]
    castles: Tuple[Castle, ...]
    armies: Tuple[Army, ...]
    is_paused: bool = False
    timestamp: float = 0.0
    map_size: Tuple[int, int] = (64, 64)
    explored: FrozenSet[Tuple[int, int]] = frozenset()

    @property
    def player(self) -> Optional[PlayerState]:
        for p in self.players:
            if p.player_id == self.player_id:
                return p
        return None

    @property
    def ledger(self) -> Optional[Ledger]:
        player = self.player
        return player.ledger if player else None

    @property
    def my_castles(self) -> Tuple[Castle, ...]:
        return tuple(c for c in self.castles if c.owner_id == self.player_id)

    @property
    def my_armies(self) -> Tuple[Army, ...]:
        return tuple(a for a in self.armies if a.owner_id == self.player_id)

    @property
    def enemy_castles(self) -> Tuple[Castle, ...]:
        return tuple(c for c in self.castles if c.owner_id != self.player_id)

    @property
    def enemy_armies(self) -> Tuple[Army, ...]:
        return tuple(a for a in self.armies if a.owner_id != self.player_id)

    def in_bounds(self, position: Position) -> bool:
        width, height = self.map_size
        return 0 <= position[0] < width and 0 <= position[1] < height


class GameWorld:
    """
    Mutable world store owned by the game loop.

    Execution back-ends mutate it; agents read it only through snapshot().
    """

    def __init__(self, width: int = 64, height: int = 64):
        self.width = width
        self.height = height
        self.players: Dict[str, PlayerState] = {}
        self.castles: Dict[str, Castle] = {}
        self.armies: Dict[str, Army] = {}
        self.explored: Dict[str, Set[Tuple[int, int]]] = {}
        self.is_paused = False
        self._army_counter = 0

    # =========================================================================
    # Registration
    # =========================================================================

    def add_player(self, player: PlayerState) -> PlayerState:
        self.players[player.player_id] = player
        self.explored.setdefault(player.player_id, set())
        return player

    def add_castle(self, castle: Castle) -> Castle:
        self.castles[castle.castle_id] = castle
        self._reveal(castle.owner_id, castle.position)
        return castle

    def add_army(self, army: Army) -> Army:
        self.armies[army.army_id] = army
        self._reveal(army.owner_id, army.position)
        return army

    def next_army_id(self, owner_id: str) -> str:
        self._army_counter += 1
        return f"{owner_id}-army-{self._army_counter}"

    def eliminate_player(self, player_id: str):
        """Mark a player as eliminated and remove their armies"""
        player = self.players.get(player_id)
        if not player:
            return
        player.eliminated = True
        for army_id in [a.army_id for a in self.armies.values() if a.owner_id == player_id]:
            del self.armies[army_id]
        logger.info(f"Player {player_id} eliminated")

    # =========================================================================
    # Queries
    # =========================================================================

    def castles_of(self, player_id: str) -> List[Castle]:
        return [c for c in self.castles.values() if c.owner_id == player_id]

    def armies_of(self, player_id: str) -> List[Army]:
        return [a for a in self.armies.values() if a.owner_id == player_id]

    def in_bounds(self, position: Position) -> bool:
        return 0 <= position[0] < self.width and 0 <= position[1] < self.height

    def snapshot(self, player_id: str) -> Snapshot:
        """Build a frozen, deep-copied view of the world for one player"""
        return Snapshot(
            player_id=player_id,
            players=tuple(copy.deepcopy(list(self.players.values()))),
            castles=tuple(copy.deepcopy(list(self.castles.values()))),
            armies=tuple(copy.deepcopy(list(self.armies.values()))),
            is_paused=self.is_paused,
            timestamp=time.time() * 1000.0,
            map_size=(self.width, self.height),
            explored=frozenset(self.explored.get(player_id, set())),
        )

    # =========================================================================
    # Simulation
    # =========================================================================

    def tick(self, delta_ms: float):
        """Advance resource generation and army movement"""
        if self.is_paused:
            return
        for player in self.players.values():
            if not player.eliminated:
                player.ledger.update(delta_ms)
        for army in self.armies.values():
            self._advance_army(army, delta_ms)

    def _advance_army(self, army: Army, delta_ms: float):
        if army.destination is None:
            return
        if not army.path:
            army.path = [army.destination]

        budget = army.speed * delta_ms / 1000.0
        while budget > 0 and army.path:
            waypoint = army.path[0]
            remaining = distance(army.position, waypoint)
            if remaining <= budget:
                army.position = (waypoint[0], waypoint[1])
                army.path.pop(0)
                budget -= remaining
            else:
                ratio = budget / remaining
                army.position = (
                    army.position[0] + (waypoint[0] - army.position[0]) * ratio,
                    army.position[1] + (waypoint[1] - army.position[1]) * ratio,
                )
                budget = 0
            self._reveal(army.owner_id, army.position)

        if not army.path:
            army.destination = None
            army.attack_target = None

    def _reveal(self, player_id: str, position: Position):
        cells = self.explored.setdefault(player_id, set())
        cx, cy = int(position[0]), int(position[1])
        for dx in range(-VISION_RADIUS, VISION_RADIUS + 1):
            for dy in range(-VISION_RADIUS, VISION_RADIUS + 1):
                x, y = cx + dx, cy + dy
                if 0 <= x < self.width and 0 <= y < self.height:
                    cells.add((x, y))
