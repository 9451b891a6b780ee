"""
Execution Back-ends

An execution back-end carries out accepted decisions. Two are provided:

- StubExecutionBackend: applies nothing and reports failure for every
  decision, so a controller wired to it logs each decision as failed. Useful
  for dry runs and for exercising the scheduler on its own.
- WorldExecutionBackend: applies decisions to a live GameWorld (construction,
  recruitment, movement orders, attack orders), spending resources from the
  owning player's ledger.

Decisions carry snapshot copies as actors; the world back-end always looks
up the live entity by id before touching anything.
"""

import logging
from typing import Optional

from .interfaces import ExecutionBackend, Target
from .strategies.economic_strategy import MULTIPLE_ALLOWED
from .strategies.movement_strategy import MoveOrder
from .world import Army, GameWorld, distance

logger = logging.getLogger(__name__)

# Units recruited at a castle join an idle army within this distance
GARRISON_RADIUS = 1.0
DEFAULT_UNIT_SPEED = 5.0


def _item_type(action_id: str) -> Optional[str]:
    """'build_gold_mine' -> 'gold_mine', 'defend_guard' -> 'guard'"""
    if not action_id or '_' not in action_id:
        return None
    return action_id.split('_', 1)[1]


class StubExecutionBackend(ExecutionBackend):
    """Applies nothing; every decision fails"""

    def _not_implemented(self, decision) -> bool:
        logger.debug(f"No execution back-end for {decision}")
        return False

    def execute_build(self, decision, snapshot) -> bool:
        return self._not_implemented(decision)

    def execute_produce(self, decision, snapshot) -> bool:
        return self._not_implemented(decision)

    def execute_move(self, decision, snapshot) -> bool:
        return self._not_implemented(decision)

    def execute_attack(self, decision, snapshot) -> bool:
        return self._not_implemented(decision)


class WorldExecutionBackend(ExecutionBackend):
    """
    Applies decisions to a GameWorld.

    Every method returns False, without side effects, when the action can no
    longer be carried out (entity gone, slot taken, resources spent by an
    earlier decision in the same cycle, army already moving).
    """

    def __init__(self, world: GameWorld, config=None):
        self.world = world
        self.config = config

    # =========================================================================
    # Lookups
    # =========================================================================

    def _live_castle(self, decision, snapshot):
        actor = decision.actor
        castle_id = getattr(actor, 'castle_id', None)
        castle = self.world.castles.get(castle_id) if castle_id else None
        if castle is None or castle.owner_id != snapshot.player_id:
            return None
        return castle

    def _live_army(self, army_id, snapshot):
        army = self.world.armies.get(army_id) if army_id else None
        if army is None or army.owner_id != snapshot.player_id:
            return None
        return army

    def _ledger(self, player_id):
        player = self.world.players.get(player_id)
        if player is None or player.eliminated:
            return None
        return player.ledger

    def _unit_speed(self, unit_type: str) -> float:
        if self.config is not None:
            return self.config.get_number(f'units.{unit_type}.speed', DEFAULT_UNIT_SPEED)
        return DEFAULT_UNIT_SPEED

    # =========================================================================
    # Actions
    # =========================================================================

    def execute_build(self, decision, snapshot) -> bool:
        castle = self._live_castle(decision, snapshot)
        building_type = _item_type(decision.action_id)
        if castle is None or not building_type:
            return False
        if not castle.has_free_slot():
            return False
        if castle.has_building(building_type) and building_type not in MULTIPLE_ALLOWED:
            return False

        ledger = self._ledger(castle.owner_id)
        if ledger is None or not ledger.spend(decision.cost):
            return False

        castle.buildings.append(building_type)
        logger.info(f"🏗️  {castle.owner_id} built {building_type} at {castle.castle_id}")
        return True

    def execute_produce(self, decision, snapshot) -> bool:
        castle = self._live_castle(decision, snapshot)
        unit_type = _item_type(decision.action_id)
        if castle is None or not unit_type:
            return False

        ledger = self._ledger(castle.owner_id)
        if ledger is None or not ledger.spend(decision.cost):
            return False

        army = self._garrison_army(castle)
        speed = self._unit_speed(unit_type)
        if army is None:
            army = self.world.add_army(Army(
                army_id=self.world.next_army_id(castle.owner_id),
                owner_id=castle.owner_id,
                position=castle.position,
                units={unit_type: 1},
                speed=speed,
            ))
        else:
            army.units[unit_type] = army.units.get(unit_type, 0) + 1
            # An army moves at the pace of its slowest unit
            army.speed = min(army.speed, speed)

        logger.info(f"⚔️  {castle.owner_id} recruited {unit_type} into {army.army_id}")
        return True

    def _garrison_army(self, castle):
        for army in self.world.armies_of(castle.owner_id):
            if not army.is_moving and distance(army.position, castle.position) <= GARRISON_RADIUS:
                return army
        return None

    def execute_move(self, decision, snapshot) -> bool:
        order = decision.target
        if not isinstance(order, MoveOrder):
            return False
        army = self._live_army(order.army_id, snapshot)
        if army is None or army.is_moving:
            return False
        if not self.world.in_bounds(order.destination):
            return False

        army.destination = order.destination
        army.path = list(order.path) or [order.destination]
        logger.debug(f"{army.army_id} {order.objective} -> {order.destination}")
        return True

    def execute_attack(self, decision, snapshot) -> bool:
        target = decision.target
        if not isinstance(target, Target):
            return False
        army = self._live_army(getattr(decision.actor, 'army_id', None), snapshot)
        if army is None or army.is_moving:
            return False

        if target.kind == 'castle':
            alive = target.entity_id in self.world.castles
        else:
            alive = target.entity_id in self.world.armies
        if not alive:
            return False

        army.destination = target.position
        army.path = [target.position]
        army.attack_target = target.entity_id
        logger.info(f"🗡️  {army.army_id} attacking {target.kind} {target.entity_id}")
        return True
