"""
Demo scenario: a small map with a few castles and starting armies, used by
the admin server's simulation worker and by integration tests.
"""

import logging
import random
from typing import List, Optional

from .world import Army, Castle, GameWorld, Ledger, PlayerState

logger = logging.getLogger(__name__)

STARTING_RESOURCES = {'gold': 1500, 'wood': 800, 'stone': 400, 'mana': 250}
GENERATION_PER_MINUTE = {'gold': 300, 'wood': 150, 'stone': 90, 'mana': 60}
STARTING_BUILDINGS = ['town_hall', 'barracks']
STARTING_UNITS = {'swordsman': 4, 'archer': 3}

PLAYER_NAMES = ['Crimson', 'Azure', 'Verdant', 'Amber']


def _corner_positions(width: int, height: int) -> List[tuple]:
    margin = 8
    return [
        (float(margin), float(margin)),
        (float(width - margin), float(height - margin)),
        (float(width - margin), float(margin)),
        (float(margin), float(height - margin)),
    ]


def build_demo_world(num_players: int = 2, human_players: int = 0, width: int = 64, height: int = 64,
                     seed: Optional[int] = None) -> GameWorld:
    """
    Build a world with one castle and one army per player in the map corners.

    Args:
        num_players: Total players (2-4)
        human_players: How many of them are not AI-controlled (taken first)
        width, height: Map size
        seed: Seed for scout placement

    Returns:
        A populated GameWorld
    """
    if not 2 <= num_players <= len(PLAYER_NAMES):
        raise ValueError(f"num_players must be between 2 and {len(PLAYER_NAMES)}, got {num_players}")

    rng = random.Random(seed)
    world = GameWorld(width, height)
    corners = _corner_positions(width, height)

    for index in range(num_players):
        player_id = f"player-{index + 1}"
        world.add_player(PlayerState(
            player_id=player_id,
            name=PLAYER_NAMES[index],
            is_ai=index >= human_players,
            ledger=Ledger(resources=dict(STARTING_RESOURCES), generation=dict(GENERATION_PER_MINUTE)),
        ))
        position = corners[index]
        world.add_castle(Castle(
            castle_id=f"{player_id}-castle",
            owner_id=player_id,
            position=position,
            buildings=list(STARTING_BUILDINGS),
        ))
        world.add_army(Army(
            army_id=world.next_army_id(player_id),
            owner_id=player_id,
            position=position,
            units=dict(STARTING_UNITS),
        ))
        # A light scout next to the castle
        offset = (rng.uniform(1, 3), rng.uniform(1, 3))
        world.add_army(Army(
            army_id=world.next_army_id(player_id),
            owner_id=player_id,
            position=(
                min(width - 1, max(0, position[0] + offset[0])),
                min(height - 1, max(0, position[1] + offset[1])),
            ),
            units={'knight': 1},
            speed=10.0,
        ))

    logger.info(f"Demo world built: {num_players} players on {width}x{height}")
    return world
