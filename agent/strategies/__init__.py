"""
Strategy evaluators for the agent controller.

Each strategy proposes Decisions for one concern; the controller merges and
ranks them.
"""

from .base import Strategy
from .economic_strategy import EconomicStrategy
from .military_strategy import MilitaryStrategy
from .movement_strategy import MoveOrder, MovementStrategy

__all__ = [
    'Strategy',
    'EconomicStrategy',
    'MilitaryStrategy',
    'MovementStrategy',
    'MoveOrder',
]
