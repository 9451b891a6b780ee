"""
Per-agent decision scheduler for computer-controlled players.

Each AI player gets an AgentController that periodically asks its strategies
(economic, military, movement) for Decisions, ranks them and executes the
best ones within a time budget.
"""

from .agent_controller import AgentController, CycleReport
from .ai_config import AIConfig
from .ai_system import AISystem
from .decision import Decision, DecisionKind
from .difficulty import DifficultyLevel, DifficultyProfile, resolve_profile
from .events import CompositeEventSink, LoggingEventSink, NullEventSink
from .execution import StubExecutionBackend, WorldExecutionBackend
from .intel import HeuristicIntel, StraightLinePathfinder
from .strategies import EconomicStrategy, MilitaryStrategy, MoveOrder, MovementStrategy, Strategy
from .world import Army, Castle, GameWorld, Ledger, PlayerState, Snapshot

__all__ = [
    'AgentController', 'CycleReport',
    'AIConfig',
    'AISystem',
    'Decision', 'DecisionKind',
    'DifficultyLevel', 'DifficultyProfile', 'resolve_profile',
    'CompositeEventSink', 'LoggingEventSink', 'NullEventSink',
    'StubExecutionBackend', 'WorldExecutionBackend',
    'HeuristicIntel', 'StraightLinePathfinder',
    'EconomicStrategy', 'MilitaryStrategy', 'MoveOrder', 'MovementStrategy', 'Strategy',
    'Army', 'Castle', 'GameWorld', 'Ledger', 'PlayerState', 'Snapshot',
]
