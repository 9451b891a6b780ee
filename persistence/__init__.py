"""
Persistence Module

SQLite database for tracking:
- AI telemetry events
- Per-player agent stats
"""

from .models import (
    TelemetryEvent,
    AgentStats,
)
from .database import init_db, get_session, session_scope, close_db
from .telemetry_repository import TelemetryRepository, DatabaseEventSink

__all__ = [
    # Models
    'TelemetryEvent',
    'AgentStats',
    # Database
    'init_db',
    'get_session',
    'session_scope',
    'close_db',
    # Repository
    'TelemetryRepository',
    'DatabaseEventSink',
]
