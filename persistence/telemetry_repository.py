"""
Telemetry Repository - Data Access Layer

Stores ai:* events and keeps per-player aggregates up to date. The
DatabaseEventSink plugs the repository into the controllers' event stream.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError

from agent import events
from agent.interfaces import EventSink
from .database import session_scope
from .models import AgentStats, TelemetryEvent

logger = logging.getLogger(__name__)

# Which AgentStats counter each event bumps
_COUNTERS = {
    events.DECISION_MADE: 'cycles',
    events.ACTION_EXECUTED: 'decisions_executed',
    events.ACTION_FAILED: 'decisions_failed',
    events.BUDGET_EXCEEDED: 'budget_overruns',
    events.DECISION_ERROR: 'decision_errors',
    events.PAUSED: 'pauses',
}


class TelemetryRepository:
    """
    Repository for AI telemetry.

    Provides methods for:
    - Recording events (and updating aggregates)
    - Per-player stats
    - Recent event queries
    """

    def record_event(self, event_name: str, payload: Dict[str, Any], store: bool = True) -> Optional[AgentStats]:
        """
        Record one event.

        Args:
            event_name: ai:* event name
            payload: Event payload (must carry player_id to update stats)
            store: Also append the raw event to the event log

        Returns:
            Updated AgentStats, or None for events without a player
        """
        player_id = payload.get('player_id')

        with session_scope() as session:
            if store:
                session.add(TelemetryEvent(
                    player_id=player_id,
                    event_name=event_name,
                    payload=json.dumps(payload, default=str),
                ))

            if not player_id:
                return None

            stats = session.query(AgentStats).filter_by(player_id=player_id).first()
            if not stats:
                stats = AgentStats(
                    player_id=player_id,
                    cycles=0,
                    decisions_executed=0,
                    decisions_failed=0,
                    budget_overruns=0,
                    decision_errors=0,
                    pauses=0,
                )
                session.add(stats)
                logger.info(f"Created telemetry record for {player_id}")

            counter = _COUNTERS.get(event_name)
            if counter:
                setattr(stats, counter, (getattr(stats, counter) or 0) + 1)
            if event_name == events.DIFFICULTY_CHANGED and payload.get('difficulty'):
                stats.last_difficulty = payload['difficulty']
            stats.last_seen = datetime.utcnow()

            session.flush()
            session.refresh(stats)
            session.expunge(stats)
            return stats

    def get_agent_stats(self, player_id: str) -> Optional[AgentStats]:
        """Get stats for a player (None if never seen)"""
        with session_scope() as session:
            stats = session.query(AgentStats).filter_by(player_id=player_id).first()
            if stats:
                session.expunge(stats)
            return stats

    def all_agent_stats(self) -> List[AgentStats]:
        with session_scope() as session:
            rows = session.query(AgentStats).order_by(AgentStats.player_id).all()
            for row in rows:
                session.expunge(row)
            return rows

    def recent_events(self, limit: int = 50, player_id: str = None,
                      event_name: str = None) -> List[TelemetryEvent]:
        """Most recent events first"""
        with session_scope() as session:
            query = session.query(TelemetryEvent)
            if player_id:
                query = query.filter_by(player_id=player_id)
            if event_name:
                query = query.filter_by(event_name=event_name)
            rows = query.order_by(desc(TelemetryEvent.id)).limit(limit).all()
            for row in rows:
                session.expunge(row)
            return rows

    def clear(self):
        """Delete all telemetry"""
        with session_scope() as session:
            session.query(TelemetryEvent).delete()
            session.query(AgentStats).delete()
        logger.info("Telemetry cleared")


class DatabaseEventSink(EventSink):
    """
    Writes controller events to the telemetry database.

    Database errors are logged and dropped; telemetry never stops the game loop.
    High-volume events in `unstored_events` only update the aggregates.
    """

    def __init__(self, repository: TelemetryRepository = None,
                 unstored_events: Iterable[str] = (events.STRATEGY_EVALUATION,)):
        self.repository = repository or TelemetryRepository()
        self.unstored_events = set(unstored_events)

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        try:
            self.repository.record_event(event_name, payload, store=event_name not in self.unstored_events)
        except SQLAlchemyError as e:
            logger.error(f"Failed to record {event_name}: {e}")
