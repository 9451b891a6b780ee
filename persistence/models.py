"""
Database Models for AI Telemetry

Tracks:
- Raw ai:* events emitted by the agent controllers
- Per-player aggregates (cycles, executed/failed decisions, overruns, pauses)
"""

import json
from datetime import datetime
from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class TelemetryEvent(Base):
    """
    One ai:* event as emitted by a controller.

    The payload is stored as JSON text.
    """
    __tablename__ = 'telemetry_events'

    id = Column(Integer, primary_key=True)
    player_id = Column(String(100), nullable=True)
    event_name = Column(String(50), nullable=False)
    payload = Column(Text, default='{}')
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_event_player', 'player_id'),
        Index('idx_event_name', 'event_name'),
    )

    def __repr__(self):
        return f"<TelemetryEvent({self.event_name} for {self.player_id})>"

    @property
    def payload_dict(self) -> dict:
        try:
            return json.loads(self.payload or '{}')
        except ValueError:
            return {}

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'player_id': self.player_id,
            'event_name': self.event_name,
            'payload': self.payload_dict,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class AgentStats(Base):
    """
    Running totals for one AI player across simulation runs.
    """
    __tablename__ = 'agent_stats'

    id = Column(Integer, primary_key=True)
    player_id = Column(String(100), nullable=False, unique=True)

    cycles = Column(Integer, default=0)
    decisions_executed = Column(Integer, default=0)
    decisions_failed = Column(Integer, default=0)
    budget_overruns = Column(Integer, default=0)
    decision_errors = Column(Integer, default=0)
    pauses = Column(Integer, default=0)

    last_difficulty = Column(String(20), default='medium')

    # Timestamps
    first_seen = Column(DateTime, default=datetime.utcnow)
    last_seen = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<AgentStats({self.player_id}: {self.cycles} cycles, {self.decisions_executed} executed)>"

    @property
    def success_rate(self) -> float:
        """Executed decisions as a percentage of attempted ones"""
        attempted = (self.decisions_executed or 0) + (self.decisions_failed or 0)
        if attempted == 0:
            return 0.0
        return (self.decisions_executed / attempted) * 100

    def to_dict(self) -> dict:
        return {
            'player_id': self.player_id,
            'cycles': self.cycles,
            'decisions_executed': self.decisions_executed,
            'decisions_failed': self.decisions_failed,
            'budget_overruns': self.budget_overruns,
            'decision_errors': self.decision_errors,
            'pauses': self.pauses,
            'last_difficulty': self.last_difficulty,
            'success_rate': round(self.success_rate, 1),
            'last_seen': self.last_seen.isoformat() if self.last_seen else None,
        }
