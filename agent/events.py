"""
Event Sinks

Fire-and-forget telemetry for the agent controllers. The core only ever
calls emit(); nothing is read back.

Event names:
    ai:decision-made, ai:decision-error, ai:strategy-evaluation,
    ai:action-executed, ai:action-failed, ai:budget-exceeded,
    ai:paused, ai:resumed, ai:difficulty-changed
"""

import logging
from typing import Any, Dict, List

from .interfaces import EventSink

logger = logging.getLogger(__name__)

DECISION_MADE = 'ai:decision-made'
DECISION_ERROR = 'ai:decision-error'
STRATEGY_EVALUATION = 'ai:strategy-evaluation'
ACTION_EXECUTED = 'ai:action-executed'
ACTION_FAILED = 'ai:action-failed'
BUDGET_EXCEEDED = 'ai:budget-exceeded'
PAUSED = 'ai:paused'
RESUMED = 'ai:resumed'
DIFFICULTY_CHANGED = 'ai:difficulty-changed'


class NullEventSink(EventSink):
    """Discards every event"""

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        return None


class LoggingEventSink(EventSink):
    """Writes events to the log (debug level for the chatty ones)"""

    QUIET_EVENTS = {STRATEGY_EVALUATION, ACTION_EXECUTED}

    def __init__(self, name: str = __name__):
        self.logger = logging.getLogger(name)

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        if event_name in self.QUIET_EVENTS:
            self.logger.debug(f"{event_name} {payload}")
        else:
            self.logger.info(f"{event_name} {payload}")


class CompositeEventSink(EventSink):
    """
    Fans events out to several sinks.

    A failing sink is logged and skipped; it never affects the others or the caller.
    """

    def __init__(self, sinks: List[EventSink] = None):
        self.sinks: List[EventSink] = list(sinks or [])

    def add(self, sink: EventSink):
        self.sinks.append(sink)

    def remove(self, sink: EventSink):
        if sink in self.sinks:
            self.sinks.remove(sink)

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        for sink in self.sinks:
            try:
                sink.emit(event_name, payload)
            except Exception as e:
                logger.error(f"Event sink {type(sink).__name__} failed on {event_name}: {e}")
