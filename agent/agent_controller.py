"""
Agent Controller

Runs the decision loop for one computer-controlled player:

    Gathering    - poll every enabled, due strategy for proposals
    Prioritizing - drop invalid proposals, rank by (priority, benefit)
    Executing    - hand decisions to the execution back-end until
                   80% of the cycle's time budget is spent

A cycle runs at most once per decision interval, never while the controller
or the game is paused, and never raises: strategy failures, execution
failures and event-sink failures are logged and reported as events.
"""

import logging
import random
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Optional

from . import decision_logger
from . import events
from .decision import Decision, DecisionKind
from .difficulty import DEFAULT_DECISION_INTERVAL_MS, normalize_level, resolve_profile
from .events import NullEventSink
from .execution import StubExecutionBackend
from .intel import HeuristicIntel, StraightLinePathfinder
from .strategies import EconomicStrategy, MilitaryStrategy, MovementStrategy, Strategy

logger = logging.getLogger(__name__)

DEFAULT_MAX_DECISION_TIME_MS = 500

# Execution stops once this share of the budget has been used
EXECUTION_BUDGET_SHARE = 0.8

DECISION_HISTORY_SIZE = 10


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


@dataclass
class CycleReport:
    """Outcome of one decision cycle"""
    player_id: str
    started_at: float
    gathered: int = 0
    valid: int = 0
    executed: int = 0
    failed: int = 0
    skipped: int = 0
    elapsed_ms: float = 0.0
    over_budget: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return asdict(self)


class AgentController:
    """
    Per-player decision scheduler.

    Args:
        player_id: The player this controller acts for
        config: AIConfig (None = built-in defaults)
        difficulty: Initial difficulty level
        backend: ExecutionBackend (defaults to the stub, which fails everything)
        event_sink: EventSink for ai:* notifications
        intel: Intel shared by the default strategies
        pathfinder: Pathfinder for the movement strategy
        clock: Callable returning the current time in milliseconds
        rng: Random source shared by the default strategies
        strategies: Optional {name: Strategy} replacing the default set
    """

    def __init__(
        self,
        player_id: str,
        config=None,
        difficulty: str = 'medium',
        backend=None,
        event_sink=None,
        intel=None,
        pathfinder=None,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        strategies: Optional[Dict[str, Strategy]] = None,
    ):
        self.player_id = player_id
        self.config = config
        self.backend = backend or StubExecutionBackend()
        self.event_sink = event_sink or NullEventSink()
        self.clock = clock or _wall_clock_ms
        self.rng = rng or random.Random()
        self.intel = intel or HeuristicIntel(config)
        self.pathfinder = pathfinder or StraightLinePathfinder()

        self.strategies: Dict[str, Strategy] = {}
        self.is_active = True
        self.last_decision_time = 0.0
        self.decision_interval_ms = DEFAULT_DECISION_INTERVAL_MS
        self.max_decision_budget_ms = DEFAULT_MAX_DECISION_TIME_MS
        self.debug_mode = False
        self.compensate_pause_duration = False
        self.log_outcomes = True
        if config is not None:
            self.decision_interval_ms = config.get_number('ai.decision_interval', DEFAULT_DECISION_INTERVAL_MS)
            self.max_decision_budget_ms = config.get_number('ai.max_decision_time', DEFAULT_MAX_DECISION_TIME_MS)
            self.debug_mode = bool(config.get('ai.debug_mode', False))
            self.compensate_pause_duration = bool(config.get('ai.compensate_pause_duration', False))
            self.log_outcomes = bool(config.get('ai.log_decisions', True))

        self.difficulty = normalize_level(difficulty)
        self._paused_at: Optional[float] = None
        self._strategies_evaluated = 0

        # Stats
        self.decision_history = deque(maxlen=DECISION_HISTORY_SIZE)
        self.cycle_count = 0
        self.decisions_executed = 0
        self.decisions_failed = 0
        self.budget_overruns = 0
        self.last_report: Optional[CycleReport] = None

        if strategies is None:
            self.initialize_strategies()
        else:
            for name, strategy in strategies.items():
                self.add_strategy(name, strategy)

        self._apply_difficulty(self.difficulty)
        logger.info(f"AgentController initialized for {player_id} ({self.difficulty})")

    def initialize_strategies(self):
        self.add_strategy('economic', EconomicStrategy(self.config, self.intel, self.rng))
        self.add_strategy('military', MilitaryStrategy(self.config, self.intel, self.rng))
        self.add_strategy('movement', MovementStrategy(self.config, self.intel, self.rng, self.pathfinder))

    # =========================================================================
    # Strategy registry
    # =========================================================================

    def add_strategy(self, name: str, strategy: Strategy):
        """Register (or replace) a strategy; it is evaluated in insertion order."""
        if getattr(strategy, 'difficulty', None) != self.difficulty:
            strategy.set_difficulty(self.difficulty)
        self.strategies[name] = strategy

    def remove_strategy(self, name: str) -> bool:
        return self.strategies.pop(name, None) is not None

    def get_strategy(self, name: str) -> Optional[Strategy]:
        return self.strategies.get(name)

    # =========================================================================
    # Decision cycle
    # =========================================================================

    def update(self, snapshot, delta_time: float = 0.0) -> bool:
        """
        Advance the controller by one game tick.

        Returns:
            True if a decision cycle ran
        """
        if not self.is_active or snapshot is None or getattr(snapshot, 'is_paused', False):
            return False

        now = self.clock()
        if not self.should_make_decision(now):
            return False

        self.make_decisions(snapshot, now)
        return True

    def should_make_decision(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = self.clock()
        return now - self.last_decision_time >= self.decision_interval_ms

    def make_decisions(self, snapshot, now: Optional[float] = None,
                       gathered: Optional[List[Decision]] = None) -> CycleReport:
        """
        Run one full cycle.

        Args:
            snapshot: World snapshot for this player
            now: Cycle timestamp (ms); read from the clock if omitted
            gathered: Decisions already gathered elsewhere (parallel gathering);
                      when given, the Gathering phase is skipped

        Returns:
            CycleReport for the cycle
        """
        if now is None:
            now = self.clock()
        started = self.clock()
        report = CycleReport(player_id=self.player_id, started_at=now)

        try:
            if gathered is None:
                decisions = self.gather_decisions(snapshot, now)
            else:
                decisions = gathered
                self._emit_evaluation(len(decisions))
            report.gathered = len(decisions)

            ranked = self.prioritize_decisions(decisions)
            report.valid = len(ranked)

            self.execute_decisions(ranked, snapshot, report)

            self._emit(events.DECISION_MADE, {
                'player_id': self.player_id,
                'decisions_count': len(ranked),
                'executed': report.executed,
                'failed': report.failed,
                'skipped': report.skipped,
                'decision_time_ms': self.clock() - started,
            })
        except Exception as e:
            report.error = str(e)
            logger.error(f"AI decision error for player {self.player_id}: {e}", exc_info=True)
            self._emit(events.DECISION_ERROR, {
                'player_id': self.player_id,
                'error': str(e),
            })

        self.last_decision_time = now
        report.elapsed_ms = self.clock() - started
        if report.elapsed_ms > self.max_decision_budget_ms:
            report.over_budget = True
            self.budget_overruns += 1
            logger.warning(
                f"AI decision cycle for {self.player_id} took {report.elapsed_ms:.1f}ms, "
                f"exceeding {self.max_decision_budget_ms}ms limit")
            self._emit(events.BUDGET_EXCEEDED, {
                'player_id': self.player_id,
                'elapsed_ms': report.elapsed_ms,
                'budget_ms': self.max_decision_budget_ms,
            })

        self.cycle_count += 1
        self.last_report = report
        return report

    def gather_decisions(self, snapshot, now: Optional[float] = None) -> List[Decision]:
        """Gathering phase: collect proposals and report the evaluation."""
        decisions = self.collect_decisions(snapshot, now)
        self._emit_evaluation(len(decisions))
        return decisions

    def collect_decisions(self, snapshot, now: Optional[float] = None) -> List[Decision]:
        """
        Poll every enabled, due strategy for proposals.

        Only reads the snapshot and the strategies' own timers and emits no
        events, so it may run off the game thread.
        """
        if now is None:
            now = self.clock()
        all_decisions: List[Decision] = []
        evaluated = 0

        for name, strategy in list(self.strategies.items()):
            if not strategy.enabled or not strategy.should_evaluate(now):
                continue
            evaluated += 1
            try:
                decisions = strategy.evaluate(snapshot)
                if decisions:
                    all_decisions.extend(decisions)
                msg = f"AI {self.player_id} {name} strategy generated {len(decisions or [])} decisions"
                if self.debug_mode:
                    logger.info(msg)
                else:
                    logger.debug(msg)
            except Exception as e:
                logger.error(f"Strategy {name} evaluation error for {self.player_id}: {e}", exc_info=True)
            finally:
                strategy.mark_evaluated(now)

        self._strategies_evaluated = evaluated
        return all_decisions

    def _emit_evaluation(self, decisions_generated: int):
        self._emit(events.STRATEGY_EVALUATION, {
            'player_id': self.player_id,
            'strategies_evaluated': self._strategies_evaluated,
            'decisions_generated': decisions_generated,
        })

    def process_decisions(self, decisions: List[Decision], snapshot,
                          now: Optional[float] = None) -> CycleReport:
        """Prioritizing + Executing phases for decisions from collect_decisions()"""
        return self.make_decisions(snapshot, now, gathered=decisions)

    @staticmethod
    def prioritize_decisions(decisions: List[Decision]) -> List[Decision]:
        """Drop invalid decisions and rank the rest (stable for ties)"""
        valid = [d for d in decisions if d is not None and d.is_valid()]
        return sorted(valid, key=lambda d: d.sort_key())

    def execute_decisions(self, decisions: List[Decision], snapshot,
                          report: Optional[CycleReport] = None) -> CycleReport:
        if report is None:
            report = CycleReport(player_id=self.player_id, started_at=self.clock())

        execution_start = self.clock()
        cutoff = self.max_decision_budget_ms * EXECUTION_BUDGET_SHARE

        for index, decision in enumerate(decisions):
            elapsed = self.clock() - execution_start
            if elapsed > cutoff:
                report.skipped = len(decisions) - index
                msg = (f"AI {self.player_id} stopping execution due to time budget "
                       f"({report.skipped} decisions dropped)")
                if self.debug_mode:
                    logger.info(msg)
                else:
                    logger.debug(msg)
                for dropped in decisions[index:]:
                    self._log_outcome(dropped, 'skipped', elapsed)
                break

            try:
                success = self.execute_decision(decision, snapshot)
                error = None
            except Exception as e:
                success = False
                error = str(e)
                logger.error(f"AI decision execution error for {self.player_id} ({decision}): {e}")

            if success:
                report.executed += 1
                self.decisions_executed += 1
                self.record_decision(decision)
                self._log_outcome(decision, 'executed', self.clock() - execution_start)
                self._emit(events.ACTION_EXECUTED, {
                    'player_id': self.player_id,
                    'decision': str(decision),
                })
            else:
                report.failed += 1
                self.decisions_failed += 1
                self._log_outcome(decision, 'failed', self.clock() - execution_start, error or "")
                self._emit(events.ACTION_FAILED, {
                    'player_id': self.player_id,
                    'decision': str(decision),
                    'reason': error or 'Execution failed',
                })

        msg = f"AI {self.player_id} executed {report.executed} decisions, {report.failed} failed"
        if self.debug_mode:
            logger.info(msg)
        else:
            logger.debug(msg)
        return report

    def execute_decision(self, decision: Decision, snapshot) -> bool:
        """Dispatch one decision to the back-end by kind"""
        handlers = {
            DecisionKind.BUILD.value: self.backend.execute_build,
            DecisionKind.PRODUCE.value: self.backend.execute_produce,
            DecisionKind.MOVE.value: self.backend.execute_move,
            DecisionKind.ATTACK.value: self.backend.execute_attack,
        }
        handler = handlers.get(decision.kind_value)
        if handler is None:
            logger.warning(f"Unknown decision type: {decision.kind}")
            return False
        return bool(handler(decision, snapshot))

    # =========================================================================
    # Pause / resume / difficulty
    # =========================================================================

    def pause(self):
        was_active = self.is_active
        self.is_active = False
        if was_active:
            self._paused_at = self.clock()
            logger.info(f"AI {self.player_id} paused")

        for strategy in self.strategies.values():
            strategy.pause()

        self._emit(events.PAUSED, {
            'player_id': self.player_id,
            'timestamp': self.clock(),
        })

    def resume(self):
        was_inactive = not self.is_active
        self.is_active = True

        if was_inactive and self.compensate_pause_duration and self._paused_at is not None:
            paused_for = max(0.0, self.clock() - self._paused_at)
            self.last_decision_time += paused_for
            for strategy in self.strategies.values():
                strategy.last_evaluation_time += paused_for
            logger.debug(f"AI {self.player_id} timers shifted by {paused_for:.0f}ms after pause")
        self._paused_at = None

        for strategy in self.strategies.values():
            strategy.resume()

        if was_inactive:
            logger.info(f"AI {self.player_id} resumed")

        self._emit(events.RESUMED, {
            'player_id': self.player_id,
            'timestamp': self.clock(),
        })

    @property
    def is_paused(self) -> bool:
        return not self.is_active and all(not s.enabled for s in self.strategies.values())

    def set_difficulty(self, level):
        """Switch difficulty; updates the decision interval and every strategy."""
        previous = self.difficulty
        self._apply_difficulty(level)
        logger.info(f"AI {self.player_id} difficulty {previous} -> {self.difficulty}")
        self._emit(events.DIFFICULTY_CHANGED, {
            'player_id': self.player_id,
            'difficulty': self.difficulty,
            'decision_interval_ms': self.decision_interval_ms,
        })

    def _apply_difficulty(self, level):
        self.difficulty = normalize_level(level)
        profile = resolve_profile(self.config, self.difficulty)
        self.decision_interval_ms = profile.decision_interval_ms
        for strategy in self.strategies.values():
            strategy.set_difficulty(self.difficulty)

    # =========================================================================
    # History / status
    # =========================================================================

    def record_decision(self, decision: Decision):
        self.decision_history.append({
            'decision': str(decision),
            'kind': decision.kind_value,
            'action_id': decision.action_id,
            'priority': decision.priority,
            'timestamp': self.clock(),
        })

    def get_decision_history(self) -> List[Dict]:
        return list(self.decision_history)

    def get_last_decision(self) -> Optional[Dict]:
        return self.decision_history[-1] if self.decision_history else None

    def clear_decision_history(self):
        self.decision_history.clear()

    def get_status(self) -> Dict:
        return {
            'player_id': self.player_id,
            'is_active': self.is_active,
            'is_paused': self.is_paused,
            'difficulty': self.difficulty,
            'strategies_count': len(self.strategies),
            'strategies': {
                name: {
                    'enabled': s.enabled,
                    'last_evaluation_time': s.last_evaluation_time,
                    'evaluation_interval_ms': s.evaluation_interval_ms,
                }
                for name, s in self.strategies.items()
            },
            'last_decision_time': self.last_decision_time,
            'decision_interval_ms': self.decision_interval_ms,
            'max_decision_budget_ms': self.max_decision_budget_ms,
            'cycles': self.cycle_count,
            'decisions_executed': self.decisions_executed,
            'decisions_failed': self.decisions_failed,
            'budget_overruns': self.budget_overruns,
            'last_cycle': self.last_report.to_dict() if self.last_report else None,
        }

    def destroy(self):
        self.is_active = False
        self.strategies.clear()
        self.decision_history.clear()
        logger.info(f"AgentController for {self.player_id} destroyed")

    # =========================================================================
    # Internals
    # =========================================================================

    def _emit(self, event_name: str, payload: Dict):
        try:
            self.event_sink.emit(event_name, payload)
        except Exception as e:
            logger.error(f"Failed to emit {event_name} for {self.player_id}: {e}")

    def _log_outcome(self, decision: Decision, outcome: str, elapsed_ms: float, error: str = ""):
        if not self.log_outcomes:
            return
        try:
            decision_logger.log_decision_outcome(
                self.player_id, decision, outcome,
                difficulty=self.difficulty, elapsed_ms=elapsed_ms, error=error)
        except OSError as e:
            logger.warning(f"Could not write decision log: {e}")
