"""
AI System

Owns one AgentController per computer-controlled player and drives them from
the game loop.

Two update modes:
- Serial (default): each controller runs its whole cycle in turn.
- Parallel gathering: snapshots are built up front, the Gathering phase of
  every due controller runs on a thread pool, then Prioritizing + Executing
  run serially on the calling thread. Strategies only read frozen snapshots,
  so no locks are needed; only execution touches the live world.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from .agent_controller import AgentController, CycleReport
from .difficulty import normalize_level
from .events import NullEventSink

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class AISystem:
    """
    Registry and driver for agent controllers.

    Args:
        world: GameWorld the snapshots are taken from (optional if snapshots
               are passed to update())
        config: AIConfig shared by all controllers
        backend: ExecutionBackend shared by all controllers
        event_sink: EventSink shared by all controllers
        parallel_gathering: Run the Gathering phase on a thread pool
        max_workers: Thread pool size for parallel gathering
        controller_kwargs: Extra keyword arguments for every AgentController
                           (clock, rng, intel, pathfinder)
    """

    def __init__(self, world=None, config=None, backend=None, event_sink=None,
                 parallel_gathering: bool = False, max_workers: int = DEFAULT_MAX_WORKERS,
                 **controller_kwargs):
        self.world = world
        self.config = config
        self.backend = backend
        self.event_sink = event_sink or NullEventSink()
        self.parallel_gathering = parallel_gathering
        self.max_workers = max_workers
        self.controller_kwargs = controller_kwargs
        self.controllers: Dict[str, AgentController] = {}
        self.update_count = 0
        self._executor: Optional[ThreadPoolExecutor] = None

    # =========================================================================
    # Registration
    # =========================================================================

    def register_player(self, player_id: str, difficulty: str = 'medium', **overrides) -> AgentController:
        """Create (or replace) the controller for a player"""
        if player_id in self.controllers:
            logger.warning(f"Player {player_id} already registered, replacing controller")
            self.controllers[player_id].destroy()

        kwargs = dict(self.controller_kwargs)
        kwargs.update(overrides)
        controller = AgentController(
            player_id,
            config=self.config,
            difficulty=normalize_level(difficulty),
            backend=self.backend,
            event_sink=self.event_sink,
            **kwargs,
        )
        self.controllers[player_id] = controller
        logger.info(f"🤖 Registered AI player {player_id} ({controller.difficulty})")
        return controller

    def unregister_player(self, player_id: str) -> bool:
        controller = self.controllers.pop(player_id, None)
        if controller is None:
            return False
        controller.destroy()
        logger.info(f"Unregistered AI player {player_id}")
        return True

    def get_controller(self, player_id: str) -> Optional[AgentController]:
        return self.controllers.get(player_id)

    def retire_eliminated_players(self) -> List[str]:
        """Destroy controllers whose player was eliminated or left the world"""
        if self.world is None:
            return []
        retired = []
        for player_id in list(self.controllers):
            player = self.world.players.get(player_id)
            if player is None or player.eliminated:
                self.unregister_player(player_id)
                retired.append(player_id)
        return retired

    # =========================================================================
    # Update
    # =========================================================================

    def update(self, delta_time: float = 0.0, snapshots: Optional[Dict] = None) -> Dict[str, CycleReport]:
        """
        Tick every controller.

        Args:
            delta_time: Elapsed game time (ms)
            snapshots: Optional {player_id: snapshot}; built from the world if omitted

        Returns:
            {player_id: CycleReport} for controllers that ran a cycle
        """
        self.update_count += 1
        self.retire_eliminated_players()
        if snapshots is None:
            snapshots = self.build_snapshots()

        if self.parallel_gathering:
            return self._update_two_phase(snapshots)

        reports = {}
        for player_id, controller in list(self.controllers.items()):
            if controller.update(snapshots.get(player_id), delta_time):
                reports[player_id] = controller.last_report
        return reports

    def build_snapshots(self) -> Dict:
        if self.world is None:
            return {}
        snapshots = {}
        for player_id in list(self.controllers):
            player = self.world.players.get(player_id)
            if player is None or player.eliminated:
                continue
            snapshots[player_id] = self.world.snapshot(player_id)
        return snapshots

    def _due_controllers(self, snapshots: Dict) -> List:
        due = []
        for player_id, controller in list(self.controllers.items()):
            snapshot = snapshots.get(player_id)
            if not controller.is_active or snapshot is None or getattr(snapshot, 'is_paused', False):
                continue
            now = controller.clock()
            if controller.should_make_decision(now):
                due.append((controller, snapshot, now))
        return due

    def _update_two_phase(self, snapshots: Dict) -> Dict[str, CycleReport]:
        due = self._due_controllers(snapshots)
        if not due:
            return {}

        # Phase 1: gather concurrently
        executor = self._get_executor()
        futures = [
            (controller, snapshot, now, executor.submit(controller.collect_decisions, snapshot, now))
            for controller, snapshot, now in due
        ]

        # Phase 2: rank and execute serially, in registration order
        reports = {}
        for controller, snapshot, now, future in futures:
            try:
                gathered = future.result()
            except Exception as e:
                logger.error(f"Gathering failed for {controller.player_id}: {e}", exc_info=True)
                continue
            reports[controller.player_id] = controller.process_decisions(gathered, snapshot, now)
        return reports

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="ai-gather")
        return self._executor

    # =========================================================================
    # Control
    # =========================================================================

    def pause_all(self):
        for controller in list(self.controllers.values()):
            controller.pause()

    def resume_all(self):
        for controller in list(self.controllers.values()):
            controller.resume()

    def set_difficulty(self, player_id: str, level) -> bool:
        controller = self.controllers.get(player_id)
        if controller is None:
            return False
        controller.set_difficulty(level)
        return True

    def get_statistics(self) -> Dict:
        return {
            'active_ai_players': sum(1 for c in list(self.controllers.values()) if c.is_active),
            'registered_ai_players': len(self.controllers),
            'parallel_gathering': self.parallel_gathering,
            'update_count': self.update_count,
        }

    def get_all_status(self) -> Dict[str, Dict]:
        return {player_id: c.get_status() for player_id, c in list(self.controllers.items())}

    def shutdown(self):
        """Destroy every controller and stop the gathering pool"""
        for player_id in list(self.controllers):
            self.unregister_player(player_id)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
