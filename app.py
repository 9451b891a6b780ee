"""
AI Simulation Server - Flask Application

Runs a Flask web server with WebSocket support for the admin UI, and a
background simulation worker that ticks a demo world and the AI system.
AI events are forwarded to connected clients as they happen.
"""

from flask import Flask, jsonify
from flask_socketio import SocketIO, emit
import logging
import os
import threading
from typing import Any, Dict

from config import config
from agent import (
    AIConfig,
    AISystem,
    CompositeEventSink,
    LoggingEventSink,
    WorldExecutionBackend,
)
from agent.decision_logger import rotate_decision_log
from agent.difficulty import normalize_level
from agent.interfaces import EventSink
from agent.scenario import build_demo_world
from persistence import init_db, DatabaseEventSink, TelemetryRepository
import settings

# Setup logging
config.ensure_directories()
LOG_FILE_PATH = os.path.join(config.LOG_DIR, 'simulation.log')
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    handlers=[
        logging.FileHandler(LOG_FILE_PATH),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# Initialize database
init_db(config.DATABASE_URL)
logger.info(f"📊 Database initialized: {config.DATABASE_URL}")

# Load user settings
user_settings = settings.load_settings()

# Initialize Flask
app = Flask(__name__)
app.config['SECRET_KEY'] = config.SECRET_KEY

# Initialize SocketIO
socketio = SocketIO(app, cors_allowed_origins="*", async_mode=config.SOCKETIO_ASYNC_MODE)


class SocketIOEventSink(EventSink):
    """Forwards ai:* events to every connected admin client"""

    def __init__(self, sio: SocketIO):
        self.socketio = sio

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        # namespace required when emitting from the background worker
        self.socketio.emit('ai_event', {'event': event_name, 'payload': payload}, namespace='/')


class SimulationState:
    """
    Global simulation state.

    Holds the demo world, the AI system driving its computer players, and
    the telemetry repository.
    """

    def __init__(self):
        self.config = config
        self.running = False
        self.world = None
        self.ai_system = None
        self.tick_count = 0
        self.last_error = None
        # Bumped on every start/stop; a worker from an older run exits
        self.run_id = 0
        # Held while ticking, so stop() never tears the AI down mid-tick
        self._lock = threading.RLock()

        self.ai_config = AIConfig(config.AI_CONFIG_PATH or None)
        logger.info(f"🧠 Loaded AI config: {self.ai_config.name} v{self.ai_config.version}")

        self.telemetry = TelemetryRepository()
        self.event_sink = CompositeEventSink([
            LoggingEventSink('ai.events'),
            DatabaseEventSink(self.telemetry),
            SocketIOEventSink(socketio),
        ])

    def effective_ai_config(self) -> AIConfig:
        """AI config with admin preferences layered on top"""
        data = self.ai_config.as_dict()
        if settings.get_setting('compensate_pause_duration', False):
            data.setdefault('ai', {})['compensate_pause_duration'] = True
        return AIConfig.from_dict(data)

    def start(self, num_players: int = None, human_players: int = 0, seed: int = None) -> int:
        """Build a fresh world and register its AI players. Returns the run id for the worker."""
        with self._lock:
            return self._start(num_players, human_players, seed)

    def _start(self, num_players, human_players, seed) -> int:
        self.world = build_demo_world(
            num_players=num_players or config.DEMO_PLAYERS,
            human_players=human_players,
            seed=seed,
        )
        parallel = config.PARALLEL_GATHERING or settings.get_setting('parallel_gathering', False)
        ai_config = self.effective_ai_config()
        self.ai_system = AISystem(
            world=self.world,
            config=ai_config,
            backend=WorldExecutionBackend(self.world, ai_config),
            event_sink=self.event_sink,
            parallel_gathering=parallel,
        )
        for player in self.world.players.values():
            if player.is_ai:
                self.ai_system.register_player(player.player_id, settings.get_player_difficulty(player.player_id))

        self.tick_count = 0
        self.last_error = None
        self.running = True
        self.run_id += 1
        logger.info(f"🚀 Simulation started with {len(self.ai_system.controllers)} AI players "
                    f"(parallel gathering: {parallel})")
        return self.run_id

    def stop(self):
        with self._lock:
            self.running = False
            self.run_id += 1
            if self.ai_system:
                self.ai_system.shutdown()
        rotate_decision_log("simulation")
        logger.info("🛑 Simulation stopped")

    def step(self, delta_ms: float = None, run_id: int = None):
        """
        Advance the world and the AI by one tick.

        A worker passes its run_id; once that run has been stopped or
        replaced the call does nothing.
        """
        if delta_ms is None:
            delta_ms = config.TICK_INTERVAL * 1000.0
        with self._lock:
            if run_id is not None and run_id != self.run_id:
                return {}
            if self.world is None or self.ai_system is None:
                return {}
            self.world.tick(delta_ms)
            reports = self.ai_system.update(delta_ms)
            self.tick_count += 1
            return reports

    def to_dict(self):
        """Convert state to dictionary for JSON serialization"""
        result = {
            'running': self.running,
            'tick_count': self.tick_count,
            'last_error': self.last_error,
            'ai_config': {
                'name': self.ai_config.name,
                'version': self.ai_config.version,
                'loaded': self.ai_config.is_loaded,
            },
            'game_paused': bool(self.world and self.world.is_paused),
            'players': [],
            'agents': {},
        }
        if self.world:
            for player in self.world.players.values():
                result['players'].append({
                    'player_id': player.player_id,
                    'name': player.name,
                    'is_ai': player.is_ai,
                    'eliminated': player.eliminated,
                    'resources': {k: round(v, 1) for k, v in player.ledger.resources.items()},
                    'castles': len(self.world.castles_of(player.player_id)),
                    'armies': len(self.world.armies_of(player.player_id)),
                })
        if self.ai_system:
            result['agents'] = self.ai_system.get_all_status()
            result['statistics'] = self.ai_system.get_statistics()
        return result


sim_state = SimulationState()


def simulation_worker(run_id: int):
    """
    Background worker for the simulation loop.

    Ticks the world and the AI system until its run is stopped or replaced.
    """
    logger.info(f"🤖 Simulation worker started (run {run_id})")

    while sim_state.running and sim_state.run_id == run_id:
        try:
            sim_state.step(run_id=run_id)
            if sim_state.tick_count % config.STATUS_BROADCAST_EVERY == 0:
                socketio.emit('state_update', sim_state.to_dict(), namespace='/')
        except Exception as e:
            logger.error(f"Simulation worker error: {e}", exc_info=True)
            if sim_state.run_id != run_id:
                break
            sim_state.last_error = str(e)
            sim_state.running = False
            socketio.emit('state_update', sim_state.to_dict(), namespace='/')
            socketio.emit('log_message', {'message': f'❌ Simulation stopped: {e}', 'level': 'error'}, namespace='/')
            break

        socketio.sleep(config.TICK_INTERVAL)

    logger.info(f"🤖 Simulation worker exiting (run {run_id})")


# Flask routes
@app.route('/')
def index():
    """Simulation summary"""
    return jsonify(sim_state.to_dict())


@app.route('/health')
def health():
    """Health check endpoint for monitoring"""
    return {
        'status': 'ok',
        'running': sim_state.running,
        'version': '0.1.0',
    }


@app.route('/api/agents')
def list_agents():
    """Status of every registered AI controller"""
    agents = sim_state.ai_system.get_all_status() if sim_state.ai_system else {}
    return jsonify({'agents': list(agents.values())})


@app.route('/api/agents/<player_id>')
def agent_detail(player_id):
    """Live status plus stored telemetry for one AI player"""
    controller = sim_state.ai_system.get_controller(player_id) if sim_state.ai_system else None
    stats = sim_state.telemetry.get_agent_stats(player_id)
    if controller is None and stats is None:
        return jsonify({'error': f'Unknown player: {player_id}'}), 404

    return jsonify({
        'player_id': player_id,
        'status': controller.get_status() if controller else None,
        'history': controller.get_decision_history() if controller else [],
        'stats': stats.to_dict() if stats else None,
        'recent_events': [e.to_dict() for e in sim_state.telemetry.recent_events(limit=20, player_id=player_id)],
    })


# WebSocket event handlers
@socketio.on('connect')
def handle_connect():
    """Client connected to WebSocket"""
    logger.info('Admin UI connected via WebSocket')
    emit('state_update', sim_state.to_dict())


@socketio.on('disconnect')
def handle_disconnect():
    """Client disconnected from WebSocket"""
    logger.info('Admin UI disconnected from WebSocket')


@socketio.on('request_state')
def handle_request_state():
    """Client requesting current state"""
    emit('state_update', sim_state.to_dict())


@socketio.on('start_simulation')
def handle_start_simulation(data=None):
    """Build a demo world and start the worker"""
    data = data or {}
    if sim_state.running:
        emit('log_message', {'message': 'Simulation already running', 'level': 'warning'})
        return

    try:
        run_id = sim_state.start(
            num_players=data.get('players'),
            human_players=data.get('human_players', 0),
            seed=data.get('seed'),
        )
    except ValueError as e:
        emit('log_message', {'message': f'Cannot start: {e}', 'level': 'error'})
        return

    if data.get('autorun', True):
        socketio.start_background_task(simulation_worker, run_id)
    emit('state_update', sim_state.to_dict())
    emit('log_message', {'message': '🚀 Simulation starting...', 'level': 'info'})


@socketio.on('stop_simulation')
def handle_stop_simulation():
    """Stop the simulation"""
    logger.info('🛑 Stop simulation requested')
    sim_state.stop()
    emit('state_update', sim_state.to_dict())
    emit('log_message', {'message': '🛑 Simulation stopped', 'level': 'info'})


def _controller_for(data):
    player_id = (data or {}).get('player_id')
    controller = sim_state.ai_system.get_controller(player_id) if sim_state.ai_system and player_id else None
    if controller is None:
        emit('log_message', {'message': f'Unknown AI player: {player_id}', 'level': 'warning'})
    return controller


@socketio.on('pause_agent')
def handle_pause_agent(data):
    controller = _controller_for(data)
    if controller:
        controller.pause()
        emit('state_update', sim_state.to_dict())


@socketio.on('resume_agent')
def handle_resume_agent(data):
    controller = _controller_for(data)
    if controller:
        controller.resume()
        emit('state_update', sim_state.to_dict())


@socketio.on('set_difficulty')
def handle_set_difficulty(data):
    """Change an AI player's difficulty and remember it"""
    controller = _controller_for(data)
    if not controller:
        return
    level = normalize_level(data.get('difficulty'))
    controller.set_difficulty(level)
    settings.set_player_difficulty(controller.player_id, level)
    emit('state_update', sim_state.to_dict())
    emit('log_message', {'message': f'⚙️ {controller.player_id} difficulty set to {level}', 'level': 'info'})


@socketio.on('pause_game')
def handle_pause_game():
    """Pause the whole game; controllers see paused snapshots and skip cycles"""
    if sim_state.world:
        sim_state.world.is_paused = True
        logger.info('⏸️ Game paused')
    emit('state_update', sim_state.to_dict())


@socketio.on('resume_game')
def handle_resume_game():
    if sim_state.world:
        sim_state.world.is_paused = False
        logger.info('▶️ Game resumed')
    emit('state_update', sim_state.to_dict())


if __name__ == '__main__':
    logger.info('=' * 60)
    logger.info('🤖 AI Simulation Server Starting')
    logger.info(f'Host: {config.HOST}:{config.PORT}')
    logger.info(f'AI config: {sim_state.ai_config.path}')
    logger.info(f'Socket.IO async mode: {config.SOCKETIO_ASYNC_MODE}')
    logger.info('=' * 60)

    socketio.run(
        app,
        host=config.HOST,
        port=config.PORT,
        debug=config.DEBUG,
        allow_unsafe_werkzeug=True,
    )
