import os
from dataclasses import dataclass


@dataclass
class Config:
    """Configuration for the AI simulation server"""

    # Flask settings
    SECRET_KEY: str = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-prod')
    HOST: str = os.environ.get('HOST', '127.0.0.1')  # localhost only, nginx will proxy
    PORT: int = int(os.environ.get('PORT', '5001'))
    DEBUG: bool = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'

    # Socket.IO async mode ('threading' works without extra packages)
    SOCKETIO_ASYNC_MODE: str = os.environ.get('SOCKETIO_ASYNC_MODE', 'threading')

    # AI tuning file (None = configs/default.json)
    AI_CONFIG_PATH: str = os.environ.get('AI_CONFIG', '')

    # Simulation settings
    TICK_INTERVAL: float = float(os.environ.get('TICK_INTERVAL', '0.25'))  # seconds between world ticks
    PARALLEL_GATHERING: bool = os.environ.get('PARALLEL_GATHERING', 'False').lower() == 'true'
    DEMO_PLAYERS: int = 3
    STATUS_BROADCAST_EVERY: int = 4  # ticks between state pushes to the UI

    # Paths
    BASE_DIR: str = os.path.dirname(os.path.abspath(__file__))
    DATA_DIR: str = os.path.join(BASE_DIR, 'data')
    LOG_DIR: str = os.environ.get('LOG_DIR', os.path.join(BASE_DIR, 'logs'))

    # Database
    @property
    def DATABASE_URL(self) -> str:
        return os.environ.get('DATABASE_URL', f'sqlite:///{os.path.join(self.DATA_DIR, "agents.db")}')

    def ensure_directories(self):
        """Ensure data and log directories exist"""
        os.makedirs(self.DATA_DIR, exist_ok=True)
        os.makedirs(self.LOG_DIR, exist_ok=True)


# Create global config instance
config = Config()
