"""
Test session setup.

Log, settings and database locations are read from the environment at import
time, so they are pointed at throwaway locations before any test module
imports the application.
"""

import os
import tempfile

os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='castle-agents-logs-'))
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('SOCKETIO_ASYNC_MODE', 'threading')
