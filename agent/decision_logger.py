"""
Decision Outcome Logger

Writes one line per decision the agents execute, fail, or drop for lack of
time. This enables post-game analysis and tuning of the priority tables
without wading through the main application log.

The log file is rotated per simulation run.
"""

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

# Shares the application log directory
LOG_DIR = Path(os.environ.get('LOG_DIR', Path(__file__).parent.parent / "logs"))

DECISION_LOG_PATH = LOG_DIR / "ai_decisions.log"

# Plain message lines, kept out of the application log
decision_logger = logging.getLogger("ai_decisions")
decision_logger.setLevel(logging.INFO)
decision_logger.propagate = False

_file_handler: Optional[logging.FileHandler] = None


def _ensure_handler():
    """Lazily initialize the file handler."""
    global _file_handler
    if _file_handler is None:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        _file_handler = logging.FileHandler(str(DECISION_LOG_PATH))
        _file_handler.setFormatter(logging.Formatter('%(message)s'))
        decision_logger.addHandler(_file_handler)


def log_decision_outcome(
    player_id: str,
    decision,
    outcome: str,
    difficulty: str = "",
    elapsed_ms: float = 0.0,
    error: str = "",
):
    """
    Log what happened to one decision.

    Args:
        player_id: Owning player
        decision: The Decision
        outcome: "executed", "failed" or "skipped"
        difficulty: Controller difficulty at the time
        elapsed_ms: Time spent in the cycle so far
        error: Exception text for failures
    """
    _ensure_handler()

    timestamp = datetime.now().isoformat()
    cost = ','.join(f"{k}={v:g}" for k, v in sorted(decision.cost.items())) if decision.cost else "-"
    line = (
        f"{timestamp} player={player_id} difficulty={difficulty or '-'} "
        f"outcome={outcome} kind={decision.kind_value} action={decision.action_id} "
        f"priority={decision.priority} benefit={decision.expected_benefit:g} "
        f"cost={cost} elapsed={elapsed_ms:.1f}ms"
    )
    if error:
        line += f" error={error}"
    decision_logger.info(line)


def rotate_decision_log(label: str = None):
    """
    Archive the current decision log as ai_decisions_<stamp>_<label>.log and
    start a fresh one. Does nothing if no decision was logged yet.
    """
    global _file_handler

    if _file_handler is None:
        return

    decision_logger.removeHandler(_file_handler)
    _file_handler.close()
    _file_handler = None

    stamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    suffix = label.replace(' ', '_') if label else "run"
    archive = LOG_DIR / f"ai_decisions_{stamp}_{suffix}.log"
    try:
        if DECISION_LOG_PATH.exists() and DECISION_LOG_PATH.stat().st_size > 0:
            shutil.move(str(DECISION_LOG_PATH), str(archive))
            logging.getLogger(__name__).info(f"Decision log archived to {archive.name}")
    except OSError as e:
        logging.getLogger(__name__).error(f"Could not archive decision log: {e}")

    _ensure_handler()


def flush():
    if _file_handler:
        _file_handler.flush()
