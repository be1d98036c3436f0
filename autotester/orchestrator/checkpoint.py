import logging
from typing import Optional

from ..config import SessionConfig
from ..domain import Session, utc_now
from ..errors import PersistenceError
from ..utils import load_json, save_json

logger = logging.getLogger("autotester.checkpoint")


def save_checkpoint(path: str, session: Session, config: Optional[SessionConfig] = None) -> bool:
    """Overwrite the checkpoint with the current session. Failures are logged, not raised."""
    payload = {
        "session": session.to_dict(),
        "config": config.to_dict() if config else None,
        "timestamp": utc_now().isoformat(),
    }
    try:
        save_json(path, payload)
        return True
    except PersistenceError as e:
        logger.warning(f"Failed to save checkpoint: {e}")
        return False


def load_checkpoint(path: str) -> Optional[Session]:
    """Latest checkpointed session, or None when missing or unreadable."""
    try:
        data = load_json(path)
    except PersistenceError as e:
        logger.warning(f"Failed to read checkpoint: {e}")
        return None
    if not isinstance(data, dict) or not isinstance(data.get("session"), dict):
        return None
    try:
        return Session.from_dict(data["session"])
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Checkpoint is malformed: {e}")
        return None
