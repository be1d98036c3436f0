import logging
import os
from typing import Optional

logger = logging.getLogger("autotester.daemon")


def read_pid(path: str) -> Optional[int]:
    """PID stored in *path*, or None when missing or unparseable."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return int(f.read().strip())
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning(f"Unreadable PID file {path}: {e}")
        return None


def is_process_alive(pid: int) -> bool:
    """Liveness probe via signal 0."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # exists, owned by someone else
        return True
    except OSError:
        return False
    return True


def write_pid(path: str, pid: Optional[int] = None) -> int:
    pid = pid or os.getpid()
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(str(pid))
    return pid


def remove_pid(path: str) -> bool:
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Could not remove PID file {path}: {e}")
        return False
