"""
Daemon state and the context threaded through every daemon operation.
"""
import asyncio
import gc
import os
import resource
import sys
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, Optional

from ..config import AutotesterPaths, DaemonConfig, Limits
from ..domain import _iso, _parse_dt, utc_now


class DaemonStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ERROR = "error"


@dataclass
class HistoryEntry:
    session_id: str
    score: float
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self):
        return {"session_id": self.session_id, "score": self.score, "timestamp": _iso(self.timestamp)}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "HistoryEntry":
        return HistoryEntry(
            session_id=d.get("session_id", d.get("sessionId", "")),
            score=float(d.get("score", 0.0)),
            timestamp=_parse_dt(d.get("timestamp")) or utc_now(),
        )


def _history(limit: int = Limits.HISTORY_LIMIT) -> Deque[HistoryEntry]:
    return deque(maxlen=limit)


@dataclass
class DaemonState:
    status: str = DaemonStatus.IDLE.value
    current_session_id: Optional[str] = None
    last_session_id: Optional[str] = None
    last_session_score: float = 0.0
    total_sessions: int = 0
    total_websites: int = 0
    started_at: Optional[datetime] = None
    last_activity_at: datetime = field(default_factory=utc_now)
    consecutive_errors: int = 0
    history: Deque[HistoryEntry] = field(default_factory=_history)

    def record_session(self, session_id: str, score: float, websites: int):
        """Book a completed session; the oldest history entry is evicted past the limit."""
        self.status = DaemonStatus.IDLE.value
        self.current_session_id = None
        self.last_session_id = session_id
        self.last_session_score = score
        self.total_sessions += 1
        self.total_websites += websites
        self.consecutive_errors = 0
        self.history.append(HistoryEntry(session_id, score))

    def to_dict(self):
        return {
            "status": self.status,
            "current_session_id": self.current_session_id,
            "last_session_id": self.last_session_id,
            "last_session_score": self.last_session_score,
            "total_sessions": self.total_sessions,
            "total_websites": self.total_websites,
            "started_at": _iso(self.started_at),
            "last_activity_at": _iso(self.last_activity_at),
            "consecutive_errors": self.consecutive_errors,
            "history": [h.to_dict() for h in self.history],
        }

    @staticmethod
    def from_dict(d: Dict[str, Any], history_limit: int = Limits.HISTORY_LIMIT) -> "DaemonState":
        history = _history(history_limit)
        for entry in d.get("history") or []:
            if isinstance(entry, dict):
                history.append(HistoryEntry.from_dict(entry))
        return DaemonState(
            status=d.get("status", DaemonStatus.IDLE.value),
            current_session_id=d.get("current_session_id"),
            last_session_id=d.get("last_session_id"),
            last_session_score=float(d.get("last_session_score") or 0.0),
            total_sessions=int(d.get("total_sessions") or 0),
            total_websites=int(d.get("total_websites") or 0),
            started_at=_parse_dt(d.get("started_at")),
            last_activity_at=_parse_dt(d.get("last_activity_at")) or utc_now(),
            consecutive_errors=int(d.get("consecutive_errors") or 0),
            history=history,
        )


STATM_PATH = "/proc/self/statm"


def resident_memory_mb() -> float:
    """
    Current resident set size of this process, in megabytes.

    Read from /proc where available. Elsewhere only the peak RSS is
    exposed, which never falls after memory is released.
    """
    try:
        with open(STATM_PATH, "r", encoding="ascii") as f:
            resident_pages = int(f.read().split()[1])
        return resident_pages * os.sysconf("SC_PAGE_SIZE") / (1024 * 1024)
    except (OSError, ValueError, IndexError):
        return peak_memory_mb()


def peak_memory_mb() -> float:
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    if sys.platform == "darwin":
        return usage / (1024 * 1024)
    return usage / 1024


@dataclass
class DaemonContext:
    """Everything a daemon operation reads or mutates. Replaces process globals."""
    config: DaemonConfig
    paths: AutotesterPaths
    orchestrator_factory: Callable[[], Any]
    state: DaemonState = field(default_factory=DaemonState)
    memory_probe: Callable[[], float] = resident_memory_mb
    gc_hook: Callable[[], Any] = gc.collect
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    orchestrator: Optional[Any] = None
    shutdown_task: Optional["asyncio.Task"] = None

    def get_orchestrator(self):
        """Build the orchestrator on first use and keep it for later sessions."""
        if self.orchestrator is None:
            self.orchestrator = self.orchestrator_factory()
        return self.orchestrator
