from .context import DaemonContext, DaemonState, DaemonStatus, HistoryEntry, resident_memory_mb
from .service import (
    check_existing_daemon,
    daemon_alive,
    health_tick,
    load_state,
    request_shutdown,
    remove_pid_file,
    run_session,
    save,
    shutdown,
    start_daemon,
    write_pid_file,
)

__all__ = [
    'DaemonContext',
    'DaemonState',
    'DaemonStatus',
    'HistoryEntry',
    'resident_memory_mb',
    'check_existing_daemon',
    'daemon_alive',
    'health_tick',
    'load_state',
    'request_shutdown',
    'remove_pid_file',
    'run_session',
    'save',
    'shutdown',
    'start_daemon',
    'write_pid_file',
]
