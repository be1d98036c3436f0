"""
Background service around the SessionOrchestrator.

Single-instance enforcement through a PID file, persisted DaemonState,
a periodic health tick and a consecutive-failure circuit breaker.
Every operation takes the DaemonContext explicitly.
"""
import asyncio
import logging
import os
import signal
from typing import Optional

from ..config import SessionConfig
from ..domain import SessionReport, utc_now
from ..errors import DaemonCircuitOpen, PersistenceError
from ..logger import SessionLogger
from ..utils import load_json, new_id, save_json
from .context import DaemonContext, DaemonState, DaemonStatus
from .pidfile import is_process_alive, read_pid, remove_pid, write_pid

logger = logging.getLogger("autotester.daemon")
log = SessionLogger("autotester.daemon")


# ============================================================================
# State
# ============================================================================

def load_state(ctx: DaemonContext) -> DaemonState:
    """Replace ctx.state with the persisted state; start fresh when unreadable."""
    try:
        data = load_json(ctx.paths.daemon_state)
    except PersistenceError as e:
        logger.warning(f"Failed to load state, starting fresh: {e}")
        return ctx.state
    if not isinstance(data, dict):
        return ctx.state

    try:
        state = DaemonState.from_dict(data, ctx.config.history_limit)
    except (TypeError, ValueError) as e:
        logger.warning(f"Malformed state file, starting fresh: {e}")
        return ctx.state

    # "running" stays only while the PID file owner is alive
    if state.status == DaemonStatus.RUNNING.value and not daemon_alive(ctx):
        logger.warning(f"Previous session {state.current_session_id} did not finish; resetting to idle")
        state.status = DaemonStatus.IDLE.value
        state.current_session_id = None
    ctx.state = state
    logger.info("Loaded previous state")
    return state


def save(ctx: DaemonContext) -> bool:
    try:
        save_json(ctx.paths.daemon_state, ctx.state.to_dict())
        return True
    except PersistenceError as e:
        logger.error(f"Failed to save state: {e}")
        return False


# ============================================================================
# PID file
# ============================================================================

def daemon_alive(ctx: DaemonContext) -> bool:
    """True if the PID file names a live process. Never touches the file."""
    pid = read_pid(ctx.paths.pid_file)
    return pid is not None and is_process_alive(pid)


def check_existing_daemon(ctx: DaemonContext) -> bool:
    """True if a live daemon owns the PID file. A stale file is removed."""
    pid = read_pid(ctx.paths.pid_file)
    if pid is None:
        if os.path.exists(ctx.paths.pid_file):
            remove_pid(ctx.paths.pid_file)
        return False
    if is_process_alive(pid):
        log.error(f"Daemon already running with PID {pid}")
        return True
    logger.info("Stale PID file found, removing")
    remove_pid(ctx.paths.pid_file)
    return False


def write_pid_file(ctx: DaemonContext) -> int:
    pid = write_pid(ctx.paths.pid_file)
    logger.info(f"PID file written: {pid}")
    return pid


def remove_pid_file(ctx: DaemonContext) -> bool:
    return remove_pid(ctx.paths.pid_file)


# ============================================================================
# Health
# ============================================================================

def health_tick(ctx: DaemonContext) -> float:
    """Sample memory, collect garbage above the ceiling, persist last activity."""
    memory_mb = ctx.memory_probe()
    if memory_mb > ctx.config.max_memory_mb:
        log.warning(f"Memory usage high: {memory_mb:.0f}MB. Triggering garbage collection.")
        ctx.gc_hook()

    ctx.state.last_activity_at = utc_now()
    save(ctx)
    logger.debug(f"Health check OK. Memory: {memory_mb:.0f}MB, Status: {ctx.state.status}")
    return memory_mb


# ============================================================================
# Sessions
# ============================================================================

async def run_session(ctx: DaemonContext, config: Optional[SessionConfig] = None) -> Optional[SessionReport]:
    """
    Run one orchestrator session and book the outcome into DaemonState.

    Returns None when a session is already running or the session failed.
    Reaching max_consecutive_errors shuts the daemon down.
    """
    if ctx.state.status == DaemonStatus.RUNNING.value:
        log.warning("Session already running, skipping")
        return None

    config = config or SessionConfig()
    session_id = new_id("session")
    state = ctx.state
    state.status = DaemonStatus.RUNNING.value
    state.current_session_id = session_id
    state.started_at = utc_now()
    save(ctx)
    log.phase(f"Starting session {session_id} with {config.website_count} websites")

    try:
        orchestrator = ctx.get_orchestrator()
        report = await orchestrator.run_session(config, session_id=session_id)
    except Exception as e:
        state.status = DaemonStatus.ERROR.value
        state.current_session_id = None
        state.consecutive_errors += 1
        save(ctx)
        log.error(f"Session {session_id} failed: {e}")

        if state.consecutive_errors >= ctx.config.max_consecutive_errors:
            log.error(f"{DaemonCircuitOpen(state.consecutive_errors)}. Stopping daemon.")
            await shutdown(ctx)
        return None

    state.record_session(report.session_id, report.average_score, report.total_websites)
    save(ctx)
    log.success(f"Session {report.session_id} completed. Average score: {report.average_score:.2f}")
    return report


# ============================================================================
# Lifecycle
# ============================================================================

async def shutdown(ctx: DaemonContext):
    log.info("Shutting down daemon...")
    if ctx.orchestrator is not None and ctx.orchestrator.is_running:
        ctx.orchestrator.stop()
    ctx.state.status = DaemonStatus.IDLE.value
    save(ctx)
    remove_pid_file(ctx)
    ctx.stop_event.set()
    log.info("Daemon stopped")


def _log_shutdown_result(task: "asyncio.Task"):
    if task.cancelled():
        logger.warning("Shutdown task was cancelled")
    elif task.exception() is not None:
        logger.error(f"Shutdown failed: {task.exception()!r}")


def request_shutdown(ctx: DaemonContext) -> "asyncio.Task":
    """Schedule shutdown from a signal; the task is kept on ctx.shutdown_task."""
    if ctx.shutdown_task is None or ctx.shutdown_task.done():
        ctx.shutdown_task = asyncio.ensure_future(shutdown(ctx))
        ctx.shutdown_task.add_done_callback(_log_shutdown_result)
    return ctx.shutdown_task


def _install_signal_handlers(ctx: DaemonContext):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown, ctx)
        except (NotImplementedError, RuntimeError):
            # no loop signal support on this platform
            logger.debug(f"Signal handler for {sig} not installed")


async def start_daemon(ctx: DaemonContext, session_config: Optional[SessionConfig] = None) -> int:
    """
    Run the daemon until the stop event is set.

    Health ticks every `health_check_interval_s`; when `session_interval_s`
    is configured a session also starts on that period. Returns the process
    exit code: 1 if another daemon is alive, else 0.
    """
    if check_existing_daemon(ctx):
        return 1

    ctx.paths.ensure()
    # before the PID file exists, so a "running" left by a dead daemon is reset
    load_state(ctx)
    write_pid_file(ctx)

    log.banner(
        "AUTONOMOUS TESTER - DAEMON STARTED",
        f"PID: {os.getpid()}",
        f"Log file: {ctx.paths.daemon_log}",
        f"State file: {ctx.paths.daemon_state}",
    )
    _install_signal_handlers(ctx)

    loop = asyncio.get_running_loop()
    interval = ctx.config.session_interval_s
    next_health = loop.time() + ctx.config.health_check_interval_s
    next_session = loop.time() if interval else None
    if next_session is None:
        log.info("Daemon ready. Waiting for commands...")

    try:
        while not ctx.stop_event.is_set():
            now = loop.time()
            if next_session is not None and now >= next_session:
                await run_session(ctx, session_config)
                next_session = loop.time() + interval
                continue
            if now >= next_health:
                health_tick(ctx)
                next_health = now + ctx.config.health_check_interval_s

            deadline = next_health if next_session is None else min(next_health, next_session)
            try:
                await asyncio.wait_for(ctx.stop_event.wait(), timeout=max(0.0, deadline - loop.time()))
            except asyncio.TimeoutError:
                pass
    finally:
        if ctx.shutdown_task is not None:
            await asyncio.gather(ctx.shutdown_task, return_exceptions=True)
        if os.path.exists(ctx.paths.pid_file):
            await shutdown(ctx)
    return 0
