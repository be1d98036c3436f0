"""
Operator CLI: start, stop, status, run [n], history, trends, cleanup, help.

Exit codes: 0 on success, 1 when a daemon is already running
(or a requested session produced no report).
"""
import argparse
import asyncio
import os
import signal
import sys
from dataclasses import replace
from typing import List, Optional

from .config import AutotesterPaths, DaemonConfig, build_paths, load_session_config
from .daemon import DaemonContext, daemon_alive, load_state, run_session, start_daemon
from .daemon.pidfile import is_process_alive, read_pid, remove_pid
from .logger import configure_logging
from .mocks import MockAutomationTransport
from .orchestrator import SessionOrchestrator
from .reporting import analyze_trends, cleanup_old_logs

COMMANDS = ("start", "stop", "status", "run", "history", "trends", "cleanup", "help")

HELP_TEXT = """
╔══════════════════════════════════════════════════════════════════╗
║           AUTONOMOUS TESTER - HELP                               ║
╠══════════════════════════════════════════════════════════════════╣
║  COMMANDS:                                                       ║
║    start        Start the daemon in the foreground               ║
║    stop         Stop the running daemon                          ║
║    status       Show current daemon status                       ║
║    run [n]      Run a session with n websites (default: 10)      ║
║    history      Show session history                             ║
║    trends       Show performance trends                          ║
║    cleanup      Clean up old log files                           ║
║    help         Show this help message                           ║
║                                                                  ║
║  USAGE:                                                          ║
║    autotester start --interval 3600  - Session every hour        ║
║    autotester run 5                  - Single session, 5 sites   ║
║    autotester status                 - Check daemon status       ║
╚══════════════════════════════════════════════════════════════════╝
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autotester", description="Autonomous website builder tester")
    parser.add_argument("command", nargs="?", default="help", choices=COMMANDS, help="Operation to run")
    parser.add_argument("count", nargs="?", type=int, default=None, help="Websites per session (run)")
    parser.add_argument("--root", type=str, default=None, help="Directory holding .autotester state")
    parser.add_argument("--config", type=str, default=None, help="Session config JSON file")
    parser.add_argument("--base-url", type=str, default=None, help="Website builder URL")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between daemon sessions (start)")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--dry-run", action="store_true", help="Use the recording transport instead of a browser")
    parser.add_argument("--max-files", type=int, default=None, help="Log files to keep (cleanup)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def make_orchestrator_factory(paths: AutotesterPaths, headless: bool, dry_run: bool):
    def factory() -> SessionOrchestrator:
        if dry_run:
            transport = MockAutomationTransport()
        else:
            from .execution.playwright_transport import PlaywrightTransport
            transport = PlaywrightTransport(headless=headless, screenshot_dir=paths.screenshot_dir)
        return SessionOrchestrator(transport, paths)
    return factory


def build_context(args, paths: AutotesterPaths, headless: bool = True) -> DaemonContext:
    config = DaemonConfig(session_interval_s=args.interval)
    return DaemonContext(
        config=config,
        paths=paths,
        orchestrator_factory=make_orchestrator_factory(paths, headless, args.dry_run),
    )


# ============================================================================
# Commands
# ============================================================================

def cmd_start(args, paths: AutotesterPaths) -> int:
    session_config = _session_config(args)
    ctx = build_context(args, paths, session_config.headless)
    return asyncio.run(start_daemon(ctx, session_config))


def cmd_stop(args, paths: AutotesterPaths) -> int:
    pid = read_pid(paths.pid_file)
    if pid is None or not is_process_alive(pid):
        remove_pid(paths.pid_file)
        print("ℹ️ No daemon running")
        return 0
    os.kill(pid, signal.SIGTERM)
    print(f"🛑 Sent stop signal to daemon (PID {pid})")
    return 0


def cmd_run(args, paths: AutotesterPaths) -> int:
    session_config = _session_config(args)
    if args.count:
        session_config = replace(session_config, website_count=args.count)

    ctx = build_context(args, paths, session_config.headless)
    if daemon_alive(ctx):
        print(f"❌ Daemon running with PID {read_pid(paths.pid_file)}; stop it before a manual run")
        return 1
    load_state(ctx)

    async def _run():
        try:
            return await run_session(ctx, session_config)
        finally:
            if ctx.orchestrator is not None:
                await ctx.orchestrator.transport.close()

    report = asyncio.run(_run())
    if report is None:
        print("❌ Session failed; see the log for details")
        return 1
    print(f"\n✅ Session {report.session_id} complete")
    print(f"📊 Successful: {report.successful_websites}/{report.total_websites}, "
          f"average score {report.average_score:.2f}")
    print(f"📂 Reports: {paths.report_dir}")
    return 0


def cmd_status(args, paths: AutotesterPaths) -> int:
    ctx = build_context(args, paths)
    state = load_state(ctx)
    pid = read_pid(paths.pid_file)
    alive = daemon_alive(ctx)

    rows = [
        ("Status", state.status),
        ("Daemon PID", f"{pid} (alive)" if alive else "None"),
        ("Current Session", state.current_session_id or "None"),
        ("Last Session", state.last_session_id or "None"),
        ("Last Score", f"{state.last_session_score:.2f}"),
        ("Total Sessions", str(state.total_sessions)),
        ("Total Websites", str(state.total_websites)),
        ("Consecutive Errors", str(state.consecutive_errors)),
        ("Last Activity", state.last_activity_at.isoformat()),
    ]
    print("╔" + "═" * 66 + "╗")
    print("║           AUTONOMOUS TESTER - STATUS".ljust(67) + "║")
    print("╠" + "═" * 66 + "╣")
    for label, value in rows:
        print(f"║ {(label + ':').ljust(20)} {value.ljust(43)}║")
    print("╚" + "═" * 66 + "╝")
    return 0


def cmd_history(args, paths: AutotesterPaths) -> int:
    ctx = build_context(args, paths)
    state = load_state(ctx)
    print("\n📊 SESSION HISTORY (Last 10)\n")
    print("Session ID                    | Score  | Timestamp")
    print("------------------------------|--------|------------------------")
    for entry in list(state.history)[-10:]:
        print(f"{entry.session_id.ljust(30)}| {f'{entry.score:.2f}'.ljust(7)}| {entry.timestamp.isoformat()}")
    print("")
    return 0


def cmd_trends(args, paths: AutotesterPaths) -> int:
    trends = analyze_trends(paths.report_dir)
    print("\n📈 TREND ANALYSIS\n")
    print(f"Trend: {trends.trend.upper()}")
    print(f"Average Improvement: {trends.average_improvement:+.2f} points per session")
    print(f"\nScores: {' → '.join(f'{s:.1f}' for s in trends.scores) or 'none'}")
    print("\nPredictions:")
    for prediction in trends.predictions:
        print(f"  - {prediction}")
    print("")
    return 0


def cmd_cleanup(args, paths: AutotesterPaths) -> int:
    if args.max_files is not None:
        removed = cleanup_old_logs(paths.log_dir, args.max_files)
    else:
        removed = cleanup_old_logs(paths.log_dir)
    print(f"🧹 Cleanup completed: {removed} files removed")
    return 0


def cmd_help(args, paths: AutotesterPaths) -> int:
    print(HELP_TEXT)
    return 0


def _session_config(args):
    config = load_session_config(args.config)
    if args.base_url:
        config = replace(config, base_url=args.base_url)
    if args.headed:
        config = replace(config, headless=False)
    return config


HANDLERS = {
    "start": cmd_start,
    "stop": cmd_stop,
    "status": cmd_status,
    "run": cmd_run,
    "history": cmd_history,
    "trends": cmd_trends,
    "cleanup": cmd_cleanup,
    "help": cmd_help,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    paths = build_paths(args.root)

    log_file = None
    if args.command == "start":
        os.makedirs(paths.state_dir, exist_ok=True)
        log_file = paths.daemon_log
    configure_logging(args.verbose, log_file)

    return HANDLERS[args.command](args, paths)


if __name__ == "__main__":
    sys.exit(main())
