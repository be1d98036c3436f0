"""
Integration Tests: Daemon Flow

Tests collaboration between the daemon service, its persisted state
and the SessionOrchestrator.
"""
import asyncio
import json
import os
import random
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from autotester.config import AutotesterPaths, DaemonConfig, SessionConfig
from autotester.daemon import DaemonContext, request_shutdown, run_session, start_daemon, write_pid_file
from autotester.mocks import MockAutomationTransport
from autotester.orchestrator import SessionOrchestrator
from autotester.scoring import FlatHeuristic, QualityScorer
from autotester.utils import save_json


async def _no_sleep(seconds):
    return None


class TestDaemonFlow(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        import tempfile
        self.tmp = tempfile.TemporaryDirectory()
        self.paths = AutotesterPaths(root=self.tmp.name)
        self.paths.ensure()

    async def asyncTearDown(self):
        self.tmp.cleanup()

    def make_ctx(self, orchestrator=None, **config):
        factory = MagicMock(return_value=orchestrator)
        return DaemonContext(config=DaemonConfig(**config), paths=self.paths, orchestrator_factory=factory)

    def real_orchestrator(self):
        return SessionOrchestrator(MockAutomationTransport(), self.paths,
                                   scorer=QualityScorer(FlatHeuristic()),
                                   rng=random.Random(1), sleep=_no_sleep)

    def read_state(self):
        with open(self.paths.daemon_state, encoding="utf-8") as f:
            return json.load(f)

    async def test_successful_session_updates_state(self):
        ctx = self.make_ctx(self.real_orchestrator())

        report = await run_session(ctx, SessionConfig(website_count=2))

        self.assertIsNotNone(report)
        state = self.read_state()
        self.assertEqual(state["status"], "idle")
        self.assertIsNone(state["current_session_id"])
        self.assertEqual(state["last_session_id"], report.session_id)
        self.assertEqual(state["total_sessions"], 1)
        self.assertEqual(state["total_websites"], 2)
        self.assertEqual(state["consecutive_errors"], 0)
        self.assertEqual(state["history"][0]["session_id"], report.session_id)
        self.assertAlmostEqual(state["history"][0]["score"], 9.0)

    async def test_session_id_matches_daemon_state(self):
        ctx = self.make_ctx(self.real_orchestrator())
        seen = {}

        original = ctx.orchestrator_factory.return_value.run_session

        async def spy(config, session_id=None):
            seen["current"] = ctx.state.current_session_id
            seen["passed"] = session_id
            return await original(config, session_id=session_id)

        ctx.orchestrator_factory.return_value.run_session = spy
        report = await run_session(ctx, SessionConfig(website_count=1))

        self.assertEqual(seen["current"], seen["passed"])
        self.assertEqual(report.session_id, seen["passed"])

    async def test_circuit_breaker_after_five_failures(self):
        orchestrator = MagicMock()
        orchestrator.run_session = AsyncMock(side_effect=RuntimeError("browser crashed"))
        orchestrator.is_running = False
        ctx = self.make_ctx(orchestrator)
        write_pid_file(ctx)

        for attempt in range(4):
            self.assertIsNone(await run_session(ctx))
            self.assertEqual(ctx.state.status, "error")
            self.assertEqual(ctx.state.consecutive_errors, attempt + 1)
            self.assertTrue(os.path.exists(self.paths.pid_file))

        self.assertIsNone(await run_session(ctx))

        self.assertEqual(ctx.state.status, "idle")
        self.assertEqual(ctx.state.consecutive_errors, 5)
        self.assertFalse(os.path.exists(self.paths.pid_file))
        self.assertTrue(ctx.stop_event.is_set())
        self.assertEqual(self.read_state()["status"], "idle")

    async def test_success_resets_error_count(self):
        orchestrator = MagicMock()
        orchestrator.is_running = False
        good = MagicMock(session_id="s_ok", average_score=8.0, total_websites=3)
        orchestrator.run_session = AsyncMock(side_effect=[RuntimeError("flaky"), RuntimeError("flaky"), good])
        ctx = self.make_ctx(orchestrator)

        await run_session(ctx)
        await run_session(ctx)
        self.assertEqual(ctx.state.consecutive_errors, 2)

        await run_session(ctx)
        self.assertEqual(ctx.state.consecutive_errors, 0)
        self.assertEqual(ctx.state.status, "idle")
        self.assertEqual(ctx.state.total_websites, 3)

    async def test_start_refuses_when_daemon_alive(self):
        ctx = self.make_ctx()
        write_pid_file(ctx)

        self.assertEqual(await start_daemon(ctx), 1)
        self.assertTrue(os.path.exists(self.paths.pid_file))

    async def test_start_runs_periodic_sessions_until_stopped(self):
        orchestrator = MagicMock()
        orchestrator.is_running = False
        calls = []

        async def fake_run(config, session_id=None):
            calls.append(session_id)
            if len(calls) == 2:
                ctx.stop_event.set()
            return MagicMock(session_id=session_id, average_score=7.0, total_websites=config.website_count)

        orchestrator.run_session = fake_run
        ctx = self.make_ctx(orchestrator, session_interval_s=0.01, health_check_interval_s=0.01)

        with patch("autotester.daemon.service._install_signal_handlers"):
            code = await start_daemon(ctx, SessionConfig(website_count=1))

        self.assertEqual(code, 0)
        self.assertEqual(len(calls), 2)
        self.assertEqual(ctx.state.total_sessions, 2)
        self.assertFalse(os.path.exists(self.paths.pid_file))
        self.assertEqual(self.read_state()["status"], "idle")

    async def test_start_resets_state_left_by_dead_daemon(self):
        save_json(self.paths.daemon_state, {"status": "running", "current_session_id": "session_old"})
        ctx = self.make_ctx(health_check_interval_s=0.01)
        seen = {}

        def probe():
            seen["status"] = ctx.state.status
            seen["current"] = ctx.state.current_session_id
            ctx.stop_event.set()
            return 10.0

        ctx.memory_probe = probe

        with patch("autotester.daemon.service._install_signal_handlers"):
            self.assertEqual(await start_daemon(ctx), 0)

        self.assertEqual(seen, {"status": "idle", "current": None})

    async def test_signal_shutdown_task_is_tracked(self):
        ctx = self.make_ctx()
        write_pid_file(ctx)

        task = request_shutdown(ctx)
        self.assertIs(request_shutdown(ctx), task)
        await task

        self.assertIs(ctx.shutdown_task, task)
        self.assertTrue(ctx.stop_event.is_set())
        self.assertFalse(os.path.exists(self.paths.pid_file))

    async def test_failed_signal_shutdown_is_logged(self):
        ctx = self.make_ctx()

        with patch("autotester.daemon.service.shutdown", new=AsyncMock(side_effect=RuntimeError("disk full"))):
            with self.assertLogs("autotester.daemon", level="ERROR") as logs:
                task = request_shutdown(ctx)
                await asyncio.gather(task, return_exceptions=True)
                await asyncio.sleep(0)

        self.assertTrue(any("Shutdown failed" in line and "disk full" in line for line in logs.output))

    async def test_start_idles_with_health_ticks(self):
        ctx = self.make_ctx(health_check_interval_s=0.01)
        ticks = []

        def probe():
            ticks.append(1)
            if len(ticks) >= 2:
                ctx.stop_event.set()
            return 10.0

        ctx.memory_probe = probe

        with patch("autotester.daemon.service._install_signal_handlers"):
            code = await start_daemon(ctx)

        self.assertEqual(code, 0)
        self.assertGreaterEqual(len(ticks), 2)
        ctx.orchestrator_factory.assert_not_called()


if __name__ == '__main__':
    unittest.main()
