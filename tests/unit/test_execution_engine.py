import json
import unittest
from unittest.mock import AsyncMock

from autotester.config import ExecutorConfig
from autotester.domain import Command, CommandFailureContext, UnsupportedCommandContext
from autotester.execution import ExecutionEngine
from autotester.mocks import MockAutomationTransport


def cmd(category, action, target=None, value=None, retries=1, cid="c1"):
    return Command(id=cid, category=category, action=action, target=target, value=value, retries=retries)


class TestExecutionEngine(unittest.IsolatedAsyncioTestCase):

    def make_engine(self, transport=None, config=None):
        self.transport = transport or MockAutomationTransport()
        self.sleep = AsyncMock()
        return ExecutionEngine(self.transport, "session_1", "website_1",
                               config=config, base_url="http://builder.test/", sleep=self.sleep)

    async def test_all_commands_succeed(self):
        engine = self.make_engine()
        commands = [
            cmd("navigation", "navigate", value="/merlin8", cid="c1"),
            cmd("form_fill", "fill_text", "business-name", "Acme", cid="c2"),
            cmd("verification", "snapshot", cid="c3"),
        ]

        result = await engine.execute_commands(commands)

        self.assertTrue(result.success)
        self.assertEqual(result.total_commands, 3)
        self.assertEqual(result.successful_commands, 3)
        self.assertEqual(result.failures, [])
        self.assertEqual([l.status for l in result.logs], ["success"] * 3)
        self.assertEqual(result.success_rate, 1.0)
        self.assertEqual(self.transport.operations(), ["navigate", "type", "snapshot"])
        self.assertEqual(self.transport.intents[0].parameters, {"url": "http://builder.test/merlin8"})

    async def test_retry_then_success_counts_once(self):
        engine = self.make_engine(MockAutomationTransport(fail_times={"click": 1}))

        result = await engine.execute_commands([cmd("form_fill", "click_button", "next-step-btn", "Next")])

        self.assertTrue(result.success)
        self.assertEqual(result.successful_commands, 1)
        self.assertEqual(result.failed_commands, 0)
        self.assertEqual(len(result.logs), 1)
        self.assertEqual(self.transport.operations().count("click"), 2)

        failure = result.failures[0]
        self.assertEqual(failure.error_type, "command_execution")
        self.assertEqual(failure.step, "form_fill/click_button")
        self.assertTrue(failure.resolved)
        self.assertEqual(failure.recovery_attempts, 1)
        self.assertIsInstance(failure.context, CommandFailureContext)
        self.sleep.assert_any_await(1.0)

    async def test_retries_exhausted(self):
        engine = self.make_engine(MockAutomationTransport(fail_operations={"click"}))

        result = await engine.execute_commands([cmd("form_fill", "click_button", "next", retries=2)])

        self.assertFalse(result.success)
        self.assertEqual(result.failed_commands, 1)
        self.assertEqual(self.transport.operations().count("click"), 3)
        self.assertFalse(result.failures[0].resolved)
        self.assertEqual(result.failures[0].recovery_attempts, 2)
        self.assertEqual(result.logs[0].status, "failed")
        self.assertIn("mock failure", result.logs[0].error)

    async def test_retries_capped_by_config(self):
        engine = self.make_engine(MockAutomationTransport(fail_operations={"hover"}),
                                  ExecutorConfig(max_retries=1))

        await engine.execute_commands([cmd("interaction", "hover", "nav-menu", retries=10)])

        self.assertEqual(self.transport.operations().count("hover"), 2)

    async def test_unknown_category_is_unsupported(self):
        engine = self.make_engine()

        result = await engine.execute_commands([cmd("teleport", "beam")])

        self.assertEqual(result.failed_commands, 1)
        self.assertEqual(self.transport.intents, [])
        failure = result.failures[0]
        self.assertEqual(failure.error_type, "unknown_command")
        self.assertIsInstance(failure.context, UnsupportedCommandContext)
        self.assertIn("Unknown command category: teleport", failure.context.reason)

    async def test_unknown_action_is_unsupported(self):
        engine = self.make_engine()

        result = await engine.execute_commands([cmd("navigation", "fly")])

        self.assertEqual(result.failures[0].context.reason, "Unknown navigation action: fly")
        self.assertEqual(result.failures[0].recovery_attempts, 0)

    async def test_rejected_command_is_not_retried(self):
        engine = self.make_engine()

        result = await engine.execute_commands([cmd("form_fill", "fill_text", "email", None, retries=3)])

        self.assertEqual(result.failed_commands, 1)
        self.assertEqual(result.failures[0].error_type, "command_rejected")
        self.assertNotIn("type", self.transport.operations())

    async def test_transport_exception_becomes_failure(self):
        engine = self.make_engine(MockAutomationTransport(raise_on={"hover"}))

        result = await engine.execute_commands([cmd("interaction", "hover", "cta", retries=0)])

        self.assertEqual(result.failures[0].error_type, "command_execution")
        self.assertIn("transport error", result.failures[0].error_message)

    async def test_wait_is_delegated_to_transport(self):
        engine = self.make_engine()

        await engine.execute_commands([cmd("interaction", "wait", value="250")])

        self.assertEqual(self.transport.intents[0].operation, "wait")
        self.assertEqual(self.transport.intents[0].parameters, {"time_ms": 250})
        # only the inter-command delay is slept by the engine
        self.sleep.assert_awaited_once_with(0.1)

    async def test_intents_per_handler_family(self):
        engine = self.make_engine()
        commands = [
            cmd("navigation", "go_back", cid="c1"),
            cmd("navigation", "refresh", cid="c2"),
            cmd("form_fill", "select_option", "country", "US", cid="c3"),
            cmd("form_fill", "fill_form", value=json.dumps({"email": "a@b.c"}), cid="c4"),
            cmd("form_fill", "submit_form", "contact-form", cid="c5"),
            cmd("verification", "verify_element", "hero-section", cid="c6"),
            cmd("verification", "verify_title", value="Acme", cid="c7"),
            cmd("interaction", "scroll", value="up", cid="c8"),
            cmd("interaction", "type_slowly", "search", "abc", cid="c9"),
            cmd("quality_check", "console_errors", cid="c10"),
            cmd("quality_check", "network_errors", cid="c11"),
        ]

        result = await engine.execute_commands(commands)

        self.assertTrue(result.success)
        ops = [(i.operation, i.parameters) for i in self.transport.intents]
        self.assertEqual(ops[0], ("navigate_back", {}))
        self.assertEqual(ops[1], ("press_key", {"key": "F5"}))
        self.assertEqual(ops[2], ("select", {"ref": "country", "element": "country", "values": ["US"]}))
        self.assertEqual(ops[3][1]["fields"][0]["value"], "a@b.c")
        self.assertEqual(ops[4], ("press_key", {"key": "Enter"}))
        self.assertEqual(ops[5], ("snapshot", {"ref": "hero-section"}))
        self.assertEqual(ops[6][0], "evaluate")
        self.assertEqual(ops[6][1]["expected"], "Acme")
        self.assertEqual(ops[7], ("press_key", {"key": "PageUp"}))
        self.assertTrue(ops[8][1]["slowly"])
        self.assertEqual(ops[9], ("console_messages", {"level": "error"}))
        self.assertEqual(ops[10], ("network_requests", {}))

    async def test_screenshots_recorded_when_enabled(self):
        engine = self.make_engine()
        result = await engine.execute_commands([cmd("quality_check", "screenshot", value="hero")])

        self.assertEqual(result.screenshots, ["hero.png"])
        self.assertEqual(self.transport.intents[0].parameters, {"filename": "hero.png"})

    async def test_screenshots_not_recorded_when_disabled(self):
        engine = self.make_engine(config=ExecutorConfig(save_screenshots=False))
        result = await engine.execute_commands([cmd("quality_check", "screenshot", value="hero")])

        self.assertEqual(result.screenshots, [])
        self.assertEqual(self.transport.operations(), ["screenshot"])

    async def test_close_sends_close_intent(self):
        engine = self.make_engine()
        await engine.close()

        self.assertEqual(self.transport.operations(), ["close"])
        self.assertTrue(self.transport.closed)

    async def test_close_failure_is_swallowed(self):
        engine = self.make_engine(MockAutomationTransport(fail_operations={"close"}))
        await engine.close()
        self.assertEqual(self.transport.operations(), ["close"])


if __name__ == '__main__':
    unittest.main()
