"""
ExecutionEngine - runs a command list against the automation transport.

Commands run strictly in order. Every UI effect is an AutomationIntent sent
through the transport; delays go through an injectable async sleep so
tests never wait on a real clock.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from ..config import ExecutorConfig
from ..domain import (
    AutomationIntent,
    Command,
    CommandFailureContext,
    ExecutionLogEntry,
    ExecutionResult,
    ExecutionStatus,
    FailureEntry,
    IntentResult,
    UnsupportedCommandContext,
)
from ..errors import CommandExecutionError, CommandRejectedError, UnknownCommandError
from ..interfaces import IAutomationTransport
from ..utils import new_id
from .dispatch import SupportedCommand, resolve

logger = logging.getLogger("autotester.executor")

Sleep = Callable[[float], Awaitable[None]]


class ExecutionEngine:
    """Executes UI commands for one website attempt."""

    def __init__(self, transport: IAutomationTransport, session_id: str, website_id: str,
                 config: Optional[ExecutorConfig] = None,
                 base_url: str = "http://localhost:5173",
                 sleep: Optional[Sleep] = None):
        self.transport = transport
        self.session_id = session_id
        self.website_id = website_id
        self.config = config or ExecutorConfig()
        self.base_url = base_url.rstrip("/")
        self._sleep = sleep or asyncio.sleep
        self.logs: List[ExecutionLogEntry] = []
        self.failures: List[FailureEntry] = []
        self.screenshots: List[str] = []
        self.intents: List[AutomationIntent] = []
        self._current: Optional[Command] = None

    # ------------------------------------------------------------------
    # Handler-facing helpers
    # ------------------------------------------------------------------

    def resolve_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    async def pause(self, ms: float):
        if ms > 0:
            await self._sleep(ms / 1000.0)

    async def send(self, operation: str, **parameters) -> IntentResult:
        """
        Dispatch one intent.

        Raises:
            CommandExecutionError: the transport reported failure or raised
        """
        intent = AutomationIntent(operation=operation, parameters=parameters)
        self.intents.append(intent)
        command_id = self._current.id if self._current else None
        try:
            result = await self.transport.dispatch(intent)
        except CommandExecutionError:
            raise
        except Exception as e:
            raise CommandExecutionError(f"{operation} failed: {e}", command_id) from e
        if not result.success:
            raise CommandExecutionError(result.error or f"{operation} failed", command_id)
        return result

    def record_screenshot(self, name: str):
        if self.config.save_screenshots:
            self.screenshots.append(name)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_commands(self, commands: List[Command]) -> ExecutionResult:
        """
        Execute a batch of commands for one website build.

        Returns:
            ExecutionResult with one log entry per command. A command that
            succeeds on retry counts once, as a success.
        """
        start = time.monotonic()
        successful = 0
        failed = 0

        logger.info(f"Starting execution of {len(commands)} commands")
        logger.debug(f"Session: {self.session_id}, Website: {self.website_id}")

        for command in commands:
            command_start = time.monotonic()
            self._current = command
            ok, error = await self._execute_with_retry(command)
            self._current = None

            if ok:
                successful += 1
            else:
                failed += 1

            self.logs.append(ExecutionLogEntry(
                session_id=self.session_id,
                website_id=self.website_id,
                command_id=command.id,
                action=command.action,
                status=ExecutionStatus.SUCCESS.value if ok else ExecutionStatus.FAILED.value,
                duration_ms=(time.monotonic() - command_start) * 1000,
                error=error,
            ))

            await self.pause(self.config.inter_command_delay_ms)

        total_ms = (time.monotonic() - start) * 1000
        logger.info(
            f"Execution complete: {successful}/{len(commands)} successful in {total_ms:.0f}ms"
        )
        return ExecutionResult(
            success=failed == 0,
            logs=list(self.logs),
            failures=list(self.failures),
            screenshots=list(self.screenshots),
            total_commands=len(commands),
            successful_commands=successful,
            failed_commands=failed,
            total_time_ms=total_ms,
            intents=list(self.intents),
        )

    async def _execute_with_retry(self, command: Command):
        """Returns (succeeded, last_error)."""
        resolution = resolve(command.category, command.action)
        if not isinstance(resolution, SupportedCommand):
            error = UnknownCommandError(command.category, command.action, resolution.reason)
            logger.warning(f"{error} ({command.id})")
            self.failures.append(FailureEntry(
                id=new_id("failure"),
                website_id=self.website_id,
                step=f"{command.category}/{command.action}",
                error_type="unknown_command",
                error_message=str(error),
                context=UnsupportedCommandContext(
                    command_id=command.id,
                    category=command.category,
                    action=command.action,
                    reason=resolution.reason,
                ),
            ))
            return False, str(error)

        handler = resolution.handler
        logger.debug(f"Executing: {command.category}/{command.action}")
        try:
            await handler(self, command)
            return True, None
        except CommandRejectedError as e:
            logger.warning(f"Rejected {command.id}: {e}")
            self._log_failure(command, "command_rejected", str(e))
            return False, str(e)
        except CommandExecutionError as e:
            error = str(e)
            failure = self._log_failure(command, "command_execution", error)

        limit = min(max(command.retries, 0), self.config.max_retries)
        for attempt in range(1, limit + 1):
            logger.info(f"Retry {attempt}/{limit} for {command.action}")
            await self.pause(self.config.retry_delay_ms)
            failure.recovery_attempts = attempt
            try:
                await handler(self, command)
            except CommandExecutionError as e:
                error = str(e)
                continue
            except CommandRejectedError as e:
                error = str(e)
                break
            failure.resolved = True
            return True, None
        return False, error

    def _log_failure(self, command: Command, error_type: str, message: str) -> FailureEntry:
        failure = FailureEntry(
            id=new_id("failure"),
            website_id=self.website_id,
            step=f"{command.category}/{command.action}",
            error_type=error_type,
            error_message=message,
            context=CommandFailureContext(
                command_id=command.id,
                target=command.target,
                value=command.value,
            ),
        )
        self.failures.append(failure)
        return failure

    async def close(self):
        """Enqueue the close intent; transport failures here are only logged."""
        try:
            await self.send("close")
        except CommandExecutionError as e:
            logger.warning(f"Close failed: {e}")
