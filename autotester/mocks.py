from typing import Callable, Dict, List, Optional, Set

from .domain import AutomationIntent, BusinessProfile, Industry, IntentResult, Template
from .interfaces import IAutomationTransport, IWebsiteGenerator


class MockAutomationTransport(IAutomationTransport):
    """
    Records every intent and succeeds unless told otherwise.

    Failure can be requested three ways:
      - fail_all: every intent fails
      - fail_operations: intents whose operation is in the set fail
      - fail_times: {operation: n} fails the first n intents of that operation
    `raise_on` makes matching intents raise instead of returning failure.
    """

    def __init__(self, fail_all: bool = False,
                 fail_operations: Optional[Set[str]] = None,
                 fail_times: Optional[Dict[str, int]] = None,
                 raise_on: Optional[Set[str]] = None,
                 fail_when: Optional[Callable[[AutomationIntent], bool]] = None):
        self.fail_all = fail_all
        self.fail_operations = set(fail_operations or ())
        self.fail_times = dict(fail_times or {})
        self.raise_on = set(raise_on or ())
        self.fail_when = fail_when
        self.intents: List[AutomationIntent] = []
        self.started = False
        self.closed = False

    async def start(self):
        self.started = True

    async def dispatch(self, intent: AutomationIntent) -> IntentResult:
        self.intents.append(intent)
        if intent.operation == "close":
            self.closed = True
        if intent.operation in self.raise_on:
            raise RuntimeError(f"transport error on {intent.operation}")
        if self._should_fail(intent):
            return IntentResult(success=False, error=f"mock failure: {intent.operation}")
        return IntentResult(success=True)

    def _should_fail(self, intent: AutomationIntent) -> bool:
        if self.fail_all or intent.operation in self.fail_operations:
            return True
        remaining = self.fail_times.get(intent.operation, 0)
        if remaining > 0:
            self.fail_times[intent.operation] = remaining - 1
            return True
        return bool(self.fail_when and self.fail_when(intent))

    async def close(self):
        self.closed = True

    def operations(self) -> List[str]:
        return [i.operation for i in self.intents]


class MockWebsiteGenerator(IWebsiteGenerator):
    """Returns a fixed base URL and remembers what it was asked to build."""

    def __init__(self, base_url: Optional[str] = "http://mock.local", fail: bool = False):
        self.base_url = base_url
        self.fail = fail
        self.requests: List[BusinessProfile] = []

    async def prepare(self, industry: Industry, template: Template,
                      profile: BusinessProfile) -> Optional[str]:
        self.requests.append(profile)
        if self.fail:
            raise RuntimeError(f"generation failed for {profile.name}")
        return self.base_url
