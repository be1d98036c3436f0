from abc import ABC, abstractmethod
from typing import Optional

from .domain import AutomationIntent, BusinessProfile, Industry, IntentResult, Template


# =============================================================================
# External collaborators
# =============================================================================

class IWebsiteGenerator(ABC):
    """Builds (or locates) the site under test for one attempt."""

    @abstractmethod
    async def prepare(self, industry: Industry, template: Template,
                      profile: BusinessProfile) -> Optional[str]:
        """
        Prepare a website for the given combination.

        Returns:
            Base URL the attempt should navigate against, or None to keep
            the session's configured base URL.
        """
        pass


class IAutomationTransport(ABC):
    """Browser-automation port. Every UI effect passes through `dispatch`."""

    @abstractmethod
    async def start(self):
        """Acquire the underlying browser resources."""
        pass

    @abstractmethod
    async def dispatch(self, intent: AutomationIntent) -> IntentResult:
        """
        Perform one automation intent.

        Returns:
            IntentResult; success=False signals a failed operation. Raised
            exceptions are treated the same way by the engine.
        """
        pass

    @abstractmethod
    async def close(self):
        pass


# =============================================================================
# Scoring
# =============================================================================

class IScoringHeuristic(ABC):
    """Per-category adjustment added to the success-rate base score."""

    @abstractmethod
    def adjust(self, category: str, base: float) -> float:
        pass
