from abc import ABC, abstractmethod
from typing import Any


class BaseOddsProvider(ABC):
    """Abstract base class for per-fixture odds providers."""

    @abstractmethod
    async def get_prematch_odds(self, fixture_id: int) -> dict[str, Any]:
        """Fetch pre-match odds for one fixture.

        Returns the decoded provider body. Raises UpstreamUnavailable on any
        transport or non-2xx failure and ConfigurationError when credentials
        are missing.
        """
        ...

    @abstractmethod
    async def get_live_odds(self, fixture_id: int) -> dict[str, Any]:
        """Fetch in-play odds for one fixture. Same contract as get_prematch_odds."""
        ...

    async def get_odds(self, fixture_id: int, *, live: bool = False) -> dict[str, Any]:
        if live:
            return await self.get_live_odds(fixture_id)
        return await self.get_prematch_odds(fixture_id)
