"""QuoteRouter fans a request out to every eligible provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ...providers.base import ProviderKind, QuoteProvider
from .cancellation import CancellationToken
from .errors import NoQuoteAvailableError, QuoteCancelledError
from .models import Quote, QuoteRequest


class QuoteRouter:
    """Chooses the aggregator or bridge set for a request and ranks the results.

    Holds no state between calls; caching belongs to the quote store.
    """

    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._providers = list(providers)
        self._logger = logger or logging.getLogger(__name__)

    @property
    def aggregators(self) -> List[QuoteProvider]:
        return [p for p in self._providers if p.kind is ProviderKind.AGGREGATOR]

    @property
    def bridges(self) -> List[QuoteProvider]:
        return [p for p in self._providers if p.kind is ProviderKind.BRIDGE]

    def select_providers(self, request: QuoteRequest) -> List[QuoteProvider]:
        if request.is_same_chain:
            return self.aggregators

        bridges = self.bridges
        if request.has_attached_calls:
            composed = [b for b in bridges if b.supports_composed]
            skipped = [b.name for b in bridges if not b.supports_composed]
            if skipped:
                self._logger.debug("Skipping bridges without composed support: %s", ", ".join(skipped))
            return composed
        return bridges

    async def fetch_quotes(self, request: QuoteRequest, token: CancellationToken) -> List[Quote]:
        """Query eligible providers concurrently and return quotes best-first.

        Raises:
            QuoteCancelledError: `token` was cancelled before the batch settled.
            NoQuoteAvailableError: no provider produced a usable trade.
        """
        token.raise_if_cancelled()
        providers = self.select_providers(request)
        mode = "swap" if request.is_same_chain else "bridge"
        self._logger.debug(
            "Fetching %s quotes from %s",
            mode,
            [p.name for p in providers],
        )

        results = await asyncio.gather(
            *(provider.fetch(request, token) for provider in providers),
            return_exceptions=True,
        )

        if token.cancelled:
            raise QuoteCancelledError(f"Quote request cancelled: {token.reason}")

        ranked: List[Tuple[float, Quote]] = []
        failures: Dict[str, str] = {}
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                self._record_failure(failures, provider.name, result)
                continue
            # Malformed payloads surface here, not inside fetch
            try:
                can_assemble = result.can_assemble
                output = float(result.realized_output)
            except Exception as exc:  # noqa: BLE001
                self._record_failure(failures, provider.name, exc)
                continue
            if not can_assemble:
                failures[provider.name] = "trade cannot be assembled"
                self._logger.debug("Dropping %s trade without assembly capability", provider.name)
                continue
            ranked.append((output, Quote(label=provider.name, trade=result)))

        self._logger.debug("Received %d/%d %s quotes", len(ranked), len(providers), mode)

        if not ranked:
            raise NoQuoteAvailableError(failures=failures)

        ranked.sort(key=lambda pair: pair[0], reverse=True)
        return [quote for _, quote in ranked]

    def _record_failure(self, failures: Dict[str, str], name: str, error: BaseException) -> None:
        failures[name] = str(error) or error.__class__.__name__
        self._logger.warning("Provider %s failed to quote: %s", name, failures[name])


def sort_quotes_by_output(quotes: Sequence[Quote]) -> List[Quote]:
    """Descending realized output; ties keep provider order."""
    return sorted(quotes, key=lambda quote: quote.realized_output, reverse=True)
