import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from .core.quotes.models import Currency


logger = logging.getLogger(__name__)

CurrencyLoader = Callable[[], Awaitable[Iterable[Currency]]]
StoreListener = Callable[[str], None]


class CurrencyStore:
    """In-memory token list with an explicit lifecycle.

    init -> get / subscribe -> invalidate. Listeners receive the event name
    ("loaded" or "invalidated"). Lookups are synchronous and never hit the
    network.
    """

    def __init__(
        self,
        loader: Optional[CurrencyLoader] = None,
        *,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[int, str], Currency] = {}
        self._listeners: List[StoreListener] = []
        self._loaded_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded_at is not None

    @property
    def is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at > self.ttl_seconds

    async def init(self, currencies: Optional[Iterable[Currency]] = None) -> None:
        """Load currencies from the argument or the configured loader."""
        async with self._lock:
            if currencies is None:
                if self._loader is None:
                    raise RuntimeError("CurrencyStore.init needs currencies or a loader")
                currencies = await self._loader()

            self._entries = {
                (currency.chain_id, currency.address.lower()): currency
                for currency in currencies
            }
            self._loaded_at = self._clock()

        self._notify("loaded")

    async def refresh_if_stale(self) -> bool:
        if not self.is_stale or self._loader is None:
            return False
        await self.init()
        return True

    def get(self, chain_id: int, address: str) -> Optional[Currency]:
        return self._entries.get((chain_id, (address or "").lower()))

    def size(self) -> int:
        return len(self._entries)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def invalidate(self) -> None:
        self._entries.clear()
        self._loaded_at = None
        self._notify("invalidated")

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # noqa: BLE001
                logger.error("Currency store listener failed on %s: %s", event, exc)
