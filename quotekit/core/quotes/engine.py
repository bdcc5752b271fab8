"""
QuoteEngine

Orchestrates quote fetching for a stream of user inputs:
fingerprint -> guard -> cancel previous -> fan out -> commit -> select -> re-arm.

All state mutation happens synchronously on the event loop, so no locks
are needed. Consumers read projections and call the public actions.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Union

from ...config import settings
from ...logging_config import bind_quote_context
from ...stores import CurrencyStore
from .cancellation import CancellationController, CancellationToken
from .errors import (
    InvalidQuoteInputError,
    NoQuoteAvailableError,
    QuoteCancelledError,
    RefreshLimitReachedError,
    is_user_visible,
)
from .keys import CalldataDigest, create_quote_key, keys_equal
from .models import Quote, QuoteRequest
from .router import QuoteRouter
from .scheduler import RefreshScheduler
from .selection import SelectionMemory
from .store import (
    INITIAL_STATE,
    AbortFetch,
    Clear,
    ErrorState,
    FetchError,
    FetchStart,
    FetchSuccess,
    FetchingState,
    IdleState,
    Invalidate,
    QuoteAction,
    QuoteState,
    SelectQuote,
    SuccessState,
    get_error,
    get_selected_quote,
    is_quote_stale,
    quote_reducer,
)
from .trace import QuoteTraceLog
from .validation import RequiredAmount, SlippageGuard, normalize_request, validate_quote_request


ErrorNotifier = Callable[[str], None]
QuotesListener = Callable[[List[Quote]], None]
HaltListener = Callable[[RefreshLimitReachedError], None]


@dataclass(frozen=True)
class QuoteView:
    """Read-only projection handed to the UI."""

    quotes: List[Quote]
    selected_quote: Optional[Quote]
    selected_index: int
    quoting: bool
    error: Optional[str]
    high_slippage_loss_warning: bool
    auto_refresh_halted: bool


class QuoteEngine:
    """Owns the quote state and every fetch issued for it."""

    def __init__(
        self,
        router: QuoteRouter,
        *,
        currency_store: Optional[CurrencyStore] = None,
        refresh_interval_seconds: Optional[float] = None,
        refresh_ceiling_seconds: Optional[float] = None,
        calldata_digest: Optional[Union[CalldataDigest, str]] = None,
        clock: Callable[[], float] = time.time,
        on_error: Optional[ErrorNotifier] = None,
        on_quotes_change: Optional[QuotesListener] = None,
        on_refresh_halted: Optional[HaltListener] = None,
        trace: Optional[QuoteTraceLog] = None,
        action_info: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._router = router
        self._currency_store = currency_store
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._on_error = on_error
        self._on_quotes_change = on_quotes_change
        self._on_refresh_halted = on_refresh_halted
        self._trace = trace
        self._action_info = dict(action_info or {})

        self.stale_after_seconds = (
            settings.refresh_interval_seconds if refresh_interval_seconds is None else refresh_interval_seconds
        )
        self._calldata_digest = CalldataDigest(calldata_digest or settings.calldata_digest)

        self._state: QuoteState = INITIAL_STATE
        self._controller = CancellationController()
        self._scheduler = RefreshScheduler(
            self.stale_after_seconds,
            settings.refresh_ceiling_seconds if refresh_ceiling_seconds is None else refresh_ceiling_seconds,
            clock=clock,
            on_halt=self._handle_refresh_halted,
            logger=self._logger,
        )
        self._selection = SelectionMemory()
        self._guard = SlippageGuard()

        self._request: Optional[QuoteRequest] = None
        self._min_required: Optional[RequiredAmount] = None
        self._last_key: Optional[str] = None
        self._last_same_chain: Optional[bool] = None
        self._previous: Optional[SuccessState] = None
        self._quoted_amount: Optional[int] = None
        self._tx_in_progress = False
        self._force_fresh = False
        self._closed = False
        self._inflight: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, **kwargs: Any) -> "QuoteEngine":
        """Engine wired to the providers enabled in settings."""
        from ...providers.registry import build_router

        trace = kwargs.pop("trace", None)
        if trace is None and settings.trace_quoting:
            trace = QuoteTraceLog(max_entries=settings.trace_max_entries)
        return cls(build_router(settings), trace=trace, **kwargs)

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    @property
    def state(self) -> QuoteState:
        return self._state

    def _displayed(self) -> Optional[SuccessState]:
        state = self._state
        if isinstance(state, SuccessState):
            return state
        # Keep showing the previous quotes while the same key revalidates
        if (
            isinstance(state, FetchingState)
            and self._previous is not None
            and keys_equal(self._previous.key, state.key)
        ):
            return self._previous
        return None

    @property
    def quotes(self) -> List[Quote]:
        shown = self._displayed()
        return list(shown.quotes) if shown else []

    @property
    def selected_quote(self) -> Optional[Quote]:
        shown = self._displayed()
        return get_selected_quote(shown) if shown else None

    @property
    def selected_index(self) -> int:
        shown = self._displayed()
        return shown.selected_index if shown else 0

    @property
    def quoting(self) -> bool:
        return isinstance(self._state, FetchingState)

    @property
    def error(self) -> Optional[str]:
        return get_error(self._state)

    @property
    def quoted_amount(self) -> Optional[int]:
        return self._quoted_amount

    @property
    def high_slippage_loss_warning(self) -> bool:
        return self._guard.high_slippage_loss

    @property
    def reverse_quote_buffer(self) -> float:
        return self._guard.buffer

    @property
    def auto_refresh_halted(self) -> bool:
        return self._scheduler.halted

    @property
    def transaction_in_progress(self) -> bool:
        return self._tx_in_progress

    def view(self) -> QuoteView:
        return QuoteView(
            quotes=self.quotes,
            selected_quote=self.selected_quote,
            selected_index=self.selected_index,
            quoting=self.quoting,
            error=self.error,
            high_slippage_loss_warning=self.high_slippage_loss_warning,
            auto_refresh_halted=self.auto_refresh_halted,
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def update(
        self,
        request: Optional[QuoteRequest],
        *,
        min_required: Optional[RequiredAmount] = None,
    ) -> None:
        """Feed the latest (debounced) input and run an evaluation pass."""
        self._request = request
        self._min_required = min_required
        if request is not None:
            self._guard.update_for_slippage(request.slippage)
        self._evaluate()
        if isinstance(self._state, SuccessState):
            self._check_selected(widen=False)

    def select_quote(self, index: int) -> None:
        before = self._state
        self._dispatch(SelectQuote(index))
        if self._state is before:
            return
        self._selection.mark_user_pick(index)
        self._check_selected(widen=False)

    def refresh(self) -> None:
        """Manual refresh; also resumes a halted auto-refresh cycle."""
        if isinstance(self._state, FetchingState):
            return
        self._scheduler.reset_ceiling()
        self._dispatch(Invalidate())
        self._evaluate()

    def abort(self) -> None:
        self._reset("aborted")

    def clear(self) -> None:
        self._reset("cleared")
        self._request = None
        self._min_required = None
        self._last_same_chain = None

    def set_transaction_in_progress(self, in_progress: bool) -> None:
        """Suspend all fetching while a transaction built from a quote is in flight."""
        if in_progress == self._tx_in_progress:
            return
        self._tx_in_progress = in_progress

        if in_progress:
            self._logger.debug("Transaction in progress, suspending quotes")
            self._controller.cancel("transaction in progress")
            self._scheduler.cancel()
            if isinstance(self._state, FetchingState):
                # An aborted refresh falls back to the quotes it was replacing
                self._dispatch(AbortFetch(previous=self._previous))
                self._previous = None
            return

        self._logger.debug("Transaction completed, resetting quote cache")
        self._force_fresh = True
        self._last_key = None
        self._previous = None
        self._selection.reset()
        self._dispatch(Invalidate())
        self._evaluate()

    async def wait_until_settled(self) -> None:
        """Wait for every fetch issued so far (including superseded ones)."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def close(self) -> None:
        self._closed = True
        self._reset("closed")
        await self.wait_until_settled()

    # ------------------------------------------------------------------
    # Evaluation pass
    # ------------------------------------------------------------------

    def _evaluate(self) -> None:
        if self._closed:
            return
        if self._tx_in_progress:
            self._logger.debug("Skipping quote fetch: transaction in progress")
            return

        validation = validate_quote_request(self._request)
        if not validation.is_valid:
            self._logger.debug("Not quoting: %s", validation.reason)
            self._reset("invalid input")
            return

        try:
            request = normalize_request(self._request, self._currency_store)
        except InvalidQuoteInputError as exc:
            self._logger.debug("Not quoting: %s", exc.reason)
            self._reset("invalid input")
            return

        if self._last_same_chain is not None and self._last_same_chain != validation.is_same_chain:
            self._logger.debug("Switched between bridge and swap, clearing quotes")
            self._reset("mode changed")
        self._last_same_chain = validation.is_same_chain

        key = create_quote_key(request, self._calldata_digest)
        state = self._state

        if isinstance(state, FetchingState) and keys_equal(state.key, key):
            self._logger.debug("Request already in progress, skipping")
            return
        if (
            isinstance(state, SuccessState)
            and keys_equal(state.key, key)
            and not is_quote_stale(state, self._clock(), self.stale_after_seconds)
        ):
            return
        if isinstance(state, ErrorState) and keys_equal(state.key, key):
            return

        is_refresh = not self._force_fresh and keys_equal(self._last_key, key)
        if is_refresh and self._scheduler.halted:
            self._logger.debug("Auto-refresh halted, keeping stale quotes for %s", key)
            return
        self._force_fresh = False
        if is_refresh:
            self._previous = state if isinstance(state, SuccessState) else None
        else:
            self._previous = None
            self._selection.reset()
            self._scheduler.reset_ceiling()

        self._start_fetch(key, request, is_refresh)

    def _start_fetch(self, key: str, request: QuoteRequest, is_refresh: bool) -> None:
        self._scheduler.cancel()
        token = self._controller.issue(label=key)
        self._last_key = key
        self._dispatch(FetchStart(key=key, at=self._clock()))

        task = asyncio.create_task(
            self._run_fetch(key, request, token, is_refresh),
            name="quote-fetch",
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run_fetch(
        self,
        key: str,
        request: QuoteRequest,
        token: CancellationToken,
        is_refresh: bool,
    ) -> None:
        bind_quote_context(quote_key=key, refresh=is_refresh)
        try:
            quotes = await self._router.fetch_quotes(request, token)
        except QuoteCancelledError:
            self._logger.debug("Request cancelled or aborted")
            return
        except Exception as exc:  # noqa: BLE001
            if not self._controller.is_current(token):
                self._logger.debug("Discarding failure of superseded request")
                return
            self._controller.release(token)
            self._fail(key, request, exc)
            return

        if not self._controller.is_current(token):
            self._logger.debug("Discarding quotes of superseded request")
            return
        self._controller.release(token)
        self._succeed(key, request, quotes, is_refresh)

    def _succeed(self, key: str, request: QuoteRequest, quotes: List[Quote], is_refresh: bool) -> None:
        self._previous = None
        self._dispatch(FetchSuccess(key=key, quotes=tuple(quotes), at=self._clock()))

        index = self._selection.resolve(is_refresh=is_refresh, quote_count=len(quotes))
        if index:
            self._dispatch(SelectQuote(index))

        self._quoted_amount = request.src_amount.amount if request.src_amount else None
        self._check_selected(widen=True)
        self._logger.debug("Quotes received: %d", len(quotes))

        if self._trace is not None:
            self._trace.record(key, request, quotes=quotes, action=self._action_info)
        if self._on_quotes_change:
            self._on_quotes_change(list(quotes))

        self._scheduler.arm(self._on_refresh_timer)

    def _fail(self, key: str, request: QuoteRequest, exc: Exception) -> None:
        message = getattr(exc, "message", None) or str(exc) or "Failed to fetch quote"
        if isinstance(exc, NoQuoteAvailableError):
            self._logger.warning("Quote fetch error: %s", message)
        else:
            self._logger.error("Unexpected quote fetch error: %s", message, exc_info=exc)

        self._previous = None
        self._dispatch(FetchError(key=key, message=message))
        self._guard.reset_warning()

        if is_user_visible(exc) and self._on_error:
            self._on_error(message)
        if self._trace is not None:
            self._trace.record(key, request, error=message, action=self._action_info)
        if self._on_quotes_change:
            self._on_quotes_change([])

    def _on_refresh_timer(self) -> None:
        if self._closed or self._tx_in_progress:
            return
        self._logger.debug("Quote is stale, refreshing")
        self._dispatch(Invalidate())
        self._evaluate()

    def _handle_refresh_halted(self, error: RefreshLimitReachedError) -> None:
        if self._on_refresh_halted:
            self._on_refresh_halted(error)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _dispatch(self, action: QuoteAction) -> None:
        before = self._state
        self._state = quote_reducer(before, action)
        if self._state.status != before.status:
            self._logger.debug("Quote state %s -> %s", before.status.value, self._state.status.value)

    def _check_selected(self, *, widen: bool) -> None:
        if self._min_required is None:
            self._guard.reset_warning()
            return
        quote = get_selected_quote(self._state)
        if quote is None:
            return
        result = self._guard.check(quote.realized_output, self._min_required, widen=widen)
        if result.high_slippage_loss:
            self._logger.info(
                "High slippage loss on %s: short by %.2f%%",
                quote.label,
                result.shortfall * 100,
            )

    def _reset(self, reason: str) -> None:
        self._controller.cancel(reason)
        self._scheduler.cancel()
        self._selection.reset()
        self._guard.reset_warning()
        self._last_key = None
        self._previous = None
        self._force_fresh = False
        if not isinstance(self._state, IdleState):
            self._dispatch(Clear())
