"""
Quote State Machine

Single source of truth for which quotes exist and which one is selected.
`quote_reducer` is total and side-effect free; timestamps travel on the
actions so the reducer never reads a clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from .models import Quote


class QuoteStatus(str, Enum):
    """States the quote store can be in."""

    IDLE = "idle"           # No active or prior request
    FETCHING = "fetching"   # A request is in flight
    SUCCESS = "success"     # Quotes available
    ERROR = "error"         # All providers failed


@dataclass(frozen=True)
class IdleState:
    status: QuoteStatus = field(default=QuoteStatus.IDLE, init=False)


@dataclass(frozen=True)
class FetchingState:
    key: str
    started_at: float
    status: QuoteStatus = field(default=QuoteStatus.FETCHING, init=False)


@dataclass(frozen=True)
class SuccessState:
    key: str
    quotes: Tuple[Quote, ...]
    fetched_at: float
    selected_index: int = 0
    status: QuoteStatus = field(default=QuoteStatus.SUCCESS, init=False)


@dataclass(frozen=True)
class ErrorState:
    key: str
    message: str
    status: QuoteStatus = field(default=QuoteStatus.ERROR, init=False)


QuoteState = Union[IdleState, FetchingState, SuccessState, ErrorState]

INITIAL_STATE: QuoteState = IdleState()


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FetchStart:
    key: str
    at: float


@dataclass(frozen=True)
class FetchSuccess:
    key: str
    quotes: Tuple[Quote, ...]
    at: float


@dataclass(frozen=True)
class FetchError:
    key: str
    message: str


@dataclass(frozen=True)
class SelectQuote:
    index: int


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Invalidate:
    pass


@dataclass(frozen=True)
class AbortFetch:
    """Drop the pending fetch, falling back to `previous` when it holds the same key."""

    previous: Optional[SuccessState] = None


QuoteAction = Union[FetchStart, FetchSuccess, FetchError, SelectQuote, Clear, Invalidate, AbortFetch]


def _matches_pending(state: QuoteState, key: str) -> bool:
    return isinstance(state, FetchingState) and state.key == key


def quote_reducer(state: QuoteState, action: QuoteAction) -> QuoteState:
    """Apply an action. Stale or invalid actions return `state` unchanged."""
    if isinstance(action, FetchStart):
        return FetchingState(key=action.key, started_at=action.at)

    if isinstance(action, FetchSuccess):
        if not _matches_pending(state, action.key):
            return state
        return SuccessState(
            key=action.key,
            quotes=tuple(action.quotes),
            fetched_at=action.at,
            selected_index=0,
        )

    if isinstance(action, FetchError):
        if not _matches_pending(state, action.key):
            return state
        return ErrorState(key=action.key, message=action.message)

    if isinstance(action, SelectQuote):
        if not isinstance(state, SuccessState):
            return state
        if action.index < 0 or action.index >= len(state.quotes):
            return state
        return replace(state, selected_index=action.index)

    if isinstance(action, Clear):
        return INITIAL_STATE

    if isinstance(action, Invalidate):
        if isinstance(state, SuccessState):
            return replace(state, fetched_at=0.0)
        return INITIAL_STATE

    if isinstance(action, AbortFetch):
        if not isinstance(state, FetchingState):
            return state
        if action.previous is not None and action.previous.key == state.key:
            return action.previous
        return INITIAL_STATE

    return state


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------

def state_key(state: QuoteState) -> Optional[str]:
    return getattr(state, "key", None)


def is_quote_stale(state: QuoteState, now: float, stale_after_seconds: float = 30.0) -> bool:
    if not isinstance(state, SuccessState):
        return True
    if state.fetched_at == 0:
        return True
    return now - state.fetched_at > stale_after_seconds


def get_quotes(state: QuoteState) -> List[Quote]:
    if not isinstance(state, SuccessState):
        return []
    return list(state.quotes)


def get_selected_quote(state: QuoteState) -> Optional[Quote]:
    if not isinstance(state, SuccessState):
        return None
    return state.quotes[state.selected_index]


def get_selected_index(state: QuoteState) -> int:
    if not isinstance(state, SuccessState):
        return 0
    return state.selected_index


def is_fetching(state: QuoteState) -> bool:
    return isinstance(state, FetchingState)


def get_error(state: QuoteState) -> Optional[str]:
    if not isinstance(state, ErrorState):
        return None
    return state.message
