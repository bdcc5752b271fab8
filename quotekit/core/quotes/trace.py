import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Sequence

from .models import Quote, QuoteRequest

logger = logging.getLogger(__name__)


@dataclass
class QuoteTraceEntry:
    key: str
    success: bool
    quotes: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    request: Dict[str, Any] = field(default_factory=dict)
    action: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "success": self.success,
            "quotes": self.quotes,
            "error": self.error,
            "request": self.request,
            "action": self.action,
            "timestamp": self.timestamp.isoformat(),
        }


class QuoteTraceLog:
    """Bounded record of completed fetches for debugging quote behaviour."""

    def __init__(self, max_entries: int = 50):
        self._entries: Deque[QuoteTraceEntry] = deque(maxlen=max_entries)

    def record(
        self,
        key: str,
        request: QuoteRequest,
        *,
        quotes: Sequence[Quote] = (),
        error: Optional[str] = None,
        action: Optional[Dict[str, Any]] = None,
    ) -> QuoteTraceEntry:
        entry = QuoteTraceEntry(
            key=key,
            success=error is None,
            quotes=[{"label": q.label, "realizedOutput": q.realized_output} for q in quotes],
            error=error,
            request=request.summary(),
            action=dict(action or {}),
        )
        self._entries.append(entry)
        logger.debug("quote-trace", extra=entry.to_dict())
        return entry

    def entries(self) -> List[QuoteTraceEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
