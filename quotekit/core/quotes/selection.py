"""Selection preservation across background refreshes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SelectionMemory:
    """Remembers whether the user explicitly picked a quote.

    `explicit` is set only by user selection and cleared on key change or
    when quotes are cleared; engine-assigned defaults never set it.
    """

    index: int = 0
    explicit: bool = False

    def mark_user_pick(self, index: int) -> None:
        self.index = index
        self.explicit = True

    def reset(self) -> None:
        self.index = 0
        self.explicit = False

    def resolve(self, *, is_refresh: bool, quote_count: int) -> int:
        """Index to select after a successful fetch of `quote_count` quotes."""
        if is_refresh and self.explicit and 0 <= self.index < quote_count:
            return self.index
        self.reset()
        return 0
