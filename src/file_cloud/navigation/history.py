"""Ordered navigation history with back/forward and jump-to-index support."""

from __future__ import annotations

import logging

from file_cloud.navigation.models import NavigationEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY_SIZE = 100


class NavigationHistory:
    """Chronological list of visited folders along the current path.

    ``current_index`` is -1 while the history is empty; otherwise it always
    points at an existing entry. Pushing a new entry discards everything ahead
    of the current position, as in a browser.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_HISTORY_SIZE) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._entries: list[NavigationEntry] = []
        self._current_index = -1
        self._max_size = max_size

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"NavigationHistory(current={self._current_index}/{len(self._entries)}, "
            f"can_go_back={self.can_go_back}, can_go_forward={self.can_go_forward})"
        )

    @property
    def entries(self) -> tuple[NavigationEntry, ...]:
        return tuple(self._entries)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current(self) -> NavigationEntry | None:
        if not self._entries:
            return None
        self._check_invariant()
        return self._entries[self._current_index]

    @property
    def root(self) -> NavigationEntry | None:
        return self._entries[0] if self._entries else None

    @property
    def can_go_back(self) -> bool:
        return self._current_index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._current_index < len(self._entries) - 1

    @property
    def next_index(self) -> int:
        """Index the next pushed entry will occupy, before any trimming."""
        return self._current_index + 1

    def push(self, entry: NavigationEntry) -> None:
        """Append an entry after the current position, dropping forward history."""
        if self.can_go_forward:
            dropped = len(self._entries) - self._current_index - 1
            del self._entries[self._current_index + 1 :]
            logger.debug("[push] discarded forward history; dropped:%d", dropped)

        self._entries.append(entry)
        self._current_index = len(self._entries) - 1
        self._limit_size()

    def go_back(self) -> NavigationEntry | None:
        if not self.can_go_back:
            return None
        self._current_index -= 1
        return self.current

    def go_forward(self) -> NavigationEntry | None:
        if not self.can_go_forward:
            return None
        self._current_index += 1
        return self.current

    def go_to_index(self, index: int) -> NavigationEntry | None:
        """Move the current position without truncating anything."""
        if not 0 <= index < len(self._entries):
            return None
        self._current_index = index
        return self.current

    def get_at(self, index: int) -> NavigationEntry | None:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def replace_current(self, entry: NavigationEntry) -> None:
        """Swap the current entry in place, or push when the history is empty."""
        if not self._entries:
            self.push(entry)
            return
        self._entries[self._current_index] = entry

    def clear(self) -> None:
        self._entries.clear()
        self._current_index = -1

    def _limit_size(self) -> None:
        overflow = len(self._entries) - self._max_size
        if overflow <= 0:
            return
        self._entries = [e.with_shifted_indices(overflow) for e in self._entries[overflow:]]
        self._current_index = max(0, min(self._current_index - overflow, len(self._entries) - 1))
        logger.info(
            "[_limit_size] trimmed oldest history entries; removed:%d;max_size:%d",
            overflow,
            self._max_size,
        )

    def _check_invariant(self) -> None:
        assert 0 <= self._current_index < len(self._entries), (
            f"current_index {self._current_index} out of bounds for {len(self._entries)} entries"
        )
