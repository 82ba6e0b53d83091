"""Navigation manager — folder traversal, history and breadcrumb state."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from file_cloud.navigation.history import DEFAULT_MAX_HISTORY_SIZE, NavigationHistory
from file_cloud.navigation.models import (
    DEFAULT_ROOT_FOLDER_NAME,
    BreadcrumbItem,
    NavigationEntry,
    NavigationStats,
    PathComponent,
)

if TYPE_CHECKING:
    from file_cloud.config import AppConfig
    from file_cloud.graph.models import FileEntry

logger = logging.getLogger(__name__)

DEFAULT_BREADCRUMB_MAX_ITEMS = 5
BREADCRUMB_ELLIPSIS = "..."
METADATA_CAN_ENTER = "can_enter"

NavigationListener = Callable[[NavigationEntry | None], None]


class NavigationManager:
    """Owns the navigation history for one browsing session.

    All mutation goes through the methods below; every method is a synchronous
    in-memory update. Invalid requests (nothing to go back to, out-of-range
    index) return None and leave the state untouched.
    """

    def __init__(
        self,
        root_folder_name: str = DEFAULT_ROOT_FOLDER_NAME,
        max_history_size: int = DEFAULT_MAX_HISTORY_SIZE,
    ) -> None:
        """Initialise an empty navigation state.

        Args:
            root_folder_name: Label used for root entries and the home breadcrumb.
            max_history_size: Entries kept before the oldest are trimmed.
        """
        self._history = NavigationHistory(max_size=max_history_size)
        self._root_folder_name = root_folder_name
        self._listeners: list[NavigationListener] = []

    def __repr__(self) -> str:
        current = self.current
        return (
            f"NavigationManager(current={current.folder_name if current else None!r}, "
            f"can_go_back={self.can_go_back}, can_go_forward={self.can_go_forward}, "
            f"entries={len(self._history)})"
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def history(self) -> tuple[NavigationEntry, ...]:
        """Snapshot of every entry, oldest first; mutate through the manager."""
        return self._history.entries

    @property
    def current_index(self) -> int:
        """Position of the current entry in ``history`` (-1 when empty)."""
        return self._history.current_index

    @property
    def current(self) -> NavigationEntry | None:
        return self._history.current

    @property
    def root(self) -> NavigationEntry | None:
        return self._history.root

    @property
    def can_go_back(self) -> bool:
        return self._history.can_go_back

    @property
    def can_go_forward(self) -> bool:
        return self._history.can_go_forward

    @property
    def is_at_root(self) -> bool:
        current = self.current
        return current is None or current.is_root

    @property
    def current_folder_id(self) -> str | None:
        current = self.current
        return current.folder_id if current else None

    @property
    def current_folder_name(self) -> str:
        current = self.current
        return current.folder_name if current else self._root_folder_name

    def current_path(self) -> tuple[str, ...]:
        current = self.current
        return current.path_labels if current else ()

    def current_display_path(self) -> str:
        current = self.current
        return current.display_path if current else self._root_folder_name

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        """Register a callback for navigation changes.

        The callback receives the new current entry, or None after the history
        is cleared.

        Returns:
            A function that removes the callback again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, entry: NavigationEntry | None) -> None:
        for listener in list(self._listeners):
            listener(entry)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def navigate_to_folder(
        self,
        folder_id: str | None,
        folder_name: str,
        provider_id: str,
        account_id: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> NavigationEntry | None:
        """Enter a folder, discarding any forward history that diverges.

        A None ``folder_id`` pushes a root entry. Entering the folder that is
        already current is a no-op, and entering the folder that is directly
        ahead in history moves forward instead of rewriting it.

        Returns:
            The new current entry, or None when nothing changed.
        """
        current = self._history.current

        if current is not None and current.folder_id == folder_id and current.in_scope(
            provider_id, account_id
        ):
            logger.debug(
                "[navigate_to_folder] already in folder; folder_id:%s",
                folder_id,
            )
            return None

        ahead = self._history.get_at(self._history.current_index + 1)
        if (
            ahead is not None
            and ahead.folder_id == folder_id
            and ahead.in_scope(provider_id, account_id)
        ):
            logger.info(
                "[navigate_to_folder] folder is next in history, moving forward; folder_id:%s",
                folder_id,
            )
            return self.go_forward()

        index = self._history.next_index
        if folder_id is None:
            entry = NavigationEntry.root(provider_id, account_id, folder_name, metadata)
        elif current is not None and current.in_scope(provider_id, account_id):
            entry = current.child(folder_id, folder_name, index, metadata)
        else:
            entry = NavigationEntry(
                folder_id=folder_id,
                folder_name=folder_name,
                provider_id=provider_id,
                account_id=account_id,
                path_components=(PathComponent(folder_name, index),),
                metadata=MappingProxyType(dict(metadata or {})),
            )

        self._history.push(entry)
        logger.info(
            "[navigate_to_folder] navigated; folder_id:%s;folder_name:%s;depth:%d;entries:%d",
            folder_id,
            folder_name,
            entry.depth,
            len(self._history),
        )
        current_entry = self._history.current
        self._notify(current_entry)
        return current_entry

    def go_home(
        self,
        provider_id: str,
        account_id: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> NavigationEntry:
        """Discard all history and start over at the root of the given scope."""
        logger.info(
            "[go_home] resetting to root; provider_id:%s;account_id:%s",
            provider_id,
            account_id,
        )
        self._history.clear()
        entry = NavigationEntry.root(provider_id, account_id, self._root_folder_name, metadata)
        self._history.push(entry)
        self._notify(entry)
        return entry

    def go_back(self) -> NavigationEntry | None:
        entry = self._history.go_back()
        if entry is None:
            logger.debug("[go_back] no previous entry")
            return None
        logger.info("[go_back] moved back; folder_id:%s", entry.folder_id)
        self._notify(entry)
        return entry

    def go_forward(self) -> NavigationEntry | None:
        entry = self._history.go_forward()
        if entry is None:
            logger.debug("[go_forward] no next entry")
            return None
        logger.info("[go_forward] moved forward; folder_id:%s", entry.folder_id)
        self._notify(entry)
        return entry

    def navigate_to_index(self, index: int) -> NavigationEntry | None:
        """Jump to a history position, keeping every entry after it."""
        entry = self._history.go_to_index(index)
        if entry is None:
            logger.debug(
                "[navigate_to_index] index out of range; index:%d;entries:%d",
                index,
                len(self._history),
            )
            return None
        logger.info("[navigate_to_index] jumped; index:%d;folder_id:%s", index, entry.folder_id)
        self._notify(entry)
        return entry

    def update_current(
        self,
        folder_name: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> NavigationEntry | None:
        """Replace the current entry with a renamed or re-annotated copy."""
        current = self._history.current
        if current is None:
            return None

        changes: dict[str, Any] = {}
        if folder_name is not None:
            changes["folder_name"] = folder_name
            if current.path_components:
                last = current.path_components[-1]
                changes["path_components"] = (
                    *current.path_components[:-1],
                    PathComponent(folder_name, last.history_index),
                )
        if metadata is not None:
            changes["metadata"] = MappingProxyType(dict(metadata))

        updated = replace(current, **changes)
        self._history.replace_current(updated)
        logger.debug("[update_current] replaced current entry; folder_id:%s", updated.folder_id)
        self._notify(updated)
        return updated

    def clear_history(self) -> None:
        """Forget every entry; required whenever the provider or account changes."""
        logger.info("[clear_history] clearing; entries:%d", len(self._history))
        self._history.clear()
        self._notify(None)

    def reset_for_provider(
        self,
        provider_id: str,
        account_id: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> NavigationEntry:
        self.clear_history()
        return self.go_home(provider_id, account_id, metadata)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def breadcrumb_items(
        self, max_items: int = DEFAULT_BREADCRUMB_MAX_ITEMS
    ) -> list[BreadcrumbItem]:
        """Build the breadcrumb trail for the current entry.

        The trail starts with a home item, followed by one item per path
        component. Each item carries the history index its folder was entered
        at. The last item (the current folder) is never clickable. Trails
        longer than ``max_items`` collapse the middle into a single ellipsis.

        Args:
            max_items: Maximum items to return; values below 3 disable collapsing.

        Returns:
            Ordered breadcrumb items, empty when there is no history.
        """
        current = self.current
        if current is None:
            return []

        home = BreadcrumbItem(
            label=self._root_folder_name,
            history_index=self._home_index(current),
            is_clickable=not current.is_root,
            is_home=True,
        )
        if current.is_root:
            return [home]

        components = current.path_components
        segments = [
            BreadcrumbItem(
                label=component.label,
                history_index=component.history_index,
                is_clickable=pos < len(components) - 1 and component.history_index is not None,
            )
            for pos, component in enumerate(components)
        ]

        items = [home, *segments]
        if max_items >= 3 and len(items) > max_items:
            ellipsis = BreadcrumbItem(BREADCRUMB_ELLIPSIS, None, is_clickable=False)
            items = [home, ellipsis, *segments[-(max_items - 2) :]]
        return items

    def _home_index(self, current: NavigationEntry) -> int | None:
        """Nearest root entry of the current scope at or before the current position."""
        for index in range(self._history.current_index, -1, -1):
            entry = self._history.get_at(index)
            if entry is not None and entry.is_root and entry.in_scope(
                current.provider_id, current.account_id
            ):
                return index
        return None

    def stats(self) -> NavigationStats:
        current = self.current
        return NavigationStats(
            total_entries=len(self._history),
            current_index=self._history.current_index,
            can_go_back=self.can_go_back,
            can_go_forward=self.can_go_forward,
            current_folder_id=self.current_folder_id,
            current_depth=current.depth if current else 0,
        )

    @staticmethod
    def can_navigate_to_folder(entry: FileEntry) -> bool:
        """Whether a listed entry is a folder the user may enter."""
        if not entry.is_folder:
            return False
        return entry.metadata.get(METADATA_CAN_ENTER) is not False


def navigation_manager_from_config(config: AppConfig) -> NavigationManager:
    """Construct a NavigationManager from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured NavigationManager instance.
    """
    return NavigationManager(
        root_folder_name=config.root_folder_name,
        max_history_size=config.max_history_size,
    )
