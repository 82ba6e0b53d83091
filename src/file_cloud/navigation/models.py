"""Value types for folder navigation history and breadcrumbs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

DEFAULT_ROOT_FOLDER_NAME = "Home"
PATH_SEPARATOR = " / "


def _frozen(metadata: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(metadata or {}))


@dataclass(frozen=True)
class PathComponent:
    """One breadcrumb segment with the history position it was entered at.

    ``history_index`` is None once that position is no longer in history
    (trimmed off the front when the history grows past its limit).
    """

    label: str
    history_index: int | None


@dataclass(frozen=True, eq=False)
class NavigationEntry:
    """A single visited folder, scoped to one provider and account.

    Entries are immutable; the history replaces them wholesale. Two entries
    are equal when they point at the same folder in the same scope, regardless
    of display name, path or timestamp.

    Attributes:
        folder_id: Provider folder ID, or None for the root.
        folder_name: Display label.
        provider_id: Provider the folder belongs to.
        account_id: Account the folder belongs to.
        path_components: Breadcrumb segments from root (exclusive) to this
            folder (inclusive).
        created_at: When the entry was created.
        metadata: Read-only extra data (file counts, folder info).
    """

    folder_id: str | None
    folder_name: str
    provider_id: str
    account_id: str
    path_components: tuple[PathComponent, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def root(
        cls,
        provider_id: str,
        account_id: str,
        folder_name: str = DEFAULT_ROOT_FOLDER_NAME,
        metadata: Mapping[str, Any] | None = None,
    ) -> NavigationEntry:
        """Create the root entry for a provider/account scope."""
        return cls(
            folder_id=None,
            folder_name=folder_name,
            provider_id=provider_id,
            account_id=account_id,
            metadata=_frozen(metadata),
        )

    def child(
        self,
        folder_id: str,
        folder_name: str,
        history_index: int,
        metadata: Mapping[str, Any] | None = None,
    ) -> NavigationEntry:
        """Create an entry for a subfolder of this one.

        Args:
            folder_id: Subfolder ID.
            folder_name: Subfolder display name.
            history_index: Position the new entry will occupy in history.
            metadata: Optional extra data for the new entry.
        """
        return NavigationEntry(
            folder_id=folder_id,
            folder_name=folder_name,
            provider_id=self.provider_id,
            account_id=self.account_id,
            path_components=(*self.path_components, PathComponent(folder_name, history_index)),
            metadata=_frozen(metadata),
        )

    def with_shifted_indices(self, offset: int) -> NavigationEntry:
        """Return a copy whose path history indices are moved down by ``offset``."""
        shifted = tuple(
            PathComponent(
                c.label,
                None
                if c.history_index is None or c.history_index - offset < 0
                else c.history_index - offset,
            )
            for c in self.path_components
        )
        return replace(self, path_components=shifted)

    def in_scope(self, provider_id: str, account_id: str) -> bool:
        return self.provider_id == provider_id and self.account_id == account_id

    @property
    def is_root(self) -> bool:
        return self.folder_id is None

    @property
    def path_labels(self) -> tuple[str, ...]:
        return tuple(c.label for c in self.path_components)

    @property
    def display_path(self) -> str:
        if not self.path_components:
            return self.folder_name
        return PATH_SEPARATOR.join(self.path_labels)

    @property
    def depth(self) -> int:
        return len(self.path_components)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NavigationEntry):
            return NotImplemented
        return (
            self.folder_id == other.folder_id
            and self.provider_id == other.provider_id
            and self.account_id == other.account_id
        )

    def __hash__(self) -> int:
        return hash((self.folder_id, self.provider_id, self.account_id))


@dataclass(frozen=True)
class BreadcrumbItem:
    """A rendered breadcrumb segment.

    ``history_index`` is the position to jump to with ``navigate_to_index``.
    A None index on a clickable home item means the caller should go home.
    """

    label: str
    history_index: int | None
    is_clickable: bool
    is_home: bool = False


@dataclass(frozen=True)
class NavigationStats:
    """Snapshot of navigation state for debugging and monitoring."""

    total_entries: int
    current_index: int
    can_go_back: bool
    can_go_forward: bool
    current_folder_id: str | None
    current_depth: int
