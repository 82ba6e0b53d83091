"""Data models for upload progress and transport events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

_BYTE_UNITS = ("B", "KB", "MB", "GB")


class UploadStatus(StrEnum):
    """Lifecycle state of a single upload.

    ``completed``, ``error`` and ``cancelled`` are terminal. ``paused`` and
    ``retrying`` are sub-states of an upload that is still in flight.
    """

    WAITING = "waiting"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"
    PAUSED = "paused"
    RETRYING = "retrying"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return not self.is_terminal


_TERMINAL_STATUSES = frozenset(
    {UploadStatus.COMPLETED, UploadStatus.ERROR, UploadStatus.CANCELLED}
)


def format_bytes(num_bytes: float) -> str:
    """Render a byte count as a short human-readable string (e.g. "1.5 MB")."""
    if num_bytes < 1024:
        return f"{num_bytes:.0f} B"
    value = float(num_bytes)
    for unit in _BYTE_UNITS[1:]:
        value /= 1024
        if value < 1024 or unit == _BYTE_UNITS[-1]:
            return f"{value:.1f} {unit}"
    raise AssertionError("unreachable")


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class UploadProgress:
    """Immutable snapshot of one upload.

    The tracker replaces the snapshot on every change; holders of an older
    snapshot never observe later updates.

    Attributes:
        upload_id: Tracker key for this upload.
        file_name: Name of the file being uploaded.
        uploaded: Bytes confirmed so far.
        total: Total bytes expected.
        status: Current lifecycle state.
        error: Failure message, set only when status is ``error``.
        speed: Transfer rate in bytes per second, when the caller measured it.
        parent_folder_id: Destination folder (None for the root).
        retry_count: How many times the upload went through ``retrying``.
        started_at: When the upload was first tracked.
        updated_at: When this snapshot was produced.
    """

    upload_id: str
    file_name: str
    uploaded: int
    total: int
    status: UploadStatus
    error: str | None = None
    speed: float | None = None
    parent_folder_id: str | None = None
    retry_count: int = 0
    started_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def is_complete(self) -> bool:
        return self.status is UploadStatus.COMPLETED

    @property
    def fraction(self) -> float:
        """Progress in [0, 1]; 0 when the total size is unknown."""
        if self.total <= 0:
            return 0.0
        return min(1.0, max(0.0, self.uploaded / self.total))

    @property
    def percent_text(self) -> str:
        return f"{self.fraction * 100:.1f}%"

    @property
    def formatted_total(self) -> str:
        return format_bytes(self.total)

    @property
    def formatted_uploaded(self) -> str:
        return format_bytes(self.uploaded)


@dataclass(frozen=True)
class ProgressEvent:
    """One progress report emitted by an upload transport."""

    uploaded: int
    total: int
    status: UploadStatus = UploadStatus.UPLOADING
    error: str | None = None


@dataclass(frozen=True)
class UploadSummary:
    """Aggregate view over every tracked upload, taken at one instant."""

    active_count: int
    average_progress: float
    completed_count: int
    failed_count: int
    cancelled_count: int
