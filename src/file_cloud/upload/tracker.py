"""Upload tracker — per-upload status state machine and progress aggregation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

from file_cloud.upload.models import UploadProgress, UploadStatus, UploadSummary

logger = logging.getLogger(__name__)

ProgressListener = Callable[[UploadProgress], None]

# Allowed status changes for an upload that is still in flight. Terminal
# states never appear as a source.
_TRANSITIONS: dict[UploadStatus, frozenset[UploadStatus]] = {
    UploadStatus.WAITING: frozenset({UploadStatus.UPLOADING, UploadStatus.CANCELLED}),
    UploadStatus.UPLOADING: frozenset(
        {
            UploadStatus.COMPLETED,
            UploadStatus.ERROR,
            UploadStatus.PAUSED,
            UploadStatus.RETRYING,
            UploadStatus.CANCELLED,
        }
    ),
    UploadStatus.PAUSED: frozenset(
        {UploadStatus.UPLOADING, UploadStatus.COMPLETED, UploadStatus.CANCELLED}
    ),
    UploadStatus.RETRYING: frozenset(
        {UploadStatus.UPLOADING, UploadStatus.ERROR, UploadStatus.CANCELLED}
    ),
}

# Statuses in which a transport may report bytes.
_PROGRESS_STATUSES = frozenset({UploadStatus.UPLOADING, UploadStatus.PAUSED})


class CancellationToken:
    """Stop signal shared between the tracker and an upload transport.

    The tracker sets it; the transport polls ``stop_requested`` between chunks
    and stops sending once it is set. A cancelled token stays cancelled. A
    paused token is cleared again when the upload is resumed, and the
    transfer is then restarted by whoever owns it.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._paused = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def paused(self) -> bool:
        return self._paused.is_set()

    @property
    def stop_requested(self) -> bool:
        return self.cancelled or self.paused

    def cancel(self) -> None:
        self._cancelled.set()

    def pause(self) -> None:
        self._paused.set()

    def resume(self) -> None:
        self._paused.clear()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or the timeout elapses; returns ``cancelled``."""
        return self._cancelled.wait(timeout)


class UploadTracker:
    """Authoritative map of upload id to UploadProgress.

    The tracker owns no I/O: an external transport performs the transfer and
    reports into it. Invalid requests (unknown id, transition out of a
    terminal state) are logged and ignored rather than raised.
    """

    def __init__(self) -> None:
        self._uploads: dict[str, UploadProgress] = {}
        self._tokens: dict[str, CancellationToken] = {}
        self._listeners: list[ProgressListener] = []
        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a callback that receives every new UploadProgress snapshot.

        Returns:
            A function that removes the callback again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, progress: UploadProgress | None) -> None:
        if progress is None:
            return
        with self._lock:
            self._changed.notify_all()
            listeners = list(self._listeners)
        for listener in listeners:
            listener(progress)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def queue_upload(
        self,
        upload_id: str,
        file_name: str,
        total_bytes: int,
        parent_folder_id: str | None = None,
    ) -> CancellationToken:
        """Track an upload that has not started transferring yet."""
        return self._create(
            upload_id, file_name, total_bytes, parent_folder_id, UploadStatus.WAITING
        )

    def start_upload(
        self,
        upload_id: str,
        file_name: str,
        total_bytes: int,
        parent_folder_id: str | None = None,
    ) -> CancellationToken:
        """Begin tracking an upload in the ``uploading`` state with 0 bytes sent.

        A ``waiting`` or ``retrying`` entry with the same id is moved to
        ``uploading`` and keeps its cancellation token. Any other existing
        entry is replaced by a fresh one; if it was still in flight its old
        token is cancelled so a stale transport stops reporting.

        Returns:
            The cancellation token to hand to the transport.
        """
        with self._lock:
            existing = self._uploads.get(upload_id)
            if existing is not None and existing.status in (
                UploadStatus.WAITING,
                UploadStatus.RETRYING,
            ):
                progress = replace(
                    existing,
                    file_name=file_name,
                    total=max(0, total_bytes),
                    uploaded=0,
                    status=UploadStatus.UPLOADING,
                    error=None,
                    parent_folder_id=parent_folder_id,
                    updated_at=datetime.now(UTC),
                )
                self._uploads[upload_id] = progress
                token = self._tokens[upload_id]
                logger.info(
                    "[start_upload] started tracked upload; upload_id:%s;from_status:%s",
                    upload_id,
                    existing.status,
                )
            else:
                if existing is not None and existing.status.is_active:
                    logger.warning(
                        "[start_upload] replacing in-flight upload; upload_id:%s;status:%s",
                        upload_id,
                        existing.status,
                    )
                    self._tokens[upload_id].cancel()
                token = self._create(
                    upload_id,
                    file_name,
                    total_bytes,
                    parent_folder_id,
                    UploadStatus.UPLOADING,
                    notify=False,
                )
                progress = self._uploads[upload_id]
        self._notify(progress)
        return token

    def _create(
        self,
        upload_id: str,
        file_name: str,
        total_bytes: int,
        parent_folder_id: str | None,
        status: UploadStatus,
        notify: bool = True,
    ) -> CancellationToken:
        token = CancellationToken()
        progress = UploadProgress(
            upload_id=upload_id,
            file_name=file_name,
            uploaded=0,
            total=max(0, total_bytes),
            status=status,
            parent_folder_id=parent_folder_id,
        )
        with self._lock:
            self._uploads[upload_id] = progress
            self._tokens[upload_id] = token
        logger.info(
            "[track_upload] tracking upload; upload_id:%s;file_name:%s;total:%d;status:%s",
            upload_id,
            file_name,
            progress.total,
            status,
        )
        if notify:
            self._notify(progress)
        return token

    def report_progress(
        self,
        upload_id: str,
        uploaded_bytes: int,
        total_bytes: int | None = None,
        speed: float | None = None,
    ) -> UploadProgress | None:
        """Record bytes sent; reaching the total completes the upload.

        There is no separate completion signal: once ``uploaded_bytes`` is at
        or past the total, the upload is ``completed``. A ``paused`` upload
        keeps its status until resumed. Progress for a ``waiting`` or
        ``retrying`` upload is ignored; ``start_upload`` must run first.

        Args:
            upload_id: Tracked upload.
            uploaded_bytes: Total bytes confirmed so far (not a delta).
            total_bytes: Updated total size, when the transport learned it.
            speed: Measured transfer rate in bytes per second.

        Returns:
            The new snapshot, or None if the report was ignored.
        """
        with self._lock:
            current = self._uploads.get(upload_id)
            if current is None:
                logger.debug("[report_progress] unknown upload; upload_id:%s", upload_id)
                return None
            if current.status.is_terminal:
                logger.debug(
                    "[report_progress] upload already finished; upload_id:%s;status:%s",
                    upload_id,
                    current.status,
                )
                return None

            total = current.total if total_bytes is None else max(0, total_bytes)
            uploaded = max(0, uploaded_bytes)
            status = UploadStatus.COMPLETED if uploaded >= total else current.status
            if current.status not in _PROGRESS_STATUSES or (
                status is not current.status
                and status not in _TRANSITIONS[current.status]
            ):
                logger.warning(
                    "[report_progress] ignoring progress; upload_id:%s;status:%s",
                    upload_id,
                    current.status,
                )
                return None

            progress = replace(
                current,
                uploaded=uploaded,
                total=total,
                status=status,
                speed=speed if speed is not None else current.speed,
                updated_at=datetime.now(UTC),
            )
            self._uploads[upload_id] = progress

        if status is UploadStatus.COMPLETED:
            logger.info(
                "[report_progress] upload completed; upload_id:%s;bytes:%d",
                upload_id,
                uploaded,
            )
        self._notify(progress)
        return progress

    def report_error(self, upload_id: str, message: str) -> UploadProgress | None:
        """Mark an upload as failed. Terminal."""
        progress = self._transition(upload_id, UploadStatus.ERROR, error=message)
        if progress is not None:
            logger.error(
                "[report_error] upload failed; upload_id:%s;file_name:%s;error:%s",
                upload_id,
                progress.file_name,
                message,
            )
        return progress

    def cancel(self, upload_id: str) -> UploadProgress | None:
        """Flag a non-terminal upload as cancelled and signal its token. Terminal."""
        progress = self._transition(upload_id, UploadStatus.CANCELLED)
        if progress is not None:
            with self._lock:
                token = self._tokens.get(upload_id)
            if token is not None:
                token.cancel()
            logger.info("[cancel] upload cancelled; upload_id:%s", upload_id)
        return progress

    def pause(self, upload_id: str) -> UploadProgress | None:
        """Pause an uploading entry and ask its transport to stop sending."""
        if self._status_of(upload_id) is not UploadStatus.UPLOADING:
            logger.warning("[pause] upload is not uploading; upload_id:%s", upload_id)
            return None
        progress = self._transition(upload_id, UploadStatus.PAUSED)
        token = self.token_for(upload_id)
        if progress is not None and token is not None:
            token.pause()
            logger.info("[pause] upload paused; upload_id:%s", upload_id)
        return progress

    def resume(self, upload_id: str) -> UploadProgress | None:
        """Move a paused entry back to ``uploading`` and clear its stop signal.

        The interrupted transfer is not restarted here; the caller (usually
        an UploadQueue) runs the transport again.
        """
        if self._status_of(upload_id) is not UploadStatus.PAUSED:
            logger.warning("[resume] upload is not paused; upload_id:%s", upload_id)
            return None
        progress = self._transition(upload_id, UploadStatus.UPLOADING)
        token = self.token_for(upload_id)
        if progress is not None and token is not None:
            token.resume()
            logger.info("[resume] upload resumed; upload_id:%s", upload_id)
        return progress

    def mark_retrying(self, upload_id: str) -> UploadProgress | None:
        """Flag an uploading entry as being retried by the caller's own retry loop."""
        current = self.get(upload_id)
        if current is None or current.status is not UploadStatus.UPLOADING:
            logger.warning("[mark_retrying] upload is not uploading; upload_id:%s", upload_id)
            return None
        return self._transition(
            upload_id, UploadStatus.RETRYING, retry_count=current.retry_count + 1
        )

    def _status_of(self, upload_id: str) -> UploadStatus | None:
        with self._lock:
            current = self._uploads.get(upload_id)
            return current.status if current else None

    def _transition(
        self,
        upload_id: str,
        target: UploadStatus,
        error: str | None = None,
        retry_count: int | None = None,
    ) -> UploadProgress | None:
        with self._lock:
            current = self._uploads.get(upload_id)
            if current is None:
                logger.debug("[transition] unknown upload; upload_id:%s", upload_id)
                return None
            allowed = _TRANSITIONS.get(current.status, frozenset())
            if target not in allowed:
                logger.warning(
                    "[transition] ignoring invalid transition; upload_id:%s;from:%s;to:%s",
                    upload_id,
                    current.status,
                    target,
                )
                return None
            progress = replace(
                current,
                status=target,
                error=error if target is UploadStatus.ERROR else None,
                retry_count=current.retry_count if retry_count is None else retry_count,
                updated_at=datetime.now(UTC),
            )
            self._uploads[upload_id] = progress
        self._notify(progress)
        return progress

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def remove(self, upload_id: str) -> bool:
        """Drop a finished upload; in-flight uploads are kept."""
        with self._lock:
            current = self._uploads.get(upload_id)
            if current is None or current.status.is_active:
                return False
            del self._uploads[upload_id]
            self._tokens.pop(upload_id, None)
        logger.info("[remove] removed upload; upload_id:%s", upload_id)
        return True

    def clear_finished(self) -> int:
        """Remove every completed, failed or cancelled upload.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            finished = [uid for uid, p in self._uploads.items() if p.status.is_terminal]
            for uid in finished:
                del self._uploads[uid]
                self._tokens.pop(uid, None)
        if finished:
            logger.info("[clear_finished] removed finished uploads; count:%d", len(finished))
        return len(finished)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, upload_id: str) -> UploadProgress | None:
        with self._lock:
            return self._uploads.get(upload_id)

    def token_for(self, upload_id: str) -> CancellationToken | None:
        with self._lock:
            return self._tokens.get(upload_id)

    def uploads(self) -> tuple[UploadProgress, ...]:
        with self._lock:
            return tuple(self._uploads.values())

    def active_uploads(self) -> tuple[UploadProgress, ...]:
        with self._lock:
            return tuple(p for p in self._uploads.values() if p.status.is_active)

    def active_count(self) -> int:
        return len(self.active_uploads())

    def queued_count(self) -> int:
        """Number of uploads still ``waiting`` for a transfer slot."""
        with self._lock:
            return sum(1 for p in self._uploads.values() if p.status is UploadStatus.WAITING)

    def wait_for_upload(
        self, upload_id: str, timeout: float | None = None
    ) -> UploadProgress | None:
        """Block until the upload reaches a terminal status.

        A paused upload keeps the caller waiting until it is resumed and
        finishes, or is cancelled.

        Args:
            upload_id: Tracked upload.
            timeout: Seconds to wait; None waits indefinitely.

        Returns:
            The latest snapshot (still active if the timeout elapsed), or None
            for an unknown upload.
        """

        def finished() -> bool:
            current = self._uploads.get(upload_id)
            return current is None or current.status.is_terminal

        with self._changed:
            if not self._changed.wait_for(finished, timeout):
                logger.debug("[wait_for_upload] timed out; upload_id:%s", upload_id)
            return self._uploads.get(upload_id)

    def average_progress(self) -> float:
        """Mean fractional progress over in-flight uploads with a known size.

        Finished uploads are excluded. Returns 0.0 when nothing qualifies.
        """
        return _average(self.active_uploads())

    def summary(self) -> UploadSummary:
        with self._lock:
            snapshot = tuple(self._uploads.values())
        active = tuple(p for p in snapshot if p.status.is_active)
        return UploadSummary(
            active_count=len(active),
            average_progress=_average(active),
            completed_count=sum(1 for p in snapshot if p.status is UploadStatus.COMPLETED),
            failed_count=sum(1 for p in snapshot if p.status is UploadStatus.ERROR),
            cancelled_count=sum(1 for p in snapshot if p.status is UploadStatus.CANCELLED),
        )


def _average(uploads: tuple[UploadProgress, ...]) -> float:
    sized = [p.fraction for p in uploads if p.total > 0]
    if not sized:
        return 0.0
    return sum(sized) / len(sized)
