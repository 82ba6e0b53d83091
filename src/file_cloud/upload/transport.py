"""Upload transport contract and the glue that feeds its events to the tracker."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Protocol

from file_cloud.upload.chunker import Chunker
from file_cloud.upload.models import ProgressEvent, UploadProgress, UploadStatus
from file_cloud.upload.tracker import CancellationToken, UploadTracker

logger = logging.getLogger(__name__)


class UploadTransport(Protocol):
    """Performs the byte transfer for one file and reports progress."""

    def upload(
        self,
        file_name: str,
        data: bytes,
        parent_folder_id: str | None,
        token: CancellationToken,
    ) -> Iterator[ProgressEvent]:
        """Transfer ``data`` and yield cumulative progress events.

        Implementations must check ``token.stop_requested`` between chunks and
        stop yielding once it is set (the upload was cancelled or paused).
        Failures are raised, not yielded.
        """
        ...


class SimulatedTransport:
    """Transport that reports progress per chunk without sending anything.

    Pair with a SlowChunker to watch the progress UI move, or with a
    FixedSizeChunker for instant runs in tests.
    """

    def __init__(self, chunker: Chunker) -> None:
        self._chunker = chunker

    def upload(
        self,
        file_name: str,
        data: bytes,
        parent_folder_id: str | None,
        token: CancellationToken,
    ) -> Iterator[ProgressEvent]:
        total = len(data)
        yield ProgressEvent(uploaded=0, total=total)
        sent = 0
        for chunk in self._chunker(data):
            if token.stop_requested:
                logger.info("[simulated_upload] stopped; file_name:%s;sent:%d", file_name, sent)
                return
            sent += len(chunk)
            yield ProgressEvent(uploaded=sent, total=total)
        if sent < total:
            return
        yield ProgressEvent(uploaded=total, total=total, status=UploadStatus.COMPLETED)


def consume_progress(
    tracker: UploadTracker,
    upload_id: str,
    events: Iterable[ProgressEvent],
    token: CancellationToken,
) -> UploadProgress | None:
    """Apply a transport's progress events to the tracker until it finishes.

    Stops early when the upload is cancelled, paused or reaches a terminal
    state; a paused upload does not advance until its owner restarts the
    transfer. An event carrying ``error`` status is recorded via
    ``report_error``, and so is a transport that ends without completing.
    Exceptions raised by the transport propagate to the caller.

    Returns:
        The final snapshot of the upload.
    """
    for event in events:
        if token.stop_requested:
            logger.info(
                "[consume_progress] stopped; upload_id:%s;cancelled:%s;paused:%s",
                upload_id,
                token.cancelled,
                token.paused,
            )
            break

        if event.status is UploadStatus.ERROR:
            tracker.report_error(upload_id, event.error or "Upload failed")
            break

        tracker.report_progress(upload_id, event.uploaded, total_bytes=event.total)
        if event.status is UploadStatus.COMPLETED:
            tracker.report_progress(upload_id, event.total, total_bytes=event.total)

        current = tracker.get(upload_id)
        if current is None or current.status.is_terminal:
            break
    else:
        current = tracker.get(upload_id)
        if current is not None and current.status is UploadStatus.UPLOADING:
            tracker.report_error(upload_id, "Upload ended before all bytes were sent")

    return tracker.get(upload_id)
