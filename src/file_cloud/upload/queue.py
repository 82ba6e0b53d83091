"""Upload queue: runs tracked uploads through a transport with a concurrency limit."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial

from file_cloud.upload.models import UploadProgress, UploadStatus
from file_cloud.upload.tracker import UploadTracker
from file_cloud.upload.transport import UploadTransport, consume_progress

logger = logging.getLogger(__name__)

FailureHandler = Callable[[str, Exception], None]
Spawner = Callable[[Callable[[], None]], None]

MAX_CONCURRENT_LIMIT = 10


@dataclass(frozen=True)
class _Job:
    upload_id: str
    file_name: str
    data: bytes
    parent_folder_id: str | None


def _spawn_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, name="file-cloud-upload", daemon=True).start()


class UploadQueue:
    """FIFO of uploads waiting for one of ``max_concurrent`` transfer slots.

    Queued uploads are tracked as ``waiting`` and moved to ``uploading`` when a
    slot frees up. Pausing stops the running transfer and releases its slot;
    resuming puts the upload back at the front of the queue, where it keeps
    its ``paused`` status until a slot is free, and the transfer then starts
    over from the first byte.
    """

    def __init__(
        self,
        tracker: UploadTracker,
        transport: UploadTransport,
        max_concurrent: int = 3,
        on_failure: FailureHandler | None = None,
        spawn: Spawner | None = None,
    ) -> None:
        """Initialise the queue.

        Args:
            tracker: Upload state the queue reports into.
            transport: Performs each transfer.
            max_concurrent: Transfers run at once, between 1 and 10.
            on_failure: Called with the upload ID and exception when a
                transport raises; by default the exception text is recorded
                as the upload's error.
            spawn: Runs a transfer in the background; a daemon thread by
                default.
        """
        if not 1 <= max_concurrent <= MAX_CONCURRENT_LIMIT:
            raise ValueError(
                f"max_concurrent must be between 1 and {MAX_CONCURRENT_LIMIT}, got {max_concurrent}"
            )
        self._tracker = tracker
        self._transport = transport
        self._max_concurrent = max_concurrent
        self._on_failure = on_failure or self._record_error
        self._spawn = spawn or _spawn_thread
        self._jobs: dict[str, _Job] = {}
        self._pending: deque[str] = deque()
        self._running: set[str] = set()
        self._paused = False
        self._lock = threading.Lock()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @max_concurrent.setter
    def max_concurrent(self, value: int) -> None:
        if not 1 <= value <= MAX_CONCURRENT_LIMIT:
            logger.warning("[max_concurrent] ignoring out of range value; value:%d", value)
            return
        self._max_concurrent = value
        self._process_queue()

    @property
    def is_paused(self) -> bool:
        return self._paused

    def running_count(self) -> int:
        with self._lock:
            return len(self._running)

    def queued_count(self) -> int:
        """Uploads waiting for a slot, including resumed ones."""
        with self._lock:
            return len(self._pending)

    # ------------------------------------------------------------------
    # Adding and running
    # ------------------------------------------------------------------

    def add(
        self,
        file_name: str,
        data: bytes,
        parent_folder_id: str | None = None,
        upload_id: str | None = None,
    ) -> str:
        """Queue an upload and start it if a slot is free.

        Returns:
            The upload ID.
        """
        upload_id = upload_id or uuid.uuid4().hex
        self._tracker.queue_upload(upload_id, file_name, len(data), parent_folder_id)
        with self._lock:
            self._jobs[upload_id] = _Job(upload_id, file_name, data, parent_folder_id)
            self._pending.append(upload_id)
        logger.info("[add] upload queued; upload_id:%s;file_name:%s", upload_id, file_name)
        self._process_queue()
        return upload_id

    def _process_queue(self) -> None:
        starts: list[_Job] = []
        with self._lock:
            # A paused upload whose transfer is still winding down waits for it.
            busy: list[str] = []
            while (
                not self._paused
                and self._pending
                and len(self._running) < self._max_concurrent
            ):
                upload_id = self._pending.popleft()
                job = self._jobs.get(upload_id)
                current = self._tracker.get(upload_id)
                if job is None or current is None or current.status.is_terminal:
                    self._jobs.pop(upload_id, None)
                    continue
                if upload_id in self._running:
                    busy.append(upload_id)
                    continue
                self._running.add(upload_id)
                starts.append(job)
            self._pending.extendleft(reversed(busy))
        for job in starts:
            logger.debug("[process_queue] starting upload; upload_id:%s", job.upload_id)
            self._spawn(partial(self._run, job))

    def _run(self, job: _Job) -> None:
        upload_id = job.upload_id
        try:
            with self._lock:
                if self._paused:
                    self._pending.appendleft(upload_id)
                    logger.info("[run] queue paused before start; upload_id:%s", upload_id)
                    return
            current = self._tracker.get(upload_id)
            if current is not None and current.status is UploadStatus.PAUSED:
                started = self._tracker.resume(upload_id) is not None
            elif current is not None and current.status is UploadStatus.WAITING:
                self._tracker.start_upload(
                    upload_id, job.file_name, len(job.data), job.parent_folder_id
                )
                started = True
            else:
                started = False
            token = self._tracker.token_for(upload_id)
            if not started or token is None:
                logger.info("[run] upload no longer startable; upload_id:%s", upload_id)
                return

            events = self._transport.upload(job.file_name, job.data, job.parent_folder_id, token)
            consume_progress(self._tracker, upload_id, events, token)
        except Exception as exc:
            logger.error("[run] upload raised; upload_id:%s", upload_id, exc_info=True)
            self._on_failure(upload_id, exc)
        finally:
            with self._lock:
                self._running.discard(upload_id)
                current = self._tracker.get(upload_id)
                if current is None or current.status.is_terminal:
                    self._jobs.pop(upload_id, None)
            self._process_queue()

    def _record_error(self, upload_id: str, exc: Exception) -> None:
        self._tracker.report_error(upload_id, str(exc))

    # ------------------------------------------------------------------
    # Pause / resume / cancel
    # ------------------------------------------------------------------

    def pause(self, upload_id: str) -> UploadProgress | None:
        """Stop a running transfer; its slot goes to the next queued upload."""
        return self._tracker.pause(upload_id)

    def resume(self, upload_id: str) -> bool:
        """Put a paused upload at the front of the queue.

        Returns:
            False when the upload is not paused or was not added here.
        """
        current = self._tracker.get(upload_id)
        with self._lock:
            if (
                current is None
                or current.status is not UploadStatus.PAUSED
                or upload_id not in self._jobs
            ):
                logger.warning("[resume] upload cannot be resumed; upload_id:%s", upload_id)
                return False
            if upload_id not in self._pending:
                self._pending.appendleft(upload_id)
        logger.info("[resume] upload requeued; upload_id:%s", upload_id)
        self._process_queue()
        return True

    def cancel(self, upload_id: str) -> UploadProgress | None:
        """Cancel a queued, paused or running upload."""
        with self._lock:
            if upload_id in self._pending:
                self._pending.remove(upload_id)
            if upload_id not in self._running:
                self._jobs.pop(upload_id, None)
        return self._tracker.cancel(upload_id)

    def pause_all(self) -> None:
        """Stop starting new uploads and pause every running one."""
        logger.info("[pause_all] pausing uploads")
        with self._lock:
            self._paused = True
            running = list(self._running)
        for upload_id in running:
            self._tracker.pause(upload_id)

    def resume_all(self) -> None:
        """Requeue every paused upload ahead of the waiting ones and restart."""
        logger.info("[resume_all] resuming uploads")
        with self._lock:
            self._paused = False
            paused: list[str] = []
            for upload_id in self._jobs:
                current = self._tracker.get(upload_id)
                if (
                    upload_id not in self._pending
                    and current is not None
                    and current.status is UploadStatus.PAUSED
                ):
                    paused.append(upload_id)
            self._pending.extendleft(reversed(paused))
        self._process_queue()

    def cancel_all(self) -> int:
        """Cancel every running, paused and queued upload.

        Returns:
            Number of uploads cancelled.
        """
        logger.info("[cancel_all] cancelling uploads")
        with self._lock:
            upload_ids = list(self._jobs)
        return sum(1 for upload_id in upload_ids if self.cancel(upload_id) is not None)

    def wait_for_upload(
        self, upload_id: str, timeout: float | None = None
    ) -> UploadProgress | None:
        """Block until the upload finishes; see UploadTracker.wait_for_upload."""
        return self._tracker.wait_for_upload(upload_id, timeout)

