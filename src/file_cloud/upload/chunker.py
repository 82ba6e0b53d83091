"""Chunking strategies that split an upload's bytes into transfer units."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from file_cloud.config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_DEBUG_CHUNK_SIZE = 4096
DEFAULT_DEBUG_CHUNK_DELAY = 0.05


class Chunker(Protocol):
    """Splits a byte buffer into ordered, contiguous chunks."""

    def __call__(self, data: bytes) -> Iterator[bytes]: ...


class FixedSizeChunker:
    """Yields fixed-size slices with no delay; the last slice may be shorter."""

    def __init__(self, chunk_size: int) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def __call__(self, data: bytes) -> Iterator[bytes]:
        view = memoryview(data)
        for start in range(0, len(view), self.chunk_size):
            yield bytes(view[start : start + self.chunk_size])


class SlowChunker(FixedSizeChunker):
    """Debug chunker that waits between chunks to make progress visible.

    Used to exercise progress reporting under controlled conditions; it is
    not a transfer protocol.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_DEBUG_CHUNK_SIZE,
        delay: float = DEFAULT_DEBUG_CHUNK_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(chunk_size)
        self.delay = delay
        self._sleep = sleep

    def __call__(self, data: bytes) -> Iterator[bytes]:
        logger.debug(
            "[slow_chunker] simulating slow transfer; bytes:%d;chunk_size:%d;delay:%.3f",
            len(data),
            self.chunk_size,
            self.delay,
        )
        for index, chunk in enumerate(super().__call__(data)):
            if index and self.delay > 0:
                self._sleep(self.delay)
            yield chunk


def chunker_from_config(config: AppConfig) -> Chunker:
    """Pick the slow debug chunker or the regular upload-session chunker.

    Args:
        config: Application configuration instance.

    Returns:
        Chunker instance matching the configured upload mode.
    """
    if config.slow_upload:
        logger.info("[chunker_from_config] slow upload mode enabled")
        return SlowChunker(config.debug_chunk_size, config.debug_chunk_delay)
    return FixedSizeChunker(config.upload_chunk_size)
