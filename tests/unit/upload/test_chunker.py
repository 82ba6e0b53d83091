"""Unit tests for upload/chunker.py."""

import pytest

from file_cloud.config import AppConfig
from file_cloud.upload.chunker import FixedSizeChunker, SlowChunker, chunker_from_config


def _config(**overrides: object) -> AppConfig:
    values: dict[str, object] = {
        "client_id": "cid",
        "client_secret": "secret",
        "tenant_id": "tid",
        "drive_user": "user@example.com",
    }
    values.update(overrides)
    return AppConfig(**values)  # type: ignore[arg-type]


class TestFixedSizeChunker:
    def test_splits_into_fixed_chunks_with_short_tail(self) -> None:
        chunks = list(FixedSizeChunker(4)(b"abcdefghij"))
        assert chunks == [b"abcd", b"efgh", b"ij"]

    def test_exact_multiple_has_no_empty_tail(self) -> None:
        assert list(FixedSizeChunker(5)(b"abcdefghij")) == [b"abcde", b"fghij"]

    def test_empty_data_yields_nothing(self) -> None:
        assert list(FixedSizeChunker(4)(b"")) == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_rejects_non_positive_size(self, size: int) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            FixedSizeChunker(size)


class TestSlowChunker:
    def test_sleeps_between_chunks_only(self) -> None:
        sleeps: list[float] = []
        chunker = SlowChunker(chunk_size=3, delay=0.25, sleep=sleeps.append)

        chunks = list(chunker(b"abcdefgh"))

        assert chunks == [b"abc", b"def", b"gh"]
        assert sleeps == [0.25, 0.25]

    def test_zero_delay_never_sleeps(self) -> None:
        sleeps: list[float] = []
        chunker = SlowChunker(chunk_size=2, delay=0, sleep=sleeps.append)
        assert list(chunker(b"abcd")) == [b"ab", b"cd"]
        assert sleeps == []

    def test_sleep_happens_lazily(self) -> None:
        sleeps: list[float] = []
        chunks = SlowChunker(chunk_size=1, delay=1.0, sleep=sleeps.append)(b"ab")

        next(chunks)
        assert sleeps == []
        next(chunks)
        assert sleeps == [1.0]


class TestChunkerFromConfig:
    def test_default_is_fixed_size(self) -> None:
        chunker = chunker_from_config(_config(upload_chunk_size=1024))
        assert type(chunker) is FixedSizeChunker
        assert chunker.chunk_size == 1024

    def test_slow_upload_mode(self) -> None:
        chunker = chunker_from_config(
            _config(slow_upload=True, debug_chunk_size=16, debug_chunk_delay=0.5)
        )
        assert isinstance(chunker, SlowChunker)
        assert chunker.chunk_size == 16
        assert chunker.delay == 0.5
