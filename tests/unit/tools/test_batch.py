"""
Unit tests for chunked concurrent fetches.

Covers chunk boundaries, concurrency, failure reporting and the
empty-input shortcut.
"""

import asyncio

import pytest

from blusocial.tools.batch_tools import chunked, fetch_in_chunks
from blusocial.utils.errors import InvalidInputError, PartialBatchFailureError


class TestChunked:
    def test_splits_with_remainder(self):
        ids = [str(i) for i in range(65)]
        assert [len(c) for c in chunked(ids, 30)] == [30, 30, 5]

    def test_exact_multiple(self):
        assert [len(c) for c in chunked(list("abcdef"), 3)] == [3, 3]

    def test_empty(self):
        assert chunked([], 30) == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_rejects_bad_size(self, size):
        with pytest.raises(InvalidInputError):
            chunked(["a"], size)


class TestFetchInChunks:
    @pytest.mark.asyncio
    async def test_one_call_per_chunk(self):
        calls = []

        async def fetch(chunk):
            calls.append(chunk)
            return [f"entity-{i}" for i in chunk]

        ids = [str(i) for i in range(65)]
        result = await fetch_in_chunks(ids, fetch, chunk_size=30)

        assert [len(c) for c in calls] == [30, 30, 5]
        assert result == [f"entity-{i}" for i in ids]

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_calls(self):
        async def fetch(chunk):
            raise AssertionError("should not be called")

        assert await fetch_in_chunks([], fetch) == []

    @pytest.mark.asyncio
    async def test_empty_input_skips_chunk_size_check(self):
        async def fetch(chunk):
            raise AssertionError("should not be called")

        assert await fetch_in_chunks([], fetch, chunk_size=0) == []

    @pytest.mark.asyncio
    async def test_chunks_run_concurrently(self):
        """Every chunk is in flight before any of them finishes."""
        started = []
        release = asyncio.Event()

        async def fetch(chunk):
            started.append(chunk)
            if len(started) == 3:
                release.set()
            await release.wait()
            return chunk

        result = await asyncio.wait_for(
            fetch_in_chunks([str(i) for i in range(7)], fetch, chunk_size=3), timeout=1
        )
        assert len(started) == 3
        assert result == [str(i) for i in range(7)]

    @pytest.mark.asyncio
    async def test_results_merge_in_chunk_order(self):
        """The slowest chunk still lands first if it was first."""

        async def fetch(chunk):
            await asyncio.sleep(0.02 if chunk[0] == "a" else 0)
            return chunk

        result = await fetch_in_chunks(list("abcdef"), fetch, chunk_size=2)
        assert result == list("abcdef")

    @pytest.mark.asyncio
    async def test_missing_ids_are_omitted(self):
        known = {"a": 1, "c": 3}

        async def fetch(chunk):
            return [known[i] for i in chunk if i in known]

        assert await fetch_in_chunks(["a", "b", "c"], fetch, chunk_size=2) == [1, 3]

    @pytest.mark.asyncio
    async def test_single_failure_fails_whole_batch(self):
        async def fetch(chunk):
            if "c" in chunk:
                raise ConnectionError("backend down")
            return chunk

        with pytest.raises(PartialBatchFailureError) as exc_info:
            await fetch_in_chunks(list("abcde"), fetch, chunk_size=2)

        error = exc_info.value
        assert error.failed_chunks == 1
        assert error.total_chunks == 3
        assert "1 of 3" in str(error)
        assert isinstance(error.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_bad_chunk_size(self):
        async def fetch(chunk):
            return chunk

        with pytest.raises(InvalidInputError):
            await fetch_in_chunks(["a"], fetch, chunk_size=0)
