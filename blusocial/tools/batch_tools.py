"""Chunked, concurrent lookups for id lists larger than a backend query limit."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from blusocial.utils.errors import InvalidInputError, PartialBatchFailureError
from blusocial.utils.logging_config import logger

T = TypeVar("T")

# Firestore rejects "in" filters with more than 30 values.
DEFAULT_CHUNK_SIZE = 30


def chunked(ids: Sequence[str], size: int) -> list[list[str]]:
    """Split ``ids`` into contiguous chunks of at most ``size``."""

    if size < 1:
        raise InvalidInputError(f"chunk size must be at least 1, got {size}")
    return [list(ids[i : i + size]) for i in range(0, len(ids), size)]


async def fetch_in_chunks(
    ids: Sequence[str],
    fetch_chunk: Callable[[list[str]], Awaitable[Sequence[T]]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[T]:
    """Fetch entities for ``ids`` one chunk per call, all chunks concurrently.

    Results are concatenated in chunk order; no ordering is promised inside
    a chunk. An empty ``ids`` returns ``[]`` without calling ``fetch_chunk``.

    Raises:
        InvalidInputError: If ``chunk_size`` is below 1 and ``ids`` is non-empty.
        PartialBatchFailureError: If any chunk fetch fails. The first
            underlying error is chained as ``__cause__``.
    """

    if not ids:
        return []
    chunks = chunked(ids, chunk_size)

    results = await asyncio.gather(
        *(fetch_chunk(chunk) for chunk in chunks), return_exceptions=True
    )

    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        logger.error(
            "Batch fetch failed for %s of %s chunks: %s",
            len(failures),
            len(chunks),
            failures[0],
        )
        raise PartialBatchFailureError(len(failures), len(chunks)) from failures[0]

    merged: list[T] = []
    for entities in results:
        merged.extend(entities)

    logger.debug("fetch_in_chunks ids=%s chunks=%s found=%s", len(ids), len(chunks), len(merged))
    return merged
