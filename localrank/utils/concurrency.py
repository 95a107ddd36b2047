"""Bounded-concurrency fetching for per-business detail lookups."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Hashable, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class FetchFailure:
    """A single fetch that raised or timed out."""
    key: Hashable
    error: str


@dataclass
class FetchBatch:
    """Outcome of a bounded fetch: successes keyed by item, plus failures."""
    results: dict[Hashable, Any] = field(default_factory=dict)
    failures: list[FetchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


async def bounded_fetch(
    keys: Iterable[Hashable],
    fetch: Callable[[Hashable], Awaitable[Any]],
    limit: int = 5,
    timeout: Optional[float] = None,
) -> FetchBatch:
    """Run ``fetch(key)`` for every key with at most *limit* in flight.

    Failures never abort the batch; each one is recorded as a
    :class:`FetchFailure` and logged. Successful results keep the order
    of *keys*.

    Args:
        keys: Items to fetch (duplicates are fetched once).
        fetch: Coroutine function returning the fetched object.
        limit: Maximum concurrent fetches.
        timeout: Optional per-fetch timeout in seconds.
    """
    if limit < 1:
        raise ValueError("limit must be >= 1")

    ordered = list(dict.fromkeys(keys))
    semaphore = asyncio.Semaphore(limit)

    async def _run(key: Hashable) -> Any:
        async with semaphore:
            if timeout is None:
                return await fetch(key)
            return await asyncio.wait_for(fetch(key), timeout=timeout)

    raw = await asyncio.gather(*(_run(k) for k in ordered), return_exceptions=True)

    batch = FetchBatch()
    for key, outcome in zip(ordered, raw):
        if isinstance(outcome, asyncio.TimeoutError):
            message = "timed out after " + str(timeout) + "s"
            logger.warning("Fetch for %r %s", key, message)
            batch.failures.append(FetchFailure(key=key, error=message))
        elif isinstance(outcome, (Exception, asyncio.CancelledError)):
            logger.warning("Fetch for %r failed: %s", key, outcome)
            batch.failures.append(FetchFailure(key=key, error=str(outcome) or type(outcome).__name__))
        else:
            batch.results[key] = outcome

    logger.info(
        "Bounded fetch complete: %d ok, %d failed (limit=%d)",
        len(batch.results), len(batch.failures), limit,
    )
    return batch
