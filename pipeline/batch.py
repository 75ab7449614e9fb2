"""Batch Scheduler: bounded fan-out over a list of instruments."""
import asyncio
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from common.logger import get_logger
from config.settings import BATCH_DELAY_SECONDS, BATCH_SIZE

logger = get_logger("batch")

T = TypeVar("T")
R = TypeVar("R")


class BatchScheduler:
    """Runs ``compute`` over consecutive groups of ``batch_size`` items.

    Members of one group run concurrently; the next group starts only after the
    whole group finished and ``delay_seconds`` elapsed. Items whose compute
    returns None or raises are dropped. Survivors keep their input order.
    """

    def __init__(self, batch_size: int = BATCH_SIZE, delay_seconds: float = BATCH_DELAY_SECONDS,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.batch_size = _check_batch_size(batch_size)
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    async def process(self, items: Sequence[T], compute: Callable[[T], Awaitable[Optional[R]]],
                      batch_size: Optional[int] = None) -> list[R]:
        size = _check_batch_size(batch_size if batch_size is not None else self.batch_size)
        results: list[R] = []
        groups = (len(items) + size - 1) // size

        for g, start in enumerate(range(0, len(items), size), 1):
            group = items[start:start + size]
            outcomes = await asyncio.gather(*(compute(item) for item in group),
                                            return_exceptions=True)
            for item, outcome in zip(group, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.error(f"❌ {item}: {type(outcome).__name__}: {outcome}")
                elif outcome is not None:
                    results.append(outcome)
            logger.info(f"Batch {g}/{groups}: {len(results)} kept so far")

            if start + size < len(items):
                await self.sleep(self.delay_seconds)

        return results


def _check_batch_size(batch_size: int) -> int:
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return batch_size


async def batch_process(items: Sequence[T], compute: Callable[[T], Awaitable[Optional[R]]],
                        batch_size: int = BATCH_SIZE) -> list[R]:
    return await BatchScheduler(batch_size).process(items, compute)
