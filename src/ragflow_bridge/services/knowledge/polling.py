from __future__ import annotations

import asyncio
import logging
from random import random
from time import monotonic
from typing import Awaitable, Callable

from ragflow_bridge.services.knowledge.errors import IndexingTimeoutError, ValidationError
from ragflow_bridge.services.knowledge.status import StatusTracker
from ragflow_bridge.services.knowledge.types import LifecycleStatus

logger = logging.getLogger(__name__)


async def wait_until_ready(
    tracker: StatusTracker,
    dataset_id: str,
    *,
    interval_seconds: float = 2.0,
    max_interval_seconds: float = 30.0,
    timeout_seconds: float = 600.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = monotonic,
) -> LifecycleStatus:
    """Poll until the dataset is ready or failed, backing off between reads.

    Returns the terminal status; raises ``IndexingTimeoutError`` once
    ``timeout_seconds`` elapse with the dataset still processing.
    """
    if interval_seconds <= 0:
        raise ValidationError("interval_seconds must be > 0")

    deadline = clock() + timeout_seconds
    delay = interval_seconds
    attempt = 1

    while True:
        status = await tracker.get_lifecycle_status(dataset_id)
        if status is not LifecycleStatus.PROCESSING:
            logger.info("dataset %s reached status=%s after %d polls", dataset_id, status.value, attempt)
            return status

        remaining = deadline - clock()
        if remaining <= 0:
            raise IndexingTimeoutError(
                f"Dataset {dataset_id} still processing after {timeout_seconds:.0f}s"
            )

        wait = min(delay + random() * 0.2 * delay, remaining)
        logger.debug("dataset %s processing poll=%d; next poll in %.1fs", dataset_id, attempt, wait)
        await sleep(wait)
        delay = min(delay * 2, max_interval_seconds)
        attempt += 1
