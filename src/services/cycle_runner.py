# src/services/cycle_runner.py

"""Back-to-back cycle runner for deployments without an external scheduler."""

import asyncio
import logging
from collections.abc import Callable

from src.services.reconciliation_job import CycleReport, ReconciliationJob
from src.storage.price_store import PersistenceError

logger = logging.getLogger("price_watch.runner")


async def run_forever(
    job_factory: Callable[[], ReconciliationJob],
    interval: float,
    max_cycles: int | None = None,
    on_report: Callable[[CycleReport], None] | None = None,
) -> int:
    """Run cycles sequentially, sleeping *interval* seconds between them.

    A cycle never starts before the previous one has finished.  A failed
    batch write is logged and the next cycle retries against the same
    stored records.  Returns the number of cycles that completed.
    """
    completed = 0
    attempts = 0
    while max_cycles is None or attempts < max_cycles:
        attempts += 1
        job = job_factory()
        try:
            report = await job.run()
        except PersistenceError as exc:
            logger.error(
                "Cycle %d failed to persist: %s", attempts, exc,
                exc_info=True,
            )
        else:
            completed += 1
            if on_report is not None:
                on_report(report)

        if max_cycles is not None and attempts >= max_cycles:
            break
        logger.debug("Sleeping %.0fs until next cycle", interval)
        await asyncio.sleep(interval)
    return completed
