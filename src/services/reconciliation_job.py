# src/services/reconciliation_job.py

"""One reconciliation cycle: re-check every tracked price and alert on change."""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime

from src.config.settings import Settings
from src.models.price_record import PriceRecord
from src.models.price_snapshot import PriceSnapshot
from src.models.product import WorkItem
from src.notifications.telegram_notifier import (
    NotificationChannel,
    TelegramNotifier,
    format_price_message,
)
from src.services.change_detector import PriceChange, detect
from src.services.parser_gateway import ParserGateway
from src.storage.price_store import PriceStore

logger = logging.getLogger("price_watch.job")


def _mark_started(started: "asyncio.Future[None]") -> None:
    if not started.done():
        started.set_result(None)


@dataclass
class CycleReport:
    """Outcome of a single reconciliation cycle."""

    started_at: datetime
    finished_at: datetime | None = None
    checked: int = 0
    skipped: int = 0
    unchanged: int = 0
    changes: list[tuple[int, PriceRecord]] = field(
        default_factory=lambda: list[tuple[int, PriceRecord]]()
    )
    notified: int = 0
    notification_failures: int = 0
    persisted: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )


class ReconciliationJob:
    """Compares every tracked product's live price with its last record.

    The job is the unit of work a scheduler triggers.  It assumes at most
    one cycle runs at a time.  Per-product problems are logged and
    skipped; only a failed batch write escapes :meth:`run`.
    """

    def __init__(
        self,
        gateway: ParserGateway | None = None,
        notifier: NotificationChannel | None = None,
        store_factory: Callable[[], PriceStore] | None = None,
        max_workers: int | None = None,
        fetch_timeout: float | None = None,
    ) -> None:
        self.settings = Settings()
        self.gateway = gateway or ParserGateway()
        self.notifier = notifier or TelegramNotifier()
        self._store_factory = store_factory or PriceStore
        self._max_workers = (
            max_workers
            if max_workers is not None
            else self.settings.MAX_WORKERS
        )
        self._fetch_timeout = (
            fetch_timeout
            if fetch_timeout is not None
            else self.settings.FETCH_TIMEOUT
        )
        if self._max_workers < 1:
            raise ValueError(
                f"max_workers must be at least 1, got {self._max_workers}"
            )

    # ── Private helpers ──────────────────────────────────

    async def _fetch(
        self,
        item: WorkItem,
        executor: ThreadPoolExecutor,
    ) -> PriceSnapshot | None:
        """Run the blocking gateway call on the fetch pool with a timeout.

        The timeout clock starts when a pool thread picks the call up,
        not while it waits in the queue behind busy workers.
        """
        loop = asyncio.get_running_loop()
        started = loop.create_future()
        product = item.product

        def call() -> PriceSnapshot | None:
            loop.call_soon_threadsafe(_mark_started, started)
            return self.gateway.fetch(product.marketplace, product.link)

        future = loop.run_in_executor(executor, call)
        try:
            await asyncio.wait(
                {started, future}, return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            future.cancel()
            started.cancel()
            raise
        return await asyncio.wait_for(future, timeout=self._fetch_timeout)

    async def _notify(
        self,
        item: WorkItem,
        change: PriceChange,
        report: CycleReport,
    ) -> None:
        """Best-effort alert; failures are counted, never raised."""
        try:
            message = format_price_message(change.notification)
            sent = await asyncio.to_thread(
                self.notifier.send, item.user.chat_id, message,
            )
        except Exception as exc:
            logger.warning(
                "Notification for product %d raised: %s",
                item.product.id,
                exc,
                exc_info=True,
            )
            sent = False

        if sent:
            report.notified += 1
        else:
            report.notification_failures += 1
            logger.warning(
                "Notification for product %d to %s was not delivered",
                item.product.id,
                item.user.chat_id,
            )

    async def _process(
        self,
        item: WorkItem,
        executor: ThreadPoolExecutor,
        report: CycleReport,
    ) -> None:
        """Handle one product; any failure counts as a skip."""
        product = item.product
        try:
            await self._check(item, executor, report)
        except asyncio.TimeoutError:
            logger.warning(
                "Fetch timed out after %gs for product %d (%s)",
                self._fetch_timeout,
                product.id,
                product.link,
            )
            report.skipped += 1
        except Exception as exc:
            logger.warning(
                "Processing failed for product %d (%s): %s",
                product.id,
                product.link,
                exc,
                exc_info=True,
            )
            report.errors.append(f"product {product.id}: {exc}")
            report.skipped += 1

    async def _check(
        self,
        item: WorkItem,
        executor: ThreadPoolExecutor,
        report: CycleReport,
    ) -> None:
        """Fetch, compare and (on change) record and notify for one product."""
        product = item.product
        snapshot = await self._fetch(item, executor)
        if snapshot is None:
            logger.debug(
                "Product %d (%s) not parseable this cycle",
                product.id,
                product.marketplace,
            )
            report.skipped += 1
            return

        logger.debug(
            "Product %d last price %.2f / %.2f at %s",
            product.id,
            item.last_record.base_price,
            item.last_record.discounted_price,
            item.last_record.created_at,
        )
        change = detect(item.last_record, snapshot, product.link)
        if change is None:
            report.unchanged += 1
            return

        logger.info(
            "Price change for '%s' (product %d): %.2f / %.2f",
            change.notification.title,
            product.id,
            change.record.base_price,
            change.record.discounted_price,
        )
        report.changes.append((product.id, change.record))
        product.prices.append(change.record)
        await self._notify(item, change, report)

    # ── Entry point ──────────────────────────────────────

    async def run(self) -> CycleReport:
        """Execute one full cycle and return its report.

        Raises:
            PersistenceError: The cycle's new records could not be
                committed.  None of them are stored.
        """
        report = CycleReport(started_at=datetime.now())
        logger.info(
            "Reconciliation cycle started at %s", report.started_at,
        )

        with self._store_factory() as store:
            users = await asyncio.to_thread(store.load_working_set)
            items = [
                WorkItem(user=u, product=p, last_record=p.last_price)
                for u in users
                for p in u.products
            ]
            report.checked = len(items)
            logger.info(
                "Loaded %d products for %d users", len(items), len(users),
            )

            executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="price_watch-fetch",
            )
            try:
                await asyncio.gather(
                    *(self._process(i, executor, report) for i in items)
                )
            finally:
                # Timed-out fetches keep their thread until the HTTP call ends
                executor.shutdown(wait=False, cancel_futures=True)

            report.persisted = await asyncio.to_thread(
                store.append_records, report.changes,
            )

        report.finished_at = datetime.now()
        logger.info(
            "Reconciliation cycle ended at %s: %d checked, %d changed, "
            "%d unchanged, %d skipped, %d notified, %d failed notifications",
            report.finished_at,
            report.checked,
            len(report.changes),
            report.unchanged,
            report.skipped,
            report.notified,
            report.notification_failures,
        )
        return report
