"""
Background reconciliation of orphaned ledger entries.

An acquisition that crashes between opening its ledger entry and closing
it leaves the row in ``processing``. The reconciler periodically fails
rows that have been processing longer than a threshold.
"""

import asyncio
import logging
from datetime import timedelta

from sintillio.config.settings import get_settings
from sintillio.ledger.repository import LedgerRepository
from sintillio.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

STALE_REASON = "Stale processing entry reconciled"


class LedgerReconciler:
    """
    Marks stale ``processing`` ledger rows ``failed``.

    Usage:
        reconciler = LedgerReconciler(LedgerRepository(db))
        await reconciler.sweep()            # one pass (CLI)
        task = reconciler.start()           # periodic (API lifespan)
        await reconciler.stop()
    """

    def __init__(
        self,
        repository: LedgerRepository,
        stale_after: timedelta | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        self._repository = repository
        self._stale_after = stale_after or timedelta(minutes=settings.ledger_stale_after_minutes)
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else settings.ledger_reconcile_interval_seconds
        )
        self._task: asyncio.Task | None = None

    async def sweep(self) -> list[str]:
        """Run one reconciliation pass; return the ids marked failed."""
        ids = await self._repository.fail_stale(self._stale_after, STALE_REASON)
        get_metrics().record_reconciled(len(ids))
        if ids:
            logger.warning(f"Reconciled {len(ids)} stale ledger entries: {ids}")
        return ids

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Ledger reconciliation pass failed: {e}")
            await asyncio.sleep(self._interval)

    def start(self) -> asyncio.Task | None:
        """Start the periodic sweep. Disabled when the interval is 0."""
        if self._interval <= 0:
            logger.info("Ledger reconciler disabled")
            return None
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="ledger-reconciler")
            logger.info(
                f"Ledger reconciler started (every {self._interval}s, "
                f"stale after {self._stale_after})"
            )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Ledger reconciler stopped")
