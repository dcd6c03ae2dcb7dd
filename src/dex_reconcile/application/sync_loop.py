"""Periodic contract-history sync; started from the app lifespan when enabled."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from src.dex_common.database import async_session_factory
from src.dex_common.errors import AppError
from src.dex_reconcile.application.reconciler import LedgerReconciler

logger = logging.getLogger(__name__)


async def run_sync_loop(
    reconciler: LedgerReconciler,
    interval_seconds: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    max_passes: int | None = None,
) -> None:
    """Run sync_recent every interval until cancelled.

    A failed pass is logged and retried on the next tick; the trade store
    tolerates repeated passes.
    """
    passes = 0
    while max_passes is None or passes < max_passes:
        passes += 1
        try:
            async with async_session_factory() as db:
                result = await reconciler.sync_recent(db)
            logger.info(
                "Sync pass %d: inserted=%d merged=%d backfilled=%d",
                passes, result.inserted, result.merged, result.backfill.updated,
            )
        except AppError as exc:
            logger.warning("Sync pass %d failed: %s", passes, exc.message)
        except Exception:
            logger.exception("Sync pass %d crashed", passes)
        await sleep(interval_seconds)
