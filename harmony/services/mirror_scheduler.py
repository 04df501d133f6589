"""Background job that rebuilds drifted artist documents from the ledger."""

import logging

from harmony.database import postgres
from harmony.mongodb import mongo
from harmony.services.artist_record_service import ArtistRecordService

logger = logging.getLogger(__name__)


async def reconcile_mirrors(service: ArtistRecordService | None = None) -> dict:
    """
    Find artists whose mirror disagrees with the ledger and rebuild them.
    A failure on one artist is logged and the run moves on.
    """
    logger.info("Starting mirror reconciliation...")

    if service is None:
        async with postgres.session() as db:
            return await reconcile_mirrors(ArtistRecordService(db, mongo.get_db()))

    drifted = await service.find_drifted_artists()
    rebuilt = 0
    errors = 0

    for artist_id in drifted:
        try:
            await service.rebuild_document_from_ledger(artist_id)
            rebuilt += 1
        except Exception as e:
            errors += 1
            logger.error(f"Error rebuilding mirror for artist {artist_id}: {e}")
            continue

    logger.info(
        f"Mirror reconciliation complete: {len(drifted)} drifted, "
        f"{rebuilt} rebuilt, {errors} errors"
    )
    return {"drifted": len(drifted), "rebuilt": rebuilt, "errors": errors}


def setup_scheduler(interval_minutes: int):
    """
    Setup the APScheduler for mirror reconciliation.
    Called from main.py on startup when the interval is positive.
    """
    from apscheduler.schedulers.asyncio import AsyncIOScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        reconcile_mirrors,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id='reconcile_mirrors',
        name='Rebuild drifted artist documents',
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info(f"Mirror scheduler started - will reconcile every {interval_minutes} minutes")

    return scheduler
