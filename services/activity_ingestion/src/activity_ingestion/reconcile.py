"""Periodic scan that reprocesses uploads the event handler never finished.

Storage events are delivered at most once, so a crash or timeout leaves the
activity stuck. The scan walks the raw .fit uploads and feeds every stuck
one back through the pipeline. Activities that failed MAX_ATTEMPTS times are
left in the Error state and reported as dead letters.
"""
import argparse
import asyncio
from datetime import datetime, timedelta, timezone
import logging
from typing import Optional

from redis.asyncio import Redis

from ridelog_common.models import ActivityStatus
from ridelog_common.paths import activity_id_from_path, is_fit_file
from ridelog_common.stores import (
    BlobStore,
    DocumentStore,
    create_blob_store,
    create_document_store,
    dispose_engine,
)

from activity_ingestion.config import Settings, get_settings
from activity_ingestion.metrics import RECONCILE_ACTIONS_TOTAL
from activity_ingestion.models import ObjectFinalizedEvent, ReconcileReport
from activity_ingestion.pipeline import process_activity_file

logger = logging.getLogger(__name__)

async def reconcile(
    blob_store: BlobStore,
    document_store: DocumentStore,
    settings: Settings,
    now: Optional[datetime] = None,
) -> ReconcileReport:
    now = now or datetime.now(timezone.utc)
    threshold = now - timedelta(seconds=settings.RECONCILE_AFTER_SECONDS)
    report = ReconcileReport()

    for blob in await blob_store.list(settings.RECONCILE_PREFIX):
        if not is_fit_file(blob.path, settings.FIT_EXTENSION):
            continue
        report.scanned += 1

        # the event handler may still be working on recent uploads
        if blob.updated is not None and blob.updated > threshold:
            report.skipped += 1
            continue

        activity_id = activity_id_from_path(blob.path)
        record = await document_store.get_record(activity_id)
        if record is None or record.is_processed:
            report.skipped += 1
            continue

        if record.status == ActivityStatus.ERROR and record.attempts >= settings.MAX_ATTEMPTS:
            logger.warning(
                f"Activity {activity_id} failed {record.attempts} times, giving up: {record.error_message}"
            )
            RECONCILE_ACTIONS_TOTAL.labels("dead_letter").inc()
            report.dead_lettered.append(activity_id)
            continue

        logger.info(f"Reprocessing stuck activity {activity_id} (status {record.status})")
        RECONCILE_ACTIONS_TOTAL.labels("reprocess").inc()
        event = ObjectFinalizedEvent(name=blob.path, bucket=blob_store.bucket_name)
        await process_activity_file(event, blob_store, document_store, settings)
        report.reprocessed.append(activity_id)

    logger.info(
        f"Reconciliation scanned {report.scanned} files, reprocessed {len(report.reprocessed)}, "
        f"dead-lettered {len(report.dead_lettered)}"
    )
    return report

async def run_once(settings: Settings) -> ReconcileReport:
    redis_client = None
    if settings.DOCUMENT_STORE == "redis":
        redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        document_store = create_document_store(
            settings.DOCUMENT_STORE,
            redis_client=redis_client,
            database_url=settings.DATABASE_URL,
            sql_echo=settings.SQL_ECHO,
        )
        blob_store = create_blob_store(settings.BLOB_STORE, settings.BLOB_BUCKET, settings.LOCAL_BLOB_ROOT)
        return await reconcile(blob_store, document_store, settings)
    finally:
        if redis_client is not None:
            await redis_client.close()
        if settings.DOCUMENT_STORE == "sql":
            await dispose_engine()

def main():
    """Run one reconciliation scan."""
    parser = argparse.ArgumentParser()
    parser.add_argument("--prefix", type=str, default=None, help="Only scan uploads under this prefix")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    args = parser.parse_args()

    settings = get_settings()
    if args.prefix is not None:
        settings = settings.model_copy(update={"RECONCILE_PREFIX": args.prefix})
    logging.basicConfig(
        level=(args.log_level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    report = asyncio.run(run_once(settings))
    logger.info(f"Reconciliation report: {report.model_dump_json()}")

if __name__ == "__main__":
    main()
