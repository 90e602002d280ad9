"""Convert uploaded FIT files into compressed JSON artifacts.

Runs once per storage finalize event:

- downloads the .fit file from the bucket into a scratch directory
- decodes it into sessions, laps and records
- writes the decoded structure as gzipped JSON next to the original upload
- stores summary fields and the artifact location on the activity document

A failure at any step is logged and recorded on the activity document as
``status=Error``; it is never raised to the caller.
"""
from datetime import datetime, timezone
import logging
from pathlib import Path
import posixpath
import tempfile
from typing import Any, Dict, Optional

from ridelog_common.artifact import encode_artifact
from ridelog_common.fit import decode_fit
from ridelog_common.models import ActivityRecord, ActivityStatus
from ridelog_common.paths import activity_id_from_path, artifact_path, is_fit_file
from ridelog_common.stores import BlobStore, DocumentStore

from activity_ingestion.config import Settings
from activity_ingestion.metrics import FILES_PROCESSED_TOTAL, PIPELINE_STAGE_TIME
from activity_ingestion.models import ObjectFinalizedEvent

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 500

def summarize_error(error: Exception) -> str:
    message = f"{type(error).__name__}: {str(error)}"
    return message[:MAX_ERROR_MESSAGE_LENGTH]

def summary_fields(data: dict, file_path: str, json_file_path: str) -> Dict[str, Any]:
    """Fields written to the activity document once a file is converted."""
    activity = data["activity"]
    sessions = activity["sessions"]
    if len(sessions) > 1:
        logger.warning(f"{file_path} has {len(sessions)} sessions, summarizing the first one")
    session = sessions[0]
    return {
        "timestamp": activity.get("timestamp"),
        "distance": session.get("total_distance"),
        "averagePower": session.get("avg_power"),
        "averageSpeed": session.get("avg_speed"),
        "fitFile": json_file_path,
        "sourceFile": file_path,
        "status": ActivityStatus.PROCESSED,
        "errorMessage": None,
        "updatedAt": datetime.now(timezone.utc),
    }

async def convert_activity_file(
    bucket: BlobStore,
    file_path: str,
    json_file_path: str,
    settings: Settings,
) -> dict:
    """Download, decode, compress and upload one FIT file.

    Local copies live in a temporary directory that is removed however this
    returns.
    """
    if settings.SCRATCH_DIR:
        Path(settings.SCRATCH_DIR).mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(dir=settings.SCRATCH_DIR, prefix="ridelog-") as scratch:
        local_file = Path(scratch) / posixpath.basename(file_path)
        local_json_file = Path(scratch) / posixpath.basename(json_file_path)

        with PIPELINE_STAGE_TIME.labels("download").time():
            await bucket.download(file_path, local_file)
        logger.info(f"Downloaded activity file locally to {local_file}")

        content = local_file.read_bytes()
        with PIPELINE_STAGE_TIME.labels("decode").time():
            data = decode_fit(content, settings.decoder_options())
        logger.info(f"Successfully parsed activity file {file_path}")

        with PIPELINE_STAGE_TIME.labels("compress").time():
            local_json_file.write_bytes(encode_artifact(data))
        logger.debug(f"Converted to compressed JSON at {local_json_file}")

        with PIPELINE_STAGE_TIME.labels("upload").time():
            await bucket.upload(local_json_file, json_file_path)
        logger.info(f"Uploaded converted file to {json_file_path}")

    return data

async def record_failure(
    document_store: DocumentStore,
    activity_id: str,
    file_path: str,
    error: Exception,
) -> None:
    """Mark the activity as failed. Errors here are logged, not raised."""
    try:
        record = await document_store.get_record(activity_id)
        if record is None:
            logger.error(f"Activity {activity_id} does not exist, cannot record failure")
            return
        await document_store.update(activity_id, {
            "status": ActivityStatus.ERROR,
            "errorMessage": summarize_error(error),
            "attempts": record.attempts + 1,
            "sourceFile": file_path,
            "updatedAt": datetime.now(timezone.utc),
        })
    except Exception as e:
        logger.error(f"Failed to record error status for activity {activity_id}: {str(e)}")

async def process_activity_file(
    event: ObjectFinalizedEvent,
    blob_store: BlobStore,
    document_store: DocumentStore,
    settings: Settings,
) -> Optional[ActivityRecord]:
    """Handle one storage finalize event.

    Args:
        event: Bucket and object path of the uploaded file
        blob_store: Storage backend; pointed at the event's bucket
        document_store: Activity documents
        settings: Service settings

    Returns:
        The updated activity record, or None when the file was ignored or
        processing failed
    """
    file_path = event.name
    if not is_fit_file(file_path, settings.FIT_EXTENSION):
        logger.info(f"A file was uploaded but it is not a valid {settings.FIT_EXTENSION} activity file: {file_path}")
        FILES_PROCESSED_TOTAL.labels("ignored").inc()
        return None

    activity_id = activity_id_from_path(file_path)
    json_file_path = artifact_path(file_path)
    logger.info(f"A new activity file was uploaded: {event.bucket}/{file_path} (activity {activity_id})")

    try:
        bucket = blob_store.for_bucket(event.bucket)
        data = await convert_activity_file(bucket, file_path, json_file_path, settings)
        fields = summary_fields(data, file_path, json_file_path)
        with PIPELINE_STAGE_TIME.labels("commit").time():
            await document_store.update(activity_id, fields)
    except Exception as e:
        logger.error(f"Failed to process activity {activity_id} from {file_path}: {str(e)}")
        FILES_PROCESSED_TOTAL.labels("failed").inc()
        await record_failure(document_store, activity_id, file_path, e)
        return None

    FILES_PROCESSED_TOTAL.labels("processed").inc()
    logger.info(f"Activity {activity_id} processed")
    return ActivityRecord.model_validate({**fields, "id": activity_id})
