import logging
from pathlib import Path
import posixpath
import tempfile
from typing import Any, Optional

from ridelog_common.artifact import decode_artifact
from ridelog_common.models import ActivityData, ActivityPoint, DecodedActivity
from ridelog_common.stores import BlobStore, DocumentStore

from activity_retrieval.auth import Caller
from activity_retrieval.errors import (
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    QueryFailedError,
)

logger = logging.getLogger(__name__)

INVALID_ACTIVITY_MESSAGE = (
    'The function must be called with one argument "activity" containing '
    'the activity id for which the data should be fetched.'
)

def project_activity(decoded: DecodedActivity) -> ActivityData:
    """Flatten the first session's laps into one list of points.

    Points keep the stored order and are tagged with the 1-based position of
    the lap they came from.
    """
    sessions = decoded.activity.sessions
    if not sessions:
        raise ValueError("Activity has no sessions")
    if len(sessions) > 1:
        logger.warning(f"Activity has {len(sessions)} sessions, returning the first one")
    session = sessions[0]

    points = []
    for lap_number, lap in enumerate(session.laps, start=1):
        for record in lap.records:
            points.append(ActivityPoint(
                lap=lap_number,
                timestamp=record.timestamp,
                distance=record.distance,
                power=record.power,
                altitude=record.altitude,
                speed=record.speed,
                cadence=record.cadence,
            ))

    return ActivityData(
        start_time=session.start_time,
        total_elapsed_time=session.total_elapsed_time,
        avg_speed=session.avg_speed,
        avg_cadence=session.avg_cadence,
        avg_power=session.avg_power,
        lap_count=len(session.laps),
        session_count=len(sessions),
        total_distance=session.total_distance,
        total_ascent=session.total_ascent,
        total_descent=session.total_descent,
        points=points,
    )

async def load_artifact(blob_store: BlobStore, path: str, scratch_dir: Optional[str] = None) -> DecodedActivity:
    if scratch_dir:
        Path(scratch_dir).mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(dir=scratch_dir, prefix="ridelog-") as scratch:
        local_file = Path(scratch) / posixpath.basename(path)
        await blob_store.download(path, local_file)
        logger.debug(f"Downloaded {path} to {local_file}")
        content = local_file.read_bytes()
    return DecodedActivity.model_validate(decode_artifact(content))

async def get_activity_data(
    activity: Any,
    caller: Optional[Caller],
    document_store: DocumentStore,
    blob_store: BlobStore,
    scratch_dir: Optional[str] = None,
) -> ActivityData:
    """Time series and session summary for one processed activity.

    Args:
        activity: Activity id as sent by the client
        caller: Authenticated caller, None for anonymous requests
        document_store: Activity documents
        blob_store: Bucket holding the converted artifacts
        scratch_dir: Parent for the temporary download directory

    Raises:
        InvalidArgumentError: activity is not a non-empty string
        FailedPreconditionError: anonymous caller, or activity not processed yet
        NotFoundError: no such activity
        QueryFailedError: anything else went wrong
    """
    if not isinstance(activity, str) or len(activity) == 0:
        raise InvalidArgumentError(INVALID_ACTIVITY_MESSAGE)
    if caller is None:
        raise FailedPreconditionError("The function must be called while authenticated.")

    try:
        record = await document_store.get_record(activity)
    except Exception as e:
        logger.error(f"Failed to read activity {activity}: {str(e)}")
        raise QueryFailedError(f"An error occurred. {str(e)}") from e
    if record is None:
        raise NotFoundError("The requested activity does not exist.")
    if not record.is_processed or not record.fit_file:
        raise FailedPreconditionError("The requested activity has not been processed yet.")

    logger.info(f"Loading {record.fit_file} for activity {activity} (caller {caller.uid})")
    try:
        decoded = await load_artifact(blob_store, record.fit_file, scratch_dir)
        data = project_activity(decoded)
    except Exception as e:
        logger.error(f"Failed to load data for activity {activity}: {str(e)}")
        raise QueryFailedError(f"An error occurred. {str(e)}") from e

    logger.info(f"Prepared {len(data.points)} points for activity {activity}")
    return data
