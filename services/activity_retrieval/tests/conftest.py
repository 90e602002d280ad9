import os
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock, patch

from ridelog_common.artifact import encode_artifact
from ridelog_common.models import ActivityRecord
from ridelog_common.stores import LocalBlobStore

from activity_retrieval.config import get_settings

@pytest.fixture(autouse=True)
def test_env():
    """Ensure we're using test settings."""
    with patch.dict(os.environ, {"ENV_NAME": "test"}):
        get_settings.cache_clear()
        yield
    get_settings.cache_clear()

@pytest.fixture
def decoded_activity():
    """One session with two laps of three and two records, as stored in the artifact."""
    start = datetime(2024, 5, 4, 8, 30, tzinfo=timezone.utc)

    def record(seconds):
        return {
            "timestamp": start + timedelta(seconds=seconds),
            "elapsed_time": float(seconds),
            "distance": seconds * 0.008,
            "power": 200 + seconds,
            "altitude": 0.1 + seconds,
            "speed": 28.8,
            "cadence": 90,
            "heart_rate": 140,
        }

    return {
        "activity": {
            "timestamp": start + timedelta(seconds=5),
            "sessions": [{
                "start_time": start,
                "total_elapsed_time": 5.0,
                "avg_speed": 28.8,
                "avg_cadence": 90,
                "avg_power": 202,
                "total_distance": 0.04,
                "total_ascent": 3,
                "total_descent": 2,
                "laps": [
                    {"start_time": start, "records": [record(0), record(1), record(2)]},
                    {"start_time": start + timedelta(seconds=3), "records": [record(3), record(4)]},
                ],
            }],
        }
    }

@pytest.fixture
def blob_store(tmp_path, decoded_activity):
    """Bucket holding the converted artifact at dir/abc123.json.gz."""
    store = LocalBlobStore(tmp_path / "blobs", "bucket")
    artifact = store.base / "dir" / "abc123.json.gz"
    artifact.parent.mkdir(parents=True)
    artifact.write_bytes(encode_artifact(decoded_activity))
    return store

@pytest.fixture
def processed_document():
    return {
        "id": "abc123",
        "status": "Processed",
        "fitFile": "dir/abc123.json.gz",
        "averagePower": "202",
    }

@pytest.fixture
def mock_document_store(processed_document):
    """Document store with one processed activity, abc123."""
    documents = {"abc123": processed_document}
    store = Mock()

    async def get_record(document_id):
        document = documents.get(document_id)
        if document is None:
            return None
        return ActivityRecord.model_validate(document)

    store.get_record = AsyncMock(side_effect=get_record)
    store.documents = documents
    return store
