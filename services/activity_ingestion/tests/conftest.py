import os
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from ridelog_common.errors import DocumentNotFoundError
from ridelog_common.stores import DocumentStore, LocalBlobStore

from activity_ingestion.config import TestSettings, get_settings

@pytest.fixture(autouse=True)
def test_env():
    """Ensure we're using test settings."""
    with patch.dict(os.environ, {"ENV_NAME": "test"}):
        get_settings.cache_clear()
        yield
    get_settings.cache_clear()

class InMemoryDocumentStore(DocumentStore):
    """Dict backed document store that remembers every update."""

    def __init__(self, documents=None):
        self.documents = documents or {}
        self.updates = []

    async def get(self, document_id):
        document = self.documents.get(document_id)
        if document is None:
            return None
        return {**document, "id": document_id}

    async def exists(self, document_id):
        return document_id in self.documents

    async def update(self, document_id, fields):
        if document_id not in self.documents:
            raise DocumentNotFoundError(document_id)
        self.updates.append((document_id, dict(fields)))
        for key, value in fields.items():
            if value is None:
                self.documents[document_id].pop(key, None)
            else:
                self.documents[document_id][key] = value

@pytest.fixture
def settings(tmp_path):
    return TestSettings(
        SCRATCH_DIR=str(tmp_path / "scratch"),
        LOCAL_BLOB_ROOT=str(tmp_path / "blobs"),
        BLOB_BUCKET="bucket",
    )

@pytest.fixture
def scratch_dir(settings):
    return settings.SCRATCH_DIR

@pytest.fixture
def blob_store(settings):
    return LocalBlobStore(settings.LOCAL_BLOB_ROOT, "bucket")

@pytest.fixture
def document_store():
    return InMemoryDocumentStore({"abc123": {"status": "Uploaded"}})

@pytest.fixture
def empty_document_store():
    return InMemoryDocumentStore()

@pytest.fixture
def uploaded_file(blob_store):
    """Raw upload at dir/abc123.fit in the test bucket."""
    path = blob_store.base / "dir" / "abc123.fit"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"raw fit bytes")
    return "dir/abc123.fit"

@pytest.fixture
def decoded_activity():
    """One session with two laps of three and two records."""
    start = datetime(2024, 5, 4, 8, 30, tzinfo=timezone.utc)

    def record(seconds):
        return {
            "timestamp": start + timedelta(seconds=seconds),
            "elapsed_time": float(seconds),
            "distance": seconds * 0.008,
            "power": 200 + seconds,
            "altitude": 0.1,
            "speed": 28.8,
            "cadence": 90,
        }

    return {
        "file_id": {"type": "activity", "time_created": start},
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
                "num_laps": 2,
                "laps": [
                    {"start_time": start, "records": [record(0), record(1), record(2)]},
                    {"start_time": start + timedelta(seconds=3), "records": [record(3), record(4)]},
                ],
            }],
        },
    }
