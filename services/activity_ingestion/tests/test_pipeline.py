import pytest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from ridelog_common.artifact import decode_artifact, encode_artifact
from ridelog_common.errors import FitDecodeError
from ridelog_common.models import ActivityStatus

from activity_ingestion.models import ObjectFinalizedEvent
from activity_ingestion.pipeline import process_activity_file, summarize_error, summary_fields

def scratch_contents(scratch_dir):
    path = Path(scratch_dir)
    return list(path.iterdir()) if path.exists() else []

@pytest.mark.asyncio
async def test_process_activity_file(settings, blob_store, document_store, uploaded_file, decoded_activity, scratch_dir):
    """Upload of abc123.fit with one session of two laps ends Processed."""
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")

    with patch("activity_ingestion.pipeline.decode_fit", return_value=decoded_activity) as mock_decode:
        record = await process_activity_file(event, blob_store, document_store, settings)

    mock_decode.assert_called_once()
    assert mock_decode.call_args[0][0] == b"raw fit bytes"

    document = document_store.documents["abc123"]
    assert document["status"] == ActivityStatus.PROCESSED
    assert document["fitFile"] == "dir/abc123.json.gz"
    assert document["sourceFile"] == "dir/abc123.fit"
    assert document["averagePower"] == 202
    assert document["averageSpeed"] == 28.8
    assert document["distance"] == 0.04
    assert document["timestamp"] == decoded_activity["activity"]["timestamp"]

    assert record.id == "abc123"
    assert record.is_processed
    assert record.fit_file == "dir/abc123.json.gz"

    artifact = blob_store.base / "dir" / "abc123.json.gz"
    assert artifact.is_file()
    stored = decode_artifact(artifact.read_bytes())
    laps = stored["activity"]["sessions"][0]["laps"]
    assert [len(lap["records"]) for lap in laps] == [3, 2]

    assert scratch_contents(scratch_dir) == []

@pytest.mark.asyncio
async def test_process_activity_file_single_commit(settings, blob_store, document_store, uploaded_file, decoded_activity):
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")

    with patch("activity_ingestion.pipeline.decode_fit", return_value=decoded_activity):
        await process_activity_file(event, blob_store, document_store, settings)

    assert len(document_store.updates) == 1

@pytest.mark.asyncio
async def test_process_activity_file_wrong_type(settings, blob_store, document_store, scratch_dir):
    """Non .fit uploads are ignored without touching either store."""
    path = blob_store.base / "dir" / "abc123.txt"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"notes")
    event = ObjectFinalizedEvent(name="dir/abc123.txt", bucket="bucket")
    blob_store.upload = AsyncMock()

    with patch("activity_ingestion.pipeline.decode_fit") as mock_decode:
        result = await process_activity_file(event, blob_store, document_store, settings)

    assert result is None
    mock_decode.assert_not_called()
    blob_store.upload.assert_not_called()
    assert document_store.updates == []
    assert document_store.documents["abc123"] == {"status": "Uploaded"}
    assert scratch_contents(scratch_dir) == []

@pytest.mark.asyncio
async def test_process_activity_file_decode_error(settings, blob_store, document_store, uploaded_file, scratch_dir):
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")

    with patch("activity_ingestion.pipeline.decode_fit", side_effect=FitDecodeError("Invalid FIT file: bad header")):
        result = await process_activity_file(event, blob_store, document_store, settings)

    assert result is None
    document = document_store.documents["abc123"]
    assert document["status"] == ActivityStatus.ERROR
    assert "FitDecodeError" in document["errorMessage"]
    assert "bad header" in document["errorMessage"]
    assert document["attempts"] == 1
    assert "fitFile" not in document
    assert not (blob_store.base / "dir" / "abc123.json.gz").exists()
    assert scratch_contents(scratch_dir) == []

@pytest.mark.asyncio
async def test_process_activity_file_missing_blob(settings, blob_store, document_store, scratch_dir):
    event = ObjectFinalizedEvent(name="dir/abc123.fit", bucket="bucket")

    with patch("activity_ingestion.pipeline.decode_fit") as mock_decode:
        result = await process_activity_file(event, blob_store, document_store, settings)

    assert result is None
    mock_decode.assert_not_called()
    assert document_store.documents["abc123"]["status"] == ActivityStatus.ERROR
    assert "BlobNotFoundError" in document_store.documents["abc123"]["errorMessage"]
    assert scratch_contents(scratch_dir) == []

@pytest.mark.asyncio
async def test_process_activity_file_upload_error(settings, blob_store, document_store, uploaded_file, decoded_activity, scratch_dir):
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")
    blob_store.upload = AsyncMock(side_effect=OSError("No space left on device"))

    with patch("activity_ingestion.pipeline.decode_fit", return_value=decoded_activity):
        result = await process_activity_file(event, blob_store, document_store, settings)

    assert result is None
    assert document_store.documents["abc123"]["status"] == ActivityStatus.ERROR
    assert scratch_contents(scratch_dir) == []

@pytest.mark.asyncio
async def test_process_activity_file_counts_attempts(settings, blob_store, document_store, uploaded_file):
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")

    with patch("activity_ingestion.pipeline.decode_fit", side_effect=FitDecodeError("truncated")):
        await process_activity_file(event, blob_store, document_store, settings)
        await process_activity_file(event, blob_store, document_store, settings)

    assert document_store.documents["abc123"]["attempts"] == 2

@pytest.mark.asyncio
async def test_process_activity_file_recovers_after_error(settings, blob_store, document_store, uploaded_file, decoded_activity):
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")

    with patch("activity_ingestion.pipeline.decode_fit", side_effect=FitDecodeError("truncated")):
        await process_activity_file(event, blob_store, document_store, settings)
    with patch("activity_ingestion.pipeline.decode_fit", return_value=decoded_activity):
        await process_activity_file(event, blob_store, document_store, settings)

    document = document_store.documents["abc123"]
    assert document["status"] == ActivityStatus.PROCESSED
    assert "errorMessage" not in document

@pytest.mark.asyncio
async def test_process_activity_file_is_idempotent(settings, blob_store, document_store, uploaded_file, decoded_activity):
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")
    artifact = blob_store.base / "dir" / "abc123.json.gz"

    with patch("activity_ingestion.pipeline.decode_fit", return_value=decoded_activity):
        await process_activity_file(event, blob_store, document_store, settings)
        first = artifact.read_bytes()
        await process_activity_file(event, blob_store, document_store, settings)

    assert artifact.read_bytes() == first == encode_artifact(decoded_activity)
    assert document_store.documents["abc123"]["status"] == ActivityStatus.PROCESSED

@pytest.mark.asyncio
async def test_process_activity_file_missing_document(settings, blob_store, empty_document_store, uploaded_file, decoded_activity, scratch_dir):
    """Nothing to update or mark failed, but the handler still returns quietly."""
    document_store = empty_document_store
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")

    with patch("activity_ingestion.pipeline.decode_fit", return_value=decoded_activity):
        result = await process_activity_file(event, blob_store, document_store, settings)

    assert result is None
    assert document_store.documents == {}
    assert scratch_contents(scratch_dir) == []

@pytest.mark.asyncio
async def test_process_activity_file_error_status_write_fails(settings, blob_store, document_store, uploaded_file):
    event = ObjectFinalizedEvent(name=uploaded_file, bucket="bucket")
    document_store.update = AsyncMock(side_effect=ConnectionError("Redis connection error"))

    with patch("activity_ingestion.pipeline.decode_fit", side_effect=FitDecodeError("truncated")):
        result = await process_activity_file(event, blob_store, document_store, settings)

    assert result is None
    document_store.update.assert_awaited_once()

@pytest.mark.asyncio
async def test_process_activity_file_uses_event_bucket(settings, blob_store, document_store, decoded_activity):
    other = blob_store.for_bucket("other")
    path = other.base / "abc123.fit"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"raw fit bytes")
    event = ObjectFinalizedEvent(name="abc123.fit", bucket="other")

    with patch("activity_ingestion.pipeline.decode_fit", return_value=decoded_activity):
        await process_activity_file(event, blob_store, document_store, settings)

    assert (other.base / "abc123.json.gz").is_file()
    assert document_store.documents["abc123"]["fitFile"] == "abc123.json.gz"

def test_summary_fields_uses_first_session(decoded_activity):
    second = dict(decoded_activity["activity"]["sessions"][0], avg_power=999)
    decoded_activity["activity"]["sessions"].append(second)

    fields = summary_fields(decoded_activity, "dir/abc123.fit", "dir/abc123.json.gz")

    assert fields["averagePower"] == 202
    assert fields["status"] == ActivityStatus.PROCESSED
    assert fields["errorMessage"] is None

def test_summary_fields_without_sessions():
    with pytest.raises(IndexError):
        summary_fields({"activity": {"sessions": []}}, "abc123.fit", "abc123.json.gz")

def test_summarize_error_truncates():
    message = summarize_error(ValueError("x" * 1000))
    assert message.startswith("ValueError: ")
    assert len(message) == 500
