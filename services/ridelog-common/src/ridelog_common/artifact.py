"""Compressed JSON encoding of decoded FIT files."""
from datetime import date, datetime, time
import gzip
import json
import zlib
from typing import Any

from ridelog_common.errors import ArtifactError

class DateTimeEncoder(json.JSONEncoder):
    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date, time)):
            return obj.isoformat()
        if isinstance(obj, bytes):
            return obj.hex()
        return super().default(obj)

def json_dumps(obj: Any) -> str:
    """Helper function to serialize objects with datetime support."""
    return json.dumps(obj, cls=DateTimeEncoder)

def compress(text: str) -> bytes:
    # mtime is pinned so the same text always yields the same bytes
    return gzip.compress(text.encode("utf-8"), mtime=0)

def decompress(data: bytes) -> str:
    try:
        return gzip.decompress(data).decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise ArtifactError(f"Could not decompress artifact: {str(e)}") from e

def encode_artifact(structure: dict) -> bytes:
    """Serialize a decoded activity to JSON and gzip it."""
    return compress(json_dumps(structure))

def decode_artifact(data: bytes) -> dict:
    """Inverse of encode_artifact. Datetimes come back as ISO strings."""
    text = decompress(data)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ArtifactError(f"Artifact is not valid JSON: {str(e)}") from e
