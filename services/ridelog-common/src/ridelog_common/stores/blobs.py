from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
import shutil
from typing import List, Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

from ridelog_common.errors import BlobNotFoundError

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class BlobInfo:
    path: str
    updated: Optional[datetime] = None

class BlobStore(ABC):
    """Path-addressed binary objects inside one bucket."""

    bucket_name: str

    @abstractmethod
    def for_bucket(self, bucket_name: str) -> "BlobStore":
        """Same backend, pointed at another bucket."""

    @abstractmethod
    async def download(self, path: str, destination: Path) -> None:
        """Download a blob to a local file.

        Raises:
            BlobNotFoundError: If there is no blob at path
        """

    @abstractmethod
    async def upload(self, source: Path, path: str) -> None:
        ...

    @abstractmethod
    async def list(self, prefix: str = "") -> List[BlobInfo]:
        ...

class GcsBlobStore(BlobStore):
    """Google Cloud Storage bucket.

    The storage client is blocking, so every call runs in a worker thread.
    """

    def __init__(self, bucket_name: str, client: Optional[storage.Client] = None) -> None:
        self.bucket_name = bucket_name
        self.client = client or storage.Client()
        self.bucket = self.client.bucket(bucket_name)

    def for_bucket(self, bucket_name: str) -> "GcsBlobStore":
        if bucket_name == self.bucket_name:
            return self
        return GcsBlobStore(bucket_name, client=self.client)

    async def download(self, path: str, destination: Path) -> None:
        blob = self.bucket.blob(path)
        try:
            await asyncio.to_thread(blob.download_to_filename, str(destination))
        except NotFound as e:
            raise BlobNotFoundError(path) from e
        logger.debug(f"Downloaded gs://{self.bucket_name}/{path} to {destination}")

    async def upload(self, source: Path, path: str) -> None:
        blob = self.bucket.blob(path)
        await asyncio.to_thread(blob.upload_from_filename, str(source))
        logger.debug(f"Uploaded {source} to gs://{self.bucket_name}/{path}")

    async def list(self, prefix: str = "") -> List[BlobInfo]:
        def list_blobs():
            return [
                BlobInfo(path=blob.name, updated=blob.updated)
                for blob in self.client.list_blobs(self.bucket_name, prefix=prefix or None)
            ]
        return await asyncio.to_thread(list_blobs)

class LocalBlobStore(BlobStore):
    """Buckets as directories under a root directory, for development and tests."""

    def __init__(self, root: Path, bucket_name: str) -> None:
        self.root = Path(root)
        self.bucket_name = bucket_name
        self.base = self.root / bucket_name

    def for_bucket(self, bucket_name: str) -> "LocalBlobStore":
        return LocalBlobStore(self.root, bucket_name)

    def _path(self, path: str) -> Path:
        return self.base / path

    async def download(self, path: str, destination: Path) -> None:
        source = self._path(path)
        if not source.is_file():
            raise BlobNotFoundError(path)
        shutil.copyfile(source, destination)

    async def upload(self, source: Path, path: str) -> None:
        target = self._path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)

    async def list(self, prefix: str = "") -> List[BlobInfo]:
        if not self.base.is_dir():
            return []
        blobs = []
        for file in sorted(self.base.rglob("*")):
            if not file.is_file():
                continue
            name = file.relative_to(self.base).as_posix()
            if name.startswith(prefix):
                updated = datetime.fromtimestamp(file.stat().st_mtime, tz=timezone.utc)
                blobs.append(BlobInfo(path=name, updated=updated))
        return blobs
