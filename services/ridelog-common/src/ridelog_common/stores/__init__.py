"""Document store and blob store backends."""
from pathlib import Path
from typing import Optional

from redis.asyncio import Redis

from .blobs import BlobInfo, BlobStore, GcsBlobStore, LocalBlobStore
from .database import dispose_engine, get_session_maker
from .documents import DocumentStore, RedisDocumentStore, SqlDocumentStore

def create_document_store(
    backend: str,
    redis_client: Optional[Redis] = None,
    database_url: Optional[str] = None,
    sql_echo: bool = False,
) -> DocumentStore:
    if backend == "redis":
        if redis_client is None:
            raise ValueError("The redis document store needs a Redis client")
        return RedisDocumentStore(redis_client)
    if backend == "sql":
        if not database_url:
            raise ValueError("The sql document store needs DATABASE_URL")
        return SqlDocumentStore(get_session_maker(database_url, sql_echo))
    raise ValueError(f"Unknown document store backend: {backend}")

def create_blob_store(backend: str, bucket_name: str, local_root: Optional[str] = None) -> BlobStore:
    if backend == "gcs":
        return GcsBlobStore(bucket_name)
    if backend == "local":
        if not local_root:
            raise ValueError("The local blob store needs a root directory")
        return LocalBlobStore(Path(local_root), bucket_name)
    raise ValueError(f"Unknown blob store backend: {backend}")

__all__ = [
    'BlobInfo',
    'BlobStore',
    'GcsBlobStore',
    'LocalBlobStore',
    'DocumentStore',
    'RedisDocumentStore',
    'SqlDocumentStore',
    'create_document_store',
    'create_blob_store',
    'dispose_engine',
]
