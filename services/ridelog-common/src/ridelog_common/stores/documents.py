from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
import logging
from typing import Any, Dict, Optional

from redis.asyncio import Redis
from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from ridelog_common.errors import DocumentNotFoundError
from ridelog_common.models import Activity, ActivityRecord

logger = logging.getLogger(__name__)

# document key -> ORM column, e.g. "fitFile" -> "fit_file"
COLUMN_NAMES = {
    (field.alias or name): name for name, field in ActivityRecord.model_fields.items()
}

def clean_none_values(d: dict) -> dict:
    """Remove None values from a dictionary and convert datetime to ISO format."""
    cleaned = {}
    for k, v in d.items():
        if v is not None:
            if isinstance(v, datetime):
                cleaned[k] = v.isoformat()
            elif isinstance(v, Enum):
                cleaned[k] = v.value
            else:
                cleaned[k] = v
    return cleaned

class DocumentStore(ABC):
    """Key-value collection of activity documents keyed by activity id.

    Documents are plain dicts using the document field names (``fitFile``,
    ``averagePower``...). ``update`` merges the given fields into an existing
    document; a field set to None is removed.
    """

    @abstractmethod
    async def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def exists(self, document_id: str) -> bool:
        ...

    @abstractmethod
    async def update(self, document_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into a document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """

    async def get_record(self, document_id: str) -> Optional[ActivityRecord]:
        document = await self.get(document_id)
        if document is None:
            return None
        return ActivityRecord.model_validate({**document, "id": document_id})

class RedisDocumentStore(DocumentStore):
    """Documents stored as Redis hashes under ``{collection}:{id}``."""

    def __init__(self, redis_client: Redis, collection: str = "activities") -> None:
        self.redis = redis_client
        self.collection = collection

    def _key(self, document_id: str) -> str:
        return f"{self.collection}:{document_id}"

    async def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        document = await self.redis.hgetall(self._key(document_id))
        if not document:
            return None
        return {**document, "id": document_id}

    async def exists(self, document_id: str) -> bool:
        return bool(await self.redis.exists(self._key(document_id)))

    async def update(self, document_id: str, fields: Dict[str, Any]) -> None:
        key = self._key(document_id)
        if not await self.redis.exists(key):
            raise DocumentNotFoundError(document_id)

        to_set = clean_none_values(fields)
        to_delete = [k for k, v in fields.items() if v is None]
        pipe = self.redis.pipeline()
        if to_set:
            pipe.hset(key, mapping=to_set)
        if to_delete:
            pipe.hdel(key, *to_delete)
        await pipe.execute()
        logger.debug(f"Updated {key} fields: {sorted(fields)}")

def row_to_document(row: Activity) -> Dict[str, Any]:
    document = {}
    for name, field in ActivityRecord.model_fields.items():
        value = getattr(row, name, None)
        if value is not None:
            document[field.alias or name] = value
    return document

class SqlDocumentStore(DocumentStore):
    """Documents stored as rows of the ``activities`` table."""

    def __init__(self, session_maker: sessionmaker) -> None:
        self.session_maker = session_maker

    async def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        async with self.session_maker() as session:
            result = await session.execute(select(Activity).where(Activity.id == document_id))
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return row_to_document(row)

    async def exists(self, document_id: str) -> bool:
        return await self.get(document_id) is not None

    async def update(self, document_id: str, fields: Dict[str, Any]) -> None:
        values = {}
        for k, v in fields.items():
            if k not in COLUMN_NAMES:
                raise ValueError(f"Unknown activity field: {k}")
            values[COLUMN_NAMES[k]] = v.value if isinstance(v, Enum) else v

        async with self.session_maker() as session:
            result = await session.execute(
                update(Activity).where(Activity.id == document_id).values(**values)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise DocumentNotFoundError(document_id)
            await session.commit()
        logger.debug(f"Updated activity {document_id} columns: {sorted(values)}")
