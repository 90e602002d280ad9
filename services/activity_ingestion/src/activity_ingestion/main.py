import argparse
import logging
from typing import Optional
import uvicorn
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
from redis.asyncio import Redis

from ridelog_common.paths import is_fit_file
from ridelog_common.stores import BlobStore, DocumentStore, create_blob_store, create_document_store

from activity_ingestion.config import get_settings
from activity_ingestion.models import ActivityStatusResponse, EventAccepted, ObjectFinalizedEvent
from activity_ingestion.pipeline import process_activity_file

# Configure logging
logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application."""
    # Startup
    redis_client = getattr(app.state, "redis_client", None)
    if redis_client is not None:
        try:
            await redis_client.ping()
            logger.info("Successfully connected to Redis")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {str(e)}")
            raise

    yield  # Application runs here

    # Shutdown
    if redis_client is not None:
        try:
            await redis_client.close()
            logger.info("Successfully closed Redis connection")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {str(e)}")

def create_app(
    document_store: Optional[DocumentStore] = None,
    blob_store: Optional[BlobStore] = None,
    redis_client: Optional[Redis] = None,
) -> FastAPI:
    settings = get_settings()

    # Initialize FastAPI app
    app = FastAPI(title="Activity Ingestion Service", lifespan=lifespan)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add Prometheus metrics endpoint
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    if document_store is None:
        if settings.DOCUMENT_STORE == "redis" and redis_client is None:
            logger.info(f"Connecting to Redis at: {settings.REDIS_URL}")
            redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
        document_store = create_document_store(
            settings.DOCUMENT_STORE,
            redis_client=redis_client,
            database_url=settings.DATABASE_URL,
            sql_echo=settings.SQL_ECHO,
        )
    if blob_store is None:
        blob_store = create_blob_store(settings.BLOB_STORE, settings.BLOB_BUCKET, settings.LOCAL_BLOB_ROOT)

    app.state.redis_client = redis_client
    app.state.document_store = document_store
    app.state.blob_store = blob_store

    @app.post("/events/object-finalized", response_model=EventAccepted, status_code=202)
    async def object_finalized(
        event: ObjectFinalizedEvent,
        background_tasks: BackgroundTasks,
    ) -> EventAccepted:
        """Storage notification hook. Processing happens after the response is sent."""
        background_tasks.add_task(
            process_activity_file,
            event,
            app.state.blob_store,
            app.state.document_store,
            settings,
        )
        return EventAccepted(name=event.name, accepted=is_fit_file(event.name, settings.FIT_EXTENSION))

    @app.get("/activities/{activity_id}/status", response_model=ActivityStatusResponse)
    async def get_activity_status(activity_id: str) -> ActivityStatusResponse:
        try:
            record = await app.state.document_store.get_record(activity_id)
        except Exception as e:
            logger.error(f"Failed to get status for activity {activity_id}: {str(e)}")
            raise HTTPException(
                status_code=500,
                detail=f"Document store error: {str(e)}"
            ) from e
        if record is None:
            raise HTTPException(status_code=404, detail="Activity not found")

        return ActivityStatusResponse(
            activity_id=activity_id,
            status=record.status,
            error_message=record.error_message,
            attempts=record.attempts,
            fit_file=record.fit_file,
            last_updated=record.updated_at,
        )

    return app

# Create the app at module level
app = create_app()

def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to run the server on")
    parser.add_argument("--port", type=int, default=8000, help="Port to run the server on")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--log-level", type=str, default="info", help="Logging level")

    args = parser.parse_args()

    uvicorn.run(
        "activity_ingestion.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )

if __name__ == "__main__":
    main()
