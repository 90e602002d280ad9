import argparse
import logging
from typing import Optional
import uvicorn
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from redis.asyncio import Redis

from ridelog_common.models import ActivityData
from ridelog_common.stores import BlobStore, DocumentStore, create_blob_store, create_document_store

from activity_retrieval.auth import Caller, get_caller
from activity_retrieval.config import get_settings
from activity_retrieval.errors import InvalidArgumentError, QueryError
from activity_retrieval.models import ActivityDataRequest, ErrorResponse
from activity_retrieval.query import INVALID_ACTIVITY_MESSAGE, get_activity_data

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
    logger.info("Starting activity retrieval service...")
    yield
    # Shutdown
    logger.info("Shutting down activity retrieval service...")
    if app.state.redis_client is not None:
        await app.state.redis_client.close()

def create_app(
    document_store: Optional[DocumentStore] = None,
    blob_store: Optional[BlobStore] = None,
    redis_client: Optional[Redis] = None,
) -> FastAPI:
    settings = get_settings()

    # Initialize FastAPI app
    app = FastAPI(title="Activity Retrieval Service", lifespan=lifespan)

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

    @app.exception_handler(QueryError)
    async def query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(code=exc.code, detail=exc.message).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # a body without a usable "activity" is an invalid argument like any other
        if request.url.path == "/activities/data":
            logger.info(f"Rejected activity data request: {exc.errors()}")
            return await query_error_handler(request, InvalidArgumentError(INVALID_ACTIVITY_MESSAGE))
        return await request_validation_exception_handler(request, exc)

    @app.post(
        "/activities/data",
        response_model=ActivityData,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def activity_data(
        request: ActivityDataRequest,
        caller: Optional[Caller] = Depends(get_caller),
    ) -> ActivityData:
        """Power, speed, cadence, altitude and distance samples of an activity."""
        return await get_activity_data(
            request.activity,
            caller,
            app.state.document_store,
            app.state.blob_store,
            settings.SCRATCH_DIR,
        )

    return app

# Create the app at module level
app = create_app()

def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to run the server on")
    parser.add_argument("--port", type=int, default=8001, help="Port to run the server on")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--log-level", type=str, default="info", help="Logging level")

    args = parser.parse_args()

    uvicorn.run(
        "activity_retrieval.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )

if __name__ == "__main__":
    main()
