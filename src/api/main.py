"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from psycopg_pool import AsyncConnectionPool

from src.adapters.documents import InMemoryDocumentStore, PostgresDocumentStore
from src.adapters.identity import InMemoryIdentityStore, PostgresIdentityStore
from src.adapters.migrations import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.outcomes import RegistrationOutcome
from src.domain.results import map_outcome

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Account Registration API v1 - Create accounts across identity and document stores",
    },
]


async def _open_pool(stack: AsyncExitStack, conninfo: str, settings: Settings) -> AsyncConnectionPool:
    pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=False,
    )
    await pool.open()
    stack.push_async_callback(pool.close)
    return pool


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates one connection pool per backing store on startup
    - Runs each store's migrations on startup
    - Closes connection pools on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")

    async with AsyncExitStack() as stack:
        if settings.store_backend == "memory":
            logger.warning("Using in-memory stores; data is lost on shutdown")
            app.state.identity_store = InMemoryIdentityStore(
                min_password_length=settings.min_password_length
            )
            app.state.document_store = InMemoryDocumentStore(
                max_attempts=settings.transaction_max_attempts,
                body_timeout_seconds=settings.io_timeout_seconds,
            )
        else:
            logger.info("Connecting to identity database...")
            identity_pool = await _open_pool(stack, settings.identity_database_url, settings)
            logger.info("Connecting to document database...")
            document_pool = await _open_pool(stack, settings.document_database_url, settings)

            logger.info("Running database migrations...")
            await run_migrations(identity_pool, "identity")
            await run_migrations(document_pool, "documents")

            app.state.identity_store = PostgresIdentityStore(
                identity_pool,
                min_password_length=settings.min_password_length,
                bcrypt_cost=settings.bcrypt_cost,
            )
            app.state.document_store = PostgresDocumentStore(
                document_pool,
                max_attempts=settings.transaction_max_attempts,
                body_timeout_seconds=settings.io_timeout_seconds,
            )

        logger.info("Application startup complete")

        yield

        # Shutdown
        logger.info("Shutting down application...")

    logger.info("Store connections closed")


app = FastAPI(
    title="accountgate",
    description="Account Registration API - Saga-coordinated registration across an identity store "
    "and a transactional document store",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same response as rejected registration data."""
    logger.info("Rejected malformed request body on %s", request.url.path)
    response = map_outcome(RegistrationOutcome.INVALID_INPUT)
    return JSONResponse(status_code=response.status_code, content=response.body())


# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with store validation.

    Returns 200 OK if application and both stores are healthy.
    Raises exception if either store is unreachable.
    """
    await request.app.state.identity_store.check_health()
    await request.app.state.document_store.check_health()

    return {"status": "healthy"}
