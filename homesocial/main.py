import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

import homesocial.database.connection as db_connection
import homesocial.dependencies as dependencies
from homesocial.api.auth import router as auth_router
from homesocial.api.feed import router as feed_router
from homesocial.api.listings import router as listings_router
from homesocial.api.messages import router as messages_router
from homesocial.api.profile import router as profile_router
from homesocial.database.connection import create_asyncpg_pool
from homesocial.database.store import HomeSocialStore
from homesocial.errors import HomeSocialError
from homesocial.middleware.rate_limit import custom_rate_limit_handler, limiter
from homesocial.services.storage_service import GCSMediaStorage
from homesocial.services.thread_broker import PostgresThreadBroker

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CORS_ORIGINS = os.getenv(
    "HOMESOCIAL_CORS_ORIGINS", "http://localhost:5173,http://localhost:8080"
).split(",")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    db_connection._db_pool = await create_asyncpg_pool()
    logger.info("Database pool created at startup")

    dependencies._store = HomeSocialStore(db_connection._db_pool)
    dependencies._storage = GCSMediaStorage()
    broker = PostgresThreadBroker(dependencies._store)
    await broker.start()
    dependencies._broker = broker

    yield  # App runs

    # Shutdown
    await broker.stop()
    if db_connection._db_pool:
        await db_connection._db_pool.close()
        logger.info("🔒 Database pool closed")


app = FastAPI(title="HomeSocial API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in CORS_ORIGINS if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)


@app.exception_handler(HomeSocialError)
async def homesocial_error_handler(request: Request, exc: HomeSocialError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


app.include_router(auth_router, prefix="/api")
app.include_router(feed_router, prefix="/api")
app.include_router(listings_router, prefix="/api")
app.include_router(messages_router, prefix="/api")
app.include_router(profile_router, prefix="/api")


@app.get("/api/health")
@limiter.limit("100/minute")
async def health(request: Request):
    logger.info("Health check endpoint accessed")
    return {"message": "Welcome to HomeSocial API!"}


if __name__ == "__main__":

    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
