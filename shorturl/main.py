"""FastAPI application entry point for the short-URL service.

This module configures the FastAPI application with lifecycle management,
metrics exposition and route registration, and provides the
``shorturl-server`` console entry point.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ lifespan()    │
    │ startup:      │
    │ configure_    │
    │ logging()     │
    │ init_db()     │
    └──────┬───────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ close_db()  │
    └─────────────┘

How to Use
===========
**Step 1 — Run the server**::
    DATABASE_URL=postgresql+asyncpg://... HOST=0.0.0.0 PORT=8000 shorturl-server

    # or directly with uvicorn
    uvicorn shorturl.main:app --host 0.0.0.0 --port 8000

**Step 2 — Make API calls**::
    curl -X PUT http://localhost:8000/abc123xy \\
         -H "Content-Type: application/json" \\
         -d '{"url": "https://example.com", "expiration_timestamp": "2030-01-01T00:00:00Z"}'

Key Behaviours
===============
- Database tables are created automatically on startup.
- The engine is disposed on shutdown.
- Prometheus metrics are exposed at /metrics; the instrumentator is mounted
  before the router so that ``/{short_id}`` does not shadow it.
"""

__all__ = ["app", "run"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from shorturl.config import get_settings
from shorturl.database import close_db, init_db
from shorturl.logging_config import configure_logging
from shorturl.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    logger = configure_logging(settings.LOG_LEVEL)
    await init_db()
    logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Expiring short-URL service",
    lifespan=lifespan,
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)


def run() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
