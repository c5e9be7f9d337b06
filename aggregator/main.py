from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from aggregator.api.routes import router
from aggregator.config import get_settings
from aggregator.db import SessionFactory, close_db, init_db
from aggregator.logging import configure_logging
from aggregator.workers.ingest_worker import IngestWorker

configure_logging()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    worker = IngestWorker(session_factory=SessionFactory, settings=settings)
    app.state.ingest_worker = worker

    yield

    await worker.shutdown()
    await close_db()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.include_router(router, prefix=settings.api_prefix)
