from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aggregator.config import Settings
from aggregator.extractors import extract_page
from aggregator.extractors.fetcher import PageFetcher
from aggregator.extractors.registry import SourceRegistry
from aggregator.models import ScrapeRun
from aggregator.schemas import ScrapeCreateRequest, ScrapeStatus
from aggregator.services.reconciliation import Reconciler, ReconcileSummary
from aggregator.services.retry import format_exception_message
from aggregator.services.store import SqlAlchemyEntityStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class IngestWorker:
    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        registry: SourceRegistry | None = None,
        fetcher: PageFetcher | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._registry = registry or SourceRegistry()
        self._fetcher = fetcher or PageFetcher(
            timeout_seconds=settings.fetch_timeout_seconds,
            retries=settings.fetch_retries,
            delay_seconds=settings.fetch_retry_delay_seconds,
        )
        self._reconciler = Reconciler(SqlAlchemyEntityStore(session_factory))
        self._tasks: set[asyncio.Task[None]] = set()

    def launch(self, scrape_id: str) -> None:
        task = asyncio.create_task(self._run(scrape_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def shutdown(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._fetcher.close()

    async def _run(self, scrape_id: str) -> None:
        logger.info("Running scrape job scrape_id=%s", scrape_id)
        started = time.perf_counter()
        try:
            async with self._session_factory() as session:
                run = await session.get(ScrapeRun, scrape_id)
                if run is None:
                    logger.warning("Scrape run not found for job scrape_id=%s", scrape_id)
                    return

                run.status = ScrapeStatus.running.value
                await session.commit()
                request = ScrapeCreateRequest.model_validate(run.request_json)

            profile = self._registry.get(request.source)
            if request.html is not None:
                html = request.html
            else:
                html = await self._fetcher.fetch(request.url or "")

            extraction = extract_page(html, profile)
            summary = await self._reconciler.reconcile(extraction)
            await self._mark_completed(
                scrape_id,
                counts={"extracted": extraction.counts(), **summary.as_dict()},
                latency_ms=_elapsed_ms(started),
            )
            logger.info(
                "Scrape completed scrape_id=%s source=%s %s",
                scrape_id,
                request.source,
                _summary_fields(summary),
            )
        except Exception as exc:
            logger.exception("Scrape failed scrape_id=%s", scrape_id)
            await self._mark_failed(scrape_id, format_exception_message(exc), _elapsed_ms(started))

    async def _mark_completed(
        self, scrape_id: str, *, counts: dict[str, dict[str, int]], latency_ms: int
    ) -> None:
        async with self._session_factory() as session:
            run = await session.get(ScrapeRun, scrape_id)
            if run is None:
                return
            run.status = ScrapeStatus.completed.value
            run.counts_json = counts
            run.latency_ms = latency_ms
            run.error_message = None
            run.completed_at = _utcnow()
            await session.commit()

    async def _mark_failed(self, scrape_id: str, error_message: str, latency_ms: int) -> None:
        async with self._session_factory() as session:
            run = await session.get(ScrapeRun, scrape_id)
            if run is None:
                return
            run.status = ScrapeStatus.failed.value
            run.error_message = error_message
            run.latency_ms = latency_ms
            run.completed_at = _utcnow()
            await session.commit()


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _summary_fields(summary: ReconcileSummary) -> str:
    return " ".join(
        f"{kind}={counts['inserted']}/{counts['replaced']}"
        for kind, counts in summary.as_dict().items()
    )
