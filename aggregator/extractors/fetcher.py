from __future__ import annotations

import logging
from urllib.parse import urlparse

import httpx

from aggregator.extractors.base import PageFetchError
from aggregator.services.retry import format_exception_message, retry_async

logger = logging.getLogger(__name__)


class PageFetcher:
    def __init__(
        self,
        *,
        timeout_seconds: int = 20,
        retries: int = 3,
        delay_seconds: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._retries = retries
        self._delay_seconds = delay_seconds
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": "flight-bundle-aggregator/1.0"},
        )

    async def fetch(self, url: str) -> str:
        if urlparse(url).scheme not in {"http", "https"}:
            raise PageFetchError(f"unsupported url {url!r}")

        async def _get() -> str:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.text

        def _log_attempt(exc: Exception, attempt: int) -> None:
            logger.warning(
                "page fetch failed attempt=%s/%s url=%s error=%s",
                attempt,
                self._retries,
                url,
                format_exception_message(exc),
            )

        try:
            return await retry_async(
                _get,
                retries=self._retries,
                delay_seconds=self._delay_seconds,
                on_error=_log_attempt,
            )
        except httpx.HTTPError as exc:
            raise PageFetchError(
                f"giving up on {url} after {self._retries} attempts: "
                f"{format_exception_message(exc)}"
            ) from exc

    async def close(self) -> None:
        await self._client.aclose()
