"""HTTP fetching of the listing page."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict

import httpx
import structlog

from ..config import SourceSettings

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}


class FetchError(RuntimeError):
    """Raised when the listing page cannot be retrieved."""

    def __init__(self, url: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str]
    elapsed: float = 0.0
    raw: httpx.Response | None = field(repr=False, default=None)


class Fetcher:
    """Retrieve page content with a browser-like header set."""

    def __init__(
        self,
        settings: SourceSettings | None = None,
        client: httpx.Client | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.settings = settings or SourceSettings()
        self.logger = logger or structlog.get_logger("launch_watch.fetcher")
        self._client = client or httpx.Client(follow_redirects=True, timeout=self.settings.timeout)

    def close(self) -> None:
        self._client.close()

    def headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.settings.user_agent, **BROWSER_HEADERS}
        headers.update(self.settings.extra_headers)
        return headers

    def fetch(self, url: str | None = None, timeout: float | None = None) -> FetchResponse:
        """GET ``url`` (default: the configured source); any failure raises ``FetchError``."""

        target = url or self.settings.url
        attempts = self.settings.retry_on_fail + 1
        last_error: FetchError | None = None
        for attempt in range(1, attempts + 1):
            started = time.perf_counter()
            try:
                response = self._client.get(
                    target,
                    headers=self.headers(),
                    timeout=timeout or self.settings.timeout,
                )
            except httpx.TimeoutException as exc:
                last_error = FetchError(target, f"Timed out fetching {target}: {exc}")
            except httpx.HTTPError as exc:
                last_error = FetchError(target, f"Request to {target} failed: {exc}")
            else:
                if self._is_failure(response):
                    last_error = FetchError(
                        target,
                        f"Unexpected status {response.status_code}",
                        status_code=response.status_code,
                    )
                else:
                    elapsed = time.perf_counter() - started
                    self.logger.info(
                        "fetch_succeeded",
                        url=target,
                        status=response.status_code,
                        size=len(response.text),
                        elapsed=round(elapsed, 3),
                    )
                    return FetchResponse(
                        url=str(response.url),
                        status_code=response.status_code,
                        text=response.text,
                        headers=dict(response.headers),
                        elapsed=elapsed,
                        raw=response,
                    )
            self.logger.warning("fetch_error", url=target, attempt=attempt, error=str(last_error))
        assert last_error is not None
        raise last_error

    @staticmethod
    def _is_failure(response: httpx.Response) -> bool:
        return not 200 <= response.status_code < 300


__all__ = ["BROWSER_HEADERS", "FetchError", "FetchResponse", "Fetcher"]
