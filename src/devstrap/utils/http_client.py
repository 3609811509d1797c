"""
HTTP download client for devstrap.

Installer scripts, release archives and signing keys are all fetched
through this client so that timeouts, redirects and the user agent are
configured in one place. Timeouts and connection errors are retried with
exponential backoff. Every failure that remains surfaces as an
InstallMethodError, which the fallback chain treats as a failed method.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from devstrap import __version__
from devstrap.utils.error_handling import InstallMethodError

logger = structlog.get_logger(__name__)


@dataclass
class HTTPClientConfig:
    """Configuration for the download client."""

    timeout: float = 60.0
    follow_redirects: bool = True
    max_redirects: int = 20
    user_agent: str = f"devstrap/{__version__}"
    # Attempts per URL on timeouts and connection errors
    max_attempts: int = 3
    backoff: float = 1.0


class DownloadClient:
    """
    Blocking HTTP client used by installation methods.

    Usage:
        with DownloadClient() as client:
            script = client.fetch_text("https://astral.sh/uv/install.sh")

        # In tests:
        transport = httpx.MockTransport(handler)
        client = DownloadClient(transport=transport)
    """

    def __init__(
        self,
        config: HTTPClientConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config or HTTPClientConfig()
        self._transport = transport
        self._client: httpx.Client | None = None

    def __enter__(self) -> "DownloadClient":
        self._ensure_client()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _ensure_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self._config.timeout),
                follow_redirects=self._config.follow_redirects,
                max_redirects=self._config.max_redirects,
                headers={"User-Agent": self._config.user_agent},
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        self._client = None

    def fetch_bytes(self, url: str) -> bytes:
        """
        Download a URL and return its body.

        Raises:
            InstallMethodError: On a non-2xx final response, or on timeouts and
                connection errors that persist through every attempt.
        """
        client = self._ensure_client()
        logger.debug("http_fetch", url=url)

        retrying = Retrying(
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential(multiplier=self._config.backoff, max=30),
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    response = client.get(url)
        except httpx.TimeoutException as e:
            logger.warning("http_timeout", url=url, timeout=self._config.timeout)
            raise InstallMethodError(f"Timed out fetching {url}", {"url": url}) from e
        except httpx.HTTPError as e:
            logger.warning("http_error", url=url, error=str(e))
            raise InstallMethodError(f"Could not fetch {url}: {e}", {"url": url}) from e

        if not response.is_success:
            logger.warning("http_bad_status", url=url, status_code=response.status_code)
            raise InstallMethodError(
                f"Fetching {url} returned HTTP {response.status_code}",
                {"url": url, "status_code": response.status_code},
            )

        logger.debug("http_fetched", url=url, size=len(response.content))
        return response.content

    def fetch_text(self, url: str) -> str:
        """Download a URL and decode it as UTF-8 text."""
        return self.fetch_bytes(url).decode("utf-8", errors="replace")
