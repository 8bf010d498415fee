"""Fetch tool - retrieve pages and assets over HTTP, with retry."""

import logging
from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config.loader import Config
from ..errors import FetchFailed
from ..models.page import FetchKind

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Result from fetch_bytes / fetch_text."""

    url: str
    http_status: int
    content_type: str
    content: bytes = b""
    text: str | None = None
    error: str | None = None


def build_client(
    config: Config, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Shared client for one job. Tests pass a mock transport."""
    return httpx.AsyncClient(
        follow_redirects=True,
        trust_env=False,
        headers={"User-Agent": config.fetch_policy.user_agent},
        transport=transport,
    )


async def fetch_bytes(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    max_bytes: int,
) -> FetchResult:
    """
    Fetch raw bytes from URL.
    Never raises for transport problems; they are reported in .error.
    Bodies larger than max_bytes are reported as errors too.
    """
    try:
        async with client.stream("GET", url, timeout=timeout) as response:
            content_type = response.headers.get("content-type", "application/octet-stream")
            if response.status_code >= 400:
                return FetchResult(
                    url=url,
                    http_status=response.status_code,
                    content_type=content_type,
                    error=f"HTTP {response.status_code}",
                )

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                return FetchResult(
                    url=url,
                    http_status=response.status_code,
                    content_type=content_type,
                    error=f"content-length {declared} exceeds {max_bytes}",
                )

            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > max_bytes:
                    return FetchResult(
                        url=url,
                        http_status=response.status_code,
                        content_type=content_type,
                        error=f"body exceeds {max_bytes} bytes",
                    )
                chunks.append(chunk)

            return FetchResult(
                url=url,
                http_status=response.status_code,
                content_type=content_type,
                content=b"".join(chunks),
                text=None,
                error=None,
            )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        return FetchResult(
            url=url,
            http_status=0,
            content_type="",
            error=f"{type(e).__name__}: {e}",
        )


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    max_bytes: int,
) -> FetchResult:
    """Fetch and decode a text body using the response charset (UTF-8 fallback)."""
    result = await fetch_bytes(client, url, timeout, max_bytes)
    if result.error is None:
        result.text = result.content.decode(_charset(result.content_type), errors="replace")
    return result


def _charset(content_type: str) -> str:
    for param in content_type.split(";")[1:]:
        key, _, value = param.strip().partition("=")
        if key.lower() == "charset" and value:
            charset = value.strip("\"' ")
            try:
                "".encode(charset)
            except LookupError:
                break
            return charset
    return "utf-8"


class RetryFetcher:
    """
    Wraps fetch_bytes/fetch_text with bounded retries and exponential backoff.
    Any failure (network, timeout, HTTP error, oversized body) is retried the
    same way; only the last attempt's failure is raised.
    """

    def __init__(self, client: httpx.AsyncClient, config: Config, sleep=None):
        self.client = client
        self.fetch_policy = config.fetch_policy
        self.retry_policy = config.retry_policy
        self._sleep = sleep

    def _timeout(self, kind: FetchKind) -> float:
        if kind is FetchKind.PAGE:
            return self.fetch_policy.page_timeout
        return self.fetch_policy.asset_timeout

    def _retrying(self) -> AsyncRetrying:
        policy = self.retry_policy
        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(multiplier=policy.backoff_seconds, exp_base=2),
            retry=retry_if_exception_type(FetchFailed),
            before_sleep=_log_retry,
            reraise=True,
            **kwargs,
        )

    async def _attempt(self, url: str, kind: FetchKind, as_text: bool) -> FetchResult:
        fetch = fetch_text if as_text else fetch_bytes
        result = await fetch(
            self.client, url, self._timeout(kind), self.fetch_policy.max_content_bytes
        )
        if result.error:
            raise FetchFailed(url, result.error)
        return result

    async def _fetch_with_retry(self, url: str, kind: FetchKind, as_text: bool) -> FetchResult:
        async for attempt in self._retrying():
            with attempt:
                result = await self._attempt(url, kind, as_text)
        return result

    async def fetch(self, url: str, kind: FetchKind) -> bytes:
        """Fetch raw bytes, raising FetchFailed once attempts are exhausted."""
        result = await self._fetch_with_retry(url, kind, as_text=False)
        return result.content

    async def fetch_page(self, url: str) -> FetchResult:
        """Fetch a page keeping its content type; text is decoded whatever the type."""
        return await self._fetch_with_retry(url, FetchKind.PAGE, as_text=True)

    async def fetch_text(self, url: str, kind: FetchKind = FetchKind.PAGE) -> str:
        """Fetch a decoded text body, raising FetchFailed once attempts are exhausted."""
        result = await self._fetch_with_retry(url, kind, as_text=True)
        return result.text or ""


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.debug(
        "Retrying after attempt %d (sleep %.1fs): %s",
        retry_state.attempt_number,
        retry_state.next_action.sleep if retry_state.next_action else 0.0,
        exc,
    )
