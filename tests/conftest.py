import asyncio
from pathlib import Path

import httpx
import pytest
from bs4 import BeautifulSoup

from site_mirror.config.loader import Config
from site_mirror.tools.crawl_tool import CrawlEngine
from site_mirror.tools.fetch_tool import RetryFetcher, build_client
from site_mirror.tools.path_tool import origin_of

SITE = "https://example.webflow.io"
HTML = "text/html; charset=utf-8"


class FakeSite:
    """Routes for a MockTransport, recording every request URL."""

    def __init__(self):
        self.routes: dict[str, tuple[int, str, bytes]] = {}
        self.failures: dict[str, int] = {}
        self.requests: list[str] = []

    def page(self, url: str, body: str) -> "FakeSite":
        self.routes[url] = (200, HTML, body.encode("utf-8"))
        return self

    def asset(self, url: str, body: bytes, content_type: str = "application/octet-stream") -> "FakeSite":
        self.routes[url] = (200, content_type, body)
        return self

    def status(self, url: str, code: int) -> "FakeSite":
        self.routes[url] = (code, "text/plain", b"error")
        return self

    def fail(self, url: str, times: int) -> "FakeSite":
        """Connection errors for the next `times` requests to url."""
        self.failures[url] = times
        return self

    def count(self, url: str) -> int:
        return self.requests.count(url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if self.failures.get(url, 0) > 0:
            self.failures[url] -= 1
            raise httpx.ConnectError("connection refused", request=request)
        if url not in self.routes:
            return httpx.Response(404, text="not found")
        code, content_type, body = self.routes[url]
        return httpx.Response(code, content=body, headers={"content-type": content_type})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def config(tmp_path) -> Config:
    return Config.from_dict(
        {
            "retry_policy": {"backoff_seconds": 0},
            "storage": {"temp_dir": str(tmp_path / "temp")},
        }
    )


def crawl(site: FakeSite, config: Config, work_dir: Path, start: str) -> CrawlEngine:
    """Run a CrawlEngine against the fake site and return it."""

    async def _run() -> CrawlEngine:
        async with build_client(config, site.transport()) as client:
            engine = CrawlEngine(config, RetryFetcher(client, config), work_dir, origin_of(start))
            await engine.run(start)
            return engine

    work_dir.mkdir(parents=True, exist_ok=True)
    return asyncio.run(_run())


def soup_of(path: Path) -> BeautifulSoup:
    return BeautifulSoup(path.read_text(encoding="utf-8"), "lxml")


def files_under(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}
