"""Crawl tool - breadth-first, wave-based mirroring of one site."""

import asyncio
import logging
import os
from pathlib import Path

from bs4 import BeautifulSoup

from ..config.loader import Config
from ..errors import FetchFailed, SizeLimitExceeded
from ..models.page import PageContext, PageResult
from .asset_tool import localize_assets, write_file
from .fetch_tool import RetryFetcher
from .frontier import Frontier, VisitedSet
from .link_tool import rewrite_links
from .path_tool import local_path_for_url, normalize_url, origin_of

logger = logging.getLogger(__name__)


class CrawlEngine:
    """
    Owns the frontier and both visited sets for one job.

    Pages are claimed from the frontier head in waves of
    crawl_limits.wave_size and processed concurrently. After every wave the
    bytes written so far are checked against crawl_limits.max_total_bytes.
    A page that fails contributes nothing and does not stop the crawl;
    neither does a same-origin link that turns out not to be HTML.
    """

    def __init__(self, config: Config, fetcher: RetryFetcher, work_dir: Path, origin: str):
        self.config = config
        self.fetcher = fetcher
        self.work_dir = Path(work_dir)
        self.origin = origin
        self.visited_pages = VisitedSet()
        self.visited_assets = VisitedSet()
        self.frontier = Frontier(self.visited_pages)
        self.total_bytes = 0
        self.claim_order: list[str] = []
        self.pages: list[PageResult] = []
        self.failed_pages: list[str] = []
        self.skipped_pages: list[str] = []

    async def process_page(self, url: str) -> PageResult | None:
        """
        Fetch, localize, rewrite and write one page.
        Returns None without writing anything when the response is not HTML.
        """
        logger.info("Downloading page: %s", url)
        fetched = await self.fetcher.fetch_page(url)
        if "html" not in fetched.content_type.lower():
            logger.info("Skipping non-HTML page %s (%s)", url, fetched.content_type)
            return None
        soup = BeautifulSoup(fetched.text or "", "lxml")

        ctx = PageContext(
            url=url,
            local_path=local_path_for_url(url, self.origin, self.work_dir),
            origin=self.origin,
            root=self.work_dir,
        )
        assets = await localize_assets(
            soup,
            ctx,
            self.fetcher,
            self.visited_assets,
            self.config.crawl_limits.wave_size,
        )
        links = rewrite_links(
            soup, ctx, self.frontier, rewrite_external=self.config.rewrite_external_links
        )

        markup = str(soup).encode("utf-8")
        await asyncio.to_thread(write_file, ctx.local_path, markup)

        return PageResult(
            url=url,
            local_path=ctx.local_path,
            page_bytes=len(markup),
            asset_bytes=assets.bytes_downloaded,
            assets_downloaded=assets.downloaded,
            links_enqueued=links.enqueued,
        )

    async def _dispatch(self, url: str) -> PageResult | None:
        try:
            result = await self.process_page(url)
            if result is None:
                self.skipped_pages.append(url)
            return result
        except FetchFailed as e:
            logger.warning("Failed to download page %s: %s", url, e.reason)
        except Exception as e:
            logger.exception("Failed to process page %s: %s", url, e)
        self.failed_pages.append(url)
        return None

    def _claim_wave(self) -> list[str]:
        wave = self.frontier.take_wave(self.config.crawl_limits.wave_size)
        claimed = [u for u in wave if self.visited_pages.claim(u)]
        self.claim_order.extend(claimed)
        return claimed

    def _touch_work_dir(self) -> None:
        try:
            os.utime(self.work_dir, None)
        except OSError:
            logger.debug("Could not touch %s", self.work_dir)

    async def run(self, start_url: str) -> list[PageResult]:
        """
        Crawl from start_url until the frontier is empty.
        Raises SizeLimitExceeded once the running total passes the ceiling.
        """
        limit = self.config.crawl_limits.max_total_bytes
        start = normalize_url(start_url)
        if origin_of(start) != self.origin:
            raise ValueError(f"{start_url} is not on {self.origin}")
        self.frontier.push(start)

        wave_no = 0
        while self.frontier:
            claimed = self._claim_wave()
            if not claimed:
                continue
            wave_no += 1
            results = await asyncio.gather(*(self._dispatch(u) for u in claimed))

            done = [r for r in results if r is not None]
            self.pages.extend(done)
            self.total_bytes += sum(r.total_bytes for r in done)
            self._touch_work_dir()
            logger.info(
                "Wave %d: %d/%d pages saved, %d bytes total, %d queued",
                wave_no,
                len(done),
                len(claimed),
                self.total_bytes,
                len(self.frontier),
            )
            if self.total_bytes > limit:
                raise SizeLimitExceeded(self.total_bytes, limit)

        logger.info(
            "Crawl complete: %d pages, %d assets, %d bytes",
            len(self.pages),
            sum(p.assets_downloaded for p in self.pages),
            self.total_bytes,
        )
        return self.pages
