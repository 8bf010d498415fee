"""Asset tool - download page assets and point references at the local copies."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urldefrag, urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from ..errors import FetchFailed
from ..models.page import FetchKind, PageContext
from .fetch_tool import RetryFetcher
from .frontier import VisitedSet
from .path_tool import local_path_for_url, normalize_url, relative_href

logger = logging.getLogger(__name__)

ASSET_SELECTORS = "link[href], script[src], img[src], source[src]"
ASSET_LINK_RELS = {
    "stylesheet",
    "icon",
    "apple-touch-icon",
    "mask-icon",
    "preload",
    "modulepreload",
    "manifest",
}
FETCHABLE_SCHEMES = ("http", "https")


@dataclass
class AssetRef:
    """One element attribute that references an asset."""

    element: Tag
    attr: str
    url: str
    key: str
    local_path: Path


@dataclass
class AssetStats:
    bytes_downloaded: int = 0
    downloaded: int = 0
    failed: int = 0
    reused: int = 0


def resolve_asset_url(raw: str, page_url: str) -> str | None:
    """
    Absolute http(s) URL for an asset reference, or None to skip it.
    Protocol-relative references become https.
    """
    value = raw.strip()
    if not value:
        return None
    if value.startswith("//"):
        value = "https:" + value
    try:
        absolute = urldefrag(urljoin(page_url, value))[0]
        scheme = urlsplit(absolute).scheme
    except ValueError:
        return None
    if scheme not in FETCHABLE_SCHEMES:
        return None
    return absolute


def _is_asset_link(element: Tag) -> bool:
    rel = element.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return any(r.lower() in ASSET_LINK_RELS for r in rel)


def discover_assets(soup: BeautifulSoup, ctx: PageContext) -> list[AssetRef]:
    """Collect asset references in document order."""
    refs: list[AssetRef] = []
    for element in soup.select(ASSET_SELECTORS):
        if element.name == "link" and not _is_asset_link(element):
            continue
        attr = "href" if element.has_attr("href") else "src"
        raw = element.get(attr)
        if not isinstance(raw, str):
            continue
        url = resolve_asset_url(raw, ctx.url)
        if url is None:
            continue
        try:
            local_path = local_path_for_url(url, ctx.origin, ctx.root, FetchKind.ASSET)
        except ValueError:
            continue
        refs.append(
            AssetRef(
                element=element,
                attr=attr,
                url=url,
                key=normalize_url(url),
                local_path=local_path,
            )
        )
    return refs


def write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


async def _localize_one(
    ref: AssetRef,
    ctx: PageContext,
    fetcher: RetryFetcher,
    visited_assets: VisitedSet,
    stats: AssetStats,
) -> None:
    if not visited_assets.claim(ref.key):
        # Another page owns this asset; its path is the same either way.
        ref.element[ref.attr] = relative_href(ref.local_path, ctx.page_dir)
        stats.reused += 1
        return

    try:
        data = await fetcher.fetch(ref.url, FetchKind.ASSET)
    except FetchFailed as e:
        logger.warning("Failed to download asset %s: %s", ref.url, e.reason)
        stats.failed += 1
        return

    await asyncio.to_thread(write_file, ref.local_path, data)
    ref.element[ref.attr] = relative_href(ref.local_path, ctx.page_dir)
    stats.bytes_downloaded += len(data)
    stats.downloaded += 1
    logger.debug("Downloaded asset %s -> %s", ref.url, ref.local_path)


async def localize_assets(
    soup: BeautifulSoup,
    ctx: PageContext,
    fetcher: RetryFetcher,
    visited_assets: VisitedSet,
    wave_size: int,
) -> AssetStats:
    """
    Download every asset the page references, at most once per job, and
    rewrite each reference to the local copy relative to the page.
    Assets are fetched in waves of wave_size.
    """
    stats = AssetStats()
    refs = discover_assets(soup, ctx)
    for i in range(0, len(refs), wave_size):
        chunk = refs[i : i + wave_size]
        await asyncio.gather(
            *(_localize_one(ref, ctx, fetcher, visited_assets, stats) for ref in chunk)
        )
    if refs:
        logger.debug(
            "Assets for %s: %d downloaded, %d reused, %d failed",
            ctx.url,
            stats.downloaded,
            stats.reused,
            stats.failed,
        )
    return stats
