"""Pipeline tools for the site mirror."""

from .archive_tool import iter_archive, write_archive
from .asset_tool import localize_assets
from .crawl_tool import CrawlEngine
from .fetch_tool import RetryFetcher, fetch_bytes, fetch_text
from .frontier import Frontier, VisitedSet
from .janitor_tool import run_janitor, sweep_stale_work_dirs
from .link_tool import rewrite_links
from .path_tool import local_path_for_url, normalize_url, origin_of, relative_href
from .validate_tool import require_valid_target, validate_tool

__all__ = [
    "CrawlEngine",
    "Frontier",
    "RetryFetcher",
    "VisitedSet",
    "fetch_bytes",
    "fetch_text",
    "iter_archive",
    "local_path_for_url",
    "localize_assets",
    "normalize_url",
    "origin_of",
    "relative_href",
    "require_valid_target",
    "rewrite_links",
    "run_janitor",
    "sweep_stale_work_dirs",
    "validate_tool",
    "write_archive",
]
