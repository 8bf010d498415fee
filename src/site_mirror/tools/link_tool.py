"""Link tool - queue same-origin hyperlinks and point anchors at local pages."""

import logging
from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from ..models.page import PageContext
from .frontier import Frontier
from .path_tool import local_path_for_url, normalize_url, origin_of, relative_href

logger = logging.getLogger(__name__)

SKIP_PREFIXES = ("mailto:", "tel:", "javascript:", "data:", "#")


@dataclass
class LinkStats:
    enqueued: int = 0
    rewritten: int = 0
    skipped: int = 0


def rewrite_links(
    soup: BeautifulSoup,
    ctx: PageContext,
    frontier: Frontier,
    rewrite_external: bool = True,
) -> LinkStats:
    """
    Enqueue unseen same-origin links and rewrite every anchor href to the
    local path its target maps to. The target page need not exist yet:
    the crawl will write it to that same path when it gets there.
    """
    stats = LinkStats()
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href or href.lower().startswith(SKIP_PREFIXES):
            continue
        try:
            absolute = urljoin(ctx.url, href)
            fragment = urlsplit(absolute).fragment
            normalized = normalize_url(absolute)
            same_origin = origin_of(normalized) == ctx.origin
            target = local_path_for_url(normalized, ctx.origin, ctx.root)
        except ValueError:
            logger.debug("Skipping malformed href %r on %s", href, ctx.url)
            stats.skipped += 1
            continue

        if same_origin:
            if frontier.push(normalized):
                stats.enqueued += 1
                logger.debug("Enqueued %s", normalized)
        elif not rewrite_external:
            continue

        local_href = relative_href(target, ctx.page_dir)
        if fragment:
            local_href += "#" + fragment
        a["href"] = local_href
        stats.rewritten += 1
    return stats
