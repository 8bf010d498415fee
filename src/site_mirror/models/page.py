"""Per-page records passed between crawl stages."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class FetchKind(str, Enum):
    """Selects the fetch timeout and how a URL maps to a local file."""

    PAGE = "page"
    ASSET = "asset"


@dataclass(frozen=True)
class PageContext:
    """Where a page lives remotely and locally, and which site it belongs to."""

    url: str
    local_path: Path
    origin: str
    root: Path

    @property
    def page_dir(self) -> Path:
        return self.local_path.parent


@dataclass
class PageResult:
    """Outcome of processing one page."""

    url: str
    local_path: Path
    page_bytes: int = 0
    asset_bytes: int = 0
    assets_downloaded: int = 0
    links_enqueued: int = 0

    @property
    def total_bytes(self) -> int:
        return self.page_bytes + self.asset_bytes
