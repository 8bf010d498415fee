"""Path tool - map URLs to their place in the mirrored working area."""

import os
import posixpath
from pathlib import Path
from urllib.parse import SplitResult, quote, unquote, urlsplit, urlunsplit

from ..models.page import FetchKind

CROSS_ORIGIN_DIR = "assets"
INDEX_FILE = "index.html"
PAGE_SUFFIX = ".html"
PAGE_EXTENSIONS = (".html", ".htm")
DEFAULT_PORTS = {"http": 80, "https": 443}

# encodeURI keeps these; "?" and "#" are escaped since they are literal in file names
_HREF_SAFE = "/:@&=+$,;!~*'()"


def _authority(parts: SplitResult) -> str:
    """host[:port], lowercased, with the scheme's default port dropped."""
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != DEFAULT_PORTS.get(parts.scheme.lower()):
        host = f"{host}:{port}"
    return host


def origin_of(url: str) -> str:
    """Return scheme://host[:port] for an absolute http(s) URL."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not parts.hostname:
        raise ValueError(f"Not an absolute http(s) URL: {url!r}")
    return f"{scheme}://{_authority(parts)}"


def normalize_url(url: str) -> str:
    """Strip fragment, query and default port; an empty path becomes '/'."""
    parts = urlsplit(url)
    netloc = _authority(parts) if parts.hostname else parts.netloc.lower()
    return urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", "", ""))


def _segments(path: str) -> list[str]:
    decoded = unquote(path)
    return [s for s in decoded.split("/") if s and s not in (".", "..")]


def local_path_for_url(
    url: str, origin: str, root: Path, kind: FetchKind = FetchKind.PAGE
) -> Path:
    """
    Deterministic local path for a URL within the working area.

    Directory-style paths map to index.html. A page whose name does not end
    in .html/.htm gains .html, so a page never lands on an asset's path;
    assets keep their path as-is. URLs from another origin go under
    assets/<host>/. Query and fragment never affect the result.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Cannot map relative URL: {url!r}")

    base = Path(root)
    if origin_of(url) != origin:
        base = base / CROSS_ORIGIN_DIR / _authority(parts)

    path = parts.path or "/"
    segs = _segments(path)
    if path.endswith("/") or not segs:
        return base.joinpath(*segs, INDEX_FILE)

    if kind is FetchKind.PAGE:
        _, ext = posixpath.splitext(segs[-1])
        if ext.lower() not in PAGE_EXTENSIONS:
            segs[-1] += PAGE_SUFFIX
    return base.joinpath(*segs)


def relative_href(target: Path, from_dir: Path) -> str:
    """URL-encoded relative reference from a page directory to a local file."""
    rel = Path(os.path.relpath(target, from_dir)).as_posix()
    return quote(rel, safe=_HREF_SAFE)
