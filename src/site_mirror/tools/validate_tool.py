"""Validate tool - accept or reject a target URL before any work starts."""

from urllib.parse import urlsplit

from ..errors import InvalidTargetError


def is_allowed_host(hostname: str, suffixes: list[str]) -> bool:
    """Case-sensitive suffix match on the (already lowercased) hostname."""
    return any(hostname.endswith(suffix) for suffix in suffixes)


def validate_tool(url: object, allowed_suffixes: list[str]) -> tuple[bool, list[str]]:
    """
    Validate a target URL.
    Returns (is_valid, list of error messages).
    """
    errors: list[str] = []
    if not isinstance(url, str) or not url.strip():
        return (False, ["URL is required"])

    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
        parts.port  # raises on a non-numeric or out-of-range port
    except ValueError as e:
        return (False, [f"Malformed URL: {e}"])

    # 1. Absolute http(s)
    if parts.scheme not in ("http", "https"):
        errors.append(f"Unsupported scheme: {parts.scheme or '(none)'}")

    # 2. Host present and allowed
    if not hostname:
        errors.append("URL has no host")
    elif not is_allowed_host(hostname, allowed_suffixes):
        errors.append(f"Host not allowed: {hostname}")

    return (len(errors) == 0, errors)


def require_valid_target(url: object, allowed_suffixes: list[str]) -> str:
    """Return the stripped URL or raise InvalidTargetError."""
    valid, errors = validate_tool(url, allowed_suffixes)
    if not valid:
        raise InvalidTargetError("; ".join(errors))
    return url.strip()  # type: ignore[union-attr]
