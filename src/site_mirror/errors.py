"""Exception hierarchy for mirror jobs."""


class MirrorError(Exception):
    """Base class for all site mirror failures."""


class InvalidTargetError(MirrorError):
    """Target URL is malformed or outside the allowed hosts."""


class FetchFailed(MirrorError):
    """A single resource could not be retrieved."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ExtractionFailed(MirrorError):
    """The job could not produce an archive."""


class SizeLimitExceeded(ExtractionFailed):
    """Cumulative mirrored content went over the configured ceiling."""

    def __init__(self, total: int, limit: int):
        super().__init__(
            f"Site is too large ({total} bytes exceeds {limit} byte limit)"
        )
        self.total = total
        self.limit = limit


class ArchiveError(ExtractionFailed):
    """Writing the archive to the output sink failed."""
