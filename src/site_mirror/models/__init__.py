"""Data models for the site mirror."""

from .job import Job, JobState, TERMINAL_STATES
from .page import FetchKind, PageContext, PageResult

__all__ = [
    "Job",
    "JobState",
    "TERMINAL_STATES",
    "FetchKind",
    "PageContext",
    "PageResult",
]
