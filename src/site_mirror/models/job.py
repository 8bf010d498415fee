"""Mirror job record and lifecycle states."""

import logging
import shutil
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    """Lifecycle states for a job. All transitions controlled by MirrorAgent."""

    PENDING = "PENDING"
    CRAWLING = "CRAWLING"
    ARCHIVING = "ARCHIVING"
    COMPLETED = "COMPLETED"  # terminal
    FAILED = "FAILED"  # terminal


TERMINAL_STATES = {JobState.COMPLETED, JobState.FAILED}


class Job(BaseModel):
    """One crawl execution and the working area it owns."""

    target_url: str = Field(..., description="Validated target URL")
    origin: str = Field(..., description="scheme://host[:port] of the target")
    host: str = Field(..., description="Host (with port) of the target")
    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    work_dir: Path
    created_at: datetime = Field(default_factory=datetime.utcnow)
    state: JobState = Field(default=JobState.PENDING)
    total_bytes: int = 0
    pages_processed: int = 0
    archive_bytes: int = 0
    error: Optional[str] = None

    def fail(self, error: BaseException) -> None:
        self.state = JobState.FAILED
        self.error = str(error)

    def cleanup(self) -> None:
        """Erase the working area. Safe to call more than once."""
        if not self.work_dir.exists():
            return
        try:
            shutil.rmtree(self.work_dir)
            logger.debug("Removed working area %s", self.work_dir)
        except OSError as e:
            logger.error("Cleanup error for %s: %s", self.work_dir, e)
