"""Mirror Agent - control plane for one site mirroring job."""

import logging
import uuid
from pathlib import Path
from typing import BinaryIO

import httpx

from ..config.loader import Config
from ..errors import ExtractionFailed
from ..models.job import Job, JobState
from ..tools.archive_tool import write_archive
from ..tools.crawl_tool import CrawlEngine
from ..tools.fetch_tool import RetryFetcher, build_client
from ..tools.path_tool import origin_of
from ..tools.validate_tool import require_valid_target

logger = logging.getLogger(__name__)


class MirrorAgent:
    """
    MirrorAgent orchestrates a job: validate -> create working area ->
    crawl -> archive -> clean up.
    The working area is always erased, whether the job succeeds or fails.
    Only budget, archive and setup failures surface to the caller; page and
    asset failures are absorbed by the crawl.
    """

    def __init__(
        self,
        config: Config,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep=None,
    ):
        self.config = config
        self.transport = transport
        self.sleep = sleep

    def new_job(self, target_url: object) -> Job:
        """Validate the target and describe the job. Creates nothing on disk."""
        url = require_valid_target(target_url, self.config.allowed_host_suffixes)
        origin = origin_of(url)
        job_id = str(uuid.uuid4())
        return Job(
            target_url=url,
            origin=origin,
            host=origin.split("://", 1)[1],
            job_id=job_id,
            work_dir=Path(self.config.storage.temp_dir) / f"temp-{job_id}",
        )

    async def prepare(self, target_url: object) -> Job:
        """
        Validate and crawl. On success the job's working area holds the
        mirrored site and the caller owns cleanup (job.cleanup()).
        On failure the working area is already erased and the error raised.
        """
        job = self.new_job(target_url)
        logger.info("Starting extraction: %s (job %s)", job.target_url, job.job_id)
        try:
            job.work_dir.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            job.fail(e)
            raise ExtractionFailed(f"Could not create working area: {e}") from e

        job.state = JobState.CRAWLING
        crawled = False
        try:
            async with build_client(self.config, self.transport) as client:
                fetcher = RetryFetcher(client, self.config, sleep=self.sleep)
                engine = CrawlEngine(self.config, fetcher, job.work_dir, job.origin)
                try:
                    await engine.run(job.target_url)
                finally:
                    job.total_bytes = engine.total_bytes
                    job.pages_processed = len(engine.pages)
            crawled = True
        except ExtractionFailed as e:
            job.fail(e)
            logger.error("Extraction failed for %s: %s", job.target_url, e)
            raise
        except Exception as e:
            job.fail(e)
            logger.exception("Extraction error for %s", job.target_url)
            raise ExtractionFailed(str(e)) from e
        finally:
            if not crawled:
                job.cleanup()

        job.state = JobState.ARCHIVING
        return job

    async def extract(self, target_url: object, sink: BinaryIO) -> Job:
        """Full job: crawl then write the archive to sink. Always cleans up."""
        job = await self.prepare(target_url)
        try:
            count = write_archive(job.work_dir, sink, self.config.storage.compression_level)
            job.state = JobState.COMPLETED
            logger.info(
                "Extraction complete: %s (%d files, %d bytes mirrored)",
                job.target_url,
                count,
                job.total_bytes,
            )
        except ExtractionFailed as e:
            job.fail(e)
            logger.error("Archive failed for %s: %s", job.target_url, e)
            raise
        finally:
            job.cleanup()
        return job

    async def extract_to_file(self, target_url: object, output_path: str | Path) -> Job:
        """Write the archive to a file; a failed job leaves no file behind."""
        require_valid_target(target_url, self.config.allowed_host_suffixes)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(output_path, "wb") as f:
                job = await self.extract(target_url, f)
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise
        job.archive_bytes = output_path.stat().st_size
        return job
