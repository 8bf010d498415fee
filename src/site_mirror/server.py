"""HTTP surface: accept a mirror job and stream the archive back."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Iterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel

from .agent.mirror_agent import MirrorAgent
from .config.loader import Config
from .errors import ExtractionFailed, InvalidTargetError, SizeLimitExceeded
from .models.job import Job, JobState
from .tools.archive_tool import iter_archive
from .tools.janitor_tool import run_janitor

logger = logging.getLogger(__name__)


class ExtractRequest(BaseModel):
    url: Any = None


def _stream_archive(job: Job, compression_level: int) -> Iterator[bytes]:
    """Yield the archive, erasing the working area however the stream ends."""
    try:
        yield from iter_archive(job.work_dir, compression_level)
        job.state = JobState.COMPLETED
        logger.info("Extraction complete: %s", job.target_url)
    except Exception as e:
        job.fail(e)
        logger.exception("Archive stream failed for %s", job.target_url)
        raise
    finally:
        job.cleanup()


def create_app(config: Config | None = None, agent: MirrorAgent | None = None) -> FastAPI:
    """Build the app. Tests pass an agent with a mock transport."""
    config = config or Config()
    agent = agent or MirrorAgent(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Path(config.storage.temp_dir).mkdir(parents=True, exist_ok=True)
        stop = asyncio.Event()
        janitor = asyncio.create_task(run_janitor(config, stop))
        yield
        stop.set()
        await janitor

    app = FastAPI(title="Site Mirror", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Disposition", "Content-Type"],
        allow_credentials=False,
    )

    @app.get("/health")
    async def health():
        return PlainTextResponse("OK")

    @app.post("/api/extract")
    async def extract(request: ExtractRequest):
        try:
            job = await agent.prepare(request.url)
        except InvalidTargetError as e:
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid URL", "message": str(e)},
            )
        except SizeLimitExceeded as e:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Extraction failed",
                    "reason": "size_exceeded",
                    "message": str(e),
                },
            )
        except ExtractionFailed as e:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Extraction failed",
                    "reason": "extraction_failed",
                    "message": str(e),
                },
            )

        archive_name = config.storage.archive_name
        return StreamingResponse(
            _stream_archive(job, config.storage.compression_level),
            media_type="application/zip",
            headers={"Content-Disposition": f"attachment; filename={archive_name}"},
        )

    return app
