"""Janitor tool - remove working areas left behind by crashed jobs."""

import asyncio
import logging
import shutil
import time
from pathlib import Path

from ..config.loader import Config

logger = logging.getLogger(__name__)


def sweep_stale_work_dirs(
    temp_dir: str | Path,
    max_age_seconds: float,
    now: float | None = None,
) -> list[Path]:
    """
    Delete entries under temp_dir whose mtime is older than max_age_seconds.
    One bad entry does not stop the sweep. Returns the removed paths.
    """
    root = Path(temp_dir)
    if not root.is_dir():
        return []
    now = time.time() if now is None else now

    removed: list[Path] = []
    for entry in root.iterdir():
        try:
            age = now - entry.stat().st_mtime
            if age <= max_age_seconds:
                continue
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed.append(entry)
            logger.info("Removed stale working area %s (%.0fs old)", entry, age)
        except OSError as e:
            logger.error("Cleanup error for %s: %s", entry, e)
    return removed


async def run_janitor(config: Config, stop: asyncio.Event) -> None:
    """Sweep every janitor.interval_seconds until stop is set."""
    janitor = config.janitor
    temp_dir = config.storage.temp_dir
    logger.info(
        "Janitor started for %s (max age %.0fs, every %.0fs)",
        temp_dir,
        janitor.max_age_seconds,
        janitor.interval_seconds,
    )
    while not stop.is_set():
        try:
            await asyncio.wait_for(stop.wait(), timeout=janitor.interval_seconds)
        except asyncio.TimeoutError:
            pass
        if stop.is_set():
            break
        await asyncio.to_thread(sweep_stale_work_dirs, temp_dir, janitor.max_age_seconds)
    logger.info("Janitor stopped")
