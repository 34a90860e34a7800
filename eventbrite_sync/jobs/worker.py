"""
Command-line worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and runs it once with the database pool (and Redis, when
configured) open.

    python -m eventbrite_sync.jobs.worker process_attendee 1234567890
    python -m eventbrite_sync.jobs.worker process_webhook delivery.json
"""

import asyncio
import json
import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path

from eventbrite_sync.config import settings
from eventbrite_sync.db.pool import db_pool
from eventbrite_sync.features.attendee_sync.jobs import process_attendee, process_webhook
from eventbrite_sync.infrastructure.observability.logging import get_logger, setup_logging
from eventbrite_sync.services.redis_client import fast_redis

logger = get_logger(__name__)

JobCoroutine = Callable[[list[str]], Awaitable[None]]


async def _run_process_attendee(args: list[str]) -> None:
    if not args:
        raise ValueError("process_attendee requires an attendee id")
    await process_attendee(args[0])


async def _run_process_webhook(args: list[str]) -> None:
    if not args:
        raise ValueError("process_webhook requires a path to a delivery payload")
    payload = json.loads(Path(args[0]).read_text(encoding="utf-8"))
    await process_webhook(payload)


JOB_REGISTRY: dict[str, JobCoroutine] = {
    "process_attendee": _run_process_attendee,
    "process_webhook": _run_process_webhook,
}


def _resolve_job() -> tuple[str, list[str]]:
    """Pick the target job and its arguments from CLI args or WORKER_JOB."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower(), sys.argv[2:]
    return os.getenv("WORKER_JOB", "process_attendee").strip().lower(), []


async def run_worker(job_name: str | None = None, args: list[str] | None = None) -> None:
    """Run the requested job."""
    if job_name is None:
        job_name, resolved_args = _resolve_job()
        args = args if args is not None else resolved_args

    name = job_name.strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting worker job", job=name)
    await JOB_REGISTRY[name](args or [])


@asynccontextmanager
async def worker_resources() -> AsyncGenerator[None, None]:
    """Open the database pool and Redis for one job, closing them in reverse order."""
    await db_pool.initialize()
    try:
        if settings.lock_enabled():
            await fast_redis.initialize()
        yield
    finally:
        if settings.lock_enabled():
            await fast_redis.close()
        await db_pool.close()


async def _main(job_name: str, args: list[str]) -> None:
    async with worker_resources():
        await run_worker(job_name, args)


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL)
    job_name, args = _resolve_job()
    asyncio.run(_main(job_name, args))


if __name__ == "__main__":
    main()
