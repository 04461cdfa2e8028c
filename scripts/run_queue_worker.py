"""Run the Redis queue worker until interrupted."""

from __future__ import annotations

import asyncio
import logging
import os
import signal

from src.contentgen.config import load_config
from src.contentgen.dependencies import build_job_queue
from src.contentgen.logging import configure_logging
from src.contentgen.workers.queue_worker import OpenAIChatHandler, QueueWorker, default_handlers

logger = logging.getLogger(__name__)


async def _run() -> None:
    config = load_config()
    queue = build_job_queue(config)
    if queue is None:
        raise SystemExit("REDIS_URL is not set; nothing to consume")

    chat = OpenAIChatHandler(
        api_key=os.getenv("OPENAI_API_KEY"),
        timeout_seconds=config.provider_timeout_seconds,
    )
    worker = QueueWorker(
        queue=queue,
        handlers=default_handlers(chat),
        poll_timeout_seconds=config.queue.poll_timeout_seconds,
    )

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    logger.info("queue.worker.started", extra={"queue_name": queue.queue_name})
    await worker.run_forever(shutdown_event=shutdown_event)


def main() -> None:
    configure_logging()
    asyncio.run(_run())


if __name__ == "__main__":
    main()
