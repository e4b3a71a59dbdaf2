"""Insect Worker 메인 프로세스.

실행:
    python -m insect_worker.main

SIGTERM/SIGINT 수신 시 claim을 중단하고 진행 중인 attempt가 끝날 때까지 대기.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from prometheus_client import start_http_server

from insect_jobs.core.logging import configure_logging
from insect_jobs.infrastructure.persistence_postgres import ensure_schema
from insect_worker.metrics import REGISTRY
from insect_worker.setup.config import get_settings
from insect_worker.setup.dependencies import (
    create_promoter,
    create_reclaimer,
    create_worker_pool,
    get_broker,
    get_db_engine,
)

logger = logging.getLogger(__name__)


async def run_worker() -> None:
    settings = get_settings()

    logger.info(
        "insect_worker_starting",
        extra={
            "consumer_group": settings.consumer_group,
            "consumer_name": settings.consumer_name,
            "concurrency": settings.concurrency,
            "rate_limit_max": settings.rate_limit_max,
            "rate_limit_duration_ms": settings.rate_limit_duration_ms,
        },
    )

    broker = get_broker()
    await broker.setup()
    await ensure_schema(get_db_engine())

    pool = create_worker_pool()
    promoter = create_promoter()
    reclaimer = create_reclaimer()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, pool.shutdown)

    maintenance_tasks = [
        asyncio.create_task(promoter.run()),
        asyncio.create_task(reclaimer.run()),
    ]

    try:
        await pool.run()
    finally:
        promoter.shutdown()
        reclaimer.shutdown()
        for task in maintenance_tasks:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        await broker.close()
        await get_db_engine().dispose()
        logger.info("insect_worker_stopped")


def main() -> None:
    settings = get_settings()
    configure_logging(
        service_name=settings.service_name,
        service_version=settings.service_version,
        log_level=settings.log_level,
        json_format=settings.log_format == "json",
    )

    if settings.metrics_port:
        start_http_server(settings.metrics_port, registry=REGISTRY)

    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
