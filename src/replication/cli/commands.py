"""
CLI command implementations.

- sync: mirror the change feed until interrupted
- full reindex: anonymize every existing record once
"""

import argparse
import asyncio
import logging
import os
import signal

from pymongo import AsyncMongoClient
from pymongo.errors import ConfigurationError as DriverConfigurationError

from anonymization import create_customer_pipeline
from utils.metrics import ApplicationInfo, MetricsPublisher, ReplicationMetrics
from utils.tracing import initialize_tracing, shutdown_tracing

from ..batch import BatchWriter
from ..checkpoint import ResumeTokenStore
from ..exceptions import ConfigurationError
from ..feed import ChangeFeedConsumer
from ..reindex import FullReindexJob, ReindexResult
from ..settings import SyncSettings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNKNOWN_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_CLOSE_ERROR = 3

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def cmd_sync(
    database,
    settings: SyncSettings,
    metrics: ReplicationMetrics,
    reset_checkpoint: bool = False,
) -> None:
    """
    Mirror the change feed until SIGINT or SIGTERM

    Args:
        database: Async database holding both collections
        settings: Resolved settings
        metrics: Replication metrics
        reset_checkpoint: Delete the saved resume token first
    """
    checkpoints = ResumeTokenStore(settings.resume_token_file)
    if reset_checkpoint:
        checkpoints.clear()

    writer = BatchWriter(
        database[settings.target_collection],
        checkpoints=checkpoints,
        max_batch_size=settings.max_batch_size,
        metrics=metrics,
    )
    consumer = ChangeFeedConsumer(
        database[settings.source_collection],
        writer,
        create_customer_pipeline(),
        checkpoints=checkpoints,
        flush_interval=settings.flush_interval,
        poll_interval_ms=settings.poll_interval_ms,
        metrics=metrics,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_stop(sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, stopping sync")
        stop_event.set()

    for sig in STOP_SIGNALS:
        loop.add_signal_handler(sig, request_stop, sig)

    logger.info(
        f"Syncing {settings.source_collection} -> {settings.target_collection} "
        f"(batch={settings.max_batch_size}, interval={settings.flush_interval}s)"
    )
    try:
        await consumer.run(stop_event)
    finally:
        for sig in STOP_SIGNALS:
            loop.remove_signal_handler(sig)


async def cmd_full_reindex(
    database,
    settings: SyncSettings,
    metrics: ReplicationMetrics,
) -> ReindexResult:
    """Anonymize every existing source record into the mirror."""
    job = FullReindexJob(
        database[settings.source_collection],
        database[settings.target_collection],
        create_customer_pipeline(),
        batch_size=settings.reindex_batch_size,
        metrics=metrics,
    )
    return await job.run()


def setup_observability(settings: SyncSettings, mode: str) -> ReplicationMetrics:
    """Create process metrics, start the exporter and tracing if configured."""
    metrics = ReplicationMetrics()
    ApplicationInfo(mode=mode)

    if settings.metrics_port:
        MetricsPublisher(port=settings.metrics_port).start()

    if os.getenv("OTLP_ENDPOINT"):
        initialize_tracing()

    return metrics


async def close_client(client) -> bool:
    """Close the client, logging instead of raising. Returns True on success."""
    try:
        await client.close()
    except Exception as e:
        logger.error(f"Error while closing connection: {type(e).__name__}: {e}")
        return False
    return True


async def run(args: argparse.Namespace, settings: SyncSettings) -> int:
    """
    Connect, run the selected mode and close the client

    Returns:
        EXIT_OK, or EXIT_CLOSE_ERROR if closing the client failed

    Raises:
        ConfigurationError: If the URI names no database and DB_NAME is unset
        Exception: Anything fatal raised by the selected mode
    """
    mode = "full-reindex" if args.full_reindex else "sync"
    metrics = setup_observability(settings, mode)
    client = AsyncMongoClient(settings.db_uri)

    try:
        await client.admin.command("ping")
        logger.info("Connected to database")

        try:
            database = client.get_default_database(default=settings.db_name)
        except DriverConfigurationError as e:
            raise ConfigurationError(
                "Connection string names no database and DB_NAME is not set"
            ) from e

        if args.full_reindex:
            await cmd_full_reindex(database, settings, metrics)
        else:
            await cmd_sync(database, settings, metrics, reset_checkpoint=args.reset_checkpoint)
    except BaseException:
        # the original error wins over a failing close
        await close_client(client)
        raise
    finally:
        shutdown_tracing()

    if not await close_client(client):
        return EXIT_CLOSE_ERROR

    logger.info("Goodbye!")
    return EXIT_OK
