# src/esrollup/runner.py
"""Wire validated settings to clients, discovery and the coordinator.

Shared by the `run` and `benchmark` commands so a benchmark iteration is
exactly a normal run.
"""

from __future__ import annotations

from collections.abc import Callable

from elasticsearch import Elasticsearch

from esrollup.contracts.errors import ConfigurationError
from esrollup.contracts.protocols import ProgressRenderer
from esrollup.contracts.types import RollupResult
from esrollup.core.config import RollupSettings
from esrollup.core.logging import get_logger
from esrollup.engine.coordinator import PipelineCoordinator, build_tasks
from esrollup.plugins.elasticsearch import ElasticsearchBulkSink, ScrollCursorSource, create_client, discover_indexes

logger = get_logger(__name__)

ClientFactory = Callable[..., Elasticsearch]


def _require_typed_target(client: Elasticsearch) -> None:
    """Refuse preserve_types against a cluster that rejects _type in bulk actions.

    Raises:
        ConfigurationError: If the target is 8.x or newer
    """
    version = str(client.info()["version"]["number"])
    major = int(version.split(".", 1)[0])
    if major >= 8:
        raise ConfigurationError(
            "preserve_types needs a target cluster older than 8.x",
            problems=[f"preserve_types: target cluster runs {version}, which rejects _type in bulk requests"],
        )


def run_rollup(
    settings: RollupSettings,
    *,
    renderer: ProgressRenderer | None = None,
    client_factory: ClientFactory = create_client,
) -> RollupResult:
    """Discover matching indexes and roll them up.

    Raises:
        elasticsearch.ApiError / TransportError: If index discovery fails.
            Failures while reading an individual index do not raise.
        ConfigurationError: If preserve_types is set and the target is 8.x+
    """
    in_client = client_factory(settings.input_host, request_timeout=settings.request_timeout_seconds)
    if settings.output_host == settings.input_host:
        out_client = in_client
    else:
        out_client = client_factory(settings.output_host, request_timeout=settings.request_timeout_seconds)

    try:
        if settings.preserve_types:
            _require_typed_target(out_client)
        matches = discover_indexes(in_client, settings.input_regex, settings.input_pattern, settings.output_pattern)
        tasks = build_tasks(matches)
        for task in tasks:
            logger.debug("index_task", ticket=task.ticket, source=task.source_name, dest=task.dest_name)

        sink = ElasticsearchBulkSink(
            out_client,
            bulk_actions=settings.buffer_size,
            workers=settings.bulk_workers,
            preserve_types=settings.preserve_types,
        )
        coordinator = PipelineCoordinator(
            tasks,
            ScrollCursorSource(in_client, keepalive=settings.scroll_keepalive),
            sink,
            threads=settings.threads,
            page_size=settings.buffer_size,
            renderer=renderer,
            tick_interval=settings.tick_interval_seconds,
            admission_poll_interval=settings.admission_poll_seconds,
            progress_batch=settings.progress_batch,
        )
        return coordinator.run()
    finally:
        if out_client is not in_client:
            out_client.close()
        in_client.close()
