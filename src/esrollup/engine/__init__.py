"""Rollup engine: admission, progress tracking, readers and the coordinator."""

from esrollup.engine.admission import AdmissionGate
from esrollup.engine.coordinator import PipelineCoordinator, build_tasks
from esrollup.engine.handoff import SynchronousHandoff
from esrollup.engine.ledger import ProgressLedger
from esrollup.engine.reader import IndexReader

__all__ = [
    "AdmissionGate",
    "IndexReader",
    "PipelineCoordinator",
    "ProgressLedger",
    "SynchronousHandoff",
    "build_tasks",
]
