"""Application layer: orchestration, selection and wiring."""

from datafetch.application.orchestrator import FetchOrchestrator
from datafetch.application.selection import Selection, select_jobs
from datafetch.application.factories import (
    TransportFactory,
    create_orchestrator,
    find_missing_prerequisites,
    validate_transport_map,
)

__all__ = [
    "FetchOrchestrator",
    "Selection",
    "select_jobs",
    "TransportFactory",
    "create_orchestrator",
    "find_missing_prerequisites",
    "validate_transport_map",
]
