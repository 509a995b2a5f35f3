"""Orchestration layer - report generation jobs."""

from src.orchestration.report_orchestrator import (
    REFERENCES_SECTION,
    ReportOrchestrator,
    create_orchestrator,
)

__all__ = [
    "REFERENCES_SECTION",
    "ReportOrchestrator",
    "create_orchestrator",
]
