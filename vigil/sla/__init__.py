"""SLA validation with rolling samples and debounced violations."""

from vigil.sla.types import (
    PerformanceValidation,
    PerformanceValidationResult,
    PerformanceViolation,
    ValidationStatus,
    ViolationSeverity,
)
from vigil.sla.validator import SlaMetric, SlaValidator, build_metrics, overall_status

__all__ = [
    "PerformanceValidation",
    "PerformanceValidationResult",
    "PerformanceViolation",
    "SlaMetric",
    "SlaValidator",
    "ValidationStatus",
    "ViolationSeverity",
    "build_metrics",
    "overall_status",
]
