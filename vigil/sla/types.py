"""Domain types for SLA validation."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ValidationStatus(StrEnum):
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


class ViolationSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PerformanceValidation(BaseModel):
    """One metric compared against its SLA threshold."""

    metric: str
    current_value: float
    threshold: float
    status: ValidationStatus
    message: str


class PerformanceViolation(BaseModel):
    """A failed validation, classified by metric-specific severity."""

    metric: str
    current_value: float
    threshold: float
    severity: ViolationSeverity
    message: str


class PerformanceValidationResult(BaseModel):
    """All metric validations from one SLA tick."""

    timestamp: datetime
    validations: dict[str, PerformanceValidation] = Field(default_factory=dict)
    overall_status: ValidationStatus = ValidationStatus.PASSED
    violations: list[PerformanceViolation] = Field(default_factory=list)

    def to_map(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_map(cls, data: dict[str, Any]) -> PerformanceValidationResult:
        return cls.model_validate(data)
