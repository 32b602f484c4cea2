"""Severity of consistency findings."""

from enum import StrEnum


class ValidationSeverity(StrEnum):
    """Severity levels for matrix validation errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
