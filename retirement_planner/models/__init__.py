"""
Data Models Package

This package contains all Pydantic models used in the Retirement Planner.
All data flowing through the system must conform to these schemas.
"""

from retirement_planner.models.plan import (
    Money,
    ProjectionInput,
    ProjectionResult,
    RetirementPlan,
    ValidationIssue,
    ValidationResult,
)
from retirement_planner.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Plan models
    "Money",
    "ProjectionInput",
    "ProjectionResult",
    "RetirementPlan",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AUDIT_COLUMNS",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
