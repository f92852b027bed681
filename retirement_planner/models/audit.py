"""
Audit Models for Retirement Planner

Every significant action in the system is logged for audit purposes.
Plans themselves are overwritten on every calculation, so the audit
trail is the only record of what was calculated for whom and when.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Calculation
    CALCULATION_REQUESTED = "calculation_requested"
    SCHEMA_VALIDATION_FAILED = "schema_validation_failed"
    SEMANTIC_VALIDATION_FAILED = "semantic_validation_failed"
    PLAN_CALCULATED = "plan_calculated"

    # Persistence
    PLAN_SAVED = "plan_saved"
    PLAN_REPLACED = "plan_replaced"
    PLAN_DELETED = "plan_deleted"
    PLAN_NOT_FOUND = "plan_not_found"

    # System events
    SYSTEM_ERROR = "system_error"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Who and what
    user_id: Optional[str] = Field(
        default=None,
        description="User the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'plan', 'request')"
    )
    entity_id: Optional[UUID] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one calculation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Columns follow AUDIT_COLUMNS.
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.calculation_requested(user_id, correlation_id)
        event = AuditEventBuilder.plan_saved(plan_id, user_id, False, correlation_id)
    """

    @staticmethod
    def calculation_requested(
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALCULATION_REQUESTED,
            user_id=user_id,
            entity_type="request",
            correlation_id=correlation_id,
            description="Retirement plan calculation requested",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        user_id: str,
        request_id: UUID,
        stage: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        event_type = (
            AuditEventType.SCHEMA_VALIDATION_FAILED
            if stage == "schema"
            else AuditEventType.SEMANTIC_VALIDATION_FAILED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="request",
            entity_id=request_id,
            correlation_id=correlation_id,
            description=f"{stage.capitalize()} validation failed with {len(issues)} issues",
            details={
                "stage": stage,
                "issues": issues,
            },
        )

    @staticmethod
    def plan_calculated(
        plan_id: UUID,
        user_id: str,
        funding_gap: str,
        additional_monthly_savings: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_CALCULATED,
            user_id=user_id,
            entity_type="plan",
            entity_id=plan_id,
            correlation_id=correlation_id,
            description=f"Plan calculated: funding gap {funding_gap}",
            details={
                "funding_gap": funding_gap,
                "additional_monthly_savings_required": additional_monthly_savings,
            },
        )

    @staticmethod
    def plan_saved(
        plan_id: UUID,
        user_id: str,
        replaced: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        if replaced:
            event_type = AuditEventType.PLAN_REPLACED
            description = "Existing retirement plan replaced"
        else:
            event_type = AuditEventType.PLAN_SAVED
            description = "Retirement plan saved"
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="plan",
            entity_id=plan_id,
            correlation_id=correlation_id,
            description=description,
        )

    @staticmethod
    def plan_deleted(
        plan_id: UUID,
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_DELETED,
            user_id=user_id,
            entity_type="plan",
            entity_id=plan_id,
            correlation_id=correlation_id,
            description="Retirement plan deleted",
            is_user_action=True,
        )

    @staticmethod
    def plan_not_found(
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="plan",
            correlation_id=correlation_id,
            description="No retirement plan found to delete",
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        user_id: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
