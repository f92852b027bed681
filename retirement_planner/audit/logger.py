"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
Plans are overwritten on recalculation, so this log is the only history
of what was calculated, saved and deleted.

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from retirement_planner.config import get_settings
from retirement_planner.models.audit import AuditEvent, AuditEventBuilder
from retirement_planner.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_calculation_requested(
        self,
        user_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log the start of a calculation request."""
        await self.log(AuditEventBuilder.calculation_requested(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        user_id: str,
        request_id: UUID,
        stage: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(
            user_id=user_id,
            request_id=request_id,
            stage=stage,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_plan_calculated(
        self,
        plan_id: UUID,
        user_id: str,
        funding_gap: str,
        additional_monthly_savings: str,
        correlation_id: UUID,
    ) -> None:
        """Log a completed projection."""
        await self.log(AuditEventBuilder.plan_calculated(
            plan_id=plan_id,
            user_id=user_id,
            funding_gap=funding_gap,
            additional_monthly_savings=additional_monthly_savings,
            correlation_id=correlation_id,
        ))

    async def log_plan_saved(
        self,
        plan_id: UUID,
        user_id: str,
        replaced: bool,
        correlation_id: UUID,
    ) -> None:
        """Log plan save (new or replacing the previous one)."""
        await self.log(AuditEventBuilder.plan_saved(
            plan_id=plan_id,
            user_id=user_id,
            replaced=replaced,
            correlation_id=correlation_id,
        ))

    async def log_plan_deleted(
        self,
        plan_id: UUID,
        user_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.plan_deleted(
            plan_id=plan_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_plan_not_found(
        self,
        user_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.plan_not_found(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log a storage backend failure."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            user_id=user_id,
            correlation_id=correlation_id,
        ))


def configure_logging() -> None:
    """
    Route structlog output through stdlib logging at the configured level.

    Call once at application startup.
    """
    logging.basicConfig(format="%(message)s")
    logging.getLogger().setLevel(get_settings().app.log_level)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a calculation).
    Pass it through all subsequent operations.
    """
    return uuid4()
