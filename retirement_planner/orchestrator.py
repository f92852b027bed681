"""
Main Orchestrator for Retirement Planner

This module ties together all the components and defines the
end-to-end flows for a user's retirement plan:
1. Calculate (request → validate → project → save → audit)
2. View (latest stored plan)
3. Delete

DESIGN DECISION: The orchestrator enforces the boundaries:
- The projection engine only ever sees validated input
- Each user has at most one stored plan; recalculating replaces it
- Every step is audited
"""

from typing import Optional
from uuid import UUID

import structlog

from retirement_planner.audit import AuditLogger, create_correlation_id
from retirement_planner.config import get_settings
from retirement_planner.engine import ProjectionEngine, ProjectionInputError
from retirement_planner.models.plan import RetirementPlan, ValidationResult
from retirement_planner.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPlanStorage,
    InMemoryPlanStorage,
    RetirementPlanStorageInterface,
    StorageError,
)
from retirement_planner.validation import RetirementPlanValidator


logger = structlog.get_logger(__name__)


class RetirementPlanFlow:
    """
    Orchestrates the retirement plan lifecycle for one storage backend.

    Flow for a calculation:
    1. Validate → Two-stage request validation
    2. Project → Pure engine computation
    3. Save → Upsert as the user's only plan
    """

    def __init__(
        self,
        plan_storage: Optional[RetirementPlanStorageInterface] = None,
        validator: Optional[RetirementPlanValidator] = None,
        engine: Optional[ProjectionEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._plan_storage = plan_storage
        self._validator = validator or RetirementPlanValidator()
        self._engine = engine or ProjectionEngine()
        self._audit_logger = audit_logger

    async def calculate_plan(
        self,
        user_id: str,
        request: dict,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[RetirementPlan], ValidationResult, str]:
        """
        Validate a request, project it and store the result.

        Args:
            user_id: Owner of the plan
            request: Calculation request body (camelCase keys)

        Returns:
            (plan, validation_result, user_message)

        If validation fails, plan is None and user_message explains why.

        Raises:
            StorageError: If the plan could not be saved
        """
        correlation_id = correlation_id or create_correlation_id()

        if self._audit_logger:
            await self._audit_logger.log_calculation_requested(
                user_id=user_id,
                correlation_id=correlation_id,
            )

        validation = self._validator.validate(request)
        message = self._validator.get_user_friendly_summary(validation)

        if not validation.is_valid:
            if self._audit_logger:
                issues = [
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in validation.issues
                    if i.severity == "error"
                ]
                stage = "schema" if not validation.schema_valid else "semantic"
                await self._audit_logger.log_validation_failed(
                    user_id=user_id,
                    request_id=validation.request_id,
                    stage=stage,
                    issues=issues,
                    correlation_id=correlation_id,
                )
            return None, validation, message

        try:
            result = self._engine.compute(validation.projection_input)
        except ProjectionInputError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="projection_input",
                    error_message=str(e),
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            raise

        plan = RetirementPlan(
            user_id=user_id,
            inputs=validation.projection_input,
            result=result,
        )

        if self._audit_logger:
            await self._audit_logger.log_plan_calculated(
                plan_id=plan.id,
                user_id=user_id,
                funding_gap=str(result.funding_gap),
                additional_monthly_savings=str(result.additional_monthly_savings_required),
                correlation_id=correlation_id,
            )

        if self._plan_storage is not None:
            try:
                plan, replaced = await self._plan_storage.upsert_plan(plan)
            except StorageError as e:
                if self._audit_logger:
                    await self._audit_logger.log_storage_error(
                        operation="upsert_plan",
                        error_message=str(e),
                        user_id=user_id,
                        correlation_id=correlation_id,
                    )
                raise

            if self._audit_logger:
                await self._audit_logger.log_plan_saved(
                    plan_id=plan.id,
                    user_id=user_id,
                    replaced=replaced,
                    correlation_id=correlation_id,
                )

        return plan, validation, message

    async def get_plan(self, user_id: str) -> Optional[RetirementPlan]:
        """The user's stored plan, or None if there is none (or no storage)."""
        if self._plan_storage is None:
            return None
        return await self._plan_storage.get_plan(user_id)

    async def delete_plan(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete the user's plan.

        Returns:
            True if a plan was deleted, False if there was none
        """
        correlation_id = correlation_id or create_correlation_id()

        if self._plan_storage is None:
            return False

        try:
            plan_id = await self._plan_storage.delete_plan(user_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="delete_plan",
                    error_message=str(e),
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            if plan_id is None:
                await self._audit_logger.log_plan_not_found(
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            else:
                await self._audit_logger.log_plan_deleted(
                    plan_id=plan_id,
                    user_id=user_id,
                    correlation_id=correlation_id,
                )

        return plan_id is not None


def create_app_components(
    use_storage: bool = True,
) -> tuple[RetirementPlanFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize the configured storage backend.
                    Set to False for a flow that computes without saving.

    Returns:
        (retirement_plan_flow, sheets_client)

    Google Sheets is used when storage_backend is "google_sheets" and
    its settings load; otherwise plans are kept in memory.
    """
    sheets_client = None
    plan_storage = None
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        plan_storage = InMemoryPlanStorage()

        if get_settings().app.storage_backend == "google_sheets":
            try:
                sheets_client = GoogleSheetsClient()
                plan_storage = GoogleSheetsPlanStorage(sheets_client)
                audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
            except Exception as e:
                # Storage not configured - continue in memory
                logger.warning("google_sheets_unavailable", error=str(e))
                sheets_client = None
                plan_storage = InMemoryPlanStorage()

    flow = RetirementPlanFlow(
        plan_storage=plan_storage,
        audit_logger=audit_logger,
    )

    return flow, sheets_client
