"""
Integration tests for the retirement plan flow.

Uses in-memory storage for plans and audit events.
"""

import asyncio
import logging
from decimal import Decimal

import pytest

from retirement_planner.audit import (
    AuditLogger,
    configure_logging,
    create_correlation_id,
)
from retirement_planner.models.audit import AuditEventBuilder, AuditEventType
from retirement_planner.orchestrator import RetirementPlanFlow, create_app_components
from retirement_planner.services.storage import (
    InMemoryAuditStorage,
    InMemoryPlanStorage,
    StorageError,
)


VALID_REQUEST = {
    "currentAge": 30,
    "retirementAge": 60,
    "lifeExpectancy": 80,
    "currentSalary": 5000,
    "enableSalaryIncrements": False,
}


class FailingPlanStorage(InMemoryPlanStorage):
    async def upsert_plan(self, plan):
        raise StorageError("sheet unavailable")


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("sheet unavailable")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def plan_storage():
    return InMemoryPlanStorage()


@pytest.fixture
def flow(plan_storage, audit_storage):
    return RetirementPlanFlow(
        plan_storage=plan_storage,
        audit_logger=AuditLogger(audit_storage),
    )


def event_types(audit_storage, correlation_id) -> list[AuditEventType]:
    events = asyncio.run(audit_storage.get_events_by_correlation_id(correlation_id))
    return [e.event_type for e in events]


class TestCalculatePlan:
    """Tests for the calculate flow."""

    def test_valid_request_is_saved(self, flow, plan_storage, audit_storage):
        correlation_id = create_correlation_id()

        plan, validation, message = asyncio.run(
            flow.calculate_plan("user-1", VALID_REQUEST, correlation_id)
        )

        assert plan is not None
        assert validation.is_valid
        assert message == "✅ All inputs look good."
        assert plan.result.target_monthly_income == Decimal("3333.33")
        assert asyncio.run(plan_storage.get_plan("user-1")) == plan
        assert event_types(audit_storage, correlation_id) == [
            AuditEventType.CALCULATION_REQUESTED,
            AuditEventType.PLAN_CALCULATED,
            AuditEventType.PLAN_SAVED,
        ]

    def test_recalculation_replaces_plan(self, flow, plan_storage, audit_storage):
        first, _, _ = asyncio.run(flow.calculate_plan("user-1", VALID_REQUEST))

        correlation_id = create_correlation_id()
        second, _, _ = asyncio.run(flow.calculate_plan(
            "user-1",
            {**VALID_REQUEST, "currentSalary": 9000},
            correlation_id,
        ))

        assert len(plan_storage) == 1
        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.result.last_drawn_salary == Decimal("9000.00")
        assert AuditEventType.PLAN_REPLACED in event_types(audit_storage, correlation_id)

    def test_invalid_request_is_not_saved(self, flow, plan_storage, audit_storage):
        correlation_id = create_correlation_id()

        plan, validation, message = asyncio.run(flow.calculate_plan(
            "user-1",
            {**VALID_REQUEST, "currentAge": 65},
            correlation_id,
        ))

        assert plan is None
        assert not validation.is_valid
        assert "Current age must be less than retirement age" in message
        assert len(plan_storage) == 0
        assert event_types(audit_storage, correlation_id) == [
            AuditEventType.CALCULATION_REQUESTED,
            AuditEventType.SEMANTIC_VALIDATION_FAILED,
        ]

    def test_missing_fields_fail_schema_stage(self, flow, audit_storage):
        correlation_id = create_correlation_id()

        plan, _, _ = asyncio.run(flow.calculate_plan("user-1", {}, correlation_id))

        assert plan is None
        assert AuditEventType.SCHEMA_VALIDATION_FAILED in event_types(
            audit_storage, correlation_id
        )

    def test_storage_failure_is_raised_and_audited(self, audit_storage):
        flow = RetirementPlanFlow(
            plan_storage=FailingPlanStorage(),
            audit_logger=AuditLogger(audit_storage),
        )
        correlation_id = create_correlation_id()

        with pytest.raises(StorageError):
            asyncio.run(flow.calculate_plan("user-1", VALID_REQUEST, correlation_id))

        assert event_types(audit_storage, correlation_id)[-1] == AuditEventType.STORAGE_ERROR

    def test_without_storage_still_computes(self):
        flow = RetirementPlanFlow()

        plan, _, _ = asyncio.run(flow.calculate_plan("user-1", VALID_REQUEST))

        assert plan is not None
        assert asyncio.run(flow.get_plan("user-1")) is None


    def test_empty_store_receives_first_plan(self, flow, plan_storage):
        """An empty store is still a configured store."""
        assert len(plan_storage) == 0

        plan, _, _ = asyncio.run(flow.calculate_plan("user-1", VALID_REQUEST))

        assert len(plan_storage) == 1
        assert asyncio.run(plan_storage.get_plan("user-1")) == plan


class TestViewAndDelete:
    """Tests for reading and deleting the stored plan."""

    def test_get_plan(self, flow):
        plan, _, _ = asyncio.run(flow.calculate_plan("user-1", VALID_REQUEST))

        assert asyncio.run(flow.get_plan("user-1")) == plan
        assert asyncio.run(flow.get_plan("user-2")) is None

    def test_delete_plan(self, flow, audit_storage):
        asyncio.run(flow.calculate_plan("user-1", VALID_REQUEST))
        correlation_id = create_correlation_id()

        assert asyncio.run(flow.delete_plan("user-1", correlation_id))
        assert asyncio.run(flow.get_plan("user-1")) is None
        assert event_types(audit_storage, correlation_id) == [AuditEventType.PLAN_DELETED]

    def test_delete_missing_plan(self, flow, audit_storage):
        correlation_id = create_correlation_id()

        assert not asyncio.run(flow.delete_plan("user-1", correlation_id))
        assert event_types(audit_storage, correlation_id) == [AuditEventType.PLAN_NOT_FOUND]


class TestAuditLogger:
    """Audit logging never breaks the main flow."""

    def test_storage_failure_returns_false(self):
        logger = AuditLogger(FailingAuditStorage())
        correlation_id = create_correlation_id()

        event = AuditEventBuilder.calculation_requested("user-1", correlation_id)

        assert asyncio.run(logger.log(event)) is False

    def test_no_storage_returns_true(self):
        event = AuditEventBuilder.calculation_requested("user-1", create_correlation_id())

        assert asyncio.run(AuditLogger().log(event)) is True

    def test_flow_survives_audit_storage_failure(self, plan_storage):
        flow = RetirementPlanFlow(
            plan_storage=plan_storage,
            audit_logger=AuditLogger(FailingAuditStorage()),
        )

        plan, _, _ = asyncio.run(flow.calculate_plan("user-1", VALID_REQUEST))

        assert plan is not None
        assert len(plan_storage) == 1

    def test_configure_logging_uses_settings_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        root = logging.getLogger()
        previous = root.level

        try:
            configure_logging()
            assert root.level == logging.WARNING
        finally:
            root.setLevel(previous)

    def test_log_error(self, audit_storage):
        logger = AuditLogger(audit_storage)
        correlation_id = create_correlation_id()

        asyncio.run(logger.log_error(
            error_type="projection_input",
            error_message="bad ages",
            user_id="user-1",
            correlation_id=correlation_id,
        ))

        events = asyncio.run(audit_storage.get_events_by_user("user-1"))
        assert events[0].event_type == AuditEventType.SYSTEM_ERROR
        assert events[0].error_message == "bad ages"


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_defaults_to_memory(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        flow, sheets_client = create_app_components()

        assert isinstance(flow, RetirementPlanFlow)
        assert sheets_client is None
        assert isinstance(flow._plan_storage, InMemoryPlanStorage)

    def test_without_storage(self):
        flow, sheets_client = create_app_components(use_storage=False)

        assert sheets_client is None
        assert flow._plan_storage is None

    def test_default_flow_keeps_plans(self, monkeypatch):
        """The in-memory backend saves, returns and deletes the user's plan."""
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        flow, _ = create_app_components()

        plan, _, _ = asyncio.run(flow.calculate_plan("user-1", VALID_REQUEST))

        assert asyncio.run(flow.get_plan("user-1")) == plan
        assert asyncio.run(flow.delete_plan("user-1"))
        assert asyncio.run(flow.get_plan("user-1")) is None
