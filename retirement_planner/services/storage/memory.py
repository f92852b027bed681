"""
In-Memory Storage Implementation

Used for tests and when no persistent backend is configured.
Data lives only as long as the process.
"""

from typing import Optional
from uuid import UUID

from retirement_planner.models.audit import AuditEvent
from retirement_planner.models.plan import RetirementPlan
from retirement_planner.services.storage.interface import (
    AuditStorageInterface,
    RetirementPlanStorageInterface,
)


class InMemoryPlanStorage(RetirementPlanStorageInterface):
    """Plans keyed by user ID."""

    def __init__(self):
        self._plans: dict[str, RetirementPlan] = {}

    async def upsert_plan(self, plan: RetirementPlan) -> tuple[RetirementPlan, bool]:
        existing = self._plans.get(plan.user_id)
        if existing is None:
            self._plans[plan.user_id] = plan
            return plan, False

        stored = existing.replaced_by(plan)
        self._plans[plan.user_id] = stored
        return stored, True

    async def get_plan(self, user_id: str) -> Optional[RetirementPlan]:
        return self._plans.get(user_id)

    async def delete_plan(self, user_id: str) -> Optional[UUID]:
        plan = self._plans.pop(user_id, None)
        return plan.id if plan else None

    def __len__(self) -> int:
        return len(self._plans)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_user(self, user_id: str) -> list[AuditEvent]:
        events = [e for e in self._events if e.user_id == user_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        # Insertion order breaks timestamp ties
        return list(reversed(self._events))[:limit]
