"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Plan storage keeps exactly ONE plan per user. Saving a plan for a user
who already has one updates that record in place - there is no history.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from retirement_planner.models.audit import AuditEvent
from retirement_planner.models.plan import RetirementPlan


class RetirementPlanStorageInterface(ABC):
    """
    Abstract interface for retirement plan storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def upsert_plan(self, plan: RetirementPlan) -> tuple[RetirementPlan, bool]:
        """
        Store the plan as the user's only plan.

        Creates the record if the user has none, otherwise replaces the
        existing record's inputs and result while keeping its id and
        creation time.

        Args:
            plan: Freshly calculated plan

        Returns:
            (stored_plan, replaced) - replaced is True if an existing
            plan was overwritten

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_plan(self, user_id: str) -> Optional[RetirementPlan]:
        """
        Retrieve the user's plan.

        Returns:
            The plan if one exists, None otherwise
        """
        pass

    @abstractmethod
    async def delete_plan(self, user_id: str) -> Optional[UUID]:
        """
        Delete the user's plan.

        Returns:
            ID of the deleted plan, or None if the user had no plan
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one calculation request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_user(
        self,
        user_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events concerning a user.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
