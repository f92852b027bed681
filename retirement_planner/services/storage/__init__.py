"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the persistent backend; in-memory storage backs tests
and unconfigured deployments.
"""

from retirement_planner.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    RetirementPlanStorageInterface,
    StorageError,
)
from retirement_planner.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryPlanStorage,
)
from retirement_planner.services.storage.google_sheets import (
    PLAN_COLUMNS,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPlanStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RetirementPlanStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryPlanStorage",
    # Google Sheets implementation
    "PLAN_COLUMNS",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsPlanStorage",
]
