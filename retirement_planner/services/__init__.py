"""Services package."""

from retirement_planner.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPlanStorage,
    InMemoryAuditStorage,
    InMemoryPlanStorage,
    RetirementPlanStorageInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsPlanStorage",
    "InMemoryAuditStorage",
    "InMemoryPlanStorage",
    "RetirementPlanStorageInterface",
    "StorageError",
]
