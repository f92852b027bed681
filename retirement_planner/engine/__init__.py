"""Retirement funding projection engine."""

from retirement_planner.engine.projection import (
    EPF_DIVIDEND_RATE,
    INCOME_REPLACEMENT_RATIO,
    ProjectionEngine,
    ProjectionInputError,
    project_retirement,
    to_money,
)

__all__ = [
    "EPF_DIVIDEND_RATE",
    "INCOME_REPLACEMENT_RATIO",
    "ProjectionEngine",
    "ProjectionInputError",
    "project_retirement",
    "to_money",
]
