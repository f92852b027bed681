"""Request validation package."""

from retirement_planner.validation.validator import RetirementPlanValidator

__all__ = ["RetirementPlanValidator"]
