"""
Core Data Models for Retirement Planner

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce the projection engine's preconditions at construction time
2. Accept the planner's camelCase JSON bodies directly
3. Be serializable for storage and logging

DESIGN DECISION: Inputs are floats because they feed compounding formulas.
Outputs are Decimals with exactly two places because they are money
shown to the user and persisted - rounding happens once, at the end.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


Money = Annotated[Decimal, Field(decimal_places=2)]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PROJECTION INPUT
# =============================================================================

class ProjectionInput(BaseModel):
    """
    Everything the projection engine needs for one calculation.

    Field bounds mirror the planner form. Defaults apply only when a
    field is absent: an explicit 0 stays 0.

    Construction raises pydantic.ValidationError (a ValueError) when
    the age ordering or any bound is violated, so an engine call never
    sees malformed input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        allow_inf_nan=False,
    )

    # Horizon
    current_age: int = Field(..., ge=0, description="Age today, in years")
    retirement_age: int = Field(..., ge=1, description="Planned retirement age")
    life_expectancy: int = Field(..., ge=1, description="Expected age at death")

    # Income
    current_salary: float = Field(
        ...,
        gt=0,
        description="Monthly gross salary"
    )

    # Existing balances
    epf_balance: float = Field(default=0.0, ge=0, description="Current EPF balance")
    prs_balance: float = Field(default=0.0, ge=0, description="Current PRS balance")

    # PRS contribution - percentage wins over the fixed amount when positive
    monthly_contribution_prs: float = Field(
        default=0.0,
        ge=0,
        description="Fixed monthly PRS contribution"
    )
    monthly_contribution_prs_percentage: float = Field(
        default=0.0,
        ge=0,
        le=20,
        description="Monthly PRS contribution as % of salary"
    )

    # EPF rates: total drives the projection, employee-only drives take-home pay
    monthly_epf_contribution_rate: float = Field(
        default=23.0,
        ge=0,
        le=30,
        description="Total (employer + employee) EPF rate, % of salary"
    )
    employee_epf_contribution_rate: float = Field(
        default=11.0,
        ge=0,
        le=11,
        description="Employee-only EPF rate, % of salary"
    )

    target_monthly_income_input: Optional[float] = Field(
        default=None,
        ge=0,
        description="Desired monthly retirement income; 2/3 of final salary if absent"
    )

    # Market assumptions (annual %)
    pre_retirement_return: float = Field(default=4.0, ge=0, le=100)
    post_retirement_return: float = Field(default=4.0, ge=0, le=100)
    inflation_rate: float = Field(default=3.0, ge=0, le=100)

    # Salary growth; the rate is ignored when increments are disabled
    enable_salary_increments: bool = True
    salary_increment_rate: float = Field(default=3.0, ge=0, le=100)

    @model_validator(mode='after')
    def validate_age_order(self) -> 'ProjectionInput':
        """Ages must run current < retirement < life expectancy."""
        if self.current_age >= self.retirement_age:
            raise ValueError("Current age must be less than retirement age")
        if self.retirement_age >= self.life_expectancy:
            raise ValueError("Retirement age must be less than life expectancy")
        return self

    @property
    def effective_monthly_contribution_prs(self) -> float:
        """PRS contribution actually paid each month."""
        if self.monthly_contribution_prs_percentage > 0:
            return self.current_salary * self.monthly_contribution_prs_percentage / 100
        return self.monthly_contribution_prs

    @property
    def prs_is_percentage_based(self) -> bool:
        return self.monthly_contribution_prs_percentage > 0

    @property
    def salary_growth_rate(self) -> float:
        """Annual salary growth in %, zero when increments are disabled."""
        if self.enable_salary_increments:
            return self.salary_increment_rate
        return 0.0


# =============================================================================
# PROJECTION RESULT
# =============================================================================

class ProjectionResult(BaseModel):
    """
    Output of one projection.

    All monetary fields carry exactly two decimal places.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    years_to_retirement: int = Field(..., ge=0)
    years_in_retirement: int = Field(..., ge=0)

    last_drawn_salary: Money
    target_monthly_income: Money

    monthly_epf_contribution: Money
    monthly_employee_epf_contribution: Money
    disposable_monthly_salary: Money

    total_funds_needed: Money = Field(
        ...,
        description="Value at retirement of all target-income payments"
    )
    projected_epf_balance: Money
    projected_prs_balance: Money
    total_projected_savings: Money

    funding_gap: Money = Field(..., ge=0)
    additional_monthly_savings_required: Money = Field(..., ge=0)

    @property
    def has_shortfall(self) -> bool:
        return self.funding_gap > 0

    @property
    def surplus(self) -> Decimal:
        """Projected savings in excess of what is needed (0 if short)."""
        return max(Decimal("0.00"), self.total_projected_savings - self.total_funds_needed)


# =============================================================================
# PERSISTED PLAN
# =============================================================================

class RetirementPlan(BaseModel):
    """
    The stored plan for one user.

    CRITICAL: There is exactly one plan per user. A new calculation
    replaces the inputs and result of the existing record; it never
    creates a second one.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique plan ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Owner of the plan"
    )

    inputs: ProjectionInput
    result: ProjectionResult

    calculated_at: datetime = Field(default_factory=_utcnow)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def replaced_by(self, newer: 'RetirementPlan') -> 'RetirementPlan':
        """
        Apply a newer calculation to this stored plan.

        Identity and creation time are kept; everything else comes from `newer`.
        """
        return self.model_copy(update={
            "inputs": newer.inputs,
            "result": newer.result,
            "calculated_at": newer.calculated_at,
            "updated_at": _utcnow(),
        })


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Request field with the issue (camelCase, as submitted)"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_a_number', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage request validation.

    Stage 1: Schema validation (presence, types, finiteness)
    Stage 2: Semantic validation (age ordering, rate bounds)
    """

    request_id: UUID = Field(default_factory=uuid4)
    validated_at: datetime = Field(default_factory=_utcnow)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    # Only set when the request passed both stages
    projection_input: Optional[ProjectionInput] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
