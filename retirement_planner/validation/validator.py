"""
Two-Stage Request Validation

DESIGN DECISION: A calculation request is validated in two distinct
stages before the projection engine ever sees it:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Numbers are numbers, and finite
- Ages are whole numbers
- The salary-increment flag is a boolean

STAGE 2 - SEMANTIC VALIDATION:
- Age ordering (current < retirement < life expectancy)
- Positive salary
- Every rate within its bounds
- Non-negative balances and contributions

The engine assumes all of this holds. Anything that slips through is
rejected again when the ProjectionInput is built.

IMPORTANT: Validation NEVER silently fixes issues. Absent optional
fields take their documented defaults; present fields are used as given.
"""

import math
from typing import Any, Optional

from pydantic import ValidationError

from retirement_planner.config import get_settings
from retirement_planner.models.plan import (
    ProjectionInput,
    ValidationIssue,
    ValidationResult,
)


REQUIRED_FIELDS = {
    "currentAge": "Current age",
    "retirementAge": "Retirement age",
    "lifeExpectancy": "Life expectancy",
    "currentSalary": "Current salary",
}

AGE_FIELDS = ("currentAge", "retirementAge", "lifeExpectancy")

NUMERIC_FIELDS = (
    "currentAge",
    "retirementAge",
    "lifeExpectancy",
    "currentSalary",
    "epfBalance",
    "prsBalance",
    "monthlyContributionPrs",
    "monthlyContributionPrsPercentage",
    "monthlyEpfContributionRate",
    "employeeEpfContributionRate",
    "targetMonthlyIncomeInput",
    "preRetirementReturn",
    "postRetirementReturn",
    "inflationRate",
    "salaryIncrementRate",
)

NON_NEGATIVE_FIELDS = {
    "epfBalance": "EPF balance",
    "prsBalance": "PRS balance",
    "monthlyContributionPrs": "Monthly PRS contribution",
    "targetMonthlyIncomeInput": "Target monthly income",
}

AMOUNT_FIELDS = {
    "currentSalary": "Current salary",
    **NON_NEGATIVE_FIELDS,
}

# field -> (label, max %); minimum is always 0
CONTRIBUTION_RATE_BOUNDS = {
    "monthlyEpfContributionRate": ("EPF contribution rate", 30),
    "employeeEpfContributionRate": ("Employee EPF contribution rate", 11),
    "monthlyContributionPrsPercentage": ("PRS contribution percentage", 20),
}

MARKET_RATE_FIELDS = {
    "preRetirementReturn": "Pre-retirement return",
    "postRetirementReturn": "Post-retirement return",
    "inflationRate": "Inflation rate",
}


def _as_number(value: Any) -> Optional[float]:
    """Read a JSON/form value as a float, or None if it isn't numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _increments_enabled(request: dict) -> bool:
    flag = request.get("enableSalaryIncrements")
    return True if flag is None else flag


def _format_percent(value: float) -> str:
    return f"{value:g}%"


class RetirementPlanValidator:
    """
    Validates a retirement plan request through a two-stage pipeline.

    The request is the planner's JSON body: a dict keyed by camelCase
    field names.
    """

    def __init__(self):
        self._settings = get_settings().app

    def _validate_schema(
        self,
        request: dict,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        for field, label in REQUIRED_FIELDS.items():
            if request.get(field) is None or request.get(field) == "":
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{label} is required",
                    severity="error",
                    suggested_fix=(
                        "Current age, retirement age, life expectancy, "
                        "and current salary are required"
                    ),
                ))

        for field in NUMERIC_FIELDS:
            value = request.get(field)
            if value is None or value == "":
                continue

            number = _as_number(value)
            if number is None:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="not_a_number",
                    message=f"{field} must be a number (got {value!r})",
                    severity="error",
                ))
            elif not math.isfinite(number):
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="not_finite",
                    message=f"{field} must be a finite number",
                    severity="error",
                ))
            elif field in AGE_FIELDS and not number.is_integer():
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="not_whole_years",
                    message=f"{REQUIRED_FIELDS[field]} must be a whole number of years",
                    severity="error",
                    suggested_fix=f"Use {math.floor(number)} instead",
                ))

        flag = request.get("enableSalaryIncrements")
        if flag is not None and not isinstance(flag, bool):
            issues.append(ValidationIssue(
                field="enableSalaryIncrements",
                issue_type="not_a_boolean",
                message="enableSalaryIncrements must be true or false",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _numbers(self, request: dict) -> dict[str, float]:
        """Numeric fields present in a schema-valid request."""
        numbers = {}
        for field in NUMERIC_FIELDS:
            value = request.get(field)
            if value is None or value == "":
                continue
            numbers[field] = _as_number(value)
        return numbers

    def _check_range(
        self,
        issues: list[ValidationIssue],
        field: str,
        value: float,
        low: float,
        high: float,
        message: str,
    ) -> None:
        if not low <= value <= high:
            issues.append(ValidationIssue(
                field=field,
                issue_type="out_of_range",
                message=message,
                severity="error",
                suggested_fix=f"Enter a value between {low:g} and {high:g}",
            ))

    def _validate_semantic(
        self,
        request: dict,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        s = self._settings
        n = self._numbers(request)

        current_age = n["currentAge"]
        retirement_age = n["retirementAge"]
        life_expectancy = n["lifeExpectancy"]
        salary = n["currentSalary"]

        # Age ordering
        if current_age >= retirement_age:
            issues.append(ValidationIssue(
                field="retirementAge",
                issue_type="inconsistent",
                message="Current age must be less than retirement age",
                severity="error",
            ))
        if retirement_age >= life_expectancy:
            issues.append(ValidationIssue(
                field="lifeExpectancy",
                issue_type="inconsistent",
                message="Retirement age must be less than life expectancy",
                severity="error",
            ))

        # Age bounds
        self._check_range(
            issues, "currentAge", current_age,
            s.min_current_age, s.max_current_age,
            f"Current age must be between {s.min_current_age} and {s.max_current_age}",
        )
        self._check_range(
            issues, "retirementAge", retirement_age,
            s.min_retirement_age, s.max_retirement_age,
            f"Retirement age must be between {s.min_retirement_age} and {s.max_retirement_age}",
        )
        self._check_range(
            issues, "lifeExpectancy", life_expectancy,
            s.min_life_expectancy, s.max_life_expectancy,
            f"Life expectancy must be between {s.min_life_expectancy} and {s.max_life_expectancy}",
        )

        if salary <= 0:
            issues.append(ValidationIssue(
                field="currentSalary",
                issue_type="invalid_value",
                message="Current salary must be greater than 0",
                severity="error",
            ))

        for field, label in NON_NEGATIVE_FIELDS.items():
            if field in n and n[field] < 0:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="out_of_range",
                    message=f"{label} cannot be negative",
                    severity="error",
                ))

        for field, label in AMOUNT_FIELDS.items():
            if field in n and n[field] > s.max_amount:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="out_of_range",
                    message=f"{label} must not exceed {s.max_amount:,.0f}",
                    severity="error",
                ))

        for field, (label, high) in CONTRIBUTION_RATE_BOUNDS.items():
            if field in n:
                self._check_range(
                    issues, field, n[field], 0, high,
                    f"{label} must be between 0% and {_format_percent(high)}",
                )

        # Only checked when increments apply
        if _increments_enabled(request) and "salaryIncrementRate" in n:
            self._check_range(
                issues, "salaryIncrementRate", n["salaryIncrementRate"], 0, 20,
                "Salary increment rate must be between 0% and 20%",
            )

        for field, label in MARKET_RATE_FIELDS.items():
            if field in n:
                self._check_range(
                    issues, field, n[field], 0, s.max_rate_percent,
                    f"{label} must be between 0% and {_format_percent(s.max_rate_percent)}",
                )

        issues.extend(self._warnings(request, n))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _warnings(
        self,
        request: dict,
        n: dict[str, float],
    ) -> list[ValidationIssue]:
        """Non-blocking observations about a plausible request."""
        issues = []

        if n.get("monthlyContributionPrsPercentage", 0) > 0 and n.get("monthlyContributionPrs", 0) > 0:
            issues.append(ValidationIssue(
                field="monthlyContributionPrs",
                issue_type="ignored_value",
                message=(
                    "Fixed PRS contribution is ignored because a PRS "
                    "contribution percentage was given"
                ),
                severity="warning",
            ))

        pre_return = n.get("preRetirementReturn", 4.0)
        inflation = n.get("inflationRate", 3.0)
        if pre_return < inflation:
            issues.append(ValidationIssue(
                field="preRetirementReturn",
                issue_type="suspicious_value",
                message=(
                    f"Pre-retirement return ({_format_percent(pre_return)}) is below "
                    f"inflation ({_format_percent(inflation)}); savings lose purchasing power"
                ),
                severity="warning",
            ))

        target = n.get("targetMonthlyIncomeInput")
        if target and target > 0:
            growth = 0.0
            if _increments_enabled(request):
                growth = n.get("salaryIncrementRate", 3.0) / 100
            years = n["retirementAge"] - n["currentAge"]
            last_drawn = n["currentSalary"] * (1 + growth) ** max(years, 0)
            if target > last_drawn:
                issues.append(ValidationIssue(
                    field="targetMonthlyIncomeInput",
                    issue_type="suspicious_value",
                    message=(
                        f"Target monthly income ({target:,.2f}) is higher than "
                        f"your projected final salary ({last_drawn:,.2f})"
                    ),
                    severity="warning",
                    suggested_fix="Please verify the target income",
                ))

        return issues

    def _build_input(
        self,
        request: dict,
    ) -> tuple[Optional[ProjectionInput], list[ValidationIssue]]:
        """Construct the engine input; absent fields take model defaults."""
        data = {
            field: value
            for field, value in request.items()
            if value is not None and value != ""
        }
        data.update(self._numbers(request))
        for field in AGE_FIELDS:
            data[field] = int(data[field])
        try:
            return ProjectionInput.model_validate(data), []
        except ValidationError as e:
            issues = []
            for error in e.errors():
                loc = error.get("loc") or ("request",)
                issues.append(ValidationIssue(
                    field=str(loc[0]),
                    issue_type="invalid_value",
                    message=error.get("msg", "Invalid value"),
                    severity="error",
                ))
            return None, issues

    def validate(self, request: dict) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            request: The calculation request body (camelCase keys)

        Returns:
            ValidationResult, carrying the ProjectionInput when valid
        """
        all_issues = []

        # Stage 1: Schema validation
        schema_valid, schema_issues = self._validate_schema(request)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(request)
            all_issues.extend(semantic_issues)

        projection_input = None
        if schema_valid and semantic_valid:
            projection_input, build_issues = self._build_input(request)
            if build_issues:
                semantic_valid = False
                all_issues.extend(build_issues)

        warnings = [
            issue.message for issue in all_issues if issue.severity == "warning"
        ]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
            projection_input=projection_input,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All inputs look good."

        lines = []

        if result.has_errors:
            lines.append("❌ Please correct the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
