"""
Retirement Funding Projection Engine

Projects a user's retirement shortfall (or surplus) from salary,
contribution and market-return assumptions.

DESIGN DECISION: The engine is pure. No I/O, no logging, no settings.
The same ProjectionInput always produces the same ProjectionResult,
which is what lets a stored plan be recomputed and compared.

Assumptions are deterministic and fixed-rate:
- EPF balances earn a fixed 4% dividend, whatever pre_retirement_return is
- PRS balances earn pre_retirement_return
- Retirement income grows with inflation and is discounted at
  post_retirement_return

Computation runs on floats; money is rounded to cents (ROUND_HALF_UP)
only when the result is assembled.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from retirement_planner.engine.annuity import (
    annual_rate,
    fv_growing_annuity,
    fv_lump_sum,
    fv_level_annuity,
    level_payment_for_future_value,
    monthly_rate,
    pv_growing_annuity,
)
from retirement_planner.models.plan import ProjectionInput, ProjectionResult


EPF_DIVIDEND_RATE = 4.0  # annual %
INCOME_REPLACEMENT_RATIO = 2 / 3
MONTHS_PER_YEAR = 12

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


class ProjectionInputError(ValueError):
    """Input reached the engine in a state it cannot project."""
    pass


def to_money(value: float) -> Decimal:
    """
    Round a float to cents, half-up.

    Raises:
        ProjectionInputError: If the value is not finite or has more digits
            than a Decimal context can hold
    """
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ProjectionInputError(f"Amount cannot be represented in cents: {value!r}")


class ProjectionEngine:
    """
    Computes a ProjectionResult from a ProjectionInput.

    Stateless: one instance can serve any number of callers.
    """

    def compute(self, projection_input: ProjectionInput) -> ProjectionResult:
        """
        Project retirement funding.

        Preconditions (enforced by ProjectionInput and the request validator):
        - current_age < retirement_age < life_expectancy
        - current_salary > 0
        - every rate within its documented bounds

        Raises:
            ProjectionInputError: If a precondition does not hold
        """
        p = projection_input
        self._check_preconditions(p)

        # Horizon
        years_to_retirement = p.retirement_age - p.current_age
        years_in_retirement = p.life_expectancy - p.retirement_age

        # Take-home pay (informational only)
        monthly_prs_contribution = p.effective_monthly_contribution_prs
        monthly_employee_epf = p.current_salary * p.employee_epf_contribution_rate / 100
        disposable_salary = (
            p.current_salary - monthly_employee_epf - monthly_prs_contribution
        )

        last_drawn_salary = self._last_drawn_salary(p, years_to_retirement)

        # Fixed to cents before valuation so the funds needed match the reported
        # target, at the cost of one intermediate rounding
        target_income = to_money(self._target_monthly_income(p, last_drawn_salary))

        total_funds_needed = self._funds_needed(
            float(target_income),
            p.post_retirement_return,
            p.inflation_rate,
            years_in_retirement,
        )

        monthly_epf_contribution = (
            p.current_salary * p.monthly_epf_contribution_rate / 100
        )
        projected_epf = self._project_epf(
            p, monthly_epf_contribution, years_to_retirement
        )
        projected_prs = self._project_prs(
            p, monthly_prs_contribution, years_to_retirement
        )

        funds_needed = to_money(total_funds_needed)
        epf_balance = to_money(projected_epf)
        prs_balance = to_money(projected_prs)
        total_savings = epf_balance + prs_balance
        funding_gap = max(ZERO, funds_needed - total_savings)

        additional_savings = self._additional_monthly_savings(
            float(funding_gap),
            p.pre_retirement_return,
            years_to_retirement,
        )

        return ProjectionResult(
            years_to_retirement=years_to_retirement,
            years_in_retirement=years_in_retirement,
            last_drawn_salary=to_money(last_drawn_salary),
            target_monthly_income=target_income,
            monthly_epf_contribution=to_money(monthly_epf_contribution),
            monthly_employee_epf_contribution=to_money(monthly_employee_epf),
            disposable_monthly_salary=to_money(disposable_salary),
            total_funds_needed=funds_needed,
            projected_epf_balance=epf_balance,
            projected_prs_balance=prs_balance,
            total_projected_savings=total_savings,
            funding_gap=funding_gap,
            additional_monthly_savings_required=to_money(additional_savings),
        )

    @staticmethod
    def _check_preconditions(p: ProjectionInput) -> None:
        if not p.current_age < p.retirement_age < p.life_expectancy:
            raise ProjectionInputError(
                "Ages must satisfy current_age < retirement_age < life_expectancy, "
                f"got {p.current_age}, {p.retirement_age}, {p.life_expectancy}"
            )
        if not p.current_salary > 0:
            raise ProjectionInputError(
                f"current_salary must be positive, got {p.current_salary}"
            )

    @staticmethod
    def _last_drawn_salary(p: ProjectionInput, years: int) -> float:
        if p.enable_salary_increments:
            return fv_lump_sum(p.current_salary, annual_rate(p.salary_increment_rate), years)
        return p.current_salary

    @staticmethod
    def _target_monthly_income(p: ProjectionInput, last_drawn_salary: float) -> float:
        if p.target_monthly_income_input and p.target_monthly_income_input > 0:
            return p.target_monthly_income_input
        return last_drawn_salary * INCOME_REPLACEMENT_RATIO

    @staticmethod
    def _funds_needed(
        target_income: float,
        post_retirement_return: float,
        inflation_rate: float,
        years_in_retirement: int,
    ) -> float:
        """Value at retirement of an inflation-indexed monthly income."""
        return pv_growing_annuity(
            target_income,
            monthly_rate(post_retirement_return),
            monthly_rate(inflation_rate),
            years_in_retirement * MONTHS_PER_YEAR,
        )

    @staticmethod
    def _future_contributions(
        monthly_contribution: float,
        annual_return: float,
        years: int,
        salary_growth: float,
    ) -> float:
        """
        Value at retirement of a contribution stream.

        Contributions tied to a growing salary are valued as an annual
        growing annuity; flat contributions as a monthly level annuity.
        """
        if monthly_contribution <= 0:
            return 0.0

        if salary_growth > 0:
            return fv_growing_annuity(
                monthly_contribution * MONTHS_PER_YEAR,
                annual_rate(annual_return),
                annual_rate(salary_growth),
                years,
            )

        return fv_level_annuity(
            monthly_contribution,
            monthly_rate(annual_return),
            years * MONTHS_PER_YEAR,
        )

    def _project_epf(
        self,
        p: ProjectionInput,
        monthly_contribution: float,
        years: int,
    ) -> float:
        existing = fv_lump_sum(p.epf_balance, annual_rate(EPF_DIVIDEND_RATE), years)
        contributions = self._future_contributions(
            monthly_contribution,
            EPF_DIVIDEND_RATE,
            years,
            p.salary_growth_rate,
        )
        return existing + contributions

    def _project_prs(
        self,
        p: ProjectionInput,
        monthly_contribution: float,
        years: int,
    ) -> float:
        existing = fv_lump_sum(p.prs_balance, annual_rate(p.pre_retirement_return), years)

        # A fixed amount stays flat; only a salary percentage grows with pay
        salary_growth = p.salary_growth_rate if p.prs_is_percentage_based else 0.0

        contributions = self._future_contributions(
            monthly_contribution,
            p.pre_retirement_return,
            years,
            salary_growth,
        )
        return existing + contributions

    @staticmethod
    def _additional_monthly_savings(
        funding_gap: float,
        pre_retirement_return: float,
        years_to_retirement: int,
    ) -> float:
        """Level monthly saving, started now, that closes the gap by retirement."""
        if funding_gap <= 0 or years_to_retirement <= 0:
            return 0.0
        return level_payment_for_future_value(
            funding_gap,
            monthly_rate(pre_retirement_return),
            years_to_retirement * MONTHS_PER_YEAR,
        )


def project_retirement(projection_input: ProjectionInput) -> ProjectionResult:
    """Convenience wrapper around ProjectionEngine().compute()."""
    return ProjectionEngine().compute(projection_input)
