"""
Tests for the projection engine.

Three reference scenarios are worked end to end; the remaining tests
check properties that must hold for any valid input.
"""

from decimal import Decimal

import pytest

from retirement_planner.engine import (
    ProjectionEngine,
    ProjectionInputError,
    project_retirement,
)
from retirement_planner.engine.annuity import fv_growing_annuity, fv_level_annuity
from retirement_planner.engine.projection import to_money
from retirement_planner.models.plan import ProjectionInput


def make_input(**overrides) -> ProjectionInput:
    """A 30-year-old earning 5000 a month, everything else at defaults."""
    data = {
        "current_age": 30,
        "retirement_age": 60,
        "life_expectancy": 80,
        "current_salary": 5000.0,
        "enable_salary_increments": False,
    }
    data.update(overrides)
    return ProjectionInput(**data)


class TestToMoney:
    """Tests for cent rounding."""

    def test_rounds_half_up(self):
        assert to_money(0.125) == Decimal("0.13")
        assert to_money(2.675) == Decimal("2.68")

    @pytest.mark.parametrize("value", [1e27, float("inf")])
    def test_unrepresentable_amount_is_input_error(self, value):
        with pytest.raises(ProjectionInputError):
            to_money(value)

    def test_two_places(self):
        assert to_money(1000) == Decimal("1000.00")
        assert to_money(1000).as_tuple().exponent == -2


class TestReferenceScenarios:
    """End-to-end projections with hand-checked figures."""

    def test_flat_salary_default_rates(self):
        """
        No salary growth, default EPF 23%/11% and 4/4/3 market rates.

        EPF alone (about 798k) covers the funds needed (about 723k),
        so there is no gap.
        """
        result = project_retirement(make_input())

        assert result.years_to_retirement == 30
        assert result.years_in_retirement == 20
        assert result.last_drawn_salary == Decimal("5000.00")
        assert result.target_monthly_income == Decimal("3333.33")
        assert result.monthly_epf_contribution == Decimal("1150.00")
        assert result.monthly_employee_epf_contribution == Decimal("550.00")
        assert result.disposable_monthly_salary == Decimal("4450.00")
        assert result.projected_prs_balance == Decimal("0.00")

        assert result.total_projected_savings > result.total_funds_needed
        assert result.funding_gap == Decimal("0.00")
        assert result.additional_monthly_savings_required == Decimal("0.00")
        assert not result.has_shortfall

    def test_return_equals_inflation(self):
        """Discounting and indexing cancel: needed = target * months."""
        result = project_retirement(make_input(
            post_retirement_return=3.0,
            inflation_rate=3.0,
        ))

        assert result.target_monthly_income == Decimal("3333.33")
        assert result.total_funds_needed == Decimal("799999.20")

    def test_no_savings_no_returns(self):
        """Nothing saved, nothing earned: the gap is closed by simple division."""
        result = project_retirement(make_input(
            target_monthly_income_input=3000.0,
            post_retirement_return=3.0,
            inflation_rate=3.0,
            pre_retirement_return=0.0,
            monthly_epf_contribution_rate=0.0,
        ))

        assert result.total_funds_needed == Decimal("720000.00")
        assert result.total_projected_savings == Decimal("0.00")
        assert result.funding_gap == Decimal("720000.00")
        assert result.additional_monthly_savings_required == Decimal("2000.00")
        assert result.has_shortfall


class TestProjectionProperties:
    """Properties that hold for any valid input."""

    @pytest.mark.parametrize("overrides", [
        {},
        {"enable_salary_increments": True, "salary_increment_rate": 5.0},
        {"monthly_epf_contribution_rate": 0.0, "epf_balance": 20000.0},
        {"monthly_contribution_prs_percentage": 5.0, "prs_balance": 10000.0},
        {"target_monthly_income_input": 10000.0, "post_retirement_return": 6.0},
    ])
    def test_gap_is_shortfall_or_zero(self, overrides):
        result = project_retirement(make_input(**overrides))

        expected = max(
            Decimal("0.00"),
            result.total_funds_needed - result.total_projected_savings,
        )
        assert result.funding_gap == expected
        assert result.total_projected_savings == (
            result.projected_epf_balance + result.projected_prs_balance
        )

    @pytest.mark.parametrize("salary", [3000.0 + 37.13 * i for i in range(40)])
    def test_total_savings_is_sum_of_reported_balances(self, salary):
        result = project_retirement(make_input(
            current_salary=salary,
            epf_balance=20000.0,
            prs_balance=10000.0,
            monthly_contribution_prs_percentage=5.0,
            enable_salary_increments=True,
        ))

        assert result.total_projected_savings == (
            result.projected_epf_balance + result.projected_prs_balance
        )

    def test_all_money_has_two_places(self):
        result = project_retirement(make_input(
            enable_salary_increments=True,
            monthly_contribution_prs=333.33,
        ))

        money_fields = [
            name for name, value in result.model_dump().items()
            if isinstance(value, Decimal)
        ]
        assert len(money_fields) == 11
        for name in money_fields:
            assert getattr(result, name).as_tuple().exponent == -2, name

    def test_zero_contributions_leave_nothing_saved(self):
        result = project_retirement(make_input(monthly_epf_contribution_rate=0.0))

        assert result.projected_epf_balance == Decimal("0.00")
        assert result.projected_prs_balance == Decimal("0.00")
        assert result.funding_gap == result.total_funds_needed

    def test_no_increments_keeps_salary_flat(self):
        """The increment rate is ignored when increments are disabled."""
        result = project_retirement(make_input(salary_increment_rate=15.0))
        assert result.last_drawn_salary == Decimal("5000.00")

    def test_increments_compound_annually(self):
        result = project_retirement(make_input(
            enable_salary_increments=True,
            salary_increment_rate=3.0,
        ))
        assert result.last_drawn_salary == to_money(5000.0 * 1.03 ** 30)

    @pytest.mark.parametrize("salaries", [(3000.0, 5000.0, 8000.0)])
    def test_monotone_in_salary(self, salaries):
        results = [
            project_retirement(make_input(
                current_salary=salary,
                enable_salary_increments=True,
            ))
            for salary in salaries
        ]

        for lower, higher in zip(results, results[1:]):
            assert lower.last_drawn_salary <= higher.last_drawn_salary
            assert lower.total_funds_needed <= higher.total_funds_needed
            assert lower.projected_epf_balance <= higher.projected_epf_balance

    def test_deterministic(self):
        projection_input = make_input(enable_salary_increments=True)
        engine = ProjectionEngine()
        assert engine.compute(projection_input) == engine.compute(projection_input)

    def test_target_input_overrides_replacement_ratio(self):
        result = project_retirement(make_input(target_monthly_income_input=4000.0))
        assert result.target_monthly_income == Decimal("4000.00")

    def test_zero_target_falls_back_to_ratio(self):
        result = project_retirement(make_input(target_monthly_income_input=0.0))
        assert result.target_monthly_income == Decimal("3333.33")


class TestEpfProjection:
    """Tests for the EPF stream."""

    def test_dividend_is_fixed_regardless_of_market_return(self):
        low = project_retirement(make_input(
            epf_balance=100000.0,
            monthly_epf_contribution_rate=0.0,
            pre_retirement_return=2.0,
        ))
        high = project_retirement(make_input(
            epf_balance=100000.0,
            monthly_epf_contribution_rate=0.0,
            pre_retirement_return=8.0,
        ))

        assert low.projected_epf_balance == high.projected_epf_balance
        assert low.projected_epf_balance == to_money(100000.0 * 1.04 ** 30)

    def test_flat_contributions_compound_monthly(self):
        result = project_retirement(make_input())
        expected = fv_level_annuity(1150.0, 0.04 / 12, 360)
        assert float(result.projected_epf_balance) == pytest.approx(expected, abs=0.01)

    def test_salary_growth_equal_to_dividend(self):
        """Growth matching the 4% dividend uses the equal-rate form."""
        result = project_retirement(make_input(
            enable_salary_increments=True,
            salary_increment_rate=4.0,
        ))

        expected = 1150.0 * 12 * 30 * 1.04 ** 30
        assert float(result.projected_epf_balance) == pytest.approx(expected, abs=0.01)

    def test_salary_growth_near_dividend_is_continuous(self):
        exact = project_retirement(make_input(
            enable_salary_increments=True,
            salary_increment_rate=4.0,
        ))
        nudged = project_retirement(make_input(
            enable_salary_increments=True,
            salary_increment_rate=4.001,
        ))
        assert nudged.projected_epf_balance == exact.projected_epf_balance


class TestPrsProjection:
    """Tests for the PRS stream."""

    def test_percentage_takes_priority_over_fixed_amount(self):
        result = project_retirement(make_input(
            monthly_contribution_prs_percentage=10.0,
            monthly_contribution_prs=999.0,
        ))
        assert result.disposable_monthly_salary == Decimal("3950.00")

    def test_fixed_amount_stays_flat_with_salary_growth(self):
        result = project_retirement(make_input(
            monthly_contribution_prs=500.0,
            enable_salary_increments=True,
        ))
        expected = fv_level_annuity(500.0, 0.04 / 12, 360)
        assert float(result.projected_prs_balance) == pytest.approx(expected, abs=0.01)

    def test_percentage_grows_with_salary(self):
        result = project_retirement(make_input(
            monthly_contribution_prs_percentage=10.0,
            enable_salary_increments=True,
            salary_increment_rate=3.0,
        ))
        expected = fv_growing_annuity(6000.0, 0.04, 0.03, 30)
        assert float(result.projected_prs_balance) == pytest.approx(expected, abs=0.01)

    def test_existing_balance_earns_market_return(self):
        result = project_retirement(make_input(
            prs_balance=10000.0,
            pre_retirement_return=6.0,
        ))
        assert result.projected_prs_balance == to_money(10000.0 * 1.06 ** 30)


class TestFundsNeeded:
    """Tests for the value of retirement income."""

    @pytest.mark.parametrize("inflation", [2.99999, 3.0, 3.00001])
    def test_continuous_when_return_meets_inflation(self, inflation):
        result = project_retirement(make_input(
            post_retirement_return=3.0,
            inflation_rate=inflation,
        ))
        assert result.total_funds_needed == Decimal("799999.20")

    def test_higher_return_needs_less(self):
        low = project_retirement(make_input(post_retirement_return=2.0))
        high = project_retirement(make_input(post_retirement_return=6.0))
        assert high.total_funds_needed < low.total_funds_needed

    def test_zero_return_sums_indexed_payments(self):
        result = project_retirement(make_input(
            target_monthly_income_input=1000.0,
            post_retirement_return=0.0,
            inflation_rate=0.0,
        ))
        assert result.total_funds_needed == Decimal("240000.00")


class TestPreconditions:
    """The engine refuses input that bypassed validation."""

    def test_rejects_unordered_ages(self):
        bad = ProjectionInput.model_construct(
            current_age=60,
            retirement_age=60,
            life_expectancy=80,
            current_salary=5000.0,
        )
        with pytest.raises(ProjectionInputError):
            ProjectionEngine().compute(bad)

    def test_rejects_non_positive_salary(self):
        bad = ProjectionInput.model_construct(
            current_age=30,
            retirement_age=60,
            life_expectancy=80,
            current_salary=0.0,
        )
        with pytest.raises(ProjectionInputError):
            ProjectionEngine().compute(bad)

    def test_input_error_is_value_error(self):
        assert issubclass(ProjectionInputError, ValueError)
