"""
Streamlit Frontend for Retirement Planner

Lets a user enter their salary, EPF/PRS savings and market assumptions,
see how much they need at retirement, and keep one saved plan.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Nothing is saved until the user presses "Calculate"
4. Recalculating replaces the saved plan - the user is told so
"""

import asyncio
from decimal import Decimal

import streamlit as st

from retirement_planner.audit import configure_logging, create_correlation_id
from retirement_planner.models.plan import RetirementPlan
from retirement_planner.orchestrator import RetirementPlanFlow, create_app_components


configure_logging()

# Page configuration
st.set_page_config(
    page_title="Retirement Planner",
    page_icon="🏖️",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def format_money(amount: Decimal) -> str:
    return f"RM {amount:,.2f}"


def main():
    """Main application entry point."""
    plan_flow, _ = get_components()

    st.sidebar.title("🏖️ Retirement Planner")
    st.sidebar.markdown("---")

    user_id = st.sidebar.text_input(
        "Your user ID",
        value=st.session_state.get("user_id", ""),
        help="Your plan is saved under this ID",
    ).strip()
    st.session_state.user_id = user_id

    page = st.sidebar.radio(
        "Navigate to:",
        ["🧮 Plan Retirement", "📄 My Plan", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How it works:**
        1. Enter your salary and savings
        2. Adjust the assumptions if you like
        3. Calculate to see your funding gap

        Only your latest plan is kept.
        """
    )

    if page == "⚙️ Settings":
        render_settings_page()
        return

    if not user_id:
        st.info("👈 Enter your user ID in the sidebar to get started.")
        return

    if page == "🧮 Plan Retirement":
        render_planner_page(plan_flow, user_id)
    elif page == "📄 My Plan":
        render_plan_page(plan_flow, user_id)


def build_request() -> dict:
    """Render the planner form and return the request body."""
    st.markdown("### 👤 About You")
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        current_age = st.number_input("Current age", min_value=0, max_value=120, value=30, step=1)
    with col2:
        retirement_age = st.number_input("Retirement age", min_value=0, max_value=120, value=60, step=1)
    with col3:
        life_expectancy = st.number_input("Life expectancy", min_value=0, max_value=130, value=80, step=1)
    with col4:
        current_salary = st.number_input(
            "Monthly salary",
            min_value=0.0,
            value=5000.0,
            step=100.0,
            help="Gross monthly salary before deductions",
        )

    enable_increments = st.checkbox("My salary increases every year", value=True)
    salary_increment_rate = st.slider(
        "Annual salary increment (%)",
        min_value=0.0,
        max_value=20.0,
        value=3.0,
        step=0.5,
        disabled=not enable_increments,
    )

    st.markdown("### 🏦 EPF")
    col1, col2, col3 = st.columns(3)
    with col1:
        epf_balance = st.number_input("Current EPF balance", min_value=0.0, value=0.0, step=1000.0)
    with col2:
        epf_rate = st.number_input(
            "Total EPF contribution (%)",
            min_value=0.0,
            max_value=30.0,
            value=23.0,
            help="Employer + employee. EPF grows at a fixed 4% a year.",
        )
    with col3:
        employee_epf_rate = st.number_input(
            "Employee EPF contribution (%)",
            min_value=0.0,
            max_value=11.0,
            value=11.0,
            help="Deducted from your salary",
        )

    st.markdown("### 📈 PRS")
    col1, col2, col3 = st.columns(3)
    with col1:
        prs_balance = st.number_input("Current PRS balance", min_value=0.0, value=0.0, step=1000.0)
    with col2:
        prs_percentage = st.number_input(
            "PRS contribution (% of salary)",
            min_value=0.0,
            max_value=20.0,
            value=0.0,
            help="Takes priority over a fixed amount and grows with your salary",
        )
    with col3:
        prs_amount = st.number_input("Or a fixed monthly PRS amount", min_value=0.0, value=0.0, step=50.0)

    st.markdown("### 🎯 Target & Assumptions")
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        target_income = st.number_input(
            "Target monthly income",
            min_value=0.0,
            value=0.0,
            step=100.0,
            help="Leave at 0 to use 2/3 of your final salary",
        )
    with col2:
        pre_return = st.number_input("Pre-retirement return (%)", min_value=0.0, max_value=20.0, value=4.0)
    with col3:
        post_return = st.number_input("Post-retirement return (%)", min_value=0.0, max_value=20.0, value=4.0)
    with col4:
        inflation = st.number_input("Inflation (%)", min_value=0.0, max_value=20.0, value=3.0)

    return {
        "currentAge": int(current_age),
        "retirementAge": int(retirement_age),
        "lifeExpectancy": int(life_expectancy),
        "currentSalary": current_salary,
        "epfBalance": epf_balance,
        "prsBalance": prs_balance,
        "monthlyContributionPrs": prs_amount,
        "monthlyContributionPrsPercentage": prs_percentage,
        "monthlyEpfContributionRate": epf_rate,
        "employeeEpfContributionRate": employee_epf_rate,
        "targetMonthlyIncomeInput": target_income or None,
        "preRetirementReturn": pre_return,
        "postRetirementReturn": post_return,
        "inflationRate": inflation,
        "enableSalaryIncrements": enable_increments,
        "salaryIncrementRate": salary_increment_rate,
    }


def render_planner_page(plan_flow: RetirementPlanFlow, user_id: str):
    """Render the calculation form."""
    st.title("🧮 Plan Your Retirement")
    st.markdown(
        "Find out how much you need at retirement and whether your "
        "EPF and PRS savings will get you there."
    )

    existing = run_async(plan_flow.get_plan(user_id))
    if existing:
        st.warning("You already have a saved plan. Calculating again will replace it.")

    request = build_request()

    if st.button("🧮 Calculate", type="primary"):
        with st.spinner("Projecting your retirement..."):
            try:
                plan, validation, message = run_async(
                    plan_flow.calculate_plan(
                        user_id=user_id,
                        request=request,
                        correlation_id=create_correlation_id(),
                    )
                )
            except Exception as e:
                st.error(f"Failed to calculate retirement plan: {e}")
                return

        if plan is None:
            st.error(message)
            return

        if validation.warnings:
            st.warning(message)
        st.success("✅ Retirement plan calculated successfully")
        render_result(plan)


def render_result(plan: RetirementPlan):
    """Show the numbers of a calculated plan."""
    result = plan.result

    col1, col2, col3 = st.columns(3)
    col1.metric("Years to retirement", result.years_to_retirement)
    col2.metric("Years in retirement", result.years_in_retirement)
    col3.metric("Last drawn salary", format_money(result.last_drawn_salary))

    col1, col2, col3 = st.columns(3)
    col1.metric("Monthly EPF contribution", format_money(result.monthly_epf_contribution))
    col2.metric("Employee EPF deduction", format_money(result.monthly_employee_epf_contribution))
    col3.metric("Disposable monthly salary", format_money(result.disposable_monthly_salary))

    st.markdown("---")
    col1, col2 = st.columns(2)
    col1.metric("Target monthly income", format_money(result.target_monthly_income))
    col2.metric("Total funds needed at retirement", format_money(result.total_funds_needed))

    col1, col2, col3 = st.columns(3)
    col1.metric("Projected EPF", format_money(result.projected_epf_balance))
    col2.metric("Projected PRS", format_money(result.projected_prs_balance))
    col3.metric("Total projected savings", format_money(result.total_projected_savings))

    if result.has_shortfall:
        st.markdown(f"""
        <div class="error-box">
            <h4>Funding gap: {format_money(result.funding_gap)}</h4>
            <p>You need an additional <strong>{format_money(result.additional_monthly_savings_required)}</strong>
            per month to meet your retirement goals.</p>
        </div>
        """, unsafe_allow_html=True)
    else:
        st.markdown(f"""
        <div class="success-box">
            <h4>🎉 You're on track</h4>
            <p>Projected surplus of {format_money(result.surplus)} at retirement.</p>
        </div>
        """, unsafe_allow_html=True)

    st.caption(f"Calculated {plan.calculated_at:%d %b %Y %H:%M} UTC")


def render_plan_page(plan_flow: RetirementPlanFlow, user_id: str):
    """Render the saved plan with a delete option."""
    st.title("📄 My Plan")

    plan = run_async(plan_flow.get_plan(user_id))
    if plan is None:
        st.info("No saved plan yet. Use 'Plan Retirement' to create one.")
        return

    render_result(plan)

    with st.expander("🔍 Inputs used"):
        st.json(plan.inputs.model_dump(by_alias=True))

    st.markdown("---")
    confirm = st.checkbox("I understand deleting my plan cannot be undone")
    if st.button("🗑️ Delete Plan", disabled=not confirm):
        if run_async(plan_flow.delete_plan(user_id)):
            st.success("Retirement plan deleted successfully")
            st.rerun()
        else:
            st.error("Retirement plan not found")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from retirement_planner.config import get_settings, validate_all_settings

    status = validate_all_settings()
    backend = get_settings().app.storage_backend

    st.markdown(f"**Storage backend:** `{backend}`")

    if status.get("google_sheets", False):
        st.success("✅ Google Sheets (Storage) - Configured")
    else:
        error = status.get("google_sheets_error", "Not configured")
        st.error(f"❌ Google Sheets (Storage) - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "Set `STORAGE_BACKEND=google_sheets` together with "
        "`GOOGLE_SHEETS_CREDENTIALS_PATH` and `GOOGLE_SHEETS_SPREADSHEET_ID` "
        "in a `.env` file to keep plans in Google Sheets. Without them, plans "
        "are kept in memory until the app restarts."
    )


if __name__ == "__main__":
    main()
