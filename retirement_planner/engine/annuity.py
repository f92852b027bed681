"""
Annuity and Compounding Functions

Every projection stream (funds needed, EPF, PRS, gap-closing savings) is
built from the handful of closed forms below. Rates are per period and
expressed as fractions (0.04, not 4.0); periods are counts of those periods.

When two rates appear as a difference in a denominator and are equal
within tolerance, the closed form for the equal-rate case is used instead
of dividing by a near-zero value.
"""

# Monthly discount vs. monthly inflation
PV_RATE_TOLERANCE = 1e-6

# Annual investment return vs. annual salary growth
FV_GROWTH_TOLERANCE = 1e-4


def monthly_rate(annual_percent: float) -> float:
    """Convert an annual percentage (4.0 = 4%) to a monthly fraction."""
    return annual_percent / 100 / 12


def annual_rate(annual_percent: float) -> float:
    """Convert an annual percentage (4.0 = 4%) to a fraction."""
    return annual_percent / 100


def fv_lump_sum(amount: float, rate: float, periods: int) -> float:
    """Future value of a single amount compounded for `periods`."""
    return amount * (1 + rate) ** periods


def fv_annuity_factor(rate: float, periods: int) -> float:
    """
    Future value of 1 paid at the end of each period.

    Falls back to the plain period count when the rate is zero.
    """
    if rate > 0:
        return ((1 + rate) ** periods - 1) / rate
    return float(periods)


def fv_level_annuity(payment: float, rate: float, periods: int) -> float:
    """Future value of a level payment stream."""
    return payment * fv_annuity_factor(rate, periods)


def fv_growing_annuity(
    payment: float,
    rate: float,
    growth: float,
    periods: int,
    tolerance: float = FV_GROWTH_TOLERANCE,
) -> float:
    """
    Future value of a payment stream growing by `growth` each period.

    FV = PMT * ((1+r)^n - (1+g)^n) / (r - g)

    When r and g coincide the stream is valued as
    PMT * n * (1+r)^n.
    """
    if abs(rate - growth) < tolerance:
        return payment * periods * (1 + rate) ** periods

    term_a = (1 + rate) ** periods
    term_b = (1 + growth) ** periods
    return payment * (term_a - term_b) / (rate - growth)


def pv_growing_annuity(
    payment: float,
    rate: float,
    growth: float,
    periods: int,
    tolerance: float = PV_RATE_TOLERANCE,
) -> float:
    """
    Present value of `periods` payments starting at `payment` and growing
    by `growth` each period, discounted at `rate`.

    PV = PMT * (1 - ((1+g)/(1+r))^n) / (r - g)

    Special cases:
    - r equal to g: every payment discounts and grows by offsetting
      factors, PV = PMT * n
    - r of zero: no discounting, PV is the geometric sum of the payments
    """
    if rate > 0:
        if abs(rate - growth) < tolerance:
            return payment * periods
        growth_ratio = (1 + growth) / (1 + rate)
        return payment * (1 - growth_ratio ** periods) / (rate - growth)

    if growth > 0:
        return payment * (1 - (1 + growth) ** periods) / (-growth)
    return payment * periods


def level_payment_for_future_value(
    target: float,
    rate: float,
    periods: int,
) -> float:
    """
    Level payment per period whose future value reaches `target`.

    With a zero rate this is simple division.
    """
    if periods <= 0:
        raise ValueError(f"periods must be positive, got {periods}")
    return target / fv_annuity_factor(rate, periods)
