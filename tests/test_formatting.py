import pytest

from app.utils.formatting import duration_text, format_price, monthly_price


@pytest.mark.parametrize(
    "amount, expected",
    [
        (1000, "₹1,000"),
        (0, "₹0"),
        (999, "₹999"),
        (100000, "₹1,00,000"),
        (1234567, "₹12,34,567"),
        (1499.5, "₹1,499.5"),
        (1000.0, "₹1,000"),
    ],
)
def test_format_price(amount, expected):
    assert format_price(amount) == expected


@pytest.mark.parametrize(
    "months, expected",
    [
        (1, "1 month"),
        (6, "6 months"),
        (12, "1 year"),
        (14, "1 year 2 months"),
        (13, "1 year 1 month"),
        (24, "2 years"),
    ],
)
def test_duration_text(months, expected):
    assert duration_text(months) == expected


def test_monthly_price():
    assert monthly_price(1000, 6) == 167
    assert monthly_price(1200, 12) == 100


def test_plan_summary_fields(factory):
    from app.schemas.entitlement import PlanSummary

    plan = factory.plan(price=1000, duration=14)
    summary = PlanSummary.from_plan(plan)

    assert summary.formatted_price == "₹1,000"
    assert summary.duration_text == "1 year 2 months"
    assert summary.monthly_price == 71
