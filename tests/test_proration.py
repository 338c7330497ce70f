from datetime import date

from smb_finreport.models import Plan, Subscription
from smb_finreport.periods import Period, period_for_month
from smb_finreport.proration import (
    contributes,
    contributing_subscriptions,
    monthly_equivalent,
    monthly_recurring_revenue,
    subscription_contribution,
)

MARCH = period_for_month("2024-03")


def _sub(
    sub_id: int = 1,
    status: str = "active",
    start: date = date(2024, 1, 1),
    canceled_at: date | None = None,
    price: float = 100.0,
    interval: str = "month",
) -> Subscription:
    return Subscription(
        id=sub_id,
        status=status,  # type: ignore[arg-type]
        start_date=start,
        plan=Plan(name="Pro", price=price, interval=interval),
        canceled_at=canceled_at,
    )


def test_monthly_equivalent_by_interval() -> None:
    """Monthly plans keep their price; yearly plans are divided by 12."""
    assert monthly_equivalent(Plan("M", 30.0, "month")) == 30.0
    assert monthly_equivalent(Plan("Y", 120.0, "year")) == 10.0


def test_unknown_interval_is_treated_as_monthly() -> None:
    """Unrecognized intervals should be treated as monthly."""
    assert monthly_equivalent(Plan("W", 50.0, "week")) == 50.0


def test_active_subscription_contributes_full_monthly_equivalent() -> None:
    """An active subscription started before the period contributes once."""
    sub = _sub(price=120.0, interval="year")
    assert contributes(sub, MARCH)
    assert subscription_contribution(sub, MARCH) == 10.0


def test_subscription_starting_on_last_day_contributes_full_amount() -> None:
    """Membership-based proration: one day in the period is enough."""
    sub = _sub(start=date(2024, 3, 31))
    assert subscription_contribution(sub, MARCH) == 100.0


def test_subscription_starting_after_period_does_not_contribute() -> None:
    """A subscription starting after the period end contributes nothing."""
    sub = _sub(start=date(2024, 4, 1))
    assert subscription_contribution(sub, MARCH) == 0.0


def test_canceled_subscription_boundaries() -> None:
    """Canceled subscriptions contribute only if canceled after the period start."""
    canceled_mid = _sub(status="canceled", canceled_at=date(2024, 3, 10))
    canceled_on_start = _sub(status="canceled", canceled_at=date(2024, 3, 1))
    canceled_before = _sub(status="canceled", canceled_at=date(2024, 2, 20))
    canceled_unknown = _sub(status="canceled", canceled_at=None)

    assert subscription_contribution(canceled_mid, MARCH) == 100.0
    assert subscription_contribution(canceled_on_start, MARCH) == 0.0
    assert subscription_contribution(canceled_before, MARCH) == 0.0
    assert subscription_contribution(canceled_unknown, MARCH) == 0.0


def test_long_period_still_receives_one_monthly_equivalent() -> None:
    """A period longer than a month is not multiplied by its month count."""
    quarter = Period(start=date(2024, 1, 1), end=date(2024, 3, 31), label="Q1")
    assert subscription_contribution(_sub(price=50.0), quarter) == 50.0


def test_contributing_subscriptions_keeps_input_order() -> None:
    """contributing_subscriptions should filter without reordering."""
    subs = [
        _sub(sub_id=3),
        _sub(sub_id=1, start=date(2024, 5, 1)),
        _sub(sub_id=2, status="canceled", canceled_at=date(2024, 3, 20)),
    ]
    assert [s.id for s in contributing_subscriptions(subs, MARCH)] == [3, 2]


def test_monthly_recurring_revenue_counts_started_active_subscriptions() -> None:
    """MRR sums monthly equivalents of active subscriptions started by as_of."""
    subs = [
        _sub(sub_id=1, price=100.0),
        _sub(sub_id=2, price=240.0, interval="year"),
        _sub(sub_id=3, start=date(2024, 4, 1)),
        _sub(sub_id=4, status="canceled", canceled_at=date(2024, 3, 20)),
    ]
    assert monthly_recurring_revenue(subs, as_of=date(2024, 3, 15)) == 120.0
