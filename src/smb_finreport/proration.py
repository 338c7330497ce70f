# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Subscription proration for SMB FinReport.

A subscription is billed `plan.price` every `plan.interval`. For period
based reporting it is converted into a monthly-equivalent figure, and a
subscription contributes that figure *once* to every period it belongs to:

- it does not contribute to periods ending before its start date;
- an active subscription contributes;
- a canceled subscription contributes only if it was canceled strictly
  after the first day of the period.

Proration is by period membership, not by day fraction: a subscription
active for a single day of a month contributes a full monthly equivalent,
and a period longer than a month still receives one monthly equivalent.
Historical figures depend on this rule.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from .models import Plan, PlanInterval, Subscription
from .periods import Period

LOGGER = logging.getLogger(__name__)

MONTHS_PER_INTERVAL: dict[PlanInterval, int] = {"month": 1, "year": 12}


def monthly_equivalent(plan: Plan) -> float:
    """
    Monthly-equivalent price of a plan.

    - interval "month" : price
    - interval "year"  : price / 12

    Any other interval is treated as "month".
    """
    months = MONTHS_PER_INTERVAL.get(plan.interval)  # type: ignore[call-overload]
    if months is None:
        LOGGER.debug(
            "Unknown billing interval %r for plan %r; treating it as monthly.",
            plan.interval,
            plan.name,
        )
        months = 1
    return plan.price / months


def contributes(subscription: Subscription, period: Period) -> bool:
    """Return True if the subscription contributes revenue to the period."""
    if subscription.start_date > period.end:
        return False

    if subscription.status == "active":
        return True

    # Canceled: it must have been live for part of the period.
    if subscription.canceled_at is None:
        return False
    return subscription.canceled_at > period.start


def subscription_contribution(subscription: Subscription, period: Period) -> float:
    """Amount the subscription contributes to the period (0.0 if none)."""
    if not contributes(subscription, period):
        return 0.0
    return monthly_equivalent(subscription.plan)


def contributing_subscriptions(
    subscriptions: Iterable[Subscription],
    period: Period,
) -> list[Subscription]:
    """Subset of subscriptions contributing to the period, in input order."""
    return [s for s in subscriptions if contributes(s, period)]


def monthly_recurring_revenue(
    subscriptions: Iterable[Subscription],
    as_of: date,
) -> float:
    """
    Monthly recurring revenue (MRR) as of a date.

    Sum of monthly equivalents of active subscriptions that have started on
    or before `as_of`.
    """
    return sum(
        monthly_equivalent(s.plan)
        for s in subscriptions
        if s.status == "active" and s.start_date <= as_of
    )
