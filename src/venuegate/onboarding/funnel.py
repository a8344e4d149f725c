"""Onboarding funnel and dashboard aggregates for the admin view."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Iterable

from venuegate.onboarding.progress import OnboardingStatus


@dataclass(frozen=True)
class UserStats:
    """One row of the backend's per-user statistics view."""

    user_id: str
    email: str
    signup_date: datetime
    full_name: str | None = None
    role: str | None = None
    venue_count: int = 0
    total_events: int = 0
    total_revenue: float = 0.0
    tickets_sold: int = 0
    onboarding_status: OnboardingStatus = OnboardingStatus.PROFILE_INCOMPLETE
    last_activity: datetime | None = None


@dataclass(frozen=True)
class FunnelSummary:
    total_signups: int
    profile_complete: int
    venue_added: int
    events_reported: int
    fully_complete: int


@dataclass(frozen=True)
class DashboardSummary:
    total_users: int
    active_users: int
    new_signups_this_week: int
    new_signups_this_month: int
    onboarding_completion_rate: float
    average_events_per_user: float
    total_venues: int
    total_events: int
    total_revenue: float
    average_ticket_price: float


def safe_ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``, clamped to 0.0 when there is nothing to divide by."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def average_ticket_price(total_revenue: float, tickets_sold: int) -> float:
    return safe_ratio(total_revenue, tickets_sold)


def summarize_funnel(stats: Iterable[UserStats]) -> FunnelSummary:
    rows = list(stats)
    return FunnelSummary(
        total_signups=len(rows),
        profile_complete=sum(1 for r in rows if r.full_name and r.role),
        venue_added=sum(1 for r in rows if r.venue_count > 0),
        events_reported=sum(1 for r in rows if r.total_events > 0),
        fully_complete=sum(1 for r in rows if r.onboarding_status is OnboardingStatus.COMPLETE),
    )


def summarize_dashboard(stats: Iterable[UserStats], now: datetime | None = None) -> DashboardSummary:
    """Headline numbers for the admin dashboard.

    "Active" means any activity in the last 30 days; a month is 30 days.
    """
    rows = list(stats)
    now = now or datetime.now(UTC)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    total_users = len(rows)
    complete = sum(1 for r in rows if r.onboarding_status is OnboardingStatus.COMPLETE)
    total_events = sum(r.total_events for r in rows)
    total_revenue = sum(r.total_revenue for r in rows)
    tickets = sum(r.tickets_sold for r in rows)

    return DashboardSummary(
        total_users=total_users,
        active_users=sum(1 for r in rows if r.last_activity and r.last_activity > month_ago),
        new_signups_this_week=sum(1 for r in rows if r.signup_date > week_ago),
        new_signups_this_month=sum(1 for r in rows if r.signup_date > month_ago),
        onboarding_completion_rate=safe_ratio(complete, total_users) * 100,
        average_events_per_user=safe_ratio(total_events, total_users),
        total_venues=sum(r.venue_count for r in rows),
        total_events=total_events,
        total_revenue=total_revenue,
        average_ticket_price=average_ticket_price(total_revenue, tickets),
    )
