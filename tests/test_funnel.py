"""Tests for admin funnel and dashboard aggregates."""

from datetime import UTC, datetime, timedelta

import pytest

from venuegate.onboarding.funnel import (
    UserStats,
    average_ticket_price,
    safe_ratio,
    summarize_dashboard,
    summarize_funnel,
)
from venuegate.onboarding.progress import OnboardingStatus

NOW = datetime(2026, 3, 1, tzinfo=UTC)


def row(user_id: str, days_ago: int, **kwargs) -> UserStats:
    return UserStats(
        user_id=user_id,
        email=f"{user_id}@example.com",
        signup_date=NOW - timedelta(days=days_ago),
        **kwargs,
    )


@pytest.fixture
def stats() -> list[UserStats]:
    return [
        row("a", 2),
        row("b", 10, full_name="B", role="booker", venue_count=1,
            onboarding_status=OnboardingStatus.EVENTS_NEEDED, last_activity=NOW - timedelta(days=1)),
        row("c", 40, full_name="C", role="venue_manager", venue_count=2, total_events=4,
            total_revenue=400.0, tickets_sold=20, onboarding_status=OnboardingStatus.COMPLETE,
            last_activity=NOW - timedelta(days=45)),
    ]


def test_safe_ratio_clamps_zero_denominator():
    assert safe_ratio(5, 0) == 0.0
    assert safe_ratio(1, 4) == 0.25


def test_average_ticket_price_without_sales():
    assert average_ticket_price(120.0, 0) == 0.0


def test_summarize_funnel(stats):
    funnel = summarize_funnel(stats)
    assert funnel.total_signups == 3
    assert funnel.profile_complete == 2
    assert funnel.venue_added == 2
    assert funnel.events_reported == 1
    assert funnel.fully_complete == 1


def test_summarize_dashboard(stats):
    summary = summarize_dashboard(stats, now=NOW)
    assert summary.total_users == 3
    assert summary.active_users == 1
    assert summary.new_signups_this_week == 1
    assert summary.new_signups_this_month == 2
    assert summary.onboarding_completion_rate == pytest.approx(100 / 3)
    assert summary.average_events_per_user == pytest.approx(4 / 3)
    assert summary.total_venues == 3
    assert summary.total_revenue == 400.0
    assert summary.average_ticket_price == 20.0


def test_empty_dashboard_has_no_division_errors():
    summary = summarize_dashboard([], now=NOW)
    assert summary.total_users == 0
    assert summary.onboarding_completion_rate == 0.0
    assert summary.average_events_per_user == 0.0
    assert summary.average_ticket_price == 0.0
