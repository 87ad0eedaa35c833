"""Tests for the SQL statistics provider and its median/MAD helpers."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from wdtp.models import WageReport
from wdtp.services.errors import StatsUnavailableError
from wdtp.services.sanity_scorer import ScopeKind, StatsScope
from wdtp.services.wage_stats_provider import (
    SqlStatsProvider,
    median,
    median_absolute_deviation,
    snapshot_from_values,
)


def add_report(db, location, hourly_cents, status="approved", deleted=False):
    report = WageReport(
        location_id=location.id,
        organization_id=location.organization_id,
        job_title="Barista",
        wage_period="hourly",
        amount_cents=hourly_cents,
        normalized_hourly_cents=hourly_cents,
        sanity_score=5 if status == "approved" else -5,
        status=status,
        deleted_at=datetime.now(timezone.utc) if deleted else None,
    )
    db.add(report)
    db.commit()
    return report


def test_median_odd_and_even():
    assert median([1500, 1400, 1600]) == 1500
    assert median([1400, 1500, 1600, 1700]) == 1550


def test_median_empty():
    assert median([]) == 0


def test_mad():
    # median 1550, deviations 50, 50, 150, 7450 -> MAD 100
    assert median_absolute_deviation([1500, 1600, 1400, 9000]) == 100


def test_snapshot_from_values():
    snap = snapshot_from_values([1500, 1600, 1400])
    assert snap.sample_size == 3
    assert snap.median_hourly_cents == 1500
    assert snap.mad_hourly_cents == 100
    assert snap.is_sufficient


def test_snapshot_from_no_values():
    snap = snapshot_from_values([])
    assert snap.sample_size == 0
    assert not snap.is_sufficient


def test_location_population_only_counts_approved_live_reports(db, make_location):
    location = make_location()
    add_report(db, location, 1500)
    add_report(db, location, 1600)
    add_report(db, location, 1400)
    add_report(db, location, 9000, status="pending")
    add_report(db, location, 1000, status="rejected")
    add_report(db, location, 1550, deleted=True)

    snap = SqlStatsProvider(db).get_stats(StatsScope(ScopeKind.LOCATION, location.id))

    assert snap.sample_size == 3
    assert snap.median_hourly_cents == 1500
    assert snap.mad_hourly_cents == 100


def test_organization_population_spans_locations(db, make_organization, make_location):
    org = make_organization()
    first = make_location(org, "First Ave")
    second = make_location(org, "Second Ave")
    add_report(db, first, 1500)
    add_report(db, second, 1700)
    add_report(db, second, 1900)

    snap = SqlStatsProvider(db).get_stats(StatsScope(ScopeKind.ORGANIZATION, org.id))

    assert snap.sample_size == 3
    assert snap.median_hourly_cents == 1700


def test_excluded_report_is_left_out(db, make_location):
    location = make_location()
    keep = [add_report(db, location, cents) for cents in (1500, 1600, 1400)]
    updating = add_report(db, location, 5000)

    scope = StatsScope(ScopeKind.LOCATION, location.id, exclude_report_id=updating.id)
    snap = SqlStatsProvider(db).get_stats(scope)

    assert snap.sample_size == len(keep)
    assert snap.median_hourly_cents == 1500


def test_empty_location(db, make_location):
    location = make_location()
    snap = SqlStatsProvider(db).get_stats(StatsScope(ScopeKind.LOCATION, location.id))
    assert snap.sample_size == 0


def test_query_failure_raises_stats_unavailable_and_keeps_transaction(db, make_location, monkeypatch):
    location = make_location()
    provider = SqlStatsProvider(db)

    def failing(scope):
        raise OperationalError("SELECT ...", {}, Exception("disk I/O error"))

    monkeypatch.setattr(provider, "_portable_stats", failing)

    with pytest.raises(StatsUnavailableError):
        provider.get_stats(StatsScope(ScopeKind.LOCATION, location.id))

    # The outer transaction is still usable after the savepoint rolled back
    add_report(db, location, 1500)
    assert db.query(WageReport).count() == 1
