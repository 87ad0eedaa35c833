"""Sanity scoring: MAD-based outlier detection for incoming wage reports.

The candidate hourly rate is compared against the first reference population
with enough approved reports:

1. the report's location (>= MIN_SAMPLE_SIZE approved reports)
2. the location's organization across all its locations
3. no population: absolute bounds only (MIN/MAX_HOURLY_CENTS)

The scorer never touches storage directly; populations come from a
StatsProvider (see wage_stats_provider.SqlStatsProvider for the SQL one).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from wdtp.models.enums import WageReportStatus
from wdtp.services.errors import StatsUnavailableError
from wdtp.services.wage_normalizer import within_global_bounds

logger = logging.getLogger(__name__)

K_MAD = 6
MIN_SAMPLE_SIZE = 3

NORMAL_RATIO = 1.5
MODERATE_RATIO = 3

SCORE_NORMAL = 5
SCORE_SLIGHT_CONCERN = 0
SCORE_MODERATE_OUTLIER = -2
SCORE_STRONG_OUTLIER = -5

MIN_SCORE = -5
MAX_SCORE = 5

SUSPICIOUSLY_HIGH_CENTS = 10000  # > $100/hour
SUSPICIOUSLY_LOW_CENTS = 725  # < $7.25/hour, federal minimum


class ScopeKind(str, Enum):
    LOCATION = "location"
    ORGANIZATION = "organization"


class ScoringTier(str, Enum):
    LOCATION = "location"
    ORGANIZATION = "organization"
    GLOBAL_BOUNDS = "global_bounds"
    UNAVAILABLE = "unavailable"  # provider failed, report held for moderation


@dataclass(frozen=True)
class StatsScope:
    kind: ScopeKind
    entity_id: int
    exclude_report_id: int | None = None


@dataclass(frozen=True)
class StatsSnapshot:
    """Median and MAD of approved normalized hourly rates for one scope.

    Median and MAD follow continuous-percentile semantics, so for an even
    sample size they can land on a half cent.
    """

    sample_size: int
    median_hourly_cents: float
    mad_hourly_cents: float

    @property
    def is_sufficient(self) -> bool:
        return self.sample_size >= MIN_SAMPLE_SIZE


EMPTY_SNAPSHOT = StatsSnapshot(sample_size=0, median_hourly_cents=0, mad_hourly_cents=0)


class StatsProvider(Protocol):
    def get_stats(self, scope: StatsScope) -> StatsSnapshot:
        ...


@dataclass
class ReferencePopulation:
    """The peer population a candidate is scored against.

    ``exclude_report_id`` keeps a report out of its own population when it is
    being rescored after an update.
    """

    provider: StatsProvider
    location_id: int | None
    organization_id: int | None = None
    exclude_report_id: int | None = None

    def location_stats(self) -> StatsSnapshot:
        if self.location_id is None:
            return EMPTY_SNAPSHOT
        return self._fetch(ScopeKind.LOCATION, self.location_id)

    def organization_stats(self) -> StatsSnapshot:
        if self.organization_id is None:
            return EMPTY_SNAPSHOT
        return self._fetch(ScopeKind.ORGANIZATION, self.organization_id)

    def _fetch(self, kind: ScopeKind, entity_id: int) -> StatsSnapshot:
        scope = StatsScope(kind=kind, entity_id=entity_id, exclude_report_id=self.exclude_report_id)
        try:
            return self.provider.get_stats(scope)
        except StatsUnavailableError:
            raise
        except Exception as e:
            raise StatsUnavailableError(f"Statistics unavailable for {kind.value} {entity_id}: {e}") from e


@dataclass(frozen=True)
class ScoreResult:
    score: int
    tier: ScoringTier
    snapshot: StatsSnapshot | None = None

    @property
    def status(self) -> WageReportStatus:
        return implied_status(self.score)


def implied_status(score: int) -> WageReportStatus:
    return WageReportStatus.APPROVED if score >= 0 else WageReportStatus.PENDING


def mad_score(candidate_cents: int, snapshot: StatsSnapshot) -> int:
    """Score a candidate against a population's median and MAD."""
    median = snapshot.median_hourly_cents
    mad = snapshot.mad_hourly_cents
    deviation = abs(candidate_cents - median)

    if mad == 0:
        # Zero spread: exact match is normal, anything else is a slight concern
        return SCORE_NORMAL if deviation == 0 else SCORE_SLIGHT_CONCERN

    ratio = deviation / mad
    if ratio > K_MAD:
        return SCORE_STRONG_OUTLIER
    if ratio > MODERATE_RATIO:
        return SCORE_MODERATE_OUTLIER
    if ratio > NORMAL_RATIO:
        return SCORE_SLIGHT_CONCERN
    return SCORE_NORMAL


def global_bounds_score(candidate_cents: int) -> int:
    return SCORE_NORMAL if within_global_bounds(candidate_cents) else SCORE_STRONG_OUTLIER


def score(candidate_cents: int, population: ReferencePopulation) -> ScoreResult:
    """Compute the sanity score for ``candidate_cents``.

    The organization population is only queried when the location population
    is too small. Raises StatsUnavailableError if the provider fails.
    """
    location_stats = population.location_stats()
    if location_stats.is_sufficient:
        return ScoreResult(mad_score(candidate_cents, location_stats), ScoringTier.LOCATION, location_stats)

    organization_stats = population.organization_stats()
    if organization_stats.is_sufficient:
        return ScoreResult(
            mad_score(candidate_cents, organization_stats), ScoringTier.ORGANIZATION, organization_stats,
        )

    logger.debug(
        f"No population for location={population.location_id} org={population.organization_id} "
        f"(samples {location_stats.sample_size}/{organization_stats.sample_size}), using global bounds"
    )
    return ScoreResult(global_bounds_score(candidate_cents), ScoringTier.GLOBAL_BOUNDS)


def is_outlier(sanity_score: int) -> bool:
    return sanity_score < SCORE_MODERATE_OUTLIER


def is_suspiciously_high(hourly_cents: int) -> bool:
    return hourly_cents > SUSPICIOUSLY_HIGH_CENTS


def is_suspiciously_low(hourly_cents: int) -> bool:
    return hourly_cents < SUSPICIOUSLY_LOW_CENTS
