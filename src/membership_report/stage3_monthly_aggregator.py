"""
Stage 3: Monthly Aggregator
===========================
Buckets members by (month, tier) and projects annual subscriptions
forward.

Pass 1 (direct observation):
    Every record adds its member to the record's own month. Records paid
    above the tier minimum are annual and start an AnnualSubscription.

Pass 2 (forward projection):
    Every annual subscriber is also counted in the 11 months following
    the start month. The start month itself was counted in pass 1.

Overlapping renewals for the same member and tier collapse through set
union, so a member is counted at most once per (month, tier).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

import pandas as pd

from .stage1_loader import Record
from .stage2_price_classifier import PriceRange, is_annual

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnnualSubscription:
    """Twelve-month commitment inferred from an above-minimum payment."""
    start_month: pd.Period
    username: str
    tier: str


@dataclass
class TierStats:
    """Distinct members active in one tier during one month."""
    members: Set[str] = field(default_factory=set)
    annuals: Set[str] = field(default_factory=set)


# "YYYY-MM" -> tier -> stats
MonthlyIndex = Dict[str, Dict[str, TierStats]]


def month_key(period: pd.Period) -> str:
    """Format a monthly period as a sortable 'YYYY-MM' key."""
    return f"{period.year:04d}-{period.month:02d}"


class MonthlyAggregator:
    """
    Builds the month -> tier -> TierStats index.

    Each call to run() starts from an empty index; nothing is shared
    between runs.
    """

    def __init__(self, projection_months: int = 11):
        """
        Parameters
        ----------
        projection_months : int
            Months after the start month an annual subscriber stays active
            (default: 11)
        """
        if projection_months < 0:
            raise ValueError(f"projection_months must be >= 0, got {projection_months}")
        self.projection_months = projection_months
        self.annual_subscriptions: List[AnnualSubscription] = []

    def run(
        self,
        records: Iterable[Record],
        price_ranges: Dict[str, PriceRange]
    ) -> MonthlyIndex:
        """
        Aggregate records into the monthly index.

        Parameters
        ----------
        records : Iterable[Record]
            Loaded membership records
        price_ranges : Dict[str, PriceRange]
            Output of TierPriceClassifier.run for the same records

        Returns
        -------
        MonthlyIndex
            Unordered mapping of 'YYYY-MM' -> tier -> TierStats
        """
        logger.info("Stage 3: Aggregating monthly membership")

        index: MonthlyIndex = {}

        annual_subscriptions = self._observe(records, price_ranges, index)
        observed_months = len(index)
        logger.info(f"  - Observed {observed_months:,} months")
        logger.info(f"  - Annual subscriptions detected: {len(annual_subscriptions):,}")

        self._project(annual_subscriptions, index)
        logger.info(f"  - Months after projection: {len(index):,} "
                    f"({len(index) - observed_months:,} added by projection)")

        self.annual_subscriptions = annual_subscriptions
        return index

    def _observe(
        self,
        records: Iterable[Record],
        price_ranges: Dict[str, PriceRange],
        index: MonthlyIndex
    ) -> List[AnnualSubscription]:
        """Pass 1: count each record in its own month, collect annual starts."""
        annual_subscriptions = []

        for record in records:
            period = pd.Period(year=record.date.year, month=record.date.month, freq='M')
            stats = self._stats_for(index, month_key(period), record.tier)
            stats.members.add(record.username)

            if is_annual(record, price_ranges):
                stats.annuals.add(record.username)
                annual_subscriptions.append(AnnualSubscription(
                    start_month=period,
                    username=record.username,
                    tier=record.tier
                ))

        return annual_subscriptions

    def _project(
        self,
        annual_subscriptions: Iterable[AnnualSubscription],
        index: MonthlyIndex
    ):
        """Pass 2: mark annual subscribers active in the following months."""
        for subscription in annual_subscriptions:
            for offset in range(1, self.projection_months + 1):
                key = month_key(subscription.start_month + offset)
                stats = self._stats_for(index, key, subscription.tier)
                stats.members.add(subscription.username)
                stats.annuals.add(subscription.username)

    @staticmethod
    def _stats_for(index: MonthlyIndex, key: str, tier: str) -> TierStats:
        return index.setdefault(key, {}).setdefault(tier, TierStats())
