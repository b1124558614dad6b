"""
Stage 4: Report Writer
======================
Pivots the monthly index into one row per tier and one column per month.

Output layout:
    Tier,January 2024,February 2024,...
    Gold,2,1,...
    Silver,0,3,...

Tiers are sorted case-insensitively (lowercase first on ties), months
chronologically. Missing (tier, month) pairs are reported as 0.
"""

import logging
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np
import pandas as pd

from .stage3_monthly_aggregator import MonthlyIndex

logger = logging.getLogger(__name__)

# English names regardless of the host locale
MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December'
]


def month_label(key: str) -> str:
    """'2024-03' -> 'March 2024'."""
    year, month = key.split('-')
    return f"{MONTH_NAMES[int(month) - 1]} {int(year):04d}"


def tier_sort_key(tier: str) -> Tuple[str, str]:
    """Case-insensitive order, lowercase first on ties: a, A, b, B."""
    return tier.casefold(), tier.swapcase()


class ReportWriter:
    """Builds and saves the tier-by-month report."""

    TIER_COLUMN = 'Tier'
    METRICS = ('members', 'annuals')

    def __init__(self, metric: str = 'members'):
        """
        Parameters
        ----------
        metric : str
            'members' counts every active member (default), 'annuals'
            counts only members known to be on an annual subscription
        """
        if metric not in self.METRICS:
            raise ValueError(f"metric must be one of {self.METRICS}, got {metric!r}")
        self.metric = metric

    def run(self, index: MonthlyIndex) -> pd.DataFrame:
        """
        Build the report table.

        Parameters
        ----------
        index : MonthlyIndex
            Output of MonthlyAggregator.run

        Returns
        -------
        pd.DataFrame
            'Tier' column followed by one integer column per month
        """
        logger.info(f"Stage 4: Building report ({self.metric})")

        months = sorted(index)
        tiers = self._collect_tiers(index)

        counts = np.zeros((len(tiers), len(months)), dtype=np.int64)
        tier_positions = {tier: i for i, tier in enumerate(tiers)}
        for j, key in enumerate(months):
            for tier, stats in index[key].items():
                counts[tier_positions[tier], j] = len(getattr(stats, self.metric))

        report_df = pd.DataFrame(counts, columns=[month_label(key) for key in months])
        report_df.insert(0, self.TIER_COLUMN, tiers)

        logger.info(f"  - {len(tiers):,} tiers x {len(months):,} months")
        return report_df

    def save(self, report_df: pd.DataFrame, filepath: Union[str, Path]):
        """Write the report as CSV with '\\n' line endings."""
        filepath = Path(filepath)
        report_df.to_csv(filepath, index=False, lineterminator='\n')
        logger.info(f"Saved report to: {filepath}")

    @staticmethod
    def _collect_tiers(index: MonthlyIndex) -> List[str]:
        tiers = set()
        for by_tier in index.values():
            tiers.update(by_tier)
        return sorted(tiers, key=tier_sort_key)
