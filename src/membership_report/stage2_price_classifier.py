"""
Stage 2: Tier Price Classifier
==============================
Computes the minimum and maximum price observed for each tier.

A payment above its tier's minimum price is treated as an annual
subscription; a payment at the minimum is the monthly base price.

Known limitation: if a tier name is reused later with a different
pricing scheme, the all-time minimum is still used and later payments
can be misclassified.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

from .stage1_loader import Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceRange:
    """Observed price bounds for a tier."""
    min: Decimal
    max: Decimal


class TierPriceClassifier:
    """Streaming min/max fold over membership records."""

    def run(self, records: Iterable[Record]) -> Dict[str, PriceRange]:
        """
        Parameters
        ----------
        records : Iterable[Record]
            Loaded membership records

        Returns
        -------
        Dict[str, PriceRange]
            Tier name -> observed price range
        """
        logger.info("Stage 2: Classifying tier prices")

        ranges: Dict[str, PriceRange] = {}
        for record in records:
            current = ranges.get(record.tier)
            if current is None:
                ranges[record.tier] = PriceRange(min=record.price, max=record.price)
            elif record.price < current.min:
                ranges[record.tier] = PriceRange(min=record.price, max=current.max)
            elif record.price > current.max:
                ranges[record.tier] = PriceRange(min=current.min, max=record.price)

        for tier in sorted(ranges):
            price_range = ranges[tier]
            logger.debug(f"  - {tier}: min={price_range.min} max={price_range.max}")
        logger.info(f"  - Price ranges for {len(ranges):,} tiers")

        return ranges


def is_annual(record: Record, price_ranges: Dict[str, PriceRange]) -> bool:
    """True when the record was paid above its tier's minimum price."""
    return record.price > price_ranges[record.tier].min
