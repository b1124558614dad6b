"""
Membership Report Pipeline
==========================
Turns a CSV export of tier memberships into a tier-by-month
active member report.

Stages:
1. Loader - Parse membership rows into Records
2. Price Classifier - Min/max observed price per tier
3. Monthly Aggregator - Bucket members by month, project annual subscriptions
4. Report Writer - Pivot to one row per tier, one column per month

Usage:
    python -m src.membership_report.run_pipeline members.csv report.csv
"""

from .stage1_loader import MembershipLoader, MembershipParseError, Record
from .stage2_price_classifier import PriceRange, TierPriceClassifier, is_annual
from .stage3_monthly_aggregator import AnnualSubscription, MonthlyAggregator, TierStats
from .stage4_report_writer import ReportWriter

__all__ = [
    # Pipeline stages
    'MembershipLoader',
    'TierPriceClassifier',
    'MonthlyAggregator',
    'ReportWriter',
    # Data model
    'Record',
    'PriceRange',
    'AnnualSubscription',
    'TierStats',
    'MembershipParseError',
    'is_annual',
]
