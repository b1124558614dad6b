"""
Evaluation Script for the Membership Report
===========================================
Checks a produced tier-by-month report for structural consistency.

Metrics:
- Tier and month coverage
- Ordering of tier rows and month columns
- Count validity (integer, non-negative)

Usage:
    python evals/eval_report.py report.csv
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.membership_report.stage4_report_writer import MONTH_NAMES, tier_sort_key


def parse_month_label(label: str) -> tuple:
    """'March 2024' -> (2024, 3)."""
    name, year = label.rsplit(' ', 1)
    return int(year), MONTH_NAMES.index(name) + 1


def evaluate_report(report_df: pd.DataFrame) -> Dict[str, Any]:
    """
    Evaluate report structure.

    Returns metrics on coverage, ordering, and count validity.
    """
    metrics = {}

    tiers: List[str] = [str(t) for t in report_df['Tier']]
    month_columns = [c for c in report_df.columns if c != 'Tier']
    months = [parse_month_label(c) for c in month_columns]
    counts = report_df[month_columns].to_numpy()

    # Coverage
    metrics['num_tiers'] = len(tiers)
    metrics['num_months'] = len(months)
    metrics['first_month'] = month_columns[0] if month_columns else None
    metrics['last_month'] = month_columns[-1] if month_columns else None
    metrics['total_member_months'] = int(counts.sum()) if counts.size else 0

    # Ordering
    tier_keys = [tier_sort_key(t) for t in tiers]
    metrics['tiers_sorted'] = all(a < b for a, b in zip(tier_keys, tier_keys[1:]))
    metrics['months_sorted'] = all(a < b for a, b in zip(months, months[1:]))

    # Counts
    metrics['negative_counts'] = int((counts < 0).sum()) if counts.size else 0
    metrics['empty_tiers'] = int((counts.sum(axis=1) == 0).sum()) if counts.size else 0
    if counts.size:
        metrics['peak_month'] = month_columns[int(np.argmax(counts.sum(axis=0)))]

    # Quality score (0-100)
    quality_score = 100
    if not metrics['tiers_sorted']:
        quality_score -= 30
    if not metrics['months_sorted']:
        quality_score -= 30
    if metrics['negative_counts'] > 0:
        quality_score -= 30
    if metrics['empty_tiers'] > 0:
        quality_score -= 10
    metrics['quality_score'] = max(0, quality_score)

    return metrics


def load_report(filepath: Path) -> pd.DataFrame:
    """Read a report CSV with tier names kept as text."""
    return pd.read_csv(filepath, dtype={'Tier': str}, keep_default_na=False)


def print_report_metrics(metrics: Dict[str, Any]):
    print("=" * 60)
    print("Membership Report Evaluation")
    print("=" * 60)
    print(f"  Tiers: {metrics['num_tiers']:,}")
    print(f"  Months: {metrics['num_months']:,} ({metrics['first_month']} - {metrics['last_month']})")
    print(f"  Member-months: {metrics['total_member_months']:,}")
    print(f"  Tiers sorted: {metrics['tiers_sorted']}")
    print(f"  Months sorted: {metrics['months_sorted']}")
    print(f"  Quality Score: {metrics['quality_score']}/100")


def main():
    parser = argparse.ArgumentParser(description='Evaluate a membership report CSV')
    parser.add_argument('report', type=Path, help='Report CSV produced by the pipeline')
    parser.add_argument('--json', type=Path, default=None, help='Optional path for JSON results')
    args = parser.parse_args()

    metrics = evaluate_report(load_report(args.report))
    print_report_metrics(metrics)

    if args.json is not None:
        with open(args.json, 'w') as f:
            json.dump(metrics, f, indent=2, default=str)
        print(f"\nResults saved to: {args.json}")

    return metrics


if __name__ == '__main__':
    main()
