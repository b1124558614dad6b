"""
Membership Report Runner
========================
Runs all 4 stages of the membership report pipeline sequentially.

Usage:
    python -m src.membership_report.run_pipeline members.csv report.csv
    python -m src.membership_report.run_pipeline members.csv annuals.csv --metric annuals

The report is built entirely in memory and only written once every
stage has succeeded.
"""

import argparse
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence

from .stage1_loader import MembershipLoader
from .stage2_price_classifier import TierPriceClassifier
from .stage3_monthly_aggregator import MonthlyAggregator
from .stage4_report_writer import ReportWriter

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Pipeline configuration."""
    input_path: Path
    output_path: Path

    # Months after the start month an annual subscriber stays active
    projection_months: int = 11

    # 'members' or 'annuals'
    metric: str = 'members'

    def __post_init__(self):
        self.input_path = Path(self.input_path)
        self.output_path = Path(self.output_path)
        if self.projection_months < 0:
            raise ValueError(f"projection_months must be >= 0, got {self.projection_months}")
        if self.metric not in ReportWriter.METRICS:
            raise ValueError(f"metric must be one of {ReportWriter.METRICS}, got {self.metric!r}")


def run_full_pipeline(config: PipelineConfig) -> Dict:
    """
    Run the complete membership report pipeline.

    Parameters
    ----------
    config : PipelineConfig
        Input/output paths and pipeline options

    Returns
    -------
    Dict
        Intermediate outputs of every stage, keyed by stage name
    """
    logger.info("=" * 60)
    logger.info("Membership Report Pipeline")
    logger.info("=" * 60)

    total_start = time.time()

    records = MembershipLoader().run(config.input_path)
    price_ranges = TierPriceClassifier().run(records)

    aggregator = MonthlyAggregator(projection_months=config.projection_months)
    index = aggregator.run(records, price_ranges)

    writer = ReportWriter(metric=config.metric)
    report_df = writer.run(index)
    writer.save(report_df, config.output_path)

    logger.info(f"Pipeline complete in {time.time() - total_start:.2f}s")

    return {
        'records': records,
        'price_ranges': price_ranges,
        'annual_subscriptions': aggregator.annual_subscriptions,
        'index': index,
        'report': report_df
    }


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(
        description='Build a tier-by-month active member report from a membership CSV export'
    )
    parser.add_argument('input', type=Path, help='Membership CSV export')
    parser.add_argument('output', type=Path, help='Report CSV to write')
    parser.add_argument(
        '--metric',
        choices=ReportWriter.METRICS,
        default='members',
        help='Count all active members or only annual subscribers (default: members)'
    )
    parser.add_argument(
        '--projection-months',
        type=int,
        default=11,
        help='Months an annual subscription stays active after its start month (default: 11)'
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    config = PipelineConfig(
        input_path=args.input,
        output_path=args.output,
        projection_months=args.projection_months,
        metric=args.metric
    )
    run_full_pipeline(config)


if __name__ == '__main__':
    main()
