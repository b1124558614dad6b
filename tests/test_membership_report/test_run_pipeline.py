"""
Tests for the Membership Report Runner
======================================
End-to-end scenarios through all 4 stages.
"""

import pytest
import pandas as pd
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.membership_report.run_pipeline import PipelineConfig, main, run_full_pipeline
from src.membership_report.stage1_loader import MembershipParseError
from src.membership_report.stage4_report_writer import MONTH_NAMES, tier_sort_key


def run(input_path, output_path, **kwargs):
    return run_full_pipeline(PipelineConfig(input_path=input_path, output_path=output_path, **kwargs))


class TestScenarios:
    """End-to-end report scenarios."""

    def test_gold_scenario(self, gold_scenario_csv, temp_dir):
        """Test annual bob is projected through December but not into next January."""
        output_path = temp_dir / 'report.csv'
        run(gold_scenario_csv, output_path)

        lines = output_path.read_text().splitlines()
        assert lines[0] == 'Tier,' + ','.join(f'{name} 2024' for name in MONTH_NAMES)
        # Jan: alice + bob, Feb: alice + projected bob, Mar-Dec: projected bob
        assert lines[1] == 'Gold,2,2,1,1,1,1,1,1,1,1,1,1'
        assert len(lines) == 2
        assert 'January 2025' not in lines[0]

    def test_single_record_tier(self, write_csv, temp_dir):
        path = write_csv(
            "Date,Triber Username,Tier Price,Tier\n"
            "2024-04-09,alice,99,Solo\n"
        )
        output_path = temp_dir / 'report.csv'
        outputs = run(path, output_path)

        assert outputs['annual_subscriptions'] == []
        assert output_path.read_text() == 'Tier,April 2024\nSolo,1\n'

    def test_header_only_input(self, write_csv, temp_dir):
        path = write_csv("Date,Triber Username,Tier Price,Tier\n")
        output_path = temp_dir / 'report.csv'
        run(path, output_path)

        assert output_path.read_text() == 'Tier\n'

    def test_annuals_metric(self, gold_scenario_csv, temp_dir):
        output_path = temp_dir / 'annuals.csv'
        run(gold_scenario_csv, output_path, metric='annuals')

        lines = output_path.read_text().splitlines()
        assert lines[1] == 'Gold,1,1,1,1,1,1,1,1,1,1,1,1'


class TestReportProperties:
    """Structural properties on synthetic exports."""

    def test_ordering(self, mini_members_csv, temp_dir):
        output_path = temp_dir / 'report.csv'
        outputs = run(mini_members_csv, output_path)
        report_df = outputs['report']

        tiers = list(report_df['Tier'])
        assert tiers == sorted(tiers, key=tier_sort_key)
        assert len(set(tiers)) == len(tiers)

        months = list(outputs['index'])
        assert len(report_df.columns) == len(months) + 1
        parsed = [pd.Period(key, freq='M') for key in sorted(months)]
        assert all(a < b for a, b in zip(parsed, parsed[1:]))

    def test_idempotent(self, mini_members_csv, temp_dir):
        """Test two runs on the same input produce identical bytes."""
        first = temp_dir / 'first.csv'
        second = temp_dir / 'second.csv'
        run(mini_members_csv, first)
        run(mini_members_csv, second)

        assert first.read_bytes() == second.read_bytes()

    def test_counts_match_index(self, mini_members_csv, temp_dir):
        outputs = run(mini_members_csv, temp_dir / 'report.csv')
        report_df = outputs['report'].set_index('Tier')

        for key, by_tier in outputs['index'].items():
            year, month = key.split('-')
            label = f"{MONTH_NAMES[int(month) - 1]} {year}"
            for tier, stats in by_tier.items():
                assert report_df.loc[tier, label] == len(stats.members)


class TestFailures:
    """Fail-fast behaviour."""

    def test_parse_error_writes_nothing(self, write_csv, temp_dir):
        path = write_csv(
            "Date,Triber Username,Tier Price,Tier\n"
            "2024-01-01,alice,abc,Gold\n"
        )
        output_path = temp_dir / 'report.csv'

        with pytest.raises(MembershipParseError):
            run(path, output_path)
        assert not output_path.exists()

    def test_missing_input(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            run(temp_dir / 'missing.csv', temp_dir / 'report.csv')

    def test_invalid_config(self, temp_dir):
        with pytest.raises(ValueError):
            PipelineConfig(input_path=temp_dir / 'a.csv', output_path=temp_dir / 'b.csv', metric='revenue')
        with pytest.raises(ValueError):
            PipelineConfig(input_path=temp_dir / 'a.csv', output_path=temp_dir / 'b.csv', projection_months=-2)


class TestCommandLine:
    """Tests for main()."""

    def test_usage_error(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(['only_input.csv'])

        assert exc_info.value.code == 2
        assert 'usage' in capsys.readouterr().err

    def test_writes_report(self, gold_scenario_csv, temp_dir):
        output_path = temp_dir / 'report.csv'
        main([str(gold_scenario_csv), str(output_path), '--log-level', 'WARNING'])

        assert output_path.read_text().splitlines()[1].startswith('Gold,2,2,1')

    def test_projection_months_option(self, gold_scenario_csv, temp_dir):
        output_path = temp_dir / 'report.csv'
        main([str(gold_scenario_csv), str(output_path), '--projection-months', '0'])

        assert output_path.read_text() == 'Tier,January 2024,February 2024\nGold,2,1\n'
