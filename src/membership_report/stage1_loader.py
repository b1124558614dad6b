"""
Stage 1: Membership Loader
==========================
Reads the membership export into immutable Records.

Input columns (matched case-insensitively, any order, extras ignored):
- Date
- Triber Username
- Tier Price
- Tier

Any row that cannot be parsed aborts the run.
"""

import csv
import re
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Invariant decimal: optional sign, '.' separator, no grouping, no exponent
PRICE_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')


@dataclass(frozen=True)
class Record:
    """One membership payment row."""
    date: date
    username: str
    price: Decimal
    tier: str


class MembershipParseError(ValueError):
    """Raised when a membership row cannot be turned into a Record."""

    def __init__(self, message: str, row: int, column: str):
        super().__init__(f"Row {row}, column '{column}': {message}")
        self.row = row
        self.column = column


class MembershipLoader:
    """
    Loads membership rows from a CSV export.

    Every field is read as text and parsed explicitly so that dates and
    prices are interpreted the same way regardless of the host locale.
    """

    DATE_COLUMN = 'Date'
    USERNAME_COLUMN = 'Triber Username'
    PRICE_COLUMN = 'Tier Price'
    TIER_COLUMN = 'Tier'

    REQUIRED_COLUMNS = [DATE_COLUMN, USERNAME_COLUMN, PRICE_COLUMN, TIER_COLUMN]

    def run(self, filepath: Union[str, Path]) -> List[Record]:
        """
        Parse every data row of the file.

        Parameters
        ----------
        filepath : str or Path
            Membership CSV export

        Returns
        -------
        List[Record]
            One Record per data row, in file order
        """
        filepath = Path(filepath)
        logger.info(f"Stage 1: Loading memberships from {filepath}")

        df = pd.read_csv(filepath, dtype=str, keep_default_na=False)
        columns = self._resolve_columns(df)

        if len(df) == 0:
            logger.info("  - No data rows found")
            return []

        missing = [name for name in self.REQUIRED_COLUMNS if name not in columns]
        if missing:
            raise MembershipParseError(
                f"required column missing (found {list(df.columns)})",
                row=1,
                column=missing[0]
            )

        positions = {name: list(df.columns).index(columns[name]) for name in self.REQUIRED_COLUMNS}
        self._check_field_counts(filepath, positions)

        source = df[[columns[name] for name in self.REQUIRED_COLUMNS]]
        source.columns = self.REQUIRED_COLUMNS

        empty_usernames = np.flatnonzero((source[self.USERNAME_COLUMN] == '').to_numpy())
        if len(empty_usernames):
            raise MembershipParseError("username is empty", int(empty_usernames[0]) + 1, self.USERNAME_COLUMN)

        dates = self._parse_dates(source[self.DATE_COLUMN])
        prices = [
            self._parse_price(raw, row_number)
            for row_number, raw in enumerate(source[self.PRICE_COLUMN], start=1)
        ]

        records = [
            Record(date=day, username=username, price=price, tier=tier)
            for day, username, price, tier in zip(
                dates, source[self.USERNAME_COLUMN], prices, source[self.TIER_COLUMN]
            )
        ]

        logger.info(f"  - Loaded {len(records):,} records")
        logger.info(f"  - Members: {len({r.username for r in records}):,}")
        logger.info(f"  - Tiers: {len({r.tier for r in records}):,}")

        return records

    def _resolve_columns(self, df: pd.DataFrame) -> Dict[str, str]:
        """Map each required column name to the header actually used in the file."""
        by_key = {str(col).strip().lower(): col for col in df.columns}
        resolved = {}
        for name in self.REQUIRED_COLUMNS:
            key = name.lower()
            if key in by_key:
                resolved[name] = by_key[key]
        return resolved

    def _check_field_counts(self, filepath: Path, positions: Dict[str, int]):
        """
        Reject data rows too short to hold every required field.

        read_csv pads short rows with empty strings, which would make a
        missing Tier indistinguishable from an empty one.
        """
        with open(filepath, newline='', encoding='utf-8-sig') as f:
            reader = csv.reader(f)
            next(reader, None)
            row_number = 0
            for fields in reader:
                if not fields:
                    continue
                row_number += 1
                for name in self.REQUIRED_COLUMNS:
                    if positions[name] >= len(fields):
                        raise MembershipParseError(
                            f"row has {len(fields)} fields, required field missing",
                            row_number,
                            name
                        )

    def _parse_dates(self, raw: pd.Series) -> List[date]:
        """Parse the whole date column at once; the first failure aborts."""
        timestamps = pd.to_datetime(raw.str.strip(), errors='coerce', format='mixed')

        failed = np.flatnonzero(timestamps.isna().to_numpy())
        if len(failed):
            position = int(failed[0])
            raise MembershipParseError(
                f"cannot parse date {raw.iloc[position]!r}",
                position + 1,
                self.DATE_COLUMN
            )

        return list(timestamps.dt.date)

    def _parse_price(self, raw: str, row_number: int) -> Decimal:
        text = raw.strip()
        if not PRICE_PATTERN.match(text):
            raise MembershipParseError(f"cannot parse price {raw!r}", row_number, self.PRICE_COLUMN)
        return Decimal(text)
