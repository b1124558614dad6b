"""
Pytest Configuration and Fixtures
==================================
Shared fixtures for membership report tests.
"""

import pytest
import pandas as pd
import numpy as np
from datetime import date
from decimal import Decimal
from pathlib import Path
import tempfile
import shutil
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.membership_report.stage1_loader import Record


HEADER = ['Date', 'Triber Username', 'Tier Price', 'Tier']


@pytest.fixture(scope="session")
def project_root():
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="function")
def temp_dir():
    """Create a temporary directory for test outputs."""
    tmp = tempfile.mkdtemp()
    yield Path(tmp)
    shutil.rmtree(tmp)


@pytest.fixture
def write_csv(temp_dir):
    """Write raw CSV text into the temp directory and return its path."""
    def _write(text: str, name: str = 'members.csv') -> Path:
        path = temp_dir / name
        path.write_text(text, encoding='utf-8')
        return path
    return _write


@pytest.fixture
def gold_scenario_csv(write_csv):
    """alice pays the monthly price in Jan and Feb, bob pays annually in Jan."""
    return write_csv(
        "Date,Triber Username,Tier Price,Tier\n"
        "2024-01-05,alice,10,Gold\n"
        "2024-02-05,alice,10,Gold\n"
        "2024-01-20,bob,100,Gold\n"
    )


@pytest.fixture(scope="session")
def mini_members():
    """Generate minimal synthetic membership rows for unit tests."""
    return generate_synthetic_members(200)


@pytest.fixture
def mini_members_csv(mini_members, temp_dir):
    path = temp_dir / 'mini_members.csv'
    mini_members.to_csv(path, index=False)
    return path


def generate_synthetic_members(n_rows: int) -> pd.DataFrame:
    """Generate synthetic membership export rows for testing."""
    rng = np.random.RandomState(42)

    tiers = {'Bronze': (5, 50), 'Silver': (10, 100), 'Gold': (25, 250)}
    tier_names = sorted(tiers)
    usernames = [f'triber_{i:04d}' for i in range(max(10, n_rows // 5))]

    rows = []
    for _ in range(n_rows):
        tier = tier_names[rng.randint(len(tier_names))]
        monthly, annual = tiers[tier]
        price = annual if rng.uniform() < 0.2 else monthly
        day = date(2023 + rng.randint(2), rng.randint(1, 13), rng.randint(1, 29))
        rows.append({
            'Date': day.isoformat(),
            'Triber Username': usernames[rng.randint(len(usernames))],
            'Tier Price': f'{price:.2f}',
            'Tier': tier,
            'Email': 'ignored@example.com',
        })

    return pd.DataFrame(rows)


def make_record(day: str, username: str, price: str, tier: str) -> Record:
    """Build a Record from literal strings."""
    return Record(
        date=date.fromisoformat(day),
        username=username,
        price=Decimal(price),
        tier=tier
    )


@pytest.fixture
def record():
    """Factory fixture for Records."""
    return make_record
