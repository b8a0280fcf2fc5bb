"""
Pytest configuration and shared fixtures for the anchor regions tests.

This conftest.py adds the project root to sys.path so that imports of
`anchor_regions.*` modules work from within the tests/ directory without an
installed package.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add project root to sys.path so `from anchor_regions.xxx import ...` works
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

N_MSAS = 60
STATES = ["MO", "KS", "TX", "OH", "PA", "CA", "NY", "GA"]


@pytest.fixture
def root_dir():
    """Return the project root directory as a Path object."""
    return ROOT


def make_msa_table(n=N_MSAS, seed=42):
    """
    Synthetic MSA indicator table with the default variable-group columns.

    Three latent region types drive the indicators so that clustering has
    some structure to find.
    """
    rng = np.random.default_rng(seed)
    kind = np.arange(n) % 3
    size = np.exp(rng.normal(13 + kind * 0.8, 0.6, n))       # population
    prosperity = rng.normal(kind - 1.0, 0.5, n)

    return pd.DataFrame({
        "cbsa_code": [f"{10000 + 20 * i}" for i in range(n)],
        "msa_name": [f"Metro {i:03d}" for i in range(n)],
        "state": [STATES[i % len(STATES)] for i in range(n)],
        "totpop_19": size.round(),
        "pop_growth_10_19": rng.normal(3 + prosperity, 2.0, n),
        "net_mig": rng.normal(size * 0.01 * (1 + prosperity), 500.0, n),
        "pct_bachelors": np.clip(rng.normal(30 + 6 * prosperity, 4.0, n), 5, 70),
        "real_gdp_21": size * np.exp(rng.normal(10.8 + 0.2 * prosperity, 0.2, n)) / 1e3,
        "median_hh_income": rng.normal(60000 + 9000 * prosperity, 5000.0, n),
        "poverty_rate": np.clip(rng.normal(14 - 3 * prosperity, 2.5, n), 2, 40),
        "unemployment_rate": np.clip(rng.normal(5 - prosperity, 1.0, n), 1, 15),
        "n_institutions": rng.poisson(size / 1e5 * (2 + kind)) + 1,
        "total_enrollment": (size * rng.uniform(0.03, 0.09, n)).round(),
        "research_expenditure": size * rng.uniform(5, 60, n) * (1 + kind),
        "n_hospitals": rng.poisson(size / 8e4) + 1,
        "hospital_beds": (size * rng.uniform(0.002, 0.004, n)).round(),
        "hospital_employment": (size * rng.uniform(0.02, 0.05, n)).round(),
        "region_note": ["pilot" if i % 7 == 0 else "core" for i in range(n)],
    })


@pytest.fixture
def raw_msa_table():
    """Spreadsheet-shaped table (identifier as a column)."""
    return make_msa_table()


@pytest.fixture
def observations(raw_msa_table):
    """Observation table indexed by MSA identifier, as the loader returns it."""
    return raw_msa_table.set_index("cbsa_code")


@pytest.fixture
def spreadsheet_path(tmp_path, raw_msa_table):
    path = tmp_path / "anchor regions analysis.xlsx"
    raw_msa_table.to_excel(path, index=False)
    return path


@pytest.fixture
def csv_path(tmp_path, raw_msa_table):
    path = tmp_path / "msas.csv"
    raw_msa_table.to_csv(path, index=False)
    return path
