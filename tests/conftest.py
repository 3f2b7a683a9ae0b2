"""Shared fixtures: synthetic taxi-trip tables and CSV writers."""

import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from taxifare.schema import INPUT_COLUMNS, PREDICTION_COLUMNS


def make_trips(n_samples: int = 200, seed: int = 42) -> pd.DataFrame:
    """Generate trips whose targets depend on distance, rate code and passengers."""
    rng = np.random.default_rng(seed)

    vendor = rng.choice(["CMT", "VTS"], size=n_samples)
    rate = rng.choice(["1", "2", "5"], size=n_samples, p=[0.8, 0.15, 0.05])
    payment = rng.choice(["CRD", "CSH"], size=n_samples)
    passengers = rng.integers(1, 5, size=n_samples).astype(float)
    distance = np.round(rng.uniform(0.5, 15.0, size=n_samples), 2)
    trip_time = np.round(distance * 120 + rng.normal(0, 60, size=n_samples) + 60, 0)
    fare = np.round(2.5 + 2.5 * distance + (rate == "2") * 10 + rng.normal(0, 1, size=n_samples), 2)
    consumption = np.round(0.08 * distance + 0.01 * passengers + rng.normal(0, 0.02, size=n_samples), 4)

    return pd.DataFrame({
        "VendorId": vendor,
        "RateCode": rate,
        "PassengerCount": passengers,
        "TripTime": trip_time,
        "TripDistance": distance,
        "PaymentType": payment,
        "FareAmount": fare,
        "Consumption": consumption,
    }, columns=INPUT_COLUMNS)


def write_trips(df: pd.DataFrame, path: Path, with_predictions: bool = False) -> Path:
    """Write a trip table the way the input files are laid out."""
    out = df.copy()
    if with_predictions:
        for col in PREDICTION_COLUMNS:
            out[col] = 0.0
    out.to_csv(path, index=False)
    return path


@pytest.fixture
def train_df():
    return make_trips(200, seed=42)


@pytest.fixture
def holdout_df():
    return make_trips(60, seed=7)


@pytest.fixture
def train_csv(tmp_path, train_df):
    return write_trips(train_df, tmp_path / "taxi-fare-train.csv")


@pytest.fixture
def holdout_csv(tmp_path, holdout_df):
    return write_trips(holdout_df, tmp_path / "taxi-fare-test.csv", with_predictions=True)
