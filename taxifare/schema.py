"""
Trip Schema
===========

Column layout of the taxi-trip files and the record types used by the pipeline.

Records:
    - TaxiTrip: one input row (8 fields)
    - TripPrediction: the three model outputs for one row, joined by row index
"""

from dataclasses import dataclass, asdict
from typing import Dict, List, Tuple

import pandas as pd


CATEGORICAL = "categorical"
NUMERIC = "numeric"


@dataclass(frozen=True)
class ColumnSpec:
    """A single positional column of a delimited trip file."""
    name: str
    index: int
    kind: str


TAXI_TRIP_SCHEMA: Tuple[ColumnSpec, ...] = (
    ColumnSpec("VendorId", 0, CATEGORICAL),
    ColumnSpec("RateCode", 1, CATEGORICAL),
    ColumnSpec("PassengerCount", 2, NUMERIC),
    ColumnSpec("TripTime", 3, NUMERIC),
    ColumnSpec("TripDistance", 4, NUMERIC),
    ColumnSpec("PaymentType", 5, CATEGORICAL),
    ColumnSpec("FareAmount", 6, NUMERIC),
    ColumnSpec("Consumption", 7, NUMERIC),
)

# Trailing columns that may be present in a file but are never read
PREDICTION_COLUMNS: List[str] = [
    "PredictedFareAmount",
    "PredictedTripTime",
    "PredictedConsumption",
]

INPUT_COLUMNS: List[str] = [spec.name for spec in TAXI_TRIP_SCHEMA]
CATEGORICAL_COLUMNS: List[str] = [s.name for s in TAXI_TRIP_SCHEMA if s.kind == CATEGORICAL]
NUMERIC_COLUMNS: List[str] = [s.name for s in TAXI_TRIP_SCHEMA if s.kind == NUMERIC]
OUTPUT_COLUMNS: List[str] = INPUT_COLUMNS + PREDICTION_COLUMNS


@dataclass(frozen=True)
class TaxiTrip:
    VendorId: str
    RateCode: str
    PassengerCount: float
    TripTime: float
    TripDistance: float
    PaymentType: str
    FareAmount: float
    Consumption: float

    def to_frame(self) -> pd.DataFrame:
        """Single-row DataFrame in schema column order."""
        return pd.DataFrame([asdict(self)], columns=INPUT_COLUMNS)


@dataclass(frozen=True)
class TripPrediction:
    row_index: int
    predicted_fare_amount: float = 0.0
    predicted_trip_time: float = 0.0
    predicted_consumption: float = 0.0

    def as_columns(self) -> Dict[str, float]:
        return {
            "PredictedFareAmount": self.predicted_fare_amount,
            "PredictedTripTime": self.predicted_trip_time,
            "PredictedConsumption": self.predicted_consumption,
        }
