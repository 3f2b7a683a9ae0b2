"""
Prediction Module
=================

Batch prediction for trip tables and CSV export of rows plus predictions.

Features:
    - Predictions kept in their own table, joined to the input rows by row index
    - One prediction per model per row, row order preserved
    - Export to CSV with a fixed 11-column header
"""

import logging
from pathlib import Path
from typing import Dict, Any

import pandas as pd

from .data_loader import load_trips
from .model import TripRegressionModel
from .schema import INPUT_COLUMNS, OUTPUT_COLUMNS, PREDICTION_COLUMNS, NUMERIC_COLUMNS, TaxiTrip, TripPrediction

logger = logging.getLogger(__name__)


def predict_trips(models: Dict[str, TripRegressionModel], df: pd.DataFrame) -> pd.DataFrame:
    """
    Generate every model's prediction for every row.

    Args:
        models: Trained models keyed by target name
        df: Trip table

    Returns:
        DataFrame indexed like ``df`` with the three prediction columns;
        columns without a model stay at 0.0
    """
    predictions = pd.DataFrame(0.0, index=df.index, columns=PREDICTION_COLUMNS)

    for name, model in models.items():
        column = model.target.prediction_column
        if column not in PREDICTION_COLUMNS:
            raise ValueError(f"Model '{name}' writes unknown prediction column '{column}'")
        if len(df):
            predictions[column] = model.predict(df)

    predictions.index.name = 'row_index'
    return predictions


def predict_trip(
    models: Dict[str, TripRegressionModel],
    trip: TaxiTrip,
    row_index: int = 0
) -> TripPrediction:
    """Predict all targets for a single trip record."""
    values = {model.target.prediction_column: model.predict_one(trip) for model in models.values()}

    return TripPrediction(
        row_index=row_index,
        predicted_fare_amount=values.get("PredictedFareAmount", 0.0),
        predicted_trip_time=values.get("PredictedTripTime", 0.0),
        predicted_consumption=values.get("PredictedConsumption", 0.0)
    )


def attach_predictions(df: pd.DataFrame, predictions: pd.DataFrame) -> pd.DataFrame:
    """
    Join predictions onto the input rows by row index.

    The input table is not modified.

    Args:
        df: Trip table
        predictions: Output of predict_trips for the same table

    Returns:
        New DataFrame with the 11 output columns
    """
    if len(df) != len(predictions) or not df.index.equals(predictions.index):
        raise ValueError(
            f"Predictions do not line up with input rows: "
            f"{len(predictions)} predictions for {len(df)} rows"
        )

    joined = df[INPUT_COLUMNS].join(predictions[PREDICTION_COLUMNS].rename_axis(df.index.name))
    return joined[OUTPUT_COLUMNS]


def format_number(value: float) -> str:
    """Shortest round-trip text for a number; whole values drop the '.0' suffix."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def write_predictions(frame: pd.DataFrame, output_path: str) -> str:
    """
    Write rows plus predictions to CSV, replacing any existing file.

    Args:
        frame: Output of attach_predictions
        output_path: Destination CSV path

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    text = frame[OUTPUT_COLUMNS].copy()
    for column in NUMERIC_COLUMNS + PREDICTION_COLUMNS:
        text[column] = text[column].map(format_number).astype(object)

    with open(output_path, 'w', newline='') as f:
        text.to_csv(f, index=False)

    logger.info(f"Predictions exported to {output_path} ({len(frame)} rows)")
    return str(output_path)


def run_batch_prediction(
    models: Dict[str, TripRegressionModel],
    data_path: str,
    output_path: str,
    delimiter: str = ","
) -> Dict[str, Any]:
    """
    Load a dataset, predict every row with every model and export the result.

    Args:
        models: Trained models keyed by target name
        data_path: Trip file to predict
        output_path: CSV file to write
        delimiter: Field separator of the input file

    Returns:
        Dictionary containing the output table and file path
    """
    logger.info("=" * 60)
    logger.info(f"STARTING BATCH PREDICTION: {data_path}")
    logger.info("=" * 60)

    df = load_trips(data_path, delimiter=delimiter)
    predictions = predict_trips(models, df)
    output = attach_predictions(df, predictions)
    csv_path = write_predictions(output, output_path)

    logger.info("=" * 60)
    logger.info("PREDICTION COMPLETE")
    logger.info(f"  Rows: {len(output)}")
    logger.info(f"  Output: {csv_path}")
    logger.info("=" * 60)

    return {
        'output': output,
        'n_rows': len(output),
        'csv_path': csv_path
    }
