"""
Test Suite for Prediction Module
================================

Tests for batch prediction, joining predictions to rows and CSV export.
"""

import pytest
import numpy as np
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from taxifare.data_loader import iter_trips, load_trips
from taxifare.model import train_models
from taxifare.prediction import (
    predict_trips,
    predict_trip,
    attach_predictions,
    write_predictions,
    run_batch_prediction,
    format_number,
)
from taxifare.schema import INPUT_COLUMNS, OUTPUT_COLUMNS, PREDICTION_COLUMNS

from conftest import make_trips

EXPECTED_HEADER = (
    "VendorId,RateCode,PassengerCount,TripTime,TripDistance,PaymentType,FareAmount,Consumption,"
    "PredictedFareAmount,PredictedTripTime,PredictedConsumption"
)


@pytest.fixture
def models(train_df):
    return train_models(train_df, config={'model': {'max_iter': 20}})


class TestPredictTrips:
    """Tests for predict_trips and predict_trip."""

    def test_one_prediction_per_row(self, models, holdout_df):
        predictions = predict_trips(models, holdout_df)

        assert list(predictions.columns) == PREDICTION_COLUMNS
        assert predictions.index.equals(holdout_df.index)
        np.testing.assert_array_equal(
            predictions['PredictedTripTime'].values, models['time'].predict(holdout_df)
        )

    def test_missing_model_defaults_to_zero(self, models, holdout_df):
        predictions = predict_trips({'fare': models['fare']}, holdout_df)

        assert (predictions['PredictedTripTime'] == 0.0).all()
        assert (predictions['PredictedConsumption'] == 0.0).all()
        assert not (predictions['PredictedFareAmount'] == 0.0).all()

    def test_single_trip_matches_batch(self, models, holdout_df):
        predictions = predict_trips(models, holdout_df)
        trip = list(iter_trips(holdout_df))[5]

        single = predict_trip(models, trip, row_index=5)

        assert single.row_index == 5
        for column, value in single.as_columns().items():
            assert value == pytest.approx(predictions.loc[5, column])


class TestAttachPredictions:
    """Tests for attach_predictions."""

    def test_inputs_echoed_unchanged(self, models, holdout_df):
        original = holdout_df.copy()

        output = attach_predictions(holdout_df, predict_trips(models, holdout_df))

        assert list(output.columns) == OUTPUT_COLUMNS
        assert len(output) == len(holdout_df)
        pd.testing.assert_frame_equal(output[INPUT_COLUMNS], original)
        pd.testing.assert_frame_equal(holdout_df, original)

    def test_misaligned_predictions_rejected(self, models, holdout_df):
        predictions = predict_trips(models, holdout_df).iloc[:-1]

        with pytest.raises(ValueError, match="do not line up"):
            attach_predictions(holdout_df, predictions)


class TestWritePredictions:
    """Tests for write_predictions and run_batch_prediction."""

    def test_header_and_row_count(self, models, holdout_df, tmp_path):
        output = attach_predictions(holdout_df, predict_trips(models, holdout_df))
        path = tmp_path / "out" / "test_predicted.csv"

        write_predictions(output, str(path))

        lines = path.read_text().splitlines()
        assert lines[0] == EXPECTED_HEADER
        assert len(lines) == len(holdout_df) + 1

    def test_overwrites_longer_file(self, models, tmp_path):
        path = tmp_path / "predicted.csv"
        long_df = make_trips(50, seed=3)
        short_df = make_trips(5, seed=4)

        write_predictions(attach_predictions(long_df, predict_trips(models, long_df)), str(path))
        write_predictions(attach_predictions(short_df, predict_trips(models, short_df)), str(path))

        lines = path.read_text().splitlines()
        assert len(lines) == 6
        assert lines[0] == EXPECTED_HEADER

    def test_run_batch_prediction(self, models, holdout_csv, holdout_df, tmp_path):
        path = tmp_path / "test_predicted.csv"

        result = run_batch_prediction(models, str(holdout_csv), str(path))

        assert result['n_rows'] == len(holdout_df)
        assert result['csv_path'] == str(path)

        reloaded = load_trips(str(path))
        expected = load_trips(str(holdout_csv))
        pd.testing.assert_frame_equal(reloaded, expected)

        written = pd.read_csv(path)
        np.testing.assert_allclose(
            written['PredictedFareAmount'].values, models['fare'].predict(holdout_df)
        )

    def test_input_fields_written_as_read(self, models, tmp_path):
        rows = [
            "VTS,1,1,1140,3.75,CRD,15.5,0.3",
            "CMT,2,3,600,1.2,CSH,7,0.12",
            "VTS,1,2,0,0,CRD,2.5,0",
        ]
        source = tmp_path / "trips.csv"
        source.write_text(",".join(INPUT_COLUMNS) + "\n" + "\n".join(rows) + "\n")
        path = tmp_path / "predicted.csv"

        run_batch_prediction(models, str(source), str(path))

        lines = path.read_text().splitlines()
        assert lines[0] == EXPECTED_HEADER
        for written, row in zip(lines[1:], rows):
            fields = written.split(",")
            assert len(fields) == 11
            assert ",".join(fields[:8]) == row

    def test_header_only_input_writes_header_only(self, models, tmp_path):
        source = tmp_path / "header_only.csv"
        source.write_text(",".join(INPUT_COLUMNS) + "\n")
        path = tmp_path / "predicted.csv"

        result = run_batch_prediction(models, str(source), str(path))

        assert result["n_rows"] == 0
        assert path.read_text().splitlines() == [EXPECTED_HEADER]

    def test_unwritable_destination(self, models, holdout_df, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        output = attach_predictions(holdout_df, predict_trips(models, holdout_df))

        with pytest.raises(OSError):
            write_predictions(output, str(blocker / "out.csv"))


class TestFormatNumber:
    """Tests for format_number."""

    @pytest.mark.parametrize("value, expected", [
        (1.0, "1"),
        (1140.0, "1140"),
        (0.0, "0"),
        (-2.0, "-2"),
        (3.75, "3.75"),
        (0.3, "0.3"),
        (15.5, "15.5"),
    ])
    def test_shortest_text(self, value, expected):
        assert format_number(value) == expected

    def test_numpy_scalar(self):
        assert format_number(np.float64(600.0)) == "600"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
