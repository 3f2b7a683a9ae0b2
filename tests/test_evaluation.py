"""
Test Suite for Evaluation Module
================================

Tests for regression metrics, number formatting and the console report.
"""

import pytest
import numpy as np

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from taxifare.evaluation import (
    calculate_metrics,
    evaluate_model,
    evaluate_models,
    format_metric,
    format_evaluation_report,
    print_evaluation_report,
)
from taxifare.model import TripRegressionModel, train_models
from taxifare.preprocessing import TIME_TARGET


@pytest.fixture
def trained_models(train_df):
    return train_models(train_df, config={'model': {'max_iter': 20}})


class TestCalculateMetrics:
    """Tests for calculate_metrics."""

    def test_perfect_prediction(self):
        y = np.array([1.0, 2.0, 3.0, 4.0])

        metrics = calculate_metrics(y, y)

        assert metrics['r2'] == pytest.approx(1.0)
        assert metrics['rmse'] == 0.0
        assert metrics['mae'] == 0.0
        assert metrics['n_samples'] == 4

    def test_known_error(self):
        y_true = np.array([0.0, 0.0, 0.0, 0.0])
        y_pred = np.array([1.0, -1.0, 1.0, -1.0])

        metrics = calculate_metrics(y_true, y_pred)

        assert metrics['rmse'] == pytest.approx(1.0)
        assert metrics['mse'] == pytest.approx(1.0)

    def test_mean_prediction_scores_zero(self):
        y_true = np.array([1.0, 2.0, 3.0])
        y_pred = np.full(3, 2.0)

        assert calculate_metrics(y_true, y_pred)['r2'] == pytest.approx(0.0)


class TestEvaluateModel:
    """Tests for evaluate_model and evaluate_models."""

    def test_metric_bounds(self, train_df, holdout_df):
        model = TripRegressionModel(TIME_TARGET, max_iter=20).fit(train_df)

        metrics = evaluate_model(model, holdout_df)

        assert metrics['label'] == "TripTime"
        assert metrics['rmse'] >= 0
        assert metrics['r2'] <= 1.0
        assert metrics['n_samples'] == len(holdout_df)

    def test_evaluate_models_keys(self, trained_models, holdout_df):
        result = evaluate_models(trained_models, holdout_df)

        assert list(result['metrics']) == ["fare", "time", "consumption"]
        assert [m['label'] for m in result['metrics'].values()] == ["FareAmount", "TripTime", "Consumption"]
        assert result['figures'] == []

    def test_evaluate_models_saves_plots(self, trained_models, holdout_df, tmp_path):
        figures_dir = tmp_path / "figures"

        result = evaluate_models(trained_models, holdout_df, output_dir=str(figures_dir), save_plots=True)

        assert len(result['figures']) == 2
        for name in result['figures']:
            assert (figures_dir / name).exists()


class TestFormatMetric:
    """Tests for format_metric."""

    @pytest.mark.parametrize("value, expected", [
        (0.5, "0.5"),
        (0.0, "0"),
        (0.001, "0"),
        (3.14159, "3.14"),
        (1.125, "1.13"),
        (2.0, "2"),
        (12.30, "12.3"),
        (-0.456, "-0.46"),
        (0.999, "1"),
    ])
    def test_with_leading_zero(self, value, expected):
        assert format_metric(value) == expected

    @pytest.mark.parametrize("value, expected", [
        (0.5, ".5"),
        (0.0, ""),
        (0.004, ""),
        (2.456, "2.46"),
        (-0.456, "-.46"),
        (1234.5, "1234.5"),
    ])
    def test_without_leading_zero(self, value, expected):
        assert format_metric(value, leading_zero=False) == expected

    def test_nan(self):
        assert format_metric(float("nan")) == "NaN"


class TestEvaluationReport:
    """Tests for the console report."""

    @pytest.fixture
    def metrics(self):
        return {
            'fare': {'label': "FareAmount", 'r2': 0.9123, 'rmse': 2.5},
            'time': {'label': "TripTime", 'r2': 0.5, 'rmse': 0.25},
            'consumption': {'label': "Consumption", 'r2': 0.0, 'rmse': 0.0},
        }

    def test_report_lines(self, metrics):
        lines = format_evaluation_report(metrics)

        assert lines == [
            "*************************************************",
            "*       Model quality metrics evaluation         ",
            "*------------------------------------------------",
            "*       RSquared Score (FareAmount): 0.91",
            "*       Root Mean Squared Error (FareAmount): 2.5",
            "*       RSquared Score (TripTime): 0.5",
            "*       Root Mean Squared Error (TripTime): .25",
            "*       RSquared Score (Consumption): 0",
            "*       Root Mean Squared Error (Consumption): ",
        ]

    def test_print_report(self, metrics, capsys):
        print_evaluation_report(metrics)

        out = capsys.readouterr().out
        assert out.startswith("*************************************************\n")
        assert out.count("RSquared Score") == 3
        assert out.count("Root Mean Squared Error") == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
