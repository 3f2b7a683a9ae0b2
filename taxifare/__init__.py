"""
Taxi Trip Regression
====================

Trains fare, trip-time and consumption regressors from taxi-trip records.

Modules:
    - schema: Column layout and record types
    - data_loader: Configuration and typed CSV ingestion
    - preprocessing: Per-target feature pipelines (one-hot encode + concatenate)
    - model: Model training with HistGradientBoostingRegressor
    - evaluation: R² / RMSE metrics and the console report
    - prediction: Batch prediction and CSV export
"""

__version__ = "1.0.0"
__author__ = "Predictive Analytics Team"
