"""
Feature Preprocessing Module
============================

Builds the per-target feature pipeline: the label column is split off, each
categorical column is one-hot encoded independently and the encoded blocks are
concatenated with the numeric predictors.

Functions:
    - TargetConfig: label / feature selection for one regression target
    - build_feature_transformer: ColumnTransformer for a target's features
    - build_feature_pipeline: transformer + regressor as one sklearn Pipeline
    - split_features_label: Extract X and y for a target
"""

import logging
from dataclasses import dataclass
from typing import Tuple, Optional, List

import pandas as pd
import numpy as np
from sklearn.base import RegressorMixin
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from .schema import CATEGORICAL_COLUMNS, NUMERIC_COLUMNS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetConfig:
    """
    Configuration record for one regression target.

    Attributes:
        name: Short identifier (fare, time, consumption)
        label: Column holding the true value
        features: Predictor columns in concatenation order
        prediction_column: Output column the predictions are written to
    """
    name: str
    label: str
    features: Tuple[str, ...]
    prediction_column: str

    def __post_init__(self):
        if self.label in self.features:
            raise ValueError(f"Label '{self.label}' cannot also be a feature of target '{self.name}'")
        unknown = [f for f in self.features if f not in CATEGORICAL_COLUMNS + NUMERIC_COLUMNS]
        if unknown:
            raise ValueError(f"Unknown feature columns for target '{self.name}': {unknown}")

    @property
    def categorical_features(self) -> List[str]:
        return [f for f in self.features if f in CATEGORICAL_COLUMNS]

    @property
    def numeric_features(self) -> List[str]:
        return [f for f in self.features if f in NUMERIC_COLUMNS]


_BASE_FEATURES = ("VendorId", "RateCode", "PassengerCount", "TripDistance", "PaymentType")

# TripTime stays a predictor of fare and consumption; it is only dropped where it is the label
FARE_TARGET = TargetConfig("fare", "FareAmount", _BASE_FEATURES + ("TripTime",), "PredictedFareAmount")
TIME_TARGET = TargetConfig("time", "TripTime", _BASE_FEATURES, "PredictedTripTime")
CONSUMPTION_TARGET = TargetConfig(
    "consumption", "Consumption", _BASE_FEATURES + ("TripTime",), "PredictedConsumption"
)

DEFAULT_TARGETS: Tuple[TargetConfig, ...] = (FARE_TARGET, TIME_TARGET, CONSUMPTION_TARGET)


def build_feature_transformer(target: TargetConfig) -> ColumnTransformer:
    """
    Create the feature transformer for a target.

    Each categorical column gets its own OneHotEncoder; numeric columns pass
    through unchanged. Output blocks follow the order of ``target.features``.
    Categories unseen during fit encode to all zeros.

    Args:
        target: Target configuration

    Returns:
        Unfitted ColumnTransformer
    """
    transformers = []
    for column in target.features:
        if column in CATEGORICAL_COLUMNS:
            encoder = OneHotEncoder(handle_unknown="ignore", sparse_output=False)
            transformers.append((f"{column}Encoded", encoder, [column]))
        else:
            transformers.append((column, "passthrough", [column]))

    return ColumnTransformer(transformers=transformers, remainder="drop")


def build_feature_pipeline(target: TargetConfig, estimator: RegressorMixin) -> Pipeline:
    """Chain the target's feature transformer with a regressor."""
    return Pipeline(steps=[
        ("features", build_feature_transformer(target)),
        ("regressor", estimator),
    ])


def split_features_label(
    df: pd.DataFrame,
    target: TargetConfig,
    require_label: bool = True
) -> Tuple[pd.DataFrame, Optional[np.ndarray]]:
    """
    Extract the feature frame and label vector for a target.

    Args:
        df: Loaded trip table
        target: Target configuration
        require_label: Raise if the label column is absent

    Returns:
        Tuple of (X, y); y is None when the label is absent and not required
    """
    missing = [c for c in target.features if c not in df.columns]
    if missing:
        raise ValueError(f"Missing feature columns for target '{target.name}': {missing}")

    X = df[list(target.features)]

    if target.label not in df.columns:
        if require_label:
            raise ValueError(f"Missing label column '{target.label}' for target '{target.name}'")
        return X, None

    y = df[target.label].to_numpy(dtype=float)
    return X, y


def get_feature_names(pipeline: Pipeline) -> List[str]:
    """Names of the concatenated feature vector of a fitted pipeline."""
    return pipeline.named_steps["features"].get_feature_names_out().tolist()
