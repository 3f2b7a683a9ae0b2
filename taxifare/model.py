"""
Model Training Module
=====================

Trains one gradient-boosted regression tree ensemble per target
(fare, trip time, consumption) on top of the shared feature pipeline.

Features:
    - One sklearn Pipeline per target (one-hot encode + concatenate + regress)
    - Hyperparameter configuration via config file
    - Deterministic training with a fixed random seed
    - Model persistence (save/load)
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Sequence
from datetime import datetime

import numpy as np
import pandas as pd
import joblib
from sklearn.base import RegressorMixin, clone
from sklearn.ensemble import HistGradientBoostingRegressor
from sklearn.pipeline import Pipeline

from .preprocessing import (
    DEFAULT_TARGETS,
    TargetConfig,
    build_feature_pipeline,
    get_feature_names,
    split_features_label,
)
from .schema import TaxiTrip

logger = logging.getLogger(__name__)


class TripRegressionModel:
    """
    Regression model for a single trip target.

    Wraps a fitted sklearn Pipeline; callers only see fit / predict /
    predict_one. Any regressor can be supplied through ``estimator``,
    otherwise a HistGradientBoostingRegressor is built from the
    hyperparameters.
    """

    def __init__(
        self,
        target: TargetConfig,
        max_iter: int = 100,
        max_leaf_nodes: int = 20,
        min_samples_leaf: int = 10,
        learning_rate: float = 0.2,
        l2_regularization: float = 0.0,
        early_stopping: bool = False,
        random_state: int = 0,
        estimator: Optional[RegressorMixin] = None
    ):
        """
        Initialize the model with hyperparameters.

        Args:
            target: Label and feature selection for this model
            max_iter: Number of boosting iterations (trees)
            max_leaf_nodes: Maximum number of leaves per tree
            min_samples_leaf: Minimum samples required in a leaf
            learning_rate: Learning rate (shrinkage)
            l2_regularization: L2 regularization strength
            early_stopping: Whether to use early stopping
            random_state: Random seed for reproducibility
            estimator: Optional regressor replacing the default ensemble
        """
        self.target = target
        self.max_iter = max_iter
        self.max_leaf_nodes = max_leaf_nodes
        self.min_samples_leaf = min_samples_leaf
        self.learning_rate = learning_rate
        self.l2_regularization = l2_regularization
        self.early_stopping = early_stopping
        self.random_state = random_state
        self.estimator = estimator

        self.pipeline: Optional[Pipeline] = None
        self.n_features_out_: Optional[int] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    @property
    def hyperparameters(self) -> Dict[str, Any]:
        return {
            'max_iter': self.max_iter,
            'max_leaf_nodes': self.max_leaf_nodes,
            'min_samples_leaf': self.min_samples_leaf,
            'learning_rate': self.learning_rate,
            'l2_regularization': self.l2_regularization,
            'early_stopping': self.early_stopping,
            'random_state': self.random_state,
        }

    def _create_base_estimator(self) -> RegressorMixin:
        """Create the regressor placed at the end of the pipeline."""
        if self.estimator is not None:
            return clone(self.estimator)
        return HistGradientBoostingRegressor(
            max_iter=self.max_iter,
            max_leaf_nodes=self.max_leaf_nodes,
            min_samples_leaf=self.min_samples_leaf,
            learning_rate=self.learning_rate,
            l2_regularization=self.l2_regularization,
            early_stopping=self.early_stopping,
            random_state=self.random_state,
            verbose=0
        )

    def fit(self, df: pd.DataFrame) -> 'TripRegressionModel':
        """
        Train the model on a loaded trip table.

        Args:
            df: Training data containing the target's features and label

        Returns:
            Self for method chaining
        """
        start_time = datetime.now()

        X, y = split_features_label(df, self.target)

        logger.info(f"Training '{self.target.name}' model: label={self.target.label}, "
                    f"{len(X)} rows, features={list(self.target.features)}")

        pipeline = build_feature_pipeline(self.target, self._create_base_estimator())
        pipeline.fit(X, y)

        self.pipeline = pipeline
        self.n_features_out_ = len(get_feature_names(pipeline))

        end_time = datetime.now()
        training_duration = (end_time - start_time).total_seconds()

        self.training_info = {
            'training_duration_seconds': training_duration,
            'n_samples': int(len(X)),
            'n_features': self.n_features_out_,
            'trained_at': end_time.isoformat(),
        }

        regressor = pipeline.named_steps['regressor']
        if hasattr(regressor, 'n_iter_'):
            self.training_info['actual_iterations'] = int(regressor.n_iter_)

        self._is_fitted = True

        logger.info(f"'{self.target.name}' model trained in {training_duration:.2f} seconds "
                    f"({self.n_features_out_} encoded features)")

        return self

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """
        Predict the target for every row, in row order.

        Args:
            df: Trip table containing at least the target's features

        Returns:
            Predictions array of shape (n_samples,)
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        X, _ = split_features_label(df, self.target, require_label=False)
        return np.asarray(self.pipeline.predict(X), dtype=float)

    def predict_one(self, trip: TaxiTrip) -> float:
        """Predict the target for a single trip record."""
        return float(self.predict(trip.to_frame())[0])

    @property
    def feature_names(self):
        if not self._is_fitted:
            raise ValueError("Model must be trained first.")
        return get_feature_names(self.pipeline)

    def save(self, filepath: str) -> None:
        """
        Save the trained model to disk.

        Args:
            filepath: Path to save the model
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained model.")

        state = {
            'target': self.target,
            'pipeline': self.pipeline,
            'hyperparameters': self.hyperparameters,
            'n_features_out_': self.n_features_out_,
            'training_info': self.training_info,
            '_is_fitted': self._is_fitted
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath)
        logger.info(f"Model saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'TripRegressionModel':
        """
        Load a trained model from disk.

        Args:
            filepath: Path to the saved model

        Returns:
            Loaded TripRegressionModel instance
        """
        state = joblib.load(filepath)

        model = cls(state['target'], **state['hyperparameters'])
        model.pipeline = state['pipeline']
        model.n_features_out_ = state['n_features_out_']
        model.training_info = state['training_info']
        model._is_fitted = state['_is_fitted']

        logger.info(f"Model loaded from {filepath}")
        return model


def train_model(
    df: pd.DataFrame,
    target: TargetConfig,
    config: Optional[Dict[str, Any]] = None,
    save_path: Optional[str] = None
) -> TripRegressionModel:
    """
    Train a model for one target using configuration parameters.

    Args:
        df: Training data
        target: Target configuration
        config: Configuration dictionary (uses the 'model' section)
        save_path: Path to save the trained model (optional)

    Returns:
        Trained TripRegressionModel
    """
    model_config = (config or {}).get('model', {})

    model = TripRegressionModel(
        target,
        max_iter=model_config.get('max_iter', 100),
        max_leaf_nodes=model_config.get('max_leaf_nodes', 20),
        min_samples_leaf=model_config.get('min_samples_leaf', 10),
        learning_rate=model_config.get('learning_rate', 0.2),
        l2_regularization=model_config.get('l2_regularization', 0.0),
        early_stopping=model_config.get('early_stopping', False),
        random_state=model_config.get('random_state', 0)
    )

    model.fit(df)

    if save_path:
        model.save(save_path)

    return model


def train_models(
    df: pd.DataFrame,
    targets: Sequence[TargetConfig] = DEFAULT_TARGETS,
    config: Optional[Dict[str, Any]] = None,
    save_dir: Optional[str] = None
) -> Dict[str, TripRegressionModel]:
    """
    Train one independent model per target on the same training table.

    Args:
        df: Training data
        targets: Target configurations
        config: Configuration dictionary
        save_dir: Directory for '<target>_model.joblib' dumps (optional)

    Returns:
        Dictionary mapping target name to trained model, in target order
    """
    logger.info("=" * 60)
    logger.info("STARTING MODEL TRAINING")
    logger.info("=" * 60)

    models = {}
    for target in targets:
        save_path = str(Path(save_dir) / f"{target.name}_model.joblib") if save_dir else None
        models[target.name] = train_model(df, target, config, save_path=save_path)

    logger.info("=" * 60)
    logger.info(f"MODEL TRAINING COMPLETE: {list(models)}")
    logger.info("=" * 60)

    return models


def print_model_summary(models: Dict[str, TripRegressionModel]) -> None:
    """
    Print a summary of the trained models.

    Args:
        models: Trained models keyed by target name
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    for name, model in models.items():
        regressor = model.pipeline.named_steps['regressor']
        print(f"{name}: {type(regressor).__name__} -> {model.target.label}")
        print(f"  - Encoded features: {model.n_features_out_}")
        print(f"  - Samples: {model.training_info.get('n_samples', 'N/A')}")
        print(f"  - Duration: {model.training_info.get('training_duration_seconds', 0.0):.2f}s")
    print("=" * 50 + "\n")
