"""
Model Evaluation Module
=======================

Goodness-of-fit metrics for the trained trip models and the console report.

Features:
    - R², RMSE, MAE calculation per target
    - Fixed-format console quality report
    - Actual vs Predicted plots
    - Residual analysis
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import mean_squared_error, mean_absolute_error, r2_score

from .model import TripRegressionModel
from .preprocessing import split_features_label

logger = logging.getLogger(__name__)


def calculate_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, Any]:
    """
    Calculate regression metrics for one target.

    Args:
        y_true: Ground truth values of shape (n_samples,)
        y_pred: Predicted values of shape (n_samples,)

    Returns:
        Dictionary with r2, rmse, mae, mse and n_samples
    """
    mse = mean_squared_error(y_true, y_pred)

    return {
        'r2': float(r2_score(y_true, y_pred)),
        'rmse': float(np.sqrt(mse)),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'mse': float(mse),
        'n_samples': int(len(y_true))
    }


def evaluate_model(model: TripRegressionModel, df: pd.DataFrame) -> Dict[str, Any]:
    """
    Score a fitted model against the label column of a dataset.

    Args:
        model: Trained model
        df: Labelled trip table

    Returns:
        Metrics dictionary including the label name
    """
    _, y_true = split_features_label(df, model.target)
    y_pred = model.predict(df)

    metrics = calculate_metrics(y_true, y_pred)
    metrics['label'] = model.target.label
    return metrics


def plot_actual_vs_predicted(
    results: Dict[str, Tuple[np.ndarray, np.ndarray]],
    figsize: Tuple[int, int] = (15, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Create actual vs predicted scatter plots, one panel per target.

    Args:
        results: Mapping of label name to (y_true, y_pred)
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, axes = plt.subplots(1, len(results), figsize=figsize, squeeze=False)

    for ax, (label, (y_true, y_pred)) in zip(axes[0], results.items()):
        ax.scatter(y_true, y_pred, alpha=0.5, s=10)

        min_val = min(y_true.min(), y_pred.min())
        max_val = max(y_true.max(), y_pred.max())
        ax.plot([min_val, max_val], [min_val, max_val], 'r--', linewidth=2, label='Perfect')

        r2 = r2_score(y_true, y_pred)
        rmse = np.sqrt(mean_squared_error(y_true, y_pred))

        ax.set_xlabel('Actual')
        ax.set_ylabel('Predicted')
        ax.set_title(f'{label}\nR²={r2:.4f}, RMSE={rmse:.4f}', fontsize=10, fontweight='bold')
        ax.legend(loc='upper left', fontsize=8)

    plt.suptitle('Actual vs Predicted - Model Performance', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Actual vs Predicted plot saved to {save_path}")

    return fig


def plot_residuals(
    results: Dict[str, Tuple[np.ndarray, np.ndarray]],
    figsize: Tuple[int, int] = (15, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Create residual distribution plots for model diagnostics.

    Args:
        results: Mapping of label name to (y_true, y_pred)
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, axes = plt.subplots(1, len(results), figsize=figsize, squeeze=False)

    for ax, (label, (y_true, y_pred)) in zip(axes[0], results.items()):
        residuals = y_true - y_pred

        sns.histplot(residuals, kde=len(residuals) > 1, ax=ax, bins=50, alpha=0.7)

        ax.axvline(0, color='red', linestyle='--', linewidth=2, label='Zero')
        ax.axvline(np.mean(residuals), color='green', linestyle='--',
                   linewidth=2, label=f'Mean: {np.mean(residuals):.4f}')

        ax.set_xlabel('Residual (Actual - Predicted)')
        ax.set_ylabel('Frequency')
        ax.set_title(f'{label} (Std: {np.std(residuals):.4f})', fontsize=10, fontweight='bold')
        ax.legend(fontsize=8)

    plt.suptitle('Residual Analysis - Error Distribution', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Residuals plot saved to {save_path}")

    return fig


def evaluate_models(
    models: Dict[str, TripRegressionModel],
    df: pd.DataFrame,
    output_dir: Optional[str] = None,
    save_plots: bool = False
) -> Dict[str, Any]:
    """
    Evaluate every trained model on a held-out dataset.

    Args:
        models: Trained models keyed by target name
        df: Labelled test data
        output_dir: Directory for figures (used when save_plots is set)
        save_plots: Whether to write diagnostic figures

    Returns:
        Dictionary containing per-target metrics and figure file names
    """
    logger.info("=" * 60)
    logger.info("STARTING MODEL EVALUATION")
    logger.info("=" * 60)

    metrics = {}
    results = {}

    for name, model in models.items():
        metrics[name] = evaluate_model(model, df)
        logger.info(
            f"  {model.target.label}: R²={metrics[name]['r2']:.6f} "
            f"RMSE={metrics[name]['rmse']:.6f} MAE={metrics[name]['mae']:.6f}"
        )
        if save_plots:
            _, y_true = split_features_label(df, model.target)
            results[model.target.label] = (y_true, model.predict(df))

    figures: List[str] = []
    if save_plots and results:
        figures_dir = Path(output_dir or "reports/figures/")
        figures_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Generating Actual vs Predicted plots...")
        plot_actual_vs_predicted(results, save_path=str(figures_dir / "eval_actual_vs_predicted.png"))
        figures.append("eval_actual_vs_predicted.png")

        logger.info("Generating residual analysis...")
        plot_residuals(results, save_path=str(figures_dir / "eval_residuals.png"))
        figures.append("eval_residuals.png")

        plt.close('all')

    logger.info("=" * 60)
    logger.info("EVALUATION COMPLETE")
    logger.info("=" * 60)

    return {
        'metrics': metrics,
        'figures': figures
    }


def format_metric(value: float, leading_zero: bool = True) -> str:
    """
    Format a metric with at most two decimals and no trailing zeros.

    With ``leading_zero`` the integer part is always written ("0.5", "0");
    without it a zero integer part is dropped (".5", and "" for zero).
    Halves round away from zero.
    """
    if np.isnan(value):
        return "NaN"

    rounded = Decimal(repr(float(value))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = format(rounded, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")

    negative = text.startswith("-")
    digits = text.lstrip("-")

    if digits == "0":
        return "0" if leading_zero else ""
    if not leading_zero and digits.startswith("0."):
        digits = digits[1:]

    return ("-" if negative else "") + digits


def format_evaluation_report(metrics: Dict[str, Dict[str, Any]]) -> List[str]:
    """
    Build the console quality report lines.

    Args:
        metrics: Per-target metrics from evaluate_models, in print order

    Returns:
        Report lines without trailing newlines
    """
    lines = [
        "*************************************************",
        "*       Model quality metrics evaluation         ",
        "*------------------------------------------------",
    ]
    for target_metrics in metrics.values():
        label = target_metrics['label']
        lines.append(f"*       RSquared Score ({label}): {format_metric(target_metrics['r2'])}")
        lines.append(
            f"*       Root Mean Squared Error ({label}): "
            f"{format_metric(target_metrics['rmse'], leading_zero=False)}"
        )
    return lines


def print_evaluation_report(metrics: Dict[str, Dict[str, Any]]) -> None:
    """
    Print the formatted evaluation report to console.

    Args:
        metrics: Per-target metrics from evaluate_models
    """
    for line in format_evaluation_report(metrics):
        print(line)
