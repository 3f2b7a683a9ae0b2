"""
Data Loader Module
==================

Handles configuration loading, taxi-trip CSV ingestion and basic data quality checks.

Functions:
    - load_config: Load YAML configuration merged over built-in defaults
    - load_trips: Load a delimited trip file into a typed DataFrame
    - iter_trips: Iterate a loaded table as TaxiTrip records
    - validate_trips: Report data quality warnings
    - get_data_summary: Generate basic statistics
"""

import copy
import logging
from pathlib import Path
from typing import Dict, Any, Iterator, Optional, Sequence, Tuple

import pandas as pd
import numpy as np
import yaml

from .schema import (
    NUMERIC,
    NUMERIC_COLUMNS,
    INPUT_COLUMNS,
    PREDICTION_COLUMNS,
    TAXI_TRIP_SCHEMA,
    ColumnSpec,
    TaxiTrip,
)

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    'data': {
        'train_path': 'Data/taxi-fare-train.csv',
        'test_path': 'Data/taxi-fare-test.csv',
        'delimiter': ',',
    },
    'output': {
        'train_predictions': 'train_predicted.csv',
        'test_predictions': 'test_predicted.csv',
        'model_dir': None,
        'figures_dir': 'reports/figures/',
    },
    'model': {
        'max_iter': 100,
        'max_leaf_nodes': 20,
        'min_samples_leaf': 10,
        'learning_rate': 0.2,
        'l2_regularization': 0.0,
        'early_stopping': False,
        'random_state': 0,
    },
    'evaluation': {
        'save_plots': False,
    },
    'logging': {
        'level': 'INFO',
        'log_dir': None,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file, merged over DEFAULT_CONFIG.

    Args:
        config_path: Path to the configuration file, or None for defaults only

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        user_config = yaml.safe_load(f) or {}

    if not isinstance(user_config, dict):
        raise ValueError(f"Configuration root must be a mapping: {config_path}")

    logger.info(f"Loaded configuration from {config_path}")
    return _merge(DEFAULT_CONFIG, user_config)


def _empty_trips(schema: Sequence[ColumnSpec]) -> pd.DataFrame:
    return pd.DataFrame({
        spec.name: pd.Series([], dtype=float if spec.kind == NUMERIC else str)
        for spec in schema
    })


def load_trips(
    file_path: str,
    schema: Sequence[ColumnSpec] = TAXI_TRIP_SCHEMA,
    delimiter: str = ",",
    has_header: bool = True
) -> pd.DataFrame:
    """
    Load a delimited trip file into a DataFrame typed to the positional schema.

    The header line is skipped; columns are mapped by position, not by name.
    Trailing prediction columns, when present, are ignored.

    Args:
        file_path: Path to the delimited file
        schema: Ordered column specs (0-based positions)
        delimiter: Field separator
        has_header: Whether the first line is a header to skip

    Returns:
        DataFrame with one column per schema entry, in schema order

    Raises:
        FileNotFoundError: If data file doesn't exist
        ValueError: If the file is blank, the column count is wrong, a row
            is short, or a numeric value cannot be parsed
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    try:
        raw = pd.read_csv(
            file_path,
            sep=delimiter,
            header=None,
            skiprows=1 if has_header else 0,
            dtype=str,
            keep_default_na=False
        )
    except pd.errors.EmptyDataError as e:
        # A header line with no rows is an empty dataset; a blank file is not
        if has_header and file_path.read_text().strip():
            logger.info(f"Loaded trips from {file_path}: 0 rows (header only)")
            return _empty_trips(schema)
        raise ValueError(f"Data file is empty: {file_path}") from e

    n_input = max(spec.index for spec in schema) + 1
    allowed = (n_input, n_input + len(PREDICTION_COLUMNS))
    if raw.shape[1] not in allowed:
        raise ValueError(
            f"Expected {allowed[0]} or {allowed[1]} columns in {file_path}, "
            f"but found {raw.shape[1]}"
        )

    # Line numbers in messages are 1-based file lines
    line_offset = 2 if has_header else 1

    short_rows = raw.iloc[:, :n_input].isna().any(axis=1)
    if short_rows.any():
        lines = (short_rows[short_rows].index + line_offset).tolist()
        raise ValueError(
            f"Rows with fewer than {n_input} fields in {file_path} at lines {lines[:10]}"
        )

    columns = {}
    for spec in schema:
        values = raw[spec.index]
        if spec.kind == NUMERIC:
            parsed = pd.to_numeric(values.str.strip(), errors='coerce')
            bad = parsed.isna()
            if bad.any():
                lines = (bad[bad].index + line_offset).tolist()
                samples = values[bad].head(5).tolist()
                raise ValueError(
                    f"Column '{spec.name}' has non-numeric values in {file_path} "
                    f"at lines {lines[:10]}: {samples}"
                )
            columns[spec.name] = parsed.astype(float)
        else:
            columns[spec.name] = values.astype(str)

    df = pd.DataFrame(columns, columns=[spec.name for spec in schema])
    df = df.reset_index(drop=True)

    logger.info(f"Loaded trips from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")
    return df


def iter_trips(df: pd.DataFrame) -> Iterator[TaxiTrip]:
    """Yield each row of a loaded trip table as a TaxiTrip record."""
    for row in df[INPUT_COLUMNS].itertuples(index=False, name=None):
        yield TaxiTrip(*row)


def validate_trips(df: pd.DataFrame, strict: bool = False) -> Tuple[bool, Dict[str, Any]]:
    """
    Check trip data for quality issues that do not prevent training.

    Checks:
        - Negative values in numeric columns
        - Duplicate rows
        - Extreme outliers (>4 std from mean)

    Args:
        df: Loaded trip table
        strict: If True, raise errors on validation failure

    Returns:
        Tuple of (is_valid, validation_report)
    """
    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "issues": []
    }

    for col in NUMERIC_COLUMNS:
        negatives = int((df[col] < 0).sum())
        if negatives > 0:
            issue = f"Column '{col}' has {negatives} negative values"
            report["issues"].append(issue)
            logger.warning(issue)

    duplicates = int(df.duplicated().sum())
    if duplicates > 0:
        issue = f"Duplicate rows found: {duplicates}"
        report["issues"].append(issue)
        logger.warning(issue)

    for col in NUMERIC_COLUMNS:
        col_std = df[col].std()
        if not col_std or np.isnan(col_std):
            continue
        outliers = int(((df[col] - df[col].mean()).abs() > 4 * col_std).sum())
        if outliers > 0:
            issue = f"Column '{col}' has {outliers} potential outliers (>4 std)"
            report["issues"].append(issue)
            logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def get_data_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Generate summary statistics for a trip table.

    Args:
        df: DataFrame to summarize

    Returns:
        Dictionary containing summary statistics
    """
    summary = {
        "shape": df.shape,
        "columns": list(df.columns),
        "categories": {},
        "statistics": {}
    }

    for col in df.columns:
        if col in NUMERIC_COLUMNS:
            summary["statistics"][col] = {
                "mean": float(df[col].mean()),
                "std": float(df[col].std()),
                "min": float(df[col].min()),
                "max": float(df[col].max()),
            }
        else:
            summary["categories"][col] = sorted(df[col].unique().tolist())

    return summary


def print_data_summary(df: pd.DataFrame, title: str = "DATASET SUMMARY") -> None:
    """
    Print a formatted summary of a trip table to console.

    Args:
        df: DataFrame to summarize
        title: Heading for the block
    """
    summary = get_data_summary(df)

    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print("\nCategorical Columns:")
    print("-" * 40)
    for col, values in summary["categories"].items():
        print(f"  {col}: {len(values)} categories {values[:10]}")
    print("\nNumeric Columns:")
    print("-" * 40)
    for col, stats in summary["statistics"].items():
        print(f"  {col}: mean={stats['mean']:.4f} std={stats['std']:.4f} "
              f"min={stats['min']:.4f} max={stats['max']:.4f}")
    print("=" * 60 + "\n")
