#!/usr/bin/env python3
"""
Taxi Trip Regression - Main Pipeline
====================================

Trains fare, trip-time and consumption models from taxi-trip records,
evaluates them on the test set and writes per-row predictions to CSV.

Stages:
    1. Loading - Read training data
    2. Training - One HistGradientBoostingRegressor pipeline per target
    3. Evaluation - R² / RMSE on the test set
    4. Prediction - Predict train and test files, write *_predicted.csv

Usage:
    # Run with defaults (Data/taxi-fare-train.csv, Data/taxi-fare-test.csv)
    python main.py

    # Run with custom config
    python main.py --config config/custom.yaml

    # Override input files
    python main.py --train data/train.csv --test data/test.csv
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from taxifare.data_loader import load_config, load_trips, validate_trips, print_data_summary
from taxifare.model import train_models, print_model_summary, TripRegressionModel
from taxifare.evaluation import evaluate_models, print_evaluation_report
from taxifare.prediction import run_batch_prediction

DEFAULT_CONFIG_PATH = "config/config.yaml"

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """Configure logging for the pipeline."""
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(
                Path(log_dir) / f'pipeline_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'
            )
        )

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def run_training(
    train_df: pd.DataFrame,
    config: Dict[str, Any],
    verbose: bool = False
) -> Dict[str, TripRegressionModel]:
    """
    Execute the training stage.

    Args:
        train_df: Loaded training data
        config: Configuration dictionary
        verbose: Print a model summary

    Returns:
        Trained models keyed by target name
    """
    models = train_models(
        train_df,
        config=config,
        save_dir=config['output'].get('model_dir')
    )

    if verbose:
        print_model_summary(models)

    return models


def run_evaluation(
    models: Dict[str, TripRegressionModel],
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute the evaluation stage on the test file and print the report.

    Args:
        models: Trained models
        config: Configuration dictionary

    Returns:
        Evaluation result dictionary
    """
    test_df = load_trips(config['data']['test_path'], delimiter=config['data']['delimiter'])

    result = evaluate_models(
        models,
        test_df,
        output_dir=config['output'].get('figures_dir'),
        save_plots=config['evaluation'].get('save_plots', False)
    )

    print_evaluation_report(result['metrics'])

    return result


def run_full_pipeline(config: Dict[str, Any], verbose: bool = False) -> Dict[str, Any]:
    """
    Execute the complete pipeline: train, evaluate, predict train and test.

    Args:
        config: Configuration dictionary
        verbose: Print data and model summaries

    Returns:
        Dictionary containing all stage results
    """
    data_config = config['data']
    output_config = config['output']

    logger.info(f"Pipeline started at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    train_df = load_trips(data_config['train_path'], delimiter=data_config['delimiter'])
    validate_trips(train_df, strict=False)
    if verbose:
        print_data_summary(train_df, title="TRAINING DATA SUMMARY")

    results = {'config': config}

    results['models'] = run_training(train_df, config, verbose=verbose)

    results['evaluation'] = run_evaluation(results['models'], config)

    results['train_predictions'] = run_batch_prediction(
        results['models'],
        data_config['train_path'],
        output_config['train_predictions'],
        delimiter=data_config['delimiter']
    )
    results['test_predictions'] = run_batch_prediction(
        results['models'],
        data_config['test_path'],
        output_config['test_predictions'],
        delimiter=data_config['delimiter']
    )

    print("Prediction completed and files saved.")
    logger.info(f"Pipeline completed at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    return results


def main(argv: Optional[list] = None) -> int:
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Taxi trip fare, time and consumption regression",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --config config/custom.yaml
  python main.py --train data/train.csv --test data/test.csv
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH} if present)'
    )

    parser.add_argument(
        '--train',
        type=str,
        default=None,
        help='Training CSV file (overrides data.train_path)'
    )

    parser.add_argument(
        '--test',
        type=str,
        default=None,
        help='Test CSV file (overrides data.test_path)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Print data and model summaries'
    )

    args = parser.parse_args(argv)

    # An explicit config must exist; the default one is optional
    if args.config is not None and not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        return 1

    config_path = args.config
    if config_path is None and Path(DEFAULT_CONFIG_PATH).exists():
        config_path = DEFAULT_CONFIG_PATH

    try:
        config = load_config(config_path)
        setup_logging(config['logging'].get('level', 'INFO'), config['logging'].get('log_dir'))

        if args.train:
            config['data']['train_path'] = args.train
        if args.test:
            config['data']['test_path'] = args.test

        run_full_pipeline(config, verbose=args.verbose)
        return 0

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
