#!/usr/bin/env python3
"""
Entry point: Weight Lifting Exercise activity-quality report.

Loads the training/testing CSVs, prunes columns, selects predictors with
random-forest cross-validation, fits the final forest and renders an HTML
report with the predictions for the test cases.
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, Any, Optional
import logging


def _ensure_repo_root_on_syspath() -> Path:
    """
    Ensure repository root is on sys.path.

    Preferred invocation is `python -m scripts.run_report` from repo root.
    This helper keeps `python scripts/run_report.py ...` working as well.
    """
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))
    return repo_root


REPO_ROOT = _ensure_repo_root_on_syspath()

import numpy as np
import pandas as pd

from wle_report.models.data_loader import WLEDataLoader, create_synthetic_data
from wle_report.models.preprocessing import ColumnPruner, validate_feature_alignment, check_data_quality
from wle_report.models.feature_selection import (
    run_rfcv, select_n_features, rank_feature_importance, select_top_features, build_formula,
)
from wle_report.models.models import create_model, get_available_models
from wle_report.models.evaluation import run_holdout_evaluation
from wle_report.models.utils import setup_logging, create_timestamp, save_results, config
from wle_report.report import format_predictions, render_html_report, write_answer_files
from wle_report.config_io import load_simple_yaml
from wle_report.path_config import load_dataset_config, load_paths_config, resolve_dataset_roots


def _apply_yaml_configs(args) -> dict:
    """
    Load configs/paths.yaml, configs/datasets/<DATASET>.yaml and
    configs/analysis.yaml, then apply them (and CLI overrides) to the global
    ConfigManager.

    Returns a small dict of resolved paths for logging.
    """
    paths_cfg = load_paths_config(args.paths_config, repo_root=REPO_ROOT)
    roots = resolve_dataset_roots(paths_cfg, dataset=args.dataset)

    dataset_cfg_path = Path(args.dataset_config or Path("configs") / "datasets" / f"{args.dataset}.yaml")
    if not dataset_cfg_path.is_absolute():
        dataset_cfg_path = REPO_ROOT / dataset_cfg_path
    dataset_cfg = load_dataset_config(paths_cfg, dataset_config_path=dataset_cfg_path, repo_root=REPO_ROOT)

    analysis_cfg_path = Path(args.analysis_config) if args.analysis_config else None
    if analysis_cfg_path is not None and not analysis_cfg_path.is_absolute():
        analysis_cfg_path = REPO_ROOT / analysis_cfg_path
    analysis_cfg = {}
    if analysis_cfg_path is not None and analysis_cfg_path.exists():
        analysis_cfg = load_simple_yaml(analysis_cfg_path)

    files = dataset_cfg.get("files", {})
    if not isinstance(files, dict):
        raise ValueError(f"Invalid dataset config: files must be a mapping ({dataset_cfg_path})")

    overrides: Dict[str, Any] = {
        "data": {
            "root_dir": str(args.data_dir or roots["raw_root"]),
            "training_file": str(files.get("training_file", "")),
            "testing_file": str(files.get("testing_file", "")),
        },
        "output": {
            "results_dir": str(roots["outputs_root"] / "results"),
            "reports_dir": str(roots["reports_root"]),
        },
    }
    for section in ("schema", "preprocessing"):
        if isinstance(dataset_cfg.get(section), dict):
            overrides[section] = dataset_cfg[section]
    for section in ("feature_selection", "model", "evaluation", "output"):
        if isinstance(analysis_cfg.get(section), dict):
            overrides.setdefault(section, {}).update(analysis_cfg[section])

    config.apply_overrides(overrides)
    config.apply_overrides(_cli_overrides(args))

    missing = [k for k in ("training_file", "testing_file") if not overrides["data"].get(k)]
    if missing and not args.use_synthetic:
        raise ValueError(f"Missing required dataset file keys in {dataset_cfg_path}: {missing}")

    return {
        "repo_root": roots["repo_root"],
        "raw_root": roots["raw_root"],
        "outputs_root": roots["outputs_root"],
        "reports_root": roots["reports_root"],
        "logs_root": roots["logs_root"],
        "dataset_cfg_path": dataset_cfg_path,
        "analysis_cfg_path": analysis_cfg_path,
    }


def _cli_overrides(args) -> Dict[str, Any]:
    """Command-line flags that were given explicitly (None means: keep the config value)."""
    mapping = {
        "feature_selection": {
            "cv_folds": args.cv_folds,
            "step": args.step,
            "rfcv_n_estimators": args.rfcv_n_estimators,
            "tolerance": args.tolerance,
            "max_features": args.max_features,
            "importance_method": args.importance_method,
        },
        "model": {
            "model_type": args.model_type,
            "n_estimators": args.n_estimators,
        },
        "evaluation": {
            "run_holdout": args.run_holdout,
            "validation_fraction": args.validation_fraction,
        },
        "output": {
            "results_dir": args.output_dir,
            "reports_dir": args.report_dir,
        },
    }
    return {
        section: {k: v for k, v in values.items() if v is not None}
        for section, values in mapping.items()
    }


def parse_arguments(argv: Optional[list] = None):
    parser = argparse.ArgumentParser(
        description="Weight Lifting Exercise activity-quality report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Full report on the CSVs under data/raw/WLE/
    python -m scripts.run_report --dataset WLE

    # Quick run on synthetic data
    python -m scripts.run_report --dataset WLE --use_synthetic --rfcv_n_estimators 20 --n_estimators 50
        """
    )

    parser.add_argument("--dataset", type=str, default="WLE",
                        help="Dataset name (configs/paths.yaml datasets section and configs/datasets/<DATASET>.yaml).")
    parser.add_argument("--config", dest="paths_config", type=str, default="configs/paths.yaml",
                        help="Centralized paths config (YAML).")
    parser.add_argument("--dataset-config", dest="dataset_config", type=str, default=None,
                        help="Optional dataset config override (defaults to configs/datasets/<DATASET>.yaml).")
    parser.add_argument("--analysis-config", dest="analysis_config", type=str, default="configs/analysis.yaml",
                        help="Analysis defaults config (YAML).")
    parser.add_argument("--data_dir", type=str, default=None,
                        help="Directory holding the CSV files (overrides the configured raw_root).")
    parser.add_argument("--dry-run", action="store_true",
                        help="Resolve configs and exit without reading data or writing outputs.")

    parser.add_argument("--use_synthetic", action="store_true", help="Use synthetic data instead of the CSVs.")
    parser.add_argument("--n_train", type=int, default=1000, help="Synthetic training rows.")
    parser.add_argument("--n_test", type=int, default=20, help="Synthetic testing rows.")

    parser.add_argument("--cv_folds", type=int, default=None, help="rfcv folds.")
    parser.add_argument("--step", type=float, default=None, help="rfcv predictor reduction step.")
    parser.add_argument("--rfcv_n_estimators", type=int, default=None, help="Trees per rfcv forest.")
    parser.add_argument("--tolerance", type=float, default=None,
                        help="Keep the fewest predictors whose CV error is within this of the minimum.")
    parser.add_argument("--max_features", type=int, default=None, help="Upper bound on selected predictors.")
    parser.add_argument("--importance_method", type=str, default=None, choices=["impurity", "permutation"])

    parser.add_argument("--model_type", type=str, default=None, choices=get_available_models())
    parser.add_argument("--n_estimators", type=int, default=None, help="Trees in the final forest.")
    parser.add_argument("--n_jobs", type=int, default=-1, help="Parallel jobs passed to sklearn.")

    parser.add_argument("--run_holdout", dest="run_holdout", action="store_true", default=None,
                        help="Estimate out-of-sample error on a holdout split.")
    parser.add_argument("--no-holdout", dest="run_holdout", action="store_false", default=None)
    parser.add_argument("--validation_fraction", type=float, default=None)

    parser.add_argument("--output_dir", type=str, default=None, help="Results directory.")
    parser.add_argument("--report_dir", type=str, default=None, help="HTML report directory.")
    parser.add_argument("--output_prefix", type=str, default="wle_report", help="Output file prefix.")

    parser.add_argument("--log_level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log_file", type=str, default=None,
                        help="Log file (defaults to <logs_root>/run_report_<timestamp>.log; dry-run logs to console only).")
    parser.add_argument("--random_state", type=int, default=42)

    return parser.parse_args(argv)


def load_data(args):
    logger = logging.getLogger(__name__)

    if args.use_synthetic:
        logger.info("Using synthetic data")
        return create_synthetic_data(n_train=args.n_train, n_test=args.n_test, random_state=args.random_state)

    loader = WLEDataLoader(
        data_root=config.get('data.root_dir'),
        training_file=config.get('data.training_file'),
        testing_file=config.get('data.testing_file'),
        label_column=config.get('schema.label_column'),
        id_column=config.get('schema.id_column'),
        na_values=config.get('schema.na_values'),
    )
    return loader.load_all()


def preprocess_data(training: pd.DataFrame, testing: pd.DataFrame):
    """Prune columns, align training/testing predictors and report data quality."""
    logger = logging.getLogger(__name__)
    label = config.get('schema.label_column')
    id_column = config.get('schema.id_column')

    pruner = ColumnPruner(
        bookkeeping_columns=config.get('schema.bookkeeping_columns', []),
        label_column=label,
        id_column=id_column,
        max_missing_rate=float(config.get('preprocessing.max_missing_rate', 0.0)),
        drop_near_zero_variance=bool(config.get('preprocessing.drop_near_zero_variance', False)),
    )
    pruned_train = pruner.fit_transform(training)
    pruned_test = pruner.transform(testing)

    X_train = pruned_train[pruner.features_]
    X_test = pruned_test[pruner.features_]
    validate_feature_alignment(X_train, X_test)

    quality_report = check_data_quality(X_train, max_missing_rate=0.0)
    logger.info("Data quality report:")
    for key, value in quality_report.items():
        logger.info(f"  {key}: {value}")
    if not quality_report['quality_passed']:
        logger.warning("Data quality check failed, but continuing with analysis")

    return pruner, pruned_train, pruned_test, quality_report


def run_analysis(training: pd.DataFrame, testing: pd.DataFrame, args) -> Dict[str, Any]:
    """Run every analysis step and collect the results for saving and rendering."""
    logger = logging.getLogger(__name__)
    label = config.get('schema.label_column')
    id_column = config.get('schema.id_column')
    seed = args.random_state
    n_jobs = args.n_jobs

    logger.info("Step 2: Pruning columns...")
    pruner, pruned_train, pruned_test, quality_report = preprocess_data(training, testing)
    X = pruned_train[pruner.features_]
    y = pruned_train[label].to_numpy()

    logger.info("Step 3: Random-forest cross-validation...")
    fs = config.get('feature_selection')
    rfcv_result = run_rfcv(
        X, y,
        cv_folds=int(fs['cv_folds']),
        step=fs['step'],
        scale=fs.get('scale', 'log'),
        min_variable=int(fs.get('min_variable', 1)),
        n_estimators=int(fs['rfcv_n_estimators']),
        random_state=seed,
        n_jobs=n_jobs,
    )
    n_selected = select_n_features(rfcv_result, tolerance=float(fs['tolerance']), max_features=fs.get('max_features'))

    logger.info("Step 4: Ranking predictors...")
    model_cfg = config.get('model')
    ranking = rank_feature_importance(
        X, y,
        n_estimators=int(model_cfg['n_estimators']),
        random_state=seed,
        n_jobs=n_jobs,
        method=fs.get('importance_method', 'impurity'),
    )
    selected = select_top_features(ranking, n_selected)
    formula = build_formula(label, selected)
    logger.info(f"Model formula: {formula}")

    model_params = {
        'n_estimators': int(model_cfg['n_estimators']),
        'max_features': model_cfg.get('max_features', 'sqrt'),
        'random_state': seed,
        'n_jobs': n_jobs,
    }

    holdout = None
    if config.get('evaluation.run_holdout', True):
        logger.info("Step 5: Holdout evaluation...")
        holdout = run_holdout_evaluation(
            lambda: create_model(model_cfg['model_type'], **model_params),
            X[selected], y,
            validation_fraction=float(config.get('evaluation.validation_fraction', 0.3)),
            random_state=seed,
        )

    logger.info("Step 6: Fitting final model...")
    model = create_model(model_cfg['model_type'], **model_params)
    model.fit(X[selected], y)

    logger.info("Step 7: Predicting test cases...")
    labels = model.predict(pruned_test[selected])
    problem_ids = pruned_test[id_column].tolist() if id_column in pruned_test.columns else list(range(1, len(pruned_test) + 1))
    predictions = format_predictions(problem_ids, labels, id_column=id_column, label_column=label)
    logger.info(f"Predictions: {' '.join(map(str, labels))}")

    return {
        'generated_at': create_timestamp(),
        'dataset': {
            'training_shape': list(training.shape),
            'testing_shape': list(testing.shape),
            'pruned_training_shape': list(pruned_train.shape),
            'pruned_testing_shape': list(pruned_test.shape),
            'class_counts': pd.Series(y).value_counts().sort_index().to_dict(),
        },
        'pruning': {
            'features': list(pruner.features_),
            'dropped': pruner.dropped_,
        },
        'quality': quality_report,
        'rfcv': rfcv_result.to_frame(),
        'n_selected': int(n_selected),
        'importance': ranking,
        'selected_features': selected,
        'formula': formula,
        'model': {
            'model_type': model_cfg['model_type'],
            'params': model_params,
            'oob_error': model.oob_error(),
            'oob_confusion_matrix': model.oob_confusion_matrix(),
        },
        'holdout': holdout,
        'predictions': predictions,
    }


def save_outputs(results: Dict[str, Any], args) -> Dict[str, Path]:
    """Write the results JSON, the HTML report and (optionally) the answer files."""
    logger = logging.getLogger(__name__)
    timestamp = results['generated_at']

    results_dir = Path(config.get('output.results_dir')) / timestamp
    reports_dir = Path(config.get('output.reports_dir'))

    saved: Dict[str, Path] = {}
    formats = config.get('output.save_formats') or []
    unknown = set(formats) - {"json", "npz"}
    if unknown:
        raise ValueError(f"Unsupported save_formats: {sorted(unknown)} (expected json and/or npz)")
    if formats:
        fmt = "both" if set(formats) >= {"json", "npz"} else formats[0]
        saved.update(save_results({**results, 'config': config.config}, results_dir / args.output_prefix, format=fmt))
    else:
        logger.info("save_formats is empty; results file not written")

    saved['html'] = render_html_report(results, reports_dir / f"{args.output_prefix}_{timestamp}.html")

    if config.get('output.write_answer_files', True):
        answer_dir = results_dir / "answers"
        write_answer_files(results['predictions'], answer_dir)
        saved['answers'] = answer_dir

    logger.info("Outputs:")
    for kind, path in saved.items():
        logger.info(f"  {kind}: {path}")
    return saved


def main(argv: Optional[list] = None) -> int:
    args = parse_arguments(argv)

    logger = setup_logging(log_level=args.log_level)

    config.reset()
    try:
        resolved = _apply_yaml_configs(args)
    except Exception as e:
        logger.error(f"Configuration failed: {e}")
        logger.exception("Full traceback:")
        return 1

    # dry-run does not write a log file
    if not args.dry_run:
        log_file = args.log_file or resolved["logs_root"] / f"run_report_{create_timestamp()}.log"
        logger = setup_logging(log_level=args.log_level, log_file=log_file)

    logger.info(f"Dataset: {args.dataset}")
    logger.info(f"Paths config: {args.paths_config}")
    logger.info(f"Dataset config: {resolved['dataset_cfg_path']}")
    if resolved.get("analysis_cfg_path") is not None:
        logger.info(f"Analysis config: {resolved['analysis_cfg_path']}")
    logger.info(f"Resolved raw_root: {resolved['raw_root']}")
    logger.info(f"Resolved outputs_root: {resolved['outputs_root']}")
    logger.info(f"Resolved reports_root: {resolved['reports_root']}")

    if args.dry_run:
        logger.info("Dry-run: configuration resolved and imports succeeded.")
        return 0

    np.random.seed(args.random_state)

    logger.info("=" * 80)
    logger.info("WLE Activity-Quality Report Started")
    logger.info("=" * 80)
    logger.info(f"Model Type: {config.get('model.model_type')}")
    logger.info(f"Synthetic Data: {args.use_synthetic}")

    try:
        logger.info("Step 1: Loading data...")
        training, testing = load_data(args)

        results = run_analysis(training, testing, args)

        logger.info("Step 8: Saving outputs...")
        save_outputs(results, args)

        logger.info("=" * 80)
        logger.info("Report completed successfully!")
        logger.info("=" * 80)
        return 0

    except Exception as e:
        logger.error(f"Analysis failed: {e}")
        logger.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
