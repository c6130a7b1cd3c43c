#!/usr/bin/env python3
"""
Utilities: logging setup, result serialization and the global config manager.

Engineering-only notes:
- This module must not hard-code dataset roots or create filesystem artifacts at import time.
- All filesystem paths are supplied by script entry points via config files.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union, Dict, Any
from datetime import datetime
import json
import numpy as np
import pandas as pd


def setup_logging(log_level: str = "INFO",
                  log_file: Optional[Union[str, Path]] = None,
                  log_format: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: optional log file path; console only when None
        log_format: logging format string

    Returns:
        The configured root logger
    """
    if log_format is None:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(log_format)

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper()))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")

    logger.info(f"Logging setup completed. Level: {log_level}")
    return logger


def create_timestamp() -> str:
    """Timestamp string formatted as YYYYMMDD_HHMMSS."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def save_results(results: Dict[str, Any],
                 output_path: Union[str, Path],
                 format: str = "json") -> Dict[str, Path]:
    """
    Save a results dict to disk.

    Args:
        results: results dictionary (may contain numpy arrays and DataFrames)
        output_path: output path without extension
        format: "json", "npz" or "both"

    Returns:
        Mapping of format -> written path
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(__name__)

    saved_files = {}

    if format in ["json", "both"]:
        json_path = output_path.with_suffix(".json")
        json_results = _to_jsonable(results)

        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(json_results, f, indent=2, ensure_ascii=False)

        saved_files['json'] = json_path
        logger.info(f"Results saved to JSON: {json_path}")

    if format in ["npz", "both"]:
        npz_path = output_path.with_suffix(".npz")

        np_arrays = _extract_numpy_arrays(results)
        np.savez_compressed(npz_path, **np_arrays)

        saved_files['npz'] = npz_path
        logger.info(f"Results saved to NPZ: {npz_path}")

    return saved_files


def _to_jsonable(obj: Any) -> Any:
    """Recursively convert numpy/pandas values into JSON-friendly Python objects."""
    if isinstance(obj, pd.DataFrame):
        frame = obj.reset_index() if obj.index.name else obj
        return _to_jsonable(frame.to_dict(orient="records"))
    if isinstance(obj, pd.Series):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, np.ndarray):
        return [_to_jsonable(v) for v in obj.tolist()]
    if isinstance(obj, np.generic):
        return _to_jsonable(obj.item())
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(item) for item in obj]
    if isinstance(obj, float) and not np.isfinite(obj):
        return None
    return obj


def _extract_numpy_arrays(obj: Dict[str, Any]) -> Dict[str, np.ndarray]:
    np_arrays = {}

    for key, value in obj.items():
        if isinstance(value, np.ndarray):
            np_arrays[key] = value
        elif isinstance(value, pd.DataFrame):
            np_arrays[key] = value.to_numpy()
        elif isinstance(value, (int, float, bool, str)):
            np_arrays[key] = np.array(value)
        elif isinstance(value, list) and len(value) > 0 and isinstance(value[0], (int, float, str)):
            np_arrays[key] = np.array(value)

    return np_arrays


def load_results(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Load results previously written by `save_results`."""
    file_path = Path(file_path)

    if file_path.suffix == '.json':
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    elif file_path.suffix == '.npz':
        npz_file = np.load(file_path)
        return {key: npz_file[key] for key in npz_file.files}
    else:
        raise ValueError(f"Unsupported file format: {file_path.suffix}")


class ConfigManager:
    """Analysis configuration with dot-path access."""

    def __init__(self) -> None:
        self.config = self._load_default_config()

    def _load_default_config(self) -> Dict[str, Any]:
        return {
            'data': {
                # Script entry points must supply dataset-specific roots and file names.
                'root_dir': '',
                'training_file': '',
                'testing_file': '',
            },
            'schema': {
                'label_column': 'classe',
                'id_column': 'problem_id',
                'na_values': ['NA', '#DIV/0!', ''],
                'bookkeeping_columns': [],
            },
            'preprocessing': {
                'max_missing_rate': 0.0,
                'drop_near_zero_variance': False,
            },
            'feature_selection': {
                'cv_folds': 5,
                'step': 0.5,
                'scale': 'log',
                'min_variable': 1,
                'rfcv_n_estimators': 100,
                'tolerance': 0.01,
                'max_features': None,
                'importance_method': 'impurity',
            },
            'model': {
                'model_type': 'random_forest',
                'n_estimators': 500,
                'max_features': 'sqrt',
            },
            'evaluation': {
                'run_holdout': True,
                'validation_fraction': 0.3,
            },
            'output': {
                # Script entry points must supply output roots.
                'results_dir': '',
                'reports_dir': '',
                'save_formats': ['json'],
                'write_answer_files': True,
            },
            'logging': {
                'level': 'INFO',
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            }
        }

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Merge a config dict into the current config (recursive)."""
        if not isinstance(overrides, dict):
            raise TypeError("Config overrides must be a dict")
        self._update_config_recursive(self.config, overrides)

    def _update_config_recursive(self, base_config: Dict, update_config: Dict) -> None:
        for key, value in update_config.items():
            if key in base_config and isinstance(base_config[key], dict) and isinstance(value, dict):
                self._update_config_recursive(base_config[key], value)
            else:
                base_config[key] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a config value.

        Args:
            key_path: dot-separated path, e.g. 'feature_selection.cv_folds'
            default: returned when the path is absent

        Returns:
            The config value
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def reset(self) -> None:
        self.config = self._load_default_config()

    def save_config(self, output_file: Union[str, Path]) -> None:
        """Write the current config as JSON."""
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(self.config, f, indent=2, ensure_ascii=False)

        logger = logging.getLogger(__name__)
        logger.info(f"Configuration saved to: {output_file}")


# Global config manager instance
config = ConfigManager()
