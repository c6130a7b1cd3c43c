"""
Weight Lifting Exercise modelling package.

Data loading, column pruning, random-forest CV feature selection, the final
classifier and its evaluation.
"""

from .data_loader import WLEDataLoader, create_synthetic_data, sensor_feature_names
from .preprocessing import (
    ColumnPruner, compute_column_mask, near_zero_variance,
    validate_feature_alignment, check_data_quality,
)
from .feature_selection import (
    RFCVResult, variable_count_schedule, run_rfcv, select_n_features,
    rank_feature_importance, select_top_features, build_formula,
)
from .models import BaseActivityModel, RandomForestActivityModel, create_model, get_available_models
from .evaluation import confusion_table, run_holdout_evaluation
from .utils import setup_logging, create_timestamp, save_results, load_results, ConfigManager

__all__ = [
    # Data loading
    "WLEDataLoader",
    "create_synthetic_data",
    "sensor_feature_names",

    # Preprocessing
    "ColumnPruner",
    "compute_column_mask",
    "near_zero_variance",
    "validate_feature_alignment",
    "check_data_quality",

    # Feature selection
    "RFCVResult",
    "variable_count_schedule",
    "run_rfcv",
    "select_n_features",
    "rank_feature_importance",
    "select_top_features",
    "build_formula",

    # Models
    "BaseActivityModel",
    "RandomForestActivityModel",
    "create_model",
    "get_available_models",

    # Evaluation
    "confusion_table",
    "run_holdout_evaluation",

    # Utilities
    "setup_logging",
    "create_timestamp",
    "save_results",
    "load_results",
    "ConfigManager",
]
