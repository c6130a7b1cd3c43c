#!/usr/bin/env python3
"""
Preprocessing: column-validity mask, column pruning and data validation.
Follows the sklearn Transformer interface so the mask is learned on the
training table only and then applied unchanged to the testing table.
"""

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from typing import Optional, Sequence, Dict, Any
import logging

from .utils import create_timestamp

logger = logging.getLogger(__name__)


def compute_column_mask(training: pd.DataFrame,
                        bookkeeping_columns: Optional[Sequence[str]] = None,
                        label_column: str = "classe",
                        max_missing_rate: float = 0.0) -> pd.Series:
    """
    Boolean mask over the training columns.

    A column is valid when its missing-value rate is at most `max_missing_rate`
    and it is not a bookkeeping column. The label column is always valid.

    Returns:
        Series indexed by column name
    """
    if not 0.0 <= max_missing_rate <= 1.0:
        raise ValueError(f"max_missing_rate must be within [0, 1], got {max_missing_rate}")

    bookkeeping = set(bookkeeping_columns or [])
    missing_rate = training.isnull().mean(axis=0)
    mask = (missing_rate <= max_missing_rate) & ~training.columns.isin(bookkeeping)
    if label_column in mask.index:
        mask[label_column] = True

    logger.info(
        f"Column mask: {int(mask.sum())}/{len(mask)} columns kept "
        f"({int((missing_rate > max_missing_rate).sum())} with missing values, "
        f"{int(training.columns.isin(bookkeeping).sum())} bookkeeping)"
    )
    return mask.astype(bool)


def near_zero_variance(df: pd.DataFrame,
                       freq_cut: float = 95 / 5,
                       unique_cut: float = 10) -> pd.DataFrame:
    """
    Near-zero-variance diagnostics for each numeric column.

    freq_ratio is the count of the most common value over the second most
    common one (0 for constant columns); percent_unique is the number of
    distinct values over the number of non-missing rows, in percent.
    """
    rows = []
    numeric = df.select_dtypes(include=[np.number])
    for column in numeric.columns:
        values = numeric[column].dropna()
        counts = values.value_counts()
        if len(counts) > 1:
            freq_ratio = float(counts.iloc[0] / counts.iloc[1])
        else:
            freq_ratio = 0.0
        percent_unique = 100.0 * len(counts) / len(values) if len(values) else 0.0
        zero_var = len(counts) <= 1
        rows.append({
            "feature": column,
            "freq_ratio": freq_ratio,
            "percent_unique": percent_unique,
            "zero_var": zero_var,
            "nzv": bool(zero_var or (freq_ratio > freq_cut and percent_unique <= unique_cut)),
        })
    return pd.DataFrame(rows, columns=["feature", "freq_ratio", "percent_unique", "zero_var", "nzv"]).set_index("feature")


class ColumnPruner(BaseEstimator, TransformerMixin):
    """
    Learns which predictor columns to keep from the training table.

    Attributes:
        mask_: column-validity mask over the training columns
        features_: ordered list of kept predictor columns
        dropped_: mapping of reason -> dropped column names
    """

    def __init__(self,
                 bookkeeping_columns: Optional[Sequence[str]] = None,
                 label_column: str = "classe",
                 id_column: str = "problem_id",
                 max_missing_rate: float = 0.0,
                 drop_near_zero_variance: bool = False):
        self.bookkeeping_columns = bookkeeping_columns
        self.label_column = label_column
        self.id_column = id_column
        self.max_missing_rate = max_missing_rate
        self.drop_near_zero_variance = drop_near_zero_variance

    def fit(self, X: pd.DataFrame, y=None) -> 'ColumnPruner':
        logger.info(f"Fitting ColumnPruner on {X.shape[0]} rows x {X.shape[1]} columns")

        self.mask_ = compute_column_mask(
            X,
            bookkeeping_columns=self.bookkeeping_columns,
            label_column=self.label_column,
            max_missing_rate=self.max_missing_rate,
        )
        candidates = [c for c in X.columns if self.mask_[c] and c not in (self.label_column, self.id_column)]

        self.dropped_ = {
            "bookkeeping": [c for c in X.columns if c in set(self.bookkeeping_columns or [])],
            "missing": [c for c in X.columns if not self.mask_[c] and c not in set(self.bookkeeping_columns or [])],
            "non_numeric": [],
            "near_zero_variance": [],
        }

        features = []
        for c in candidates:
            if pd.api.types.is_numeric_dtype(X[c]):
                features.append(c)
            else:
                self.dropped_["non_numeric"].append(c)
        if self.dropped_["non_numeric"]:
            logger.warning(f"Dropping non-numeric columns: {self.dropped_['non_numeric']}")

        self.nzv_ = near_zero_variance(X[features])
        if self.drop_near_zero_variance:
            nzv_cols = set(self.nzv_.index[self.nzv_["nzv"]])
            self.dropped_["near_zero_variance"] = [c for c in features if c in nzv_cols]
            features = [c for c in features if c not in nzv_cols]

        if not features:
            raise ValueError("No predictor columns left after pruning")

        self.features_ = features
        logger.info(f"ColumnPruner kept {len(features)} predictor columns")
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Subset a table to the learned predictors, keeping the label or id column when present.

        Raises:
            ValueError: if a learned predictor column is absent
        """
        if not hasattr(self, "features_"):
            raise ValueError("ColumnPruner must be fitted before transform")

        missing = [c for c in self.features_ if c not in X.columns]
        if missing:
            raise ValueError(f"Columns missing from table: {missing}")

        extra = [c for c in (self.label_column, self.id_column) if c in X.columns]
        return X[self.features_ + extra].copy()

    def get_feature_names_out(self, input_features=None):
        return np.asarray(self.features_, dtype=object)


def validate_feature_alignment(train_features: pd.DataFrame, test_features: pd.DataFrame) -> bool:
    """
    Check that both predictor tables carry the same columns, in the same order,
    without missing values.

    Raises:
        ValueError: on column mismatch or remaining missing values
    """
    train_cols = list(train_features.columns)
    test_cols = list(test_features.columns)

    if train_cols != test_cols:
        only_train = [c for c in train_cols if c not in test_cols]
        only_test = [c for c in test_cols if c not in train_cols]
        raise ValueError(
            f"Feature column mismatch: only in training={only_train}, only in testing={only_test}"
            + ("" if only_train or only_test else " (order differs)")
        )

    for name, frame in (("training", train_features), ("testing", test_features)):
        n_missing = int(frame.isnull().sum().sum())
        if n_missing:
            cols = list(frame.columns[frame.isnull().any()])
            raise ValueError(f"{n_missing} missing values remain in {name} features: {cols}")

    logger.info(f"Feature alignment verified: {len(train_cols)} columns")
    return True


def check_data_quality(X: pd.DataFrame, max_missing_rate: float = 0.0) -> Dict[str, Any]:
    """
    Data quality report for a predictor table.

    Returns:
        dict with sample/feature counts, missing rate, zero-variance count and
        `quality_passed`
    """
    numeric = X.select_dtypes(include=[np.number])
    n_cells = numeric.shape[0] * numeric.shape[1]
    missing_rate = float(numeric.isnull().sum().sum() / n_cells) if n_cells else 0.0
    zero_variance = int((numeric.std(axis=0) == 0).sum()) if len(numeric) > 1 else 0

    report = {
        'timestamp': create_timestamp(),
        'n_samples': int(X.shape[0]),
        'n_features': int(X.shape[1]),
        'n_numeric_features': int(numeric.shape[1]),
        'missing_rate': missing_rate,
        'zero_variance_features': zero_variance,
    }
    report['quality_passed'] = (
        missing_rate <= max_missing_rate and
        zero_variance == 0 and
        report['n_numeric_features'] == report['n_features']
    )
    return report
