#!/usr/bin/env python3
"""
Feature selection with random-forest cross-validation.

`run_rfcv` estimates the cross-validated misclassification rate as the number
of predictors shrinks: in every fold a forest is fitted on all predictors,
predictors are ranked once by impurity importance, and forests refitted on the
top-k predictors predict the held-out rows. The forest itself is sklearn's.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.inspection import permutation_importance
from sklearn.model_selection import StratifiedKFold

logger = logging.getLogger(__name__)

IMPORTANCE_METHODS = ("impurity", "permutation")


@dataclass
class RFCVResult:
    n_var: list[int]
    error_cv: dict[int, float]
    predicted: dict[int, np.ndarray] = field(repr=False)
    cv_folds: int = 5

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"n_var": self.n_var, "error_cv": [self.error_cv[k] for k in self.n_var]}
        )

    @property
    def min_error(self) -> float:
        return min(self.error_cv.values())

    @property
    def best_n_var(self) -> int:
        # smallest count among those reaching the minimum error
        return min(k for k in self.n_var if self.error_cv[k] == self.min_error)


def variable_count_schedule(n_features: int,
                            step: float = 0.5,
                            scale: str = "log",
                            min_variable: int = 1) -> list[int]:
    """
    Decreasing sequence of predictor counts evaluated by `run_rfcv`.

    log scale: round(p * step**i) for i = 0 .. floor(log(p, 1 / step)) - 1.
    linear scale: floor(p - i * step) down to `min_variable`.
    In both cases counts below `min_variable` and duplicates are dropped and
    `min_variable` is appended if absent.
    """
    if n_features < 1:
        raise ValueError(f"n_features must be >= 1, got {n_features}")
    if not 1 <= min_variable <= n_features:
        raise ValueError(f"min_variable must be within [1, {n_features}], got {min_variable}")

    if scale == "log":
        if not 0 < step < 1:
            raise ValueError(f"step must be in (0, 1) for log scale, got {step}")
        k = int(math.floor(math.log(n_features, 1 / step) + 1e-9))
        counts = [int(c) for c in np.round(n_features * step ** np.arange(max(k, 1)))]
    elif scale == "linear":
        if step < 1:
            raise ValueError(f"step must be >= 1 for linear scale, got {step}")
        counts = [int(c) for c in np.floor(np.arange(n_features, min_variable - 1e-9, -step))]
    else:
        raise ValueError(f"Unknown scale '{scale}' (expected 'log' or 'linear')")

    schedule: list[int] = []
    for c in counts:
        if c >= min_variable and (not schedule or c < schedule[-1]):
            schedule.append(c)
    if schedule[-1] != min_variable:
        schedule.append(min_variable)
    return schedule


def _make_forest(n_estimators: int, random_state: Optional[int], n_jobs: Optional[int]) -> RandomForestClassifier:
    return RandomForestClassifier(
        n_estimators=n_estimators,
        max_features="sqrt",
        random_state=random_state,
        n_jobs=n_jobs,
    )


def run_rfcv(X: pd.DataFrame,
             y: Union[pd.Series, np.ndarray],
             cv_folds: int = 5,
             step: float = 0.5,
             scale: str = "log",
             min_variable: int = 1,
             n_estimators: int = 100,
             random_state: Optional[int] = None,
             n_jobs: Optional[int] = None) -> RFCVResult:
    """
    Cross-validated prediction error for sequentially reduced predictor sets.

    Args:
        X: predictor table (n_samples, n_features)
        y: class labels
        cv_folds: number of stratified folds
        step: fraction (log scale) or count (linear scale) by which the predictor set shrinks
        scale: "log" or "linear"
        min_variable: smallest number of predictors evaluated
        n_estimators: trees per forest
        random_state: seed for the fold split and the forests

    Returns:
        RFCVResult with the misclassification rate for each predictor count
    """
    X_values = X.to_numpy() if isinstance(X, pd.DataFrame) else np.asarray(X)
    y_values = np.asarray(y)
    n_samples, n_features = X_values.shape

    if len(y_values) != n_samples:
        raise ValueError(f"Sample count mismatch: X has {n_samples} rows, y has {len(y_values)}")
    if cv_folds < 2:
        raise ValueError(f"cv_folds must be >= 2, got {cv_folds}")

    n_var = variable_count_schedule(n_features, step=step, scale=scale, min_variable=min_variable)
    logger.info(f"Starting rfcv: {cv_folds} folds, predictor counts {n_var}, {n_estimators} trees")

    predicted = {k: np.empty(n_samples, dtype=y_values.dtype) for k in n_var}
    skf = StratifiedKFold(n_splits=cv_folds, shuffle=True, random_state=random_state)

    for fold_idx, (train_idx, test_idx) in enumerate(skf.split(X_values, y_values)):
        X_train, y_train = X_values[train_idx], y_values[train_idx]
        X_test = X_values[test_idx]

        full = _make_forest(n_estimators, random_state, n_jobs).fit(X_train, y_train)
        order = np.argsort(-full.feature_importances_, kind="stable")

        for k in n_var:
            if k == n_features:
                predicted[k][test_idx] = full.predict(X_test)
                continue
            top = order[:k]
            forest = _make_forest(n_estimators, random_state, n_jobs).fit(X_train[:, top], y_train)
            predicted[k][test_idx] = forest.predict(X_test[:, top])

        logger.debug(f"rfcv fold {fold_idx + 1}/{cv_folds} completed")

    error_cv = {k: float(np.mean(predicted[k] != y_values)) for k in n_var}
    for k in n_var:
        logger.info(f"  n_var={k:>3d}  error_cv={error_cv[k]:.4f}")

    return RFCVResult(n_var=n_var, error_cv=error_cv, predicted=predicted, cv_folds=cv_folds)


def select_n_features(rfcv_result: RFCVResult,
                      tolerance: float = 0.01,
                      max_features: Optional[int] = None) -> int:
    """
    Smallest predictor count whose CV error is within `tolerance` of the minimum.
    """
    if tolerance < 0:
        raise ValueError(f"tolerance must be >= 0, got {tolerance}")

    threshold = rfcv_result.min_error + tolerance
    n = min(k for k in rfcv_result.n_var if rfcv_result.error_cv[k] <= threshold)
    if max_features is not None:
        if max_features < 1:
            raise ValueError(f"max_features must be >= 1, got {max_features}")
        n = min(n, int(max_features))

    logger.info(f"Selected {n} predictors (min error {rfcv_result.min_error:.4f}, tolerance {tolerance})")
    return n


def rank_feature_importance(X: pd.DataFrame,
                            y: Union[pd.Series, np.ndarray],
                            n_estimators: int = 500,
                            random_state: Optional[int] = None,
                            n_jobs: Optional[int] = None,
                            method: str = "impurity",
                            n_repeats: int = 5) -> pd.DataFrame:
    """
    Rank predictors by random-forest importance.

    Returns:
        DataFrame with columns feature, importance, rank (1 = most important),
        sorted by importance; ties keep the original column order.
    """
    if method not in IMPORTANCE_METHODS:
        raise ValueError(f"Unknown importance method '{method}' (expected one of {IMPORTANCE_METHODS})")

    forest = _make_forest(n_estimators, random_state, n_jobs).fit(X, np.asarray(y))
    if method == "impurity":
        importance = forest.feature_importances_
    else:
        importance = permutation_importance(
            forest, X, np.asarray(y), n_repeats=n_repeats, random_state=random_state, n_jobs=n_jobs
        ).importances_mean

    ranking = pd.DataFrame({
        "feature": list(X.columns),
        "importance": np.asarray(importance, dtype=float),
        "position": np.arange(X.shape[1]),
    })
    ranking = ranking.sort_values(["importance", "position"], ascending=[False, True], kind="mergesort")
    ranking = ranking.drop(columns="position").reset_index(drop=True)
    ranking["rank"] = np.arange(1, len(ranking) + 1)

    logger.info(f"Top predictors ({method}): {ranking['feature'].head(10).tolist()}")
    return ranking


def select_top_features(ranking: pd.DataFrame, n: int) -> list[str]:
    if n < 1 or n > len(ranking):
        raise ValueError(f"Cannot select {n} features from a ranking of {len(ranking)}")
    return ranking.sort_values("rank")["feature"].head(n).tolist()


def build_formula(label: str, features: Sequence[str]) -> str:
    """Model formula string, e.g. 'classe ~ roll_belt + yaw_belt'."""
    features = list(features)
    if not features:
        raise ValueError("Cannot build a formula without predictors")
    return f"{label} ~ " + " + ".join(features)
