#!/usr/bin/env python3
"""
Evaluation: out-of-sample error estimate on a stratified holdout split.
Model-agnostic: callers pass a factory returning an unfitted model.
"""

import numpy as np
import pandas as pd
from typing import Callable, Dict, Optional, Sequence, Union, Any
from sklearn.metrics import accuracy_score, confusion_matrix
from sklearn.model_selection import train_test_split
import logging

logger = logging.getLogger(__name__)


def confusion_table(y_true: Union[Sequence, np.ndarray],
                    y_pred: Union[Sequence, np.ndarray],
                    labels: Optional[Sequence] = None) -> pd.DataFrame:
    """
    Labelled confusion matrix with a per-class error column.

    Rows are reference labels, columns are predictions; `class.error` is the
    share of each reference class that was misclassified.
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if labels is None:
        labels = sorted(set(y_true.tolist()) | set(y_pred.tolist()))
    labels = list(labels)

    cm = confusion_matrix(y_true, y_pred, labels=labels)
    table = pd.DataFrame(cm, index=pd.Index(labels, name="reference"), columns=labels)

    totals = cm.sum(axis=1)
    with np.errstate(invalid="ignore", divide="ignore"):
        class_error = np.where(totals > 0, 1.0 - np.diag(cm) / totals, np.nan)
    table["class.error"] = class_error
    return table


def run_holdout_evaluation(model_factory: Callable[[], Any],
                           X: pd.DataFrame,
                           y: Union[pd.Series, np.ndarray],
                           validation_fraction: float = 0.3,
                           random_state: Optional[int] = None) -> Dict[str, Any]:
    """
    Fit a fresh model on a stratified training partition and score the held-out rows.

    Args:
        model_factory: zero-argument callable returning an unfitted model
        X: predictor table
        y: class labels
        validation_fraction: share of rows held out
        random_state: seed for the split

    Returns:
        dict with accuracy, out_of_sample_error, confusion_matrix and partition sizes
    """
    if not 0.0 < validation_fraction < 1.0:
        raise ValueError(f"validation_fraction must be in (0, 1), got {validation_fraction}")

    y_values = np.asarray(y)
    X_train, X_val, y_train, y_val = train_test_split(
        X,
        y_values,
        test_size=validation_fraction,
        stratify=y_values,
        random_state=random_state,
    )
    logger.info(f"Holdout split: {len(X_train)} training rows, {len(X_val)} validation rows")

    model = model_factory()
    model.fit(X_train, y_train)
    y_pred = model.predict(X_val)

    accuracy = float(accuracy_score(y_val, y_pred))
    labels = sorted(set(y_values.tolist()))
    results = {
        'validation_fraction': float(validation_fraction),
        'n_train': int(len(X_train)),
        'n_validation': int(len(X_val)),
        'accuracy': accuracy,
        'out_of_sample_error': 1.0 - accuracy,
        'confusion_matrix': confusion_table(y_val, y_pred, labels=labels),
    }
    logger.info(f"Holdout accuracy: {accuracy:.4f} (out-of-sample error {1.0 - accuracy:.4f})")
    return results
