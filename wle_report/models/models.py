#!/usr/bin/env python3
"""
Model interface: a thin, uniform wrapper around the final classifier.
"""

import numpy as np
import pandas as pd
from abc import ABC, abstractmethod
from typing import Dict, Optional, Union, Any
from sklearn.ensemble import RandomForestClassifier
import logging

from .evaluation import confusion_table

logger = logging.getLogger(__name__)


class BaseActivityModel(ABC):
    """
    Base class for activity-quality classifiers.
    Subclasses fit on a predictor table and predict one label per row.
    """

    def __init__(self, random_state: Optional[int] = None):
        self.random_state = random_state
        self.model = None
        self.is_fitted = False
        self.feature_names_ = None
        self.classes_ = None

    @abstractmethod
    def get_params(self, deep: bool = True) -> Dict[str, Any]:
        """Constructor parameters (used to build fresh copies of the model)."""

    @abstractmethod
    def fit(self, X: pd.DataFrame, y: Union[pd.Series, np.ndarray]) -> 'BaseActivityModel':
        """
        Fit the model.

        Args:
            X: predictor table (n_samples, n_features)
            y: class labels (n_samples,)

        Returns:
            self
        """

    @abstractmethod
    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict one class label per row."""

    @abstractmethod
    def get_feature_importances(self) -> pd.Series:
        """Importance score per fitted feature."""

    def _check_predict_input(self, X: pd.DataFrame) -> pd.DataFrame:
        if not self.is_fitted:
            raise ValueError("Model must be fitted before predicting")
        if isinstance(X, pd.DataFrame):
            missing = [c for c in self.feature_names_ if c not in X.columns]
            if missing:
                raise ValueError(f"Columns missing from prediction input: {missing}")
            return X[self.feature_names_]
        X = np.asarray(X)
        if X.ndim != 2 or X.shape[1] != len(self.feature_names_):
            raise ValueError(
                f"Prediction input has shape {X.shape}, expected (n, {len(self.feature_names_)})"
            )
        return pd.DataFrame(X, columns=self.feature_names_)


class RandomForestActivityModel(BaseActivityModel):
    """
    Random forest with out-of-bag scoring enabled.

    Attributes:
        model: fitted sklearn RandomForestClassifier
        classes_: class labels seen during fit
    """

    def __init__(self,
                 n_estimators: int = 500,
                 max_features: Union[str, int, float, None] = "sqrt",
                 random_state: Optional[int] = None,
                 n_jobs: Optional[int] = None):
        super().__init__(random_state=random_state)
        self.n_estimators = n_estimators
        self.max_features = max_features
        self.n_jobs = n_jobs

    def get_params(self, deep: bool = True) -> Dict[str, Any]:
        return {
            'n_estimators': self.n_estimators,
            'max_features': self.max_features,
            'random_state': self.random_state,
            'n_jobs': self.n_jobs,
        }

    def fit(self, X: pd.DataFrame, y: Union[pd.Series, np.ndarray]) -> 'RandomForestActivityModel':
        logger.info(
            f"Fitting random forest: {X.shape[0]} rows, {X.shape[1]} predictors, "
            f"{self.n_estimators} trees"
        )
        if not isinstance(X, pd.DataFrame):
            X = pd.DataFrame(np.asarray(X), columns=[f"x{i}" for i in range(np.asarray(X).shape[1])])

        self.model = RandomForestClassifier(
            n_estimators=self.n_estimators,
            max_features=self.max_features,
            oob_score=True,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )
        self._y_train = np.asarray(y)
        self.model.fit(X, self._y_train)
        self.feature_names_ = list(X.columns)
        self.classes_ = list(self.model.classes_)
        self.is_fitted = True

        logger.info(f"OOB estimate of error rate: {self.oob_error():.2%}")
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        X = self._check_predict_input(X)
        return self.model.predict(X)

    def predict_proba(self, X: pd.DataFrame) -> pd.DataFrame:
        X = self._check_predict_input(X)
        return pd.DataFrame(self.model.predict_proba(X), columns=self.classes_, index=X.index)

    def get_feature_importances(self) -> pd.Series:
        if not self.is_fitted:
            raise ValueError("Model must be fitted before reading importances")
        importances = pd.Series(self.model.feature_importances_, index=self.feature_names_, name="importance")
        return importances.sort_values(ascending=False)

    def oob_error(self) -> float:
        """Out-of-bag misclassification rate (1 - OOB accuracy)."""
        if not self.is_fitted:
            raise ValueError("Model must be fitted before reading the OOB error")
        return float(1.0 - self.model.oob_score_)

    def oob_confusion_matrix(self) -> pd.DataFrame:
        """
        Confusion matrix of the out-of-bag predictions with a per-class error column.

        Rows are reference labels, columns predicted labels. Rows never left out
        of bag (possible with very few trees) are ignored.
        """
        if not self.is_fitted:
            raise ValueError("Model must be fitted before reading the OOB confusion matrix")

        decision = self.model.oob_decision_function_
        valid = np.isfinite(decision).all(axis=1) & (decision.sum(axis=1) > 0)
        oob_pred = np.asarray(self.classes_, dtype=object)[np.argmax(decision[valid], axis=1)]
        return confusion_table(self._y_train[valid], oob_pred, labels=self.classes_)


_MODEL_REGISTRY = {
    'random_forest': RandomForestActivityModel,
}


def get_available_models() -> list:
    return list(_MODEL_REGISTRY)


def create_model(model_type: str, **params) -> BaseActivityModel:
    """
    Model factory.

    Args:
        model_type: a name from `get_available_models()`
        **params: constructor parameters

    Raises:
        ValueError: for unknown model types
    """
    if model_type not in _MODEL_REGISTRY:
        raise ValueError(f"Unknown model type: {model_type}. Available: {get_available_models()}")
    logger.info(f"Creating {model_type} model with params: {params}")
    return _MODEL_REGISTRY[model_type](**params)
