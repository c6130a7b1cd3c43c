"""Tests for the final random-forest model and the holdout evaluation."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from wle_report.models.evaluation import confusion_table, run_holdout_evaluation
from wle_report.models.models import RandomForestActivityModel, create_model, get_available_models


@pytest.fixture
def xy(synthetic_pair, informative_features):
    training, testing = synthetic_pair
    features = informative_features + ["magnet_forearm_x", "accel_arm_y"]
    return training[features], training["classe"].to_numpy(), testing[features]


def test_registry() -> None:
    assert get_available_models() == ["random_forest"]
    model = create_model("random_forest", n_estimators=10, random_state=0)
    assert isinstance(model, RandomForestActivityModel)
    assert model.get_params()["n_estimators"] == 10

    with pytest.raises(ValueError, match="Unknown model type"):
        create_model("gbm")


def test_fit_predict_one_label_per_row(xy) -> None:
    X, y, X_test = xy
    model = RandomForestActivityModel(n_estimators=40, random_state=0, n_jobs=1).fit(X, y)

    labels = model.predict(X_test)
    assert len(labels) == len(X_test) == 20
    assert set(labels) <= set(y)
    assert model.classes_ == ["A", "B", "C", "D", "E"]

    proba = model.predict_proba(X_test)
    assert list(proba.columns) == model.classes_
    np.testing.assert_allclose(proba.sum(axis=1), 1.0)


def test_predict_reorders_columns_by_name(xy) -> None:
    X, y, X_test = xy
    model = RandomForestActivityModel(n_estimators=20, random_state=0, n_jobs=1).fit(X, y)
    shuffled = X_test[list(reversed(X_test.columns))]
    np.testing.assert_array_equal(model.predict(shuffled), model.predict(X_test))


def test_predict_errors(xy) -> None:
    X, y, X_test = xy
    model = RandomForestActivityModel(n_estimators=10, random_state=0, n_jobs=1)
    with pytest.raises(ValueError, match="fitted"):
        model.predict(X_test)

    model.fit(X, y)
    with pytest.raises(ValueError, match="roll_belt"):
        model.predict(X_test.drop(columns=["roll_belt"]))
    with pytest.raises(ValueError, match="shape"):
        model.predict(np.zeros((3, 2)))


def test_oob_error_and_confusion_matrix(xy) -> None:
    X, y, _ = xy
    model = RandomForestActivityModel(n_estimators=60, random_state=0, n_jobs=1).fit(X, y)

    assert 0.0 <= model.oob_error() < 0.2
    cm = model.oob_confusion_matrix()
    assert list(cm.index) == model.classes_
    assert list(cm.columns) == model.classes_ + ["class.error"]
    assert cm[model.classes_].to_numpy().sum() <= len(y)
    assert ((cm["class.error"] >= 0) & (cm["class.error"] <= 1)).all()

    importances = model.get_feature_importances()
    assert set(importances.index) == set(X.columns)
    assert importances.iloc[-1] <= importances.iloc[0]


def test_confusion_table_values() -> None:
    y_true = ["A", "A", "B", "B", "B", "C"]
    y_pred = ["A", "B", "B", "B", "A", "C"]
    table = confusion_table(y_true, y_pred, labels=["A", "B", "C"])

    assert table.index.name == "reference"
    assert table.loc["A", "A"] == 1 and table.loc["A", "B"] == 1
    assert table.loc["B", "B"] == 2 and table.loc["B", "A"] == 1
    assert table.loc["A", "class.error"] == pytest.approx(0.5)
    assert table.loc["B", "class.error"] == pytest.approx(1 / 3)
    assert table.loc["C", "class.error"] == 0.0


def test_confusion_table_absent_class_has_nan_error() -> None:
    table = confusion_table(["A", "A"], ["A", "A"], labels=["A", "B"])
    assert np.isnan(table.loc["B", "class.error"])


def test_holdout_evaluation(xy) -> None:
    X, y, _ = xy
    results = run_holdout_evaluation(
        lambda: RandomForestActivityModel(n_estimators=30, random_state=0, n_jobs=1),
        X, y, validation_fraction=0.3, random_state=0,
    )

    assert results["n_train"] + results["n_validation"] == len(y)
    assert results["n_validation"] == 90
    assert results["accuracy"] + results["out_of_sample_error"] == pytest.approx(1.0)
    assert results["accuracy"] > 0.8
    cm = results["confusion_matrix"]
    assert cm[["A", "B", "C", "D", "E"]].to_numpy().sum() == 90


@pytest.mark.parametrize("fraction", [0.0, 1.0, -0.2])
def test_holdout_rejects_bad_fraction(xy, fraction) -> None:
    X, y, _ = xy
    with pytest.raises(ValueError, match="validation_fraction"):
        run_holdout_evaluation(lambda: RandomForestActivityModel(n_estimators=5), X, y, validation_fraction=fraction)


def test_fit_accepts_arrays() -> None:
    X = np.vstack([np.zeros((10, 2)), np.ones((10, 2))])
    y = np.array(["A"] * 10 + ["B"] * 10)
    model = RandomForestActivityModel(n_estimators=10, random_state=0, n_jobs=1).fit(X, y)
    assert model.feature_names_ == ["x0", "x1"]
    assert list(model.predict(np.array([[0.0, 0.0], [1.0, 1.0]]))) == ["A", "B"]
    assert isinstance(model.get_feature_importances(), pd.Series)
