"""Tests for prediction formatting, answer files, HTML rendering and saved results."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from wle_report.models.evaluation import confusion_table
from wle_report.models.utils import load_results, save_results
from wle_report.report import format_predictions, render_html_report, write_answer_files


def test_format_predictions() -> None:
    frame = format_predictions([1, 2, 3], ["B", "A", "B"])
    assert list(frame.columns) == ["problem_id", "classe"]
    assert frame["classe"].tolist() == ["B", "A", "B"]


def test_format_predictions_requires_one_label_per_row() -> None:
    with pytest.raises(ValueError, match="Prediction count mismatch"):
        format_predictions([1, 2, 3], ["A", "B"])
    with pytest.raises(ValueError, match="Duplicate problem ids"):
        format_predictions([1, 1], ["A", "B"])


def test_write_answer_files(tmp_path: Path) -> None:
    predictions = format_predictions(list(range(1, 21)), list("ABCDE") * 4)
    paths = write_answer_files(predictions, tmp_path / "answers")

    assert len(paths) == 20
    assert paths[0].name == "problem_id_1.txt"
    assert paths[0].read_text(encoding="utf-8") == "A"
    assert (tmp_path / "answers" / "problem_id_20.txt").read_text(encoding="utf-8") == "E"


def _results(with_holdout: bool = True) -> dict:
    labels = ["A", "B"]
    cm = confusion_table(["A", "A", "B", "B"], ["A", "B", "B", "B"], labels=labels)
    return {
        "generated_at": "20260101_120000",
        "dataset": {
            "training_shape": [4, 160],
            "testing_shape": [2, 160],
            "pruned_training_shape": [4, 3],
            "pruned_testing_shape": [2, 3],
            "class_counts": {"A": 2, "B": 2},
        },
        "pruning": {"features": ["roll_belt", "yaw_belt"], "dropped": {"bookkeeping": ["X"], "missing": ["max_roll_belt"]}},
        "rfcv": pd.DataFrame({"n_var": [2, 1], "error_cv": [0.1, 0.25]}),
        "n_selected": 2,
        "importance": pd.DataFrame({"feature": ["roll_belt", "yaw_belt"], "importance": [0.7, 0.3], "rank": [1, 2]}),
        "selected_features": ["roll_belt", "yaw_belt"],
        "formula": "classe ~ roll_belt + yaw_belt",
        "model": {"params": {"n_estimators": 10}, "oob_error": 0.125, "oob_confusion_matrix": cm},
        "holdout": {
            "n_train": 3, "n_validation": 1, "accuracy": 1.0, "out_of_sample_error": 0.0,
            "confusion_matrix": cm,
        } if with_holdout else None,
        "predictions": format_predictions([1, 2], ["B", "A"]),
    }


def test_render_html_report(tmp_path: Path) -> None:
    out = render_html_report(_results(), tmp_path / "reports" / "report.html", title="WLE <test>")

    assert out.exists()
    text = out.read_text(encoding="utf-8")
    assert text.startswith("<!DOCTYPE html>")
    assert "WLE &lt;test&gt;" in text
    assert "classe ~ roll_belt + yaw_belt" in text
    assert "12.50%" in text
    assert "Out-of-sample estimate" in text
    assert "<h2>Predictions</h2>" in text
    assert text.count("data:image/png;base64,") == 3
    assert "B A" in text


def test_render_html_report_without_holdout(tmp_path: Path) -> None:
    text = render_html_report(_results(with_holdout=False), tmp_path / "r.html").read_text(encoding="utf-8")
    assert "Out-of-sample estimate" not in text
    assert text.count("data:image/png;base64,") == 2


def test_save_results_json_roundtrip(tmp_path: Path) -> None:
    results = _results()
    results["array"] = np.array([1, 2, 3])
    results["nan"] = float("nan")

    saved = save_results(results, tmp_path / "out" / "wle", format="json")
    loaded = load_results(saved["json"])

    assert loaded["formula"] == "classe ~ roll_belt + yaw_belt"
    assert loaded["predictions"] == [{"problem_id": 1, "classe": "B"}, {"problem_id": 2, "classe": "A"}]
    assert loaded["array"] == [1, 2, 3]
    assert loaded["nan"] is None
    assert loaded["model"]["oob_confusion_matrix"][0]["reference"] == "A"


def test_load_results_rejects_unknown_suffix(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unsupported file format"):
        load_results(tmp_path / "x.csv")
