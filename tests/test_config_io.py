"""Tests for the YAML-subset reader, path resolution and the config manager."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from wle_report.config_io import load_simple_yaml
from wle_report.models.utils import ConfigManager
from wle_report.path_config import load_dataset_config, load_paths_config, resolve_dataset_roots

REPO_ROOT = Path(__file__).resolve().parents[1]


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "cfg.yaml"
    p.write_text(text, encoding="utf-8")
    return p


def test_nested_mappings_and_scalars(tmp_path: Path) -> None:
    cfg = load_simple_yaml(_write(tmp_path, (
        "model:\n"
        "  n_estimators: 500\n"
        "  max_features: sqrt\n"
        "  step: 0.5\n"
        "evaluation:\n"
        "  run_holdout: true\n"
        "  limit: null\n"
    )))
    assert cfg["model"] == {"n_estimators": 500, "max_features": "sqrt", "step": 0.5}
    assert cfg["evaluation"]["run_holdout"] is True
    assert cfg["evaluation"]["limit"] is None


def test_inline_list_keeps_quoted_hash_and_empty_string(tmp_path: Path) -> None:
    cfg = load_simple_yaml(_write(tmp_path, 'na_values: ["NA", "#DIV/0!", ""]  # missing tokens\n'))
    assert cfg["na_values"] == ["NA", "#DIV/0!", ""]


def test_block_list(tmp_path: Path) -> None:
    cfg = load_simple_yaml(_write(tmp_path, (
        "schema:\n"
        "  columns:\n"
        "    - \"Unnamed: 0\"\n"
        "    - user_name\n"
        "  label_column: classe\n"
    )))
    assert cfg["schema"]["columns"] == ["Unnamed: 0", "user_name"]
    assert cfg["schema"]["label_column"] == "classe"


def test_odd_indentation_raises(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="indentation"):
        load_simple_yaml(_write(tmp_path, "a:\n   b: 1\n"))


def test_line_without_colon_raises(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_simple_yaml(_write(tmp_path, "just text\n"))


def test_repository_dataset_config_parses() -> None:
    cfg = load_simple_yaml(REPO_ROOT / "configs" / "datasets" / "WLE.yaml")
    assert cfg["files"]["training_file"] == "pml-training.csv"
    assert cfg["schema"]["na_values"] == ["NA", "#DIV/0!", ""]
    assert "user_name" in cfg["schema"]["bookkeeping_columns"]
    assert cfg["preprocessing"]["max_missing_rate"] == 0.0


def test_resolve_dataset_roots_prefers_dataset_section(tmp_path: Path) -> None:
    paths = _write(tmp_path, (
        "outputs_root: outputs\n"
        "datasets:\n"
        "  WLE:\n"
        "    raw_root: data/raw/WLE\n"
        "    outputs_root: /abs/out\n"
    ))
    cfg = load_paths_config(paths, repo_root=tmp_path)
    roots = resolve_dataset_roots(cfg, dataset="WLE")

    assert roots["raw_root"] == tmp_path.resolve() / "data" / "raw" / "WLE"
    assert roots["outputs_root"] == Path("/abs/out")
    assert roots["reports_root"] == tmp_path.resolve() / "outputs" / "reports"
    assert roots["logs_root"] == tmp_path.resolve() / "logs"


def test_resolve_dataset_roots_defaults_without_dataset_entry(tmp_path: Path) -> None:
    cfg = load_paths_config(_write(tmp_path, "data_root: data\n"), repo_root=tmp_path)
    roots = resolve_dataset_roots(cfg, dataset="OTHER")
    assert roots["raw_root"] == tmp_path.resolve() / "data" / "raw" / "OTHER"
    assert roots["outputs_root"] == tmp_path.resolve() / "outputs"


def test_load_dataset_config_requires_section(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="dataset section"):
        load_dataset_config({}, dataset_config_path=None, repo_root=tmp_path)


def test_config_manager_overrides_and_save(tmp_path: Path) -> None:
    manager = ConfigManager()
    assert manager.get("feature_selection.cv_folds") == 5
    assert manager.get("does.not.exist", "fallback") == "fallback"

    manager.apply_overrides({"feature_selection": {"cv_folds": 3}, "extra": {"x": 1}})
    assert manager.get("feature_selection.cv_folds") == 3
    assert manager.get("feature_selection.step") == 0.5
    assert manager.get("extra.x") == 1

    out = tmp_path / "cfg" / "config.json"
    manager.save_config(out)
    assert json.loads(out.read_text(encoding="utf-8"))["feature_selection"]["cv_folds"] == 3

    manager.reset()
    assert manager.get("feature_selection.cv_folds") == 5


def test_config_manager_rejects_non_dict_overrides() -> None:
    with pytest.raises(TypeError):
        ConfigManager().apply_overrides(["not", "a", "dict"])
