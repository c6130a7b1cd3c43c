from __future__ import annotations

from pathlib import Path
from typing import Any

from .config_io import load_simple_yaml


def load_paths_config(paths_yaml: str | Path, *, repo_root: Path) -> dict[str, Any]:
    paths_yaml = Path(paths_yaml)
    if not paths_yaml.is_absolute():
        paths_yaml = repo_root / paths_yaml
    cfg = load_simple_yaml(paths_yaml)
    cfg["__repo_root__"] = str(repo_root)
    return cfg


def load_dataset_config(
    paths_cfg: dict[str, Any],
    *,
    dataset_config_path: str | Path | None,
    repo_root: Path,
) -> dict[str, Any]:
    if dataset_config_path:
        p = Path(dataset_config_path)
        cfg = load_simple_yaml(p if p.is_absolute() else repo_root / p)
        if not isinstance(cfg, dict):
            raise ValueError(f"Invalid dataset config: expected mapping ({dataset_config_path})")
        return cfg

    dataset_cfg = paths_cfg.get("dataset")
    if not isinstance(dataset_cfg, dict) or not dataset_cfg:
        raise ValueError("Missing dataset config in configs/paths.yaml (dataset section).")
    return dataset_cfg


def resolve_dataset_roots(paths_cfg: dict[str, Any], *, dataset: str | None = None) -> dict[str, Path]:
    """
    Resolve the data/output roots for a dataset.

    Values under `datasets.<name>` win over the top-level keys; relative paths
    are anchored at the repository root.
    """
    repo_root = Path(paths_cfg.get("__repo_root__", ".")).resolve()
    datasets = paths_cfg.get("datasets", {})
    ds: dict[str, Any] = {}
    if isinstance(datasets, dict) and dataset is not None:
        found = datasets.get(dataset)
        if found is not None and not isinstance(found, dict):
            raise ValueError(f"Invalid dataset config for {dataset}: expected mapping")
        ds = found or {}

    data_root = Path(str(paths_cfg.get("data_root", "data")))
    default_raw = data_root / "raw" / dataset if dataset else data_root / "raw"

    raw_root = _resolve_path(repo_root, ds.get("raw_root") or paths_cfg.get("raw_root") or default_raw)
    outputs_root = _resolve_path(repo_root, ds.get("outputs_root") or paths_cfg.get("outputs_root", "outputs"))
    reports_root = _resolve_path(
        repo_root,
        ds.get("reports_root") or paths_cfg.get("reports_root") or Path(str(paths_cfg.get("outputs_root", "outputs"))) / "reports",
    )
    logs_root = _resolve_path(repo_root, paths_cfg.get("logs_root", "logs"))

    return {
        "repo_root": repo_root,
        "raw_root": raw_root,
        "outputs_root": outputs_root,
        "reports_root": reports_root,
        "logs_root": logs_root,
    }


def _resolve_path(repo_root: Path, value: Any) -> Path:
    if value is None or str(value) == "":
        raise ValueError("Missing required path value")
    p = Path(str(value))
    return p if p.is_absolute() else (repo_root / p)
