from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import pandas as pd

logger = logging.getLogger(__name__)


def format_predictions(problem_ids: Sequence, labels: Sequence,
                       id_column: str = "problem_id", label_column: str = "classe") -> pd.DataFrame:
    """One row per test case: problem id and predicted label."""
    problem_ids = list(problem_ids)
    labels = list(labels)
    if len(problem_ids) != len(labels):
        raise ValueError(
            f"Prediction count mismatch: {len(labels)} labels for {len(problem_ids)} test rows"
        )
    if len(set(problem_ids)) != len(problem_ids):
        raise ValueError("Duplicate problem ids in testing table")
    return pd.DataFrame({id_column: problem_ids, label_column: labels})


def write_answer_files(predictions: pd.DataFrame, output_dir: str | Path,
                       prefix: str = "problem_id_") -> list[Path]:
    """
    Write one `<prefix><id>.txt` file per test case containing only its label.
    `predictions` is the frame returned by `format_predictions`.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    id_column, label_column = predictions.columns[0], predictions.columns[-1]
    paths = []
    for problem_id, label in zip(predictions[id_column], predictions[label_column]):
        path = output_dir / f"{prefix}{problem_id}.txt"
        path.write_text(str(label), encoding="utf-8")
        paths.append(path)

    logger.info(f"Wrote {len(paths)} answer files to: {output_dir}")
    return paths
