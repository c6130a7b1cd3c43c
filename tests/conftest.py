"""Shared fixtures: small synthetic WLE tables and their CSV rendition."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from wle_report.models.data_loader import create_synthetic_data
from wle_report.models.utils import config


@pytest.fixture(autouse=True)
def _reset_global_config():
    config.reset()
    yield
    config.reset()


@pytest.fixture
def synthetic_pair() -> tuple[pd.DataFrame, pd.DataFrame]:
    return create_synthetic_data(n_train=300, n_test=20, n_informative=6, window_rate=0.05, random_state=0)


@pytest.fixture
def csv_dir(tmp_path: Path, synthetic_pair) -> Path:
    """pml-training.csv / pml-testing.csv written the way the published files look."""
    training, testing = synthetic_pair
    training = training.copy()
    testing = testing.copy()

    # Window summaries carry spreadsheet division errors and NA tokens.
    col = "kurtosis_roll_belt"
    training[col] = training[col].astype(object)
    filled = training.index[training[col].notna()]
    if len(filled):
        training.loc[filled[0], col] = "#DIV/0!"
    testing["max_roll_belt"] = "NA"

    data_dir = tmp_path / "raw"
    data_dir.mkdir()
    training.to_csv(data_dir / "pml-training.csv", index=False)
    testing.to_csv(data_dir / "pml-testing.csv", index=False)
    return data_dir


@pytest.fixture
def informative_features() -> list[str]:
    return ["roll_belt", "pitch_belt", "yaw_belt", "total_accel_belt", "gyros_belt_x", "gyros_belt_y"]


@pytest.fixture
def rng() -> np.random.RandomState:
    return np.random.RandomState(7)
