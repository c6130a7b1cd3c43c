#!/usr/bin/env python3
"""
Data loading: reads the pre-split Weight Lifting Exercise training/testing CSVs.
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Tuple, Optional, Union, Sequence
import logging

logger = logging.getLogger(__name__)

DEFAULT_NA_VALUES = ("NA", "#DIV/0!", "")

SENSOR_LOCATIONS = ("belt", "arm", "dumbbell", "forearm")
SENSOR_MEASURES = (
    "roll", "pitch", "yaw", "total_accel",
    "gyros_{}_x", "gyros_{}_y", "gyros_{}_z",
    "accel_{}_x", "accel_{}_y", "accel_{}_z",
    "magnet_{}_x", "magnet_{}_y", "magnet_{}_z",
)
SUMMARY_STATISTICS = ("kurtosis_roll", "skewness_roll", "max_roll", "min_pitch", "amplitude_yaw", "var_total_accel", "avg_roll", "stddev_roll")
BOOKKEEPING_COLUMNS = (
    "X", "user_name", "raw_timestamp_part_1", "raw_timestamp_part_2",
    "cvtd_timestamp", "new_window", "num_window",
)
CLASSES = ("A", "B", "C", "D", "E")


def sensor_feature_names() -> list:
    """The 52 raw sensor columns (13 measures for each of the 4 sensor locations)."""
    names = []
    for location in SENSOR_LOCATIONS:
        for measure in SENSOR_MEASURES:
            if "{}" in measure:
                names.append(measure.format(location))
            else:
                names.append(f"{measure}_{location}")
    return names


class WLEDataLoader:
    """Loader for the pml-training / pml-testing CSV pair."""

    def __init__(self,
                 data_root: Union[str, Path],
                 training_file: str = "pml-training.csv",
                 testing_file: str = "pml-testing.csv",
                 label_column: str = "classe",
                 id_column: str = "problem_id",
                 na_values: Optional[Sequence[str]] = None):
        """
        Args:
            data_root: directory containing both CSV files
            training_file: training CSV name (or absolute path)
            testing_file: testing CSV name (or absolute path)
            label_column: class label column in the training table
            id_column: row identifier column in the testing table
            na_values: tokens read as missing values
        """
        self.data_root = Path(data_root)
        self.training_path = self._resolve(training_file)
        self.testing_path = self._resolve(testing_file)
        self.label_column = label_column
        self.id_column = id_column
        self.na_values = list(DEFAULT_NA_VALUES if na_values is None else na_values)

    def _resolve(self, file_name: str) -> Path:
        p = Path(file_name)
        return p if p.is_absolute() else self.data_root / p

    def _read_csv(self, path: Path, what: str) -> pd.DataFrame:
        logger.info(f"Loading {what} data from: {path}")

        if not path.exists():
            raise FileNotFoundError(f"{what.capitalize()} data file not found: {path}")

        try:
            df = pd.read_csv(path, na_values=self.na_values, keep_default_na=False, low_memory=False)
        except Exception as e:
            raise ValueError(f"Error loading {what} data: {e}")

        df.columns = [str(c).strip() for c in df.columns]
        logger.info(f"{what.capitalize()} data loaded successfully: shape {df.shape}")
        return df

    def load_training(self) -> pd.DataFrame:
        """
        Load the labelled training table.

        Raises:
            FileNotFoundError: if the training CSV is missing
            ValueError: if the file cannot be parsed or has no label column
        """
        df = self._read_csv(self.training_path, "training")
        if self.label_column not in df.columns:
            raise ValueError(f"Label column '{self.label_column}' not found in {self.training_path}")
        unlabelled = df.index[df[self.label_column].isna()]
        if len(unlabelled) > 0:
            raise ValueError(
                f"Label column '{self.label_column}' has {len(unlabelled)} missing values "
                f"(rows {unlabelled[:10].tolist()}) in {self.training_path}"
            )
        df[self.label_column] = df[self.label_column].astype(str).str.strip()
        logger.info(f"Class distribution: {df[self.label_column].value_counts().sort_index().to_dict()}")
        return df

    def load_testing(self) -> pd.DataFrame:
        """
        Load the unlabelled testing table.

        Raises:
            FileNotFoundError: if the testing CSV is missing
            ValueError: if the file cannot be parsed or has no id column
        """
        df = self._read_csv(self.testing_path, "testing")
        if self.id_column not in df.columns:
            raise ValueError(f"Id column '{self.id_column}' not found in {self.testing_path}")
        return df

    def load_all(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        training = self.load_training()
        testing = self.load_testing()
        logger.info(f"All data loaded. Training rows: {len(training)}, testing rows: {len(testing)}")
        return training, testing


def create_synthetic_data(n_train: int = 500,
                          n_test: int = 20,
                          n_informative: int = 6,
                          window_rate: float = 0.02,
                          random_state: Optional[int] = 42) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Build a WLE-shaped training/testing pair for tests and dry runs.

    The first `n_informative` sensor columns carry a class-dependent shift, the
    rest are noise. Summary-statistic columns are only filled on window
    boundary rows, mirroring the mostly-empty columns of the real data.

    Returns:
        training: bookkeeping + sensor + summary columns + `classe`
        testing: same feature columns + `problem_id`
    """
    features = sensor_feature_names()
    if not 0 <= n_informative <= len(features):
        raise ValueError(f"n_informative must be within [0, {len(features)}]")

    logger.info(f"Creating synthetic data: {n_train} training rows, {n_test} testing rows, {n_informative} informative features")

    rng = np.random.RandomState(random_state)
    users = np.array(["adelmo", "carlitos", "charles", "eurico", "jeremy", "pedro"])

    def _build(n_rows: int, labels: np.ndarray) -> pd.DataFrame:
        codes = np.searchsorted(CLASSES, labels)
        start = 1322489729
        timestamps = start + rng.randint(0, 10 ** 6, size=n_rows)
        new_window = rng.rand(n_rows) < window_rate

        data = {
            "X": np.arange(1, n_rows + 1),
            "user_name": rng.choice(users, size=n_rows),
            "raw_timestamp_part_1": timestamps,
            "raw_timestamp_part_2": rng.randint(0, 10 ** 6, size=n_rows),
            "cvtd_timestamp": pd.to_datetime(timestamps, unit="s").strftime("%d/%m/%Y %H:%M"),
            "new_window": np.where(new_window, "yes", "no"),
            "num_window": rng.randint(1, 865, size=n_rows),
        }
        for i, name in enumerate(features):
            values = rng.normal(0.0, 1.0, size=n_rows)
            if i < n_informative:
                values = values + 3.0 * codes * (1 if i % 2 == 0 else -1)
            data[name] = np.round(values, 4)
        for location in SENSOR_LOCATIONS:
            for stat in SUMMARY_STATISTICS:
                column = np.full(n_rows, np.nan)
                column[new_window] = np.round(rng.normal(size=new_window.sum()), 4)
                data[f"{stat}_{location}"] = column
        return pd.DataFrame(data)

    train_labels = np.array(CLASSES)[np.arange(n_train) % len(CLASSES)]
    rng.shuffle(train_labels)
    training = _build(n_train, train_labels)
    training["classe"] = train_labels

    test_labels = rng.choice(CLASSES, size=n_test)
    testing = _build(n_test, test_labels)
    # The real testing table never carries window summaries.
    for location in SENSOR_LOCATIONS:
        for stat in SUMMARY_STATISTICS:
            testing[f"{stat}_{location}"] = np.nan
    testing["problem_id"] = np.arange(1, n_test + 1)

    logger.info("Synthetic data created successfully")
    return training, testing
