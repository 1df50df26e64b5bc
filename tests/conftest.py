import pytest
import pandas as pd
import numpy as np

from soil_acidity.config_schema import apply_defaults


NUMERIC_FEATURES = [
    "ph_water", "organic_carbon", "resistance", "exch_ca", "exch_mg", "base_saturation"
]


@pytest.fixture(scope="session")
def seed():
    return 42


@pytest.fixture
def soil_df(seed):
    """
    Small deterministic dataset resembling the soil survey.
    Includes:
      - sample_id (unique integer id)
      - six numeric predictors
      - texture (categorical)
      - titratable_acidity (strictly positive target, log-linear in pH and carbon)
    """
    rng = np.random.default_rng(seed)
    n = 100

    df = pd.DataFrame({
        "sample_id": np.arange(1, n + 1),
        "ph_water": rng.uniform(4.0, 8.0, size=n),
        "organic_carbon": rng.uniform(0.2, 4.0, size=n),
        "resistance": rng.uniform(500, 5000, size=n),
        "exch_ca": rng.uniform(0.5, 20.0, size=n),
        "exch_mg": rng.uniform(0.1, 8.0, size=n),
        "base_saturation": rng.uniform(20, 100, size=n),
        "texture": rng.choice(["clay", "loam", "sand"], size=n),
    })
    log_ta = 1.5 - 0.25 * df["ph_water"] + 0.1 * df["organic_carbon"] + rng.normal(0, 0.05, size=n)
    df["titratable_acidity"] = 10 ** log_ta

    return df


@pytest.fixture
def raw_soil_df(soil_df):
    """
    soil_df with the defects the cleaner has to repair:
      - scattered missing numeric values and textures
      - one record with nearly every attribute missing
      - a column that is 98% missing
    """
    df = soil_df.copy()
    df.loc[[3, 17, 42], "ph_water"] = np.nan
    df.loc[[5, 60], "exch_mg"] = np.nan
    df.loc[[8, 9], "texture"] = np.nan
    df["lab_notes_code"] = np.nan
    df.loc[[0, 1], "lab_notes_code"] = [1.0, 2.0]

    invalid = {c: np.nan for c in df.columns if c != "sample_id"}
    df.loc[99, list(invalid)] = list(invalid.values())
    return df


@pytest.fixture
def base_config(tmp_path, seed):
    """
    Minimal config for a fast linear-only run.
    """
    cfg = {
        "experiment": {
            "name": "pytest_soil",
            "seed": seed,
            "output_dir": str(tmp_path / "runs")
        },
        "data": {
            "dataset_path": "DUMMY.csv",
            "target_column": "titratable_acidity",
            "id_column": "sample_id",
            "categorical_columns": ["texture"],
            "ignored_columns": []
        },
        "cleaning": {
            "columns_to_drop": [],
            "max_missing_rate": 0.5,
            "max_record_missing": 0.8
        },
        "split": {
            "train_ratio": 0.75,
            "strata_bins": 4
        },
        "cross_validation": {
            "n_splits": 5,
            "n_repeats": 2
        },
        "features": {
            "preprocessors": ["basic"],
            "interaction_columns": ["ph_water", "organic_carbon", "exch_ca"],
            "corr_threshold": 0.75,
            "normalize": True
        },
        "models": {
            "types": ["linear"],
            "params": {}
        },
        "tuning": {
            "grid_size": 3,
            "metric": "rmse",
            "n_jobs": 1
        },
        "metrics": {"save_plots": False}
    }
    return apply_defaults(cfg)


@pytest.fixture
def patch_dataset_loader(monkeypatch, raw_soil_df):
    """
    Monkeypatch load_dataset so runs don't hit disk.
    """
    def _fake_load_dataset(config, dataset_path=None):
        return raw_soil_df.copy(), "test_dataset.csv"

    monkeypatch.setattr("runners.run_pipeline.load_dataset", _fake_load_dataset)
    return _fake_load_dataset


@pytest.fixture
def freeze_time(monkeypatch):
    """
    Make run_dir deterministic by freezing datetime.now().
    """
    import datetime as dt

    class _FixedDT:
        @staticmethod
        def now():
            return dt.datetime(2026, 1, 4, 12, 34, 56)

    monkeypatch.setattr("soil_acidity.io.datetime", _FixedDT)
    return _FixedDT


@pytest.fixture
def write_yaml(tmp_path):
    import yaml
    def _write(cfg, name="temp.yaml"):
        p = tmp_path / name
        with open(p, "w") as f:
            yaml.safe_dump(cfg, f, default_flow_style=False)
        return str(p)
    return _write
