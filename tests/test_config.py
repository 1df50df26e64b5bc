import pytest
import os
import copy
from soil_acidity.config_schema import (
    validate_config,
    apply_defaults,
    ConfigValidationError,
)
from soil_acidity.io import config_hash, load_config

REFERENCE_CONFIG = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "configs", "soil_acidity.yaml")


def test_base_config_is_valid(base_config):
    assert validate_config(copy.deepcopy(base_config)) is True


def test_validate_fills_defaults():
    cfg = {
        "experiment": {"name": "minimal", "seed": 1},
        "data": {"target_column": "titratable_acidity"},
        "split": {"train_ratio": 0.75},
        "cross_validation": {"n_splits": 15},
        "models": {"types": ["mars"]},
    }
    validate_config(cfg)
    assert cfg["cross_validation"]["n_repeats"] == 3
    assert cfg["tuning"]["grid_size"] == 10
    assert cfg["features"]["preprocessors"] == ["basic", "interact"]
    assert cfg["models"]["params"] == {}


def test_apply_defaults_does_not_share_lists():
    a = apply_defaults({"models": {"types": ["linear"]}})
    b = apply_defaults({"models": {"types": ["linear"]}})
    a["features"]["preprocessors"].append("interact")
    assert b["features"]["preprocessors"] == ["basic", "interact"]


def test_config_validates_required_keys():
    incomplete_config = {
        "experiment": {"name": "test"}
        # Missing seed, data, split, etc.
    }
    with pytest.raises(ConfigValidationError, match="Missing required"):
        validate_config(incomplete_config)


def test_config_rejects_invalid_model_type(base_config):
    cfg = copy.deepcopy(base_config)
    cfg["models"]["types"] = ["linear", "svm"]
    with pytest.raises(ConfigValidationError, match="Invalid model type 'svm'"):
        validate_config(cfg)


def test_config_rejects_invalid_preprocessor(base_config):
    cfg = copy.deepcopy(base_config)
    cfg["features"]["preprocessors"] = ["pca"]
    with pytest.raises(ConfigValidationError, match="Invalid preprocessor"):
        validate_config(cfg)


@pytest.mark.parametrize("ratio", [0, 1, 1.5, "0.75"])
def test_config_rejects_bad_train_ratio(base_config, ratio):
    cfg = copy.deepcopy(base_config)
    cfg["split"]["train_ratio"] = ratio
    with pytest.raises(ConfigValidationError, match="train_ratio"):
        validate_config(cfg)


def test_config_rejects_single_fold(base_config):
    cfg = copy.deepcopy(base_config)
    cfg["cross_validation"]["n_splits"] = 1
    with pytest.raises(ConfigValidationError, match="n_splits must be >= 2"):
        validate_config(cfg)


def test_config_rejects_rsq_as_rank_metric(base_config):
    cfg = copy.deepcopy(base_config)
    cfg["tuning"]["metric"] = "rsq"
    with pytest.raises(ConfigValidationError, match="Invalid tuning.metric"):
        validate_config(cfg)


def test_config_reports_all_errors_together(base_config):
    cfg = copy.deepcopy(base_config)
    cfg["tuning"]["grid_size"] = 0
    cfg["cleaning"]["max_missing_rate"] = 2
    cfg["data"]["ignored_columns"] = ["titratable_acidity"]
    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(cfg)

    message = str(excinfo.value)
    assert "grid_size" in message
    assert "max_missing_rate" in message
    assert "ignored_columns" in message


def test_config_hash_deterministic(base_config):
    h1 = config_hash(base_config)
    h2 = config_hash(base_config)
    assert h1 == h2

    # Same content but different key insertion order should still match
    cfg2 = dict(reversed(list(base_config.items())))
    assert config_hash(cfg2) == h1

    cfg3 = copy.deepcopy(base_config)
    cfg3["experiment"]["seed"] += 1
    assert config_hash(cfg3) != h1


def test_load_config_roundtrip(base_config, write_yaml):
    path = write_yaml(base_config, "cfg.yaml")
    assert load_config(path) == base_config

    with pytest.raises(FileNotFoundError):
        load_config(path + ".missing")


def test_reference_config_is_valid():
    cfg = load_config(REFERENCE_CONFIG)
    assert validate_config(cfg) is True
    assert cfg["data"]["target_column"] == "titratable_acidity"
    assert cfg["cross_validation"]["n_splits"] == 15
    assert cfg["cross_validation"]["n_repeats"] == 3
