# Soil acidity modelling package
# Cleaning, stratified resampling, grid search and final fitting for
# titratable acidity regression

from .errors import (
    SoilModelError, SchemaError, DataQualityError, InsufficientDataError, FitError, MetricError
)
from .config_schema import validate_config, ConfigValidationError
from .io import load_config, save_results, create_run_dir, save_data_profile, save_exploration
from .data import load_dataset, clean_dataset, split_features_target, log_target, validate_data_integrity
from .split import split_train_test, make_fold_plan, plan_split, plan_folds
from .features import SoilFeatureTransformer, build_feature_pipeline
from .models import ModelSpec, get_model_spec, sample_grid, build_estimator, SUPPORTED_MODELS
from .tuning import (
    evaluate_workflow, run_grid_search, rank_results, select_best, best_per_workflow, results_table
)
from .final import FittedModel, refit, score, deploy_fit, last_fit

__all__ = [
    'SoilModelError',
    'SchemaError',
    'DataQualityError',
    'InsufficientDataError',
    'FitError',
    'MetricError',
    'validate_config',
    'ConfigValidationError',
    'load_config',
    'save_results',
    'create_run_dir',
    'save_data_profile',
    'save_exploration',
    'load_dataset',
    'clean_dataset',
    'split_features_target',
    'log_target',
    'validate_data_integrity',
    'split_train_test',
    'make_fold_plan',
    'plan_split',
    'plan_folds',
    'SoilFeatureTransformer',
    'build_feature_pipeline',
    'ModelSpec',
    'get_model_spec',
    'sample_grid',
    'build_estimator',
    'SUPPORTED_MODELS',
    'evaluate_workflow',
    'run_grid_search',
    'rank_results',
    'select_best',
    'best_per_workflow',
    'results_table',
    'FittedModel',
    'refit',
    'score',
    'deploy_fit',
    'last_fit',
]
