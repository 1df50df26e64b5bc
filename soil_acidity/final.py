# Final model fitting and scoring
# Models are trained on log10(target); reported metrics are in original units

import numpy as np

from .data import log_target, split_features_target
from .models import get_model_spec
from .workflow import build_workflow, fit_workflow, predict_workflow, regression_metrics


class FittedModel:
    """
    A trained workflow bound to one hyperparameter configuration.

    predict() returns predictions in original target units;
    predict_log() returns the raw log10-scale output of the pipeline.
    """

    def __init__(self, pipeline, preprocessor, model_type, params, config_id=None):
        self.pipeline = pipeline
        self.preprocessor = preprocessor
        self.model_type = model_type
        self.params = dict(params)
        self.config_id = config_id

    @property
    def workflow(self):
        return f"{self.preprocessor}_{self.model_type}"

    @property
    def feature_names(self):
        return list(self.pipeline.named_steps['features'].feature_names_out_)

    def predict_log(self, X):
        return np.asarray(predict_workflow(self.pipeline, X), dtype=float)

    def predict(self, X):
        return np.power(10.0, self.predict_log(X))

    def __repr__(self):
        return f"FittedModel({self.workflow}, {self.config_id}, params={self.params})"


def refit(preprocessor, spec, params, X_train, y_train, config, config_id=None):
    """Fit one workflow on the full training partition (target in original units)."""
    pipeline = build_workflow(preprocessor, spec, params, config)
    fit_workflow(pipeline, X_train, log_target(y_train))
    return FittedModel(pipeline, preprocessor, spec.model_type, params, config_id=config_id)


def score(fitted, X, y):
    """rmse/mae/rsq of a fitted model against y in original units."""
    return regression_metrics(np.asarray(y, dtype=float), fitted.predict(X))


def deploy_fit(preprocessor, spec, params, df, config, config_id=None):
    """
    Refit on every record of the cleaned dataset.

    Returns:
        fitted: FittedModel trained on train + test
        predictions: copy of df with a predicted_<target> column appended
    """
    target = config['data']['target_column']
    X, y = split_features_target(df, config)
    fitted = refit(preprocessor, spec, params, X, y, config, config_id=config_id)

    predictions = df.copy()
    predictions[f"predicted_{target}"] = fitted.predict(X)
    return fitted, predictions


def last_fit(best, df, split_plan, config):
    """
    Refit the selected config on the train partition and score it.

    Args:
        best: EvaluationResult chosen by select_best
        df: cleaned dataset
        split_plan: SplitPlan from split_train_test

    Returns:
        dict with the fitted model and train/test/full metrics (original units)
    """
    spec = get_model_spec(best['model'], config)
    X, y = split_features_target(df, config)
    train, test = split_plan['train'], split_plan['test']

    fitted = refit(
        best['preprocessor'], spec, best['params'],
        X.loc[train], y.loc[train], config, config_id=best['config_id'],
    )

    return {
        'model': fitted,
        'train': score(fitted, X.loc[train], y.loc[train]),
        'test': score(fitted, X.loc[test], y.loc[test]),
        'full': score(fitted, X, y),
    }
