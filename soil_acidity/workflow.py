# Workflow = feature preprocessor + estimator, fitted as one sklearn Pipeline

import warnings

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.pipeline import Pipeline

from .errors import FitError, MetricError
from .features import build_feature_pipeline
from .models import build_estimator

METRICS = ['rmse', 'mae', 'rsq']

METRIC_DIRECTIONS = {
    'rmse': 'minimize',
    'mae': 'minimize',
    'rsq': 'maximize',
}


def workflow_id(preprocessor, model_type):
    return f"{preprocessor}_{model_type}"


def build_workflow(preprocessor, spec, params, config):
    """Unfitted Pipeline for one (preprocessor, model spec, config) triple."""
    return Pipeline([
        ('features', build_feature_pipeline(preprocessor, config)),
        ('model', build_estimator(spec, params, seed=config['experiment']['seed'])),
    ])


def fit_workflow(pipeline, X, y):
    """Fit a workflow, converting solver failures into FitError."""
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', category=ConvergenceWarning)
        try:
            pipeline.fit(X, y)
        except FitError:
            raise
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
            model = pipeline.named_steps['model']
            raise FitError(f"{type(model).__name__} failed to fit: {e}") from e
    return pipeline


def predict_workflow(pipeline, X):
    """Predict with a fitted workflow, converting estimator failures into MetricError."""
    try:
        return pipeline.predict(X)
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
        model = pipeline.named_steps['model']
        raise MetricError(f"{type(model).__name__} failed to predict: {e}") from e


def regression_metrics(y_true, y_pred):
    """rmse, mae and rsq (coefficient of determination)."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    if y_true.shape != y_pred.shape:
        raise MetricError(f"Prediction shape {y_pred.shape} does not match target shape {y_true.shape}")
    if not np.isfinite(y_pred).all():
        bad = int((~np.isfinite(y_pred)).sum())
        raise MetricError(f"{bad} non-finite predictions")
    if len(y_true) == 0:
        raise MetricError("Cannot compute metrics on zero observations")

    return {
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        # rsq is undefined for a single observation
        'rsq': float(r2_score(y_true, y_pred)) if len(y_true) > 1 else float('nan'),
    }
