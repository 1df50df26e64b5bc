# Grid search over repeated stratified CV folds
# Every (config, fold) unit is independent; aggregation is ordered by fold id

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .errors import FitError, MetricError
from .models import get_model_spec, sample_grid
from .workflow import (
    METRICS, METRIC_DIRECTIONS, workflow_id, build_workflow, fit_workflow, predict_workflow,
    regression_metrics
)

RANKING_COLUMNS = [
    'rank', 'workflow', 'workflow_rank', 'preprocessor', 'model', 'config_id', 'mean', 'std_err', 'n'
]


def _fit_and_score_fold(preprocessor, spec, entry, fold, X, y, config):
    """Fit on the analysis rows of one fold and score the held-out rows."""
    record = {
        'config_id': entry['config_id'],
        'fold_id': fold['fold_id'],
        'repeat': fold['repeat'],
        'fold': fold['fold'],
        'metrics': None,
        'error': None,
    }

    pipeline = build_workflow(preprocessor, spec, entry['params'], config)
    try:
        fit_workflow(pipeline, X.loc[fold['analysis']], y.loc[fold['analysis']])
        y_pred = predict_workflow(pipeline, X.loc[fold['assessment']])
        record['metrics'] = regression_metrics(y.loc[fold['assessment']], y_pred)
    except (FitError, MetricError) as e:
        record['error'] = f"{type(e).__name__}: {e}"

    return record


def _summarize(values):
    values = np.asarray(values, dtype=float)
    n = len(values)
    if n == 0:
        return {'mean': float('nan'), 'std_err': float('nan'), 'n': 0, 'all': []}
    std_err = float(np.std(values, ddof=1) / np.sqrt(n)) if n > 1 else float('nan')
    return {'mean': float(np.mean(values)), 'std_err': std_err, 'n': n, 'all': values.tolist()}


def _aggregate(preprocessor, spec, configs, records):
    """Group fold records by config and reduce them in (repeat, fold) order."""
    by_config = {entry['config_id']: [] for entry in configs}
    for record in records:
        by_config[record['config_id']].append(record)

    results = []
    for entry in configs:
        folds = sorted(by_config[entry['config_id']], key=lambda r: (r['repeat'], r['fold']))
        errors = [{'fold_id': r['fold_id'], 'error': r['error']} for r in folds if r['error']]
        ok = [r for r in folds if r['error'] is None]

        metrics = {}
        for name in METRICS:
            if errors:
                metrics[name] = {
                    'mean': float('nan'),
                    'std_err': float('nan'),
                    'n': len(ok),
                    'all': [r['metrics'][name] for r in ok],
                }
            else:
                metrics[name] = _summarize([r['metrics'][name] for r in ok])

        results.append({
            'workflow': workflow_id(preprocessor, spec.model_type),
            'preprocessor': preprocessor,
            'model': spec.model_type,
            'config_id': entry['config_id'],
            'params': dict(entry['params']),
            'status': 'failed' if errors else 'ok',
            'errors': errors,
            'metrics': metrics,
        })

    return results


def evaluate_workflow(preprocessor, spec, X, y, fold_plan, configs, config):
    """
    Evaluate every hyperparameter config of one workflow across all folds.

    Args:
        preprocessor: feature preprocessor name ('basic' or 'interact')
        spec: ModelSpec
        X: DataFrame of predictors indexed like the fold plan
        y: Series of (log10) target values
        fold_plan: list of fold dicts from make_fold_plan
        configs: list of {'config_id', 'params'} from sample_grid
        config: experiment config

    Returns:
        List of EvaluationResult dicts, one per config, in config order.
        metrics[name] has mean, std_err, n and all (fold scores ordered by fold id).
    """
    n_jobs = config.get('tuning', {}).get('n_jobs', 1)
    name = workflow_id(preprocessor, spec.model_type)

    print(f"Tuning {name}: {len(configs)} configs x {len(fold_plan)} folds...")

    units = [(entry, fold) for entry in configs for fold in fold_plan]
    records = Parallel(n_jobs=n_jobs)(
        delayed(_fit_and_score_fold)(preprocessor, spec, entry, fold, X, y, config)
        for entry, fold in units
    )

    results = _aggregate(preprocessor, spec, configs, records)

    failed = [r['config_id'] for r in results if r['status'] == 'failed']
    if failed:
        print(f"  WARNING: {len(failed)} configs failed to fit for {name}: {failed}")

    return results


def run_grid_search(X, y, fold_plan, config):
    """Evaluate every (preprocessor, model type) workflow named in the config."""
    seed = config['experiment']['seed']
    grid_size = config['tuning'].get('grid_size', 10)

    results = []
    for preprocessor in config['features']['preprocessors']:
        for model_type in config['models']['types']:
            spec = get_model_spec(model_type, config)
            configs = sample_grid(spec, size=grid_size, seed=seed)
            results.extend(evaluate_workflow(preprocessor, spec, X, y, fold_plan, configs, config))
    return results


def rank_results(results, metric='rmse'):
    """
    Rank successfully evaluated configs by mean metric.

    Returns a DataFrame with the overall rank and the rank within each
    workflow. Failed configs are excluded; ties are broken by workflow and
    config id so the ordering is reproducible.
    """
    if metric not in METRIC_DIRECTIONS:
        raise ValueError(f"Unknown metric '{metric}'. Supported: {METRICS}")

    rows = [{
        'workflow': r['workflow'],
        'preprocessor': r['preprocessor'],
        'model': r['model'],
        'config_id': r['config_id'],
        'mean': r['metrics'][metric]['mean'],
        'std_err': r['metrics'][metric]['std_err'],
        'n': r['metrics'][metric]['n'],
    } for r in results if r['status'] == 'ok']

    if not rows:
        return pd.DataFrame(columns=RANKING_COLUMNS)

    ascending = METRIC_DIRECTIONS[metric] == 'minimize'
    frame = pd.DataFrame(rows).sort_values(
        ['mean', 'workflow', 'config_id'],
        ascending=[ascending, True, True],
        kind='mergesort',
    ).reset_index(drop=True)
    frame['rank'] = np.arange(1, len(frame) + 1)
    frame['workflow_rank'] = frame.groupby('workflow').cumcount() + 1
    return frame[RANKING_COLUMNS]


def select_best(results, metric='rmse', workflow=None):
    """Best EvaluationResult overall, or within one workflow."""
    ranking = rank_results(results, metric)
    if workflow is not None:
        ranking = ranking[ranking['workflow'] == workflow]
    if ranking.empty:
        scope = f" for workflow '{workflow}'" if workflow else ""
        raise FitError(f"No successfully evaluated configuration{scope}", stage='tuning')

    top = ranking.iloc[0]
    return next(
        r for r in results
        if r['workflow'] == top['workflow'] and r['config_id'] == top['config_id']
    )


def best_per_workflow(results, metric='rmse'):
    """Dict of workflow -> best EvaluationResult, ordered best workflow first."""
    ranking = rank_results(results, metric)
    best = {}
    for _, row in ranking[ranking['workflow_rank'] == 1].iterrows():
        best[row['workflow']] = next(
            r for r in results
            if r['workflow'] == row['workflow'] and r['config_id'] == row['config_id']
        )
    return best


def failed_results(results):
    """Configs that failed to fit, with their fold errors."""
    return [
        {'workflow': r['workflow'], 'config_id': r['config_id'], 'params': r['params'], 'errors': r['errors']}
        for r in results if r['status'] == 'failed'
    ]


def results_table(results, metrics=None):
    """
    Ranked comparison table: best config of each workflow per metric.

    Columns: Model, Metric, Mean, StdErr, n, Rank, Config
    """
    metrics = metrics or METRICS
    rows = []
    for metric in metrics:
        for rank, (name, best) in enumerate(best_per_workflow(results, metric).items(), start=1):
            summary = best['metrics'][metric]
            rows.append({
                'Model': name,
                'Metric': metric,
                'Mean': summary['mean'],
                'StdErr': summary['std_err'],
                'n': summary['n'],
                'Rank': rank,
                'Config': best['config_id'],
            })
    return pd.DataFrame(rows, columns=['Model', 'Metric', 'Mean', 'StdErr', 'n', 'Rank', 'Config'])
