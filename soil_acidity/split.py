# Train/test split and resampling plans
# Both are stratified on quantile bins of the log10 target

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split, RepeatedStratifiedKFold

from .errors import InsufficientDataError


def stratify_bins(y, n_bins=4):
    """
    Assign each value of a positive target to a quantile bin of log10(y).

    Returns an int array of bin labels (0..n_bins-1). Duplicate quantile
    edges are merged, so fewer bins may be produced for discrete targets.
    """
    log_y = np.log10(np.asarray(y, dtype=float))
    if n_bins <= 1 or len(log_y) == 0:
        return np.zeros(len(log_y), dtype=int)
    bins = pd.qcut(log_y, q=n_bins, labels=False, duplicates='drop')
    return np.asarray(bins, dtype=int)


def _check_strata(bins, minimum, what):
    labels, counts = np.unique(bins, return_counts=True)
    small = {int(b): int(c) for b, c in zip(labels, counts) if c < minimum}
    if small:
        raise InsufficientDataError(
            f"{what}: strata {small} have fewer than {minimum} records "
            f"(stratum -> count). Reduce the number of bins or folds."
        )


def split_train_test(df, target, train_ratio=0.75, seed=42, n_bins=4):
    """
    Stratified train/test partition of the dataset index.

    Returns a SplitPlan dict with 'train' and 'test' arrays of index labels,
    sorted ascending. len(train) == floor(train_ratio * len(df)).
    """
    bins = stratify_bins(df[target].values, n_bins)
    _check_strata(bins, 2, "Train/test split")

    try:
        train_idx, test_idx = train_test_split(
            df.index.values,
            train_size=train_ratio,
            random_state=seed,
            stratify=bins,
        )
    except ValueError as e:
        raise InsufficientDataError(f"Train/test split failed: {e}") from e

    return {
        'train': np.sort(train_idx),
        'test': np.sort(test_idx),
        'train_ratio': train_ratio,
        'seed': seed,
        'strata': int(len(np.unique(bins))),
    }


def make_fold_plan(df, train_idx, target, n_splits=15, n_repeats=3, seed=42, n_bins=4):
    """
    Repeated stratified K-fold plan over the training rows.

    Returns a list of n_splits * n_repeats dicts ordered by (repeat, fold):
        fold_id, repeat, fold, analysis (rows to fit on), assessment (held-out rows)
    Index arrays hold dataset index labels.
    """
    train_idx = np.asarray(train_idx)
    bins = stratify_bins(df.loc[train_idx, target].values, n_bins)
    _check_strata(bins, n_splits, f"{n_splits}-fold resampling")

    cv = RepeatedStratifiedKFold(n_splits=n_splits, n_repeats=n_repeats, random_state=seed)

    plan = []
    for i, (fit_pos, held_pos) in enumerate(cv.split(np.zeros(len(train_idx)), bins)):
        repeat, fold = i // n_splits + 1, i % n_splits + 1
        plan.append({
            'fold_id': f"Repeat{repeat}_Fold{fold:02d}",
            'repeat': repeat,
            'fold': fold,
            'analysis': train_idx[np.sort(fit_pos)],
            'assessment': train_idx[np.sort(held_pos)],
        })

    plan.sort(key=lambda entry: (entry['repeat'], entry['fold']))
    return plan


def plan_split(df, config):
    """Config-driven split_train_test."""
    return split_train_test(
        df,
        config['data']['target_column'],
        train_ratio=config['split']['train_ratio'],
        seed=config['experiment']['seed'],
        n_bins=config['split'].get('strata_bins', 4),
    )


def plan_folds(df, split_plan, config):
    """Config-driven make_fold_plan over the training partition."""
    cv_config = config['cross_validation']
    return make_fold_plan(
        df,
        split_plan['train'],
        config['data']['target_column'],
        n_splits=cv_config['n_splits'],
        n_repeats=cv_config.get('n_repeats', 1),
        seed=config['experiment']['seed'],
        n_bins=config['split'].get('strata_bins', 4),
    )
