# Data loading and cleaning utilities

import os

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype

from .errors import SchemaError, DataQualityError


def load_dataset(config, dataset_path=None):
    """Load the raw soil dataset (delimited text with a header row)."""
    path = dataset_path or config['data'].get('dataset_path')

    if path is None:
        raise ValueError("No dataset path given (use --dataset or data.dataset_path)")
    if not os.path.exists(path):
        raise FileNotFoundError(f"Dataset file not found: {path}")

    print(f"Loading dataset: {path}")
    df = pd.read_csv(path, sep=config['data'].get('delimiter', ','))

    return df, path


def _record_ids(df, mask, id_col, limit=10):
    ids = df.loc[mask, id_col].tolist()
    suffix = f" (+{len(ids) - limit} more)" if len(ids) > limit else ""
    return f"{ids[:limit]}{suffix}"


def _protected_columns(config):
    protected = set()
    protected.update(config['data'].get('feature_columns') or [])
    protected.update(config.get('features', {}).get('interaction_columns') or [])
    return protected


def clean_dataset(df, config):
    """
    Clean a raw soil dataset.

    Steps (deterministic, row order preserved):
    - drop configured columns
    - assign/validate the integer sample id
    - drop structurally invalid records (nearly every attribute missing)
    - check every remaining record has a positive target
    - drop attributes above the missing-rate threshold
    - mean-impute numeric attributes, fill categoricals with a sentinel

    Raises:
        SchemaError: target column absent, duplicated ids, or a record without a target
        DataQualityError: an attribute that cannot be imputed or dropped,
            or a target value that is not strictly positive
    """
    data_cfg = config['data']
    clean_cfg = config['cleaning']
    target = data_cfg['target_column']
    id_col = data_cfg.get('id_column', 'sample_id')
    categorical = data_cfg.get('categorical_columns') or []
    fill_value = clean_cfg.get('categorical_fill', 'unknown')

    df = df.copy()
    df.columns = df.columns.str.strip()

    # Drop auxiliary columns
    cols_to_drop = clean_cfg.get('columns_to_drop') or []
    df = df.drop(columns=[c for c in cols_to_drop if c in df.columns])

    if target not in df.columns:
        raise SchemaError(f"Target column '{target}' not found in dataset. Available: {list(df.columns)}")

    if id_col not in df.columns:
        df.insert(0, id_col, np.arange(1, len(df) + 1))
    else:
        if df[id_col].isnull().any():
            raise SchemaError(f"Sample id column '{id_col}' contains missing values")
        duplicated = df[id_col].duplicated(keep=False)
        if duplicated.any():
            raise SchemaError(f"Duplicate sample ids in '{id_col}': {_record_ids(df, duplicated, id_col)}")

    attributes = [c for c in df.columns if c != id_col]

    # Structurally invalid records
    record_missing = df[attributes].isnull().mean(axis=1)
    invalid = record_missing >= clean_cfg.get('max_record_missing', 0.8)
    if invalid.any():
        print(f"DROPPED {int(invalid.sum())} structurally invalid records: {_record_ids(df, invalid, id_col)}")
        df = df.loc[~invalid].reset_index(drop=True)
    else:
        df = df.reset_index(drop=True)

    if df.empty:
        raise DataQualityError("No records left after dropping structurally invalid records")

    # Target must be present and strictly positive (log transform)
    missing_target = df[target].isnull()
    if missing_target.any():
        raise SchemaError(
            f"Target '{target}' missing for records {_record_ids(df, missing_target, id_col)}"
        )
    y = pd.to_numeric(df[target], errors='coerce')
    bad_target = y.isnull() | (y <= 0)
    if bad_target.any():
        raise DataQualityError(
            f"Target '{target}' must be numeric and strictly positive; "
            f"offending records: {_record_ids(df, bad_target, id_col)}"
        )
    df[target] = y.astype(float)

    missing_rate = df[attributes].isnull().mean()

    empty_cols = missing_rate.index[missing_rate >= 1.0].tolist()
    if empty_cols:
        raise DataQualityError(
            f"Attributes with 100% missing values cannot be imputed: {empty_cols}. "
            f"Add them to cleaning.columns_to_drop if they are not needed."
        )

    max_rate = clean_cfg.get('max_missing_rate', 0.5)
    sparse_cols = missing_rate.index[missing_rate > max_rate].tolist()
    protected = _protected_columns(config)
    blocked = [c for c in sparse_cols if c in protected]
    if blocked:
        details = ", ".join(f"{c} ({missing_rate[c]:.1%})" for c in blocked)
        raise DataQualityError(
            f"Required attributes exceed the missing-value threshold {max_rate:.0%}: {details}"
        )
    if sparse_cols:
        details = ", ".join(f"{c} ({missing_rate[c]:.1%})" for c in sparse_cols)
        print(f"DROPPED attributes above {max_rate:.0%} missing: {details}")
        df = df.drop(columns=sparse_cols)

    # Imputation
    for col in df.columns:
        if col in (id_col, target):
            continue
        if col in categorical:
            df[col] = df[col].fillna(fill_value).astype(str)
        elif is_numeric_dtype(df[col]):
            if df[col].isnull().any():
                df[col] = df[col].fillna(df[col].mean())
        else:
            raise DataQualityError(
                f"Attribute '{col}' is not numeric. "
                f"Declare it in data.categorical_columns or cleaning.columns_to_drop."
            )

    return df


def split_features_target(df, config):
    """
    Split a cleaned dataset into predictors and target (original units).

    Returns:
        X: DataFrame of predictors (id, target and ignored columns removed)
        y: Series of target values
    """
    target = config['data']['target_column']
    id_col = config['data'].get('id_column', 'sample_id')

    if target not in df.columns:
        raise SchemaError(f"Target column '{target}' not found in dataset. Available: {list(df.columns)}")

    feature_cols = config['data'].get('feature_columns')
    if feature_cols:
        missing = [c for c in feature_cols if c not in df.columns]
        if missing:
            raise SchemaError(f"Configured feature columns not found: {missing}")
    else:
        ignored = set(config['data'].get('ignored_columns') or [])
        feature_cols = [c for c in df.columns if c not in (id_col, target) and c not in ignored]

    X = df[feature_cols].copy()
    y = df[target].copy()
    return X, y


def log_target(y):
    """log10 transform of a strictly positive target."""
    y = pd.Series(y, dtype=float) if not isinstance(y, pd.Series) else y.astype(float)
    if (y <= 0).any() or y.isnull().any():
        raise DataQualityError(f"Target '{y.name}' must be strictly positive for the log transform")
    return np.log10(y)


def validate_data_integrity(X, y):
    """
    Validate data integrity before modelling.

    Checks:
    - No NaN/infinite values in features or target
    - Target strictly positive
    """
    errors = []

    nan_cols = X.columns[X.isnull().any()].tolist()
    if nan_cols:
        errors.append(f"NaN values found in features: {nan_cols}")

    if y.isnull().any():
        errors.append(f"NaN values found in target ({y.name}): {y.isnull().sum()} missing")

    numeric_cols = X.select_dtypes(include=[np.number]).columns
    for col in numeric_cols:
        if not np.isfinite(X[col]).all():
            errors.append(f"Infinite values found in feature: {col}")

    if not np.isfinite(y).all():
        errors.append(f"Infinite values found in target: {y.name}")
    elif (y <= 0).any():
        errors.append(f"Non-positive values found in target: {y.name}")

    if errors:
        raise DataQualityError("Data integrity check failed:\n  - " + "\n  - ".join(errors))

    return True
