# Feature preprocessing
# Fit-once transform: dummies, pairwise interactions, zero-variance and
# correlation pruning, standardisation. The retained columns are frozen at fit.

import itertools

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from .errors import SchemaError, FitError

PREPROCESSORS = ['basic', 'interact']


def correlation_filter(frame, threshold=0.75):
    """
    Greedy pairwise correlation pruning.

    Walks the columns in their given (canonical) order and, for every pair
    with |r| > threshold where both columns are still retained, drops the
    later column.

    Returns:
        (kept, dropped): lists of column names
    """
    columns = list(frame.columns)
    corr = frame.corr().abs().values
    retained = np.ones(len(columns), dtype=bool)

    for i in range(len(columns)):
        if not retained[i]:
            continue
        for j in range(i + 1, len(columns)):
            if retained[j] and corr[i, j] > threshold:
                retained[j] = False

    kept = [c for c, r in zip(columns, retained) if r]
    dropped = [c for c, r in zip(columns, retained) if not r]
    return kept, dropped


class SoilFeatureTransformer(BaseEstimator, TransformerMixin):
    """
    Feature transform fitted on training rows only.

    interaction_columns=None expands every numeric column pairwise; an empty
    tuple disables interactions. corr_threshold=None disables correlation
    pruning. After fit, transform() always returns feature_names_out_ in the
    same order, whatever the correlation structure of the new data.
    """

    def __init__(self, categorical_columns=('texture',), interaction_columns=(),
                 corr_threshold=None, normalize=True):
        self.categorical_columns = categorical_columns
        self.interaction_columns = interaction_columns
        self.corr_threshold = corr_threshold
        self.normalize = normalize

    def _expand(self, X):
        missing = [c for c in self.input_columns_ if c not in X.columns]
        if missing:
            raise SchemaError(f"Input is missing columns seen at fit time: {missing}", stage='features')

        numeric = X[self.numeric_columns_].astype(float)
        parts = [numeric]

        for col, categories in self.categories_.items():
            values = X[col].astype(str)
            # first category is the reference level
            dummies = pd.DataFrame(
                {f"{col}_{cat}": (values == cat).astype(float) for cat in categories[1:]},
                index=X.index,
            )
            parts.append(dummies)

        for a, b in self.interaction_pairs_:
            parts.append((numeric[a] * numeric[b]).rename(f"{a}_x_{b}"))

        return pd.concat(parts, axis=1)

    def fit(self, X, y=None):
        if not isinstance(X, pd.DataFrame):
            raise TypeError("SoilFeatureTransformer expects a pandas DataFrame")

        self.input_columns_ = list(X.columns)
        categorical = [c for c in (self.categorical_columns or ()) if c in X.columns]
        self.categories_ = {c: sorted(X[c].astype(str).unique()) for c in categorical}
        self.numeric_columns_ = [c for c in X.columns if c not in categorical]

        if self.interaction_columns is None:
            interaction_columns = list(self.numeric_columns_)
        else:
            interaction_columns = list(self.interaction_columns)
        missing = [c for c in interaction_columns if c not in self.numeric_columns_]
        if missing:
            raise SchemaError(f"Interaction columns not found among numeric predictors: {missing}", stage='features')
        self.interaction_pairs_ = list(itertools.combinations(interaction_columns, 2))

        expanded = self._expand(X)

        spread = expanded.std(ddof=0)
        self.zero_variance_ = spread.index[~(spread > 0)].tolist()
        expanded = expanded.drop(columns=self.zero_variance_)

        self.dropped_correlated_ = []
        if self.corr_threshold is not None and expanded.shape[1] > 1:
            kept, self.dropped_correlated_ = correlation_filter(expanded, self.corr_threshold)
            expanded = expanded[kept]

        if expanded.shape[1] == 0:
            raise FitError("No features left after zero-variance/correlation pruning", stage='features')

        self.feature_names_out_ = list(expanded.columns)
        if self.normalize:
            self.mean_ = expanded.mean()
            self.scale_ = expanded.std(ddof=0)
        return self

    def transform(self, X):
        check_is_fitted(self, 'feature_names_out_')
        expanded = self._expand(X)[self.feature_names_out_]
        if self.normalize:
            expanded = (expanded - self.mean_) / self.scale_
        return expanded

    def get_feature_names_out(self, input_features=None):
        check_is_fitted(self, 'feature_names_out_')
        return np.asarray(self.feature_names_out_, dtype=object)


def build_feature_pipeline(name, config):
    """
    Build an unfitted feature transformer by preprocessor name.

    basic:    dummies + zero-variance filter + standardisation
    interact: basic + pairwise interactions + correlation pruning
    """
    features = config.get('features', {})
    categorical = tuple(config['data'].get('categorical_columns') or ())
    normalize = features.get('normalize', True)

    if name == 'basic':
        return SoilFeatureTransformer(
            categorical_columns=categorical,
            interaction_columns=(),
            corr_threshold=None,
            normalize=normalize,
        )
    elif name == 'interact':
        columns = features.get('interaction_columns') or None
        return SoilFeatureTransformer(
            categorical_columns=categorical,
            interaction_columns=tuple(columns) if columns else None,
            corr_threshold=features.get('corr_threshold', 0.75),
            normalize=normalize,
        )
    else:
        raise ValueError(f"Unknown preprocessor: '{name}'. Supported: {PREPROCESSORS}")
