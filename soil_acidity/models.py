# Model families, hyperparameter spaces and grid sampling

import numpy as np
from scipy.stats import qmc
from sklearn.linear_model import ElasticNet, Lasso
from sklearn.tree import DecisionTreeRegressor
from sklearn.ensemble import RandomForestRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import SplineTransformer, PolynomialFeatures


SUPPORTED_MODELS = ['linear', 'decision_tree', 'random_forest', 'mars']

# Models that use random_state
MODELS_WITH_RANDOM_STATE = ['decision_tree', 'random_forest']


class IntRange:
    """Inclusive integer domain."""

    def __init__(self, low, high):
        if high < low:
            raise ValueError(f"IntRange high ({high}) < low ({low})")
        self.low = int(low)
        self.high = int(high)

    def from_unit(self, u):
        width = self.high - self.low + 1
        return self.low + min(int(np.floor(u * width)), width - 1)

    def __repr__(self):
        return f"IntRange({self.low}, {self.high})"


class FloatRange:
    """Continuous domain, optionally sampled on a log10 scale."""

    def __init__(self, low, high, log=False):
        if high < low:
            raise ValueError(f"FloatRange high ({high}) < low ({low})")
        if log and low <= 0:
            raise ValueError("Log-scaled FloatRange needs a positive lower bound")
        self.low = float(low)
        self.high = float(high)
        self.log = log

    def from_unit(self, u):
        if self.log:
            lo, hi = np.log10(self.low), np.log10(self.high)
            return float(10 ** (lo + u * (hi - lo)))
        return float(self.low + u * (self.high - self.low))

    def __repr__(self):
        return f"FloatRange({self.low}, {self.high}, log={self.log})"


class Choice:
    """Discrete set of values."""

    def __init__(self, values):
        if not values:
            raise ValueError("Choice needs at least one value")
        self.values = list(values)

    def from_unit(self, u):
        return self.values[min(int(u * len(self.values)), len(self.values) - 1)]

    def __repr__(self):
        return f"Choice({self.values})"


class ModelSpec:
    """
    Declarative model family: tunable space plus fixed settings.

    space maps hyperparameter name -> IntRange/FloatRange/Choice.
    fixed maps setting name -> value passed unchanged to every fit.
    """

    def __init__(self, model_type, space=None, fixed=None):
        if model_type not in SUPPORTED_MODELS:
            raise ValueError(f"Unknown model type: '{model_type}'. Supported: {SUPPORTED_MODELS}")
        self.model_type = model_type
        self.space = dict(space or {})
        self.fixed = dict(fixed or {})

    def with_fixed(self, **settings):
        """Return a copy with extra fixed settings; fixing a tunable removes it from the space."""
        space = {k: v for k, v in self.space.items() if k not in settings}
        fixed = dict(self.fixed)
        fixed.update(settings)
        return ModelSpec(self.model_type, space, fixed)

    def __repr__(self):
        return f"ModelSpec({self.model_type!r}, space={self.space}, fixed={self.fixed})"


MODEL_SPECS = {
    'linear': ModelSpec(
        'linear',
        space={
            'alpha': FloatRange(1e-4, 1.0, log=True),
            'l1_ratio': FloatRange(0.05, 1.0),
        },
        fixed={'max_iter': 10000},
    ),
    'decision_tree': ModelSpec(
        'decision_tree',
        space={
            'ccp_alpha': FloatRange(1e-6, 1e-1, log=True),
            'max_depth': IntRange(1, 15),
            'min_samples_split': IntRange(2, 40),
        },
    ),
    'random_forest': ModelSpec(
        'random_forest',
        space={
            'max_features': FloatRange(0.1, 1.0),
            'min_samples_leaf': IntRange(1, 20),
        },
        fixed={'n_estimators': 750},
    ),
    'mars': ModelSpec(
        'mars',
        space={
            'n_knots': IntRange(2, 6),
            'prod_degree': Choice([1, 2]),
            'alpha': FloatRange(1e-4, 1e-1, log=True),
        },
        fixed={'max_iter': 10000},
    ),
}


def get_model_spec(model_type, config=None):
    """Model spec for a family, with fixed overrides from config['models']['params'][model_type]."""
    if model_type not in MODEL_SPECS:
        raise ValueError(f"Unknown model type: '{model_type}'. Supported: {SUPPORTED_MODELS}")
    spec = MODEL_SPECS[model_type]
    overrides = {}
    if config is not None:
        overrides = (config.get('models', {}).get('params') or {}).get(model_type) or {}
    return spec.with_fixed(**overrides) if overrides else spec


def sample_grid(spec, size=10, seed=42):
    """
    Latin hypercube sample of a spec's tunable space.

    Each dimension is cut into `size` equal strata and every stratum is hit
    exactly once. Exact duplicate configurations (possible with small
    discrete domains) are removed, so fewer than `size` may be returned.

    Returns a list of {'config_id': 'ConfigNN', 'params': {...}}.
    """
    names = sorted(spec.space)
    if not names:
        return [{'config_id': 'Config01', 'params': {}}]

    sampler = qmc.LatinHypercube(d=len(names), seed=seed)
    unit = sampler.random(n=size)

    configs = []
    seen = set()
    for row in unit:
        params = {name: spec.space[name].from_unit(u) for name, u in zip(names, row)}
        key = tuple(params[name] for name in names)
        if key in seen:
            continue
        seen.add(key)
        configs.append({'config_id': f"Config{len(configs) + 1:02d}", 'params': params})

    return configs


def build_mars(n_knots=3, prod_degree=1, alpha=1e-3, max_iter=10000):
    """
    MARS-style additive spline regression.

    Degree-1 splines give piecewise-linear (hinge) bases per feature,
    prod_degree=2 adds pairwise products of bases, and the lasso penalty
    prunes unused terms.
    """
    return Pipeline([
        ('hinges', SplineTransformer(n_knots=n_knots, degree=1, extrapolation='linear')),
        ('products', PolynomialFeatures(degree=prod_degree, interaction_only=True, include_bias=False)),
        ('prune', Lasso(alpha=alpha, max_iter=max_iter)),
    ])


def build_estimator(spec, params, seed=42):
    """
    Build an unfitted estimator for one hyperparameter configuration.

    Note: ElasticNet and the MARS lasso are deterministic solvers.
    Trees and forests use the seed for reproducibility.
    """
    settings = dict(spec.fixed)
    settings.update(params)
    model_type = spec.model_type

    if model_type in MODELS_WITH_RANDOM_STATE:
        settings.setdefault('random_state', seed)

    if model_type == 'linear':
        return ElasticNet(**settings)

    elif model_type == 'decision_tree':
        return DecisionTreeRegressor(**settings)

    elif model_type == 'random_forest':
        settings.setdefault('n_jobs', 1)
        return RandomForestRegressor(**settings)

    elif model_type == 'mars':
        return build_mars(**settings)

    else:
        raise ValueError(
            f"Unknown model type: '{model_type}'. "
            f"Supported: {SUPPORTED_MODELS}"
        )


def get_model_info(model_type, config=None):
    """Get information about a model type (with config overrides applied)."""
    spec = get_model_spec(model_type, config)
    return {
        'type': model_type,
        'tunable': sorted(spec.space),
        'fixed': dict(spec.fixed),
        'supports_random_state': model_type in MODELS_WITH_RANDOM_STATE,
    }
