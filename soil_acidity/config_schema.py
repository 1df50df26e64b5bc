# Config schema validation
# Validates config structure, types and value ranges

REQUIRED_KEYS = {
    'experiment': ['name', 'seed'],
    'data': ['target_column'],
    'split': ['train_ratio'],
    'cross_validation': ['n_splits'],
    'models': ['types'],
}

ALLOWED_MODEL_TYPES = ['linear', 'decision_tree', 'random_forest', 'mars']

ALLOWED_PREPROCESSORS = ['basic', 'interact']

ALLOWED_RANK_METRICS = ['rmse', 'mae']

DEFAULTS = {
    'data': {
        'id_column': 'sample_id',
        'categorical_columns': ['texture'],
        'feature_columns': None,
        'ignored_columns': [],
    },
    'cleaning': {
        'columns_to_drop': [],
        'max_missing_rate': 0.5,
        'max_record_missing': 0.8,
        'categorical_fill': 'unknown',
    },
    'split': {
        'train_ratio': 0.75,
        'strata_bins': 4,
    },
    'cross_validation': {
        'n_splits': 15,
        'n_repeats': 3,
    },
    'features': {
        'preprocessors': ['basic', 'interact'],
        'interaction_columns': [],
        'corr_threshold': 0.75,
        'normalize': True,
    },
    'tuning': {
        'grid_size': 10,
        'metric': 'rmse',
        'n_jobs': 1,
    },
    'metrics': {
        'save_plots': True,
    },
}


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def apply_defaults(config):
    """Fill optional sections/keys with their defaults (in place) and return config."""
    for section, defaults in DEFAULTS.items():
        current = config.setdefault(section, {})
        if current is None:
            current = config[section] = {}
        for key, value in defaults.items():
            if key not in current:
                current[key] = list(value) if isinstance(value, list) else value
    config['models'].setdefault('params', {})
    return config


def validate_config(config):
    """
    Validate experiment configuration.

    Args:
        config: dict - Configuration dictionary

    Raises:
        ConfigValidationError if validation fails
    """
    errors = []

    # Check required top-level keys
    for section, required_keys in REQUIRED_KEYS.items():
        if not isinstance(config.get(section), dict):
            errors.append(f"Missing required section: '{section}'")
            continue

        for key in required_keys:
            if key not in config[section]:
                errors.append(f"Missing required key: '{section}.{key}'")

    if errors:
        raise ConfigValidationError("Config validation failed:\n  - " + "\n  - ".join(errors))

    apply_defaults(config)

    # Validate types
    if not isinstance(config['experiment'].get('seed'), int):
        errors.append("experiment.seed must be an integer")

    n_splits = config['cross_validation'].get('n_splits')
    if not isinstance(n_splits, int):
        errors.append("cross_validation.n_splits must be an integer")
    elif n_splits < 2:
        errors.append("cross_validation.n_splits must be >= 2")

    n_repeats = config['cross_validation'].get('n_repeats')
    if not isinstance(n_repeats, int) or n_repeats < 1:
        errors.append("cross_validation.n_repeats must be a positive integer")

    ratio = config['split'].get('train_ratio')
    if not isinstance(ratio, (int, float)) or not 0 < ratio < 1:
        errors.append(f"split.train_ratio must be in (0, 1), got {ratio!r}")

    bins = config['split'].get('strata_bins')
    if not isinstance(bins, int) or bins < 1:
        errors.append("split.strata_bins must be a positive integer")

    # Validate model types
    model_types = config['models'].get('types') or []
    if not model_types:
        errors.append("models.types must list at least one model type")
    for model_type in model_types:
        if model_type not in ALLOWED_MODEL_TYPES:
            errors.append(f"Invalid model type '{model_type}'. Allowed: {ALLOWED_MODEL_TYPES}")

    for model_type in config['models'].get('params') or {}:
        if model_type not in ALLOWED_MODEL_TYPES:
            errors.append(f"models.params has settings for unknown model type '{model_type}'")

    # Validate preprocessors
    preprocessors = config['features'].get('preprocessors') or []
    if not preprocessors:
        errors.append("features.preprocessors must list at least one preprocessor")
    for name in preprocessors:
        if name not in ALLOWED_PREPROCESSORS:
            errors.append(f"Invalid preprocessor '{name}'. Allowed: {ALLOWED_PREPROCESSORS}")

    threshold = config['features'].get('corr_threshold')
    if not isinstance(threshold, (int, float)) or not 0 < threshold <= 1:
        errors.append(f"features.corr_threshold must be in (0, 1], got {threshold!r}")

    # Validate cleaning thresholds
    for key in ('max_missing_rate', 'max_record_missing'):
        value = config['cleaning'].get(key)
        if not isinstance(value, (int, float)) or not 0 <= value <= 1:
            errors.append(f"cleaning.{key} must be in [0, 1], got {value!r}")

    # Validate tuning
    grid_size = config['tuning'].get('grid_size')
    if not isinstance(grid_size, int) or grid_size < 1:
        errors.append("tuning.grid_size must be a positive integer")

    metric = config['tuning'].get('metric')
    if metric not in ALLOWED_RANK_METRICS:
        errors.append(f"Invalid tuning.metric '{metric}'. Allowed: {ALLOWED_RANK_METRICS}")

    if not isinstance(config['tuning'].get('n_jobs'), int):
        errors.append("tuning.n_jobs must be an integer")

    target = config['data'].get('target_column')
    if target in (config['data'].get('ignored_columns') or []):
        errors.append(f"Target '{target}' cannot also be listed in data.ignored_columns")

    if errors:
        raise ConfigValidationError("Config validation failed:\n  - " + "\n  - ".join(errors))

    return True
