# I/O utilities for the modelling pipeline
# Config loading, result saving, run directory management

import os
import json
import hashlib
from datetime import datetime

import yaml
import numpy as np

from .models import get_model_info


def load_config(config_path):
    """Load YAML configuration file."""
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Config file is empty or invalid: {config_path}")

    return config


def config_hash(config):
    """Generate deterministic hash of config for run naming."""
    config_str = json.dumps(config, sort_keys=True)
    return hashlib.md5(config_str.encode()).hexdigest()[:8]


def dataset_hash(df):
    """Generate hash of dataset content for fingerprinting."""
    # Hash based on shape and sample of data
    content = f"{df.shape}_{df.columns.tolist()}_{df.head(10).to_json()}_{df.tail(10).to_json()}"
    return hashlib.md5(content.encode()).hexdigest()[:12]


def create_run_dir(config, output_dir=None):
    """Create unique run directory for experiment outputs."""
    output_dir = output_dir or config['experiment'].get('output_dir', 'runs')
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    cfg_hash = config_hash(config)
    run_name = f"{config['experiment']['name']}_{timestamp}_{cfg_hash}"
    run_dir = os.path.join(output_dir, run_name)
    os.makedirs(run_dir, exist_ok=True)
    return run_dir


def _to_builtin(value):
    """Convert numpy scalars/NaN so json.dump accepts them."""
    if isinstance(value, dict):
        return {k: _to_builtin(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not np.isfinite(value):
        return None
    return value


def save_results(run_dir, config, tuning_results, ranking, table, final, predictions, cleaned_df):
    """
    Save all pipeline artifacts to run directory.

    Writes: config.yaml, cleaned_data.csv, tuning_results.json,
    ranked_configs.csv, model_comparison.csv, final_predictions.csv,
    metrics.json, model.joblib and (optionally) model_comparison.png
    """
    import joblib

    # Save config
    with open(os.path.join(run_dir, 'config.yaml'), 'w') as f:
        yaml.dump(config, f, default_flow_style=False)

    cleaned_df.to_csv(os.path.join(run_dir, 'cleaned_data.csv'), index=False)
    ranking.to_csv(os.path.join(run_dir, 'ranked_configs.csv'), index=False)
    table.to_csv(os.path.join(run_dir, 'model_comparison.csv'), index=False)
    predictions.to_csv(os.path.join(run_dir, 'final_predictions.csv'), index=False)

    # Per-config results, including fold-level scores and failures
    with open(os.path.join(run_dir, 'tuning_results.json'), 'w') as f:
        json.dump(_to_builtin(tuning_results), f, indent=2)

    model = final['model']
    metrics_json = {
        'experiment_name': config['experiment']['name'],
        'seed': config['experiment']['seed'],
        'target_column': config['data']['target_column'],
        'rank_metric': config['tuning']['metric'],
        'best_workflow': model.workflow,
        'best_config': model.config_id,
        'best_params': model.params,
        'best_model_info': get_model_info(model.model_type, config),
        'features_used': model.feature_names,
        'train': final['train'],
        'test': final['test'],
        'full': final['full'],
        'n_failed_configs': sum(1 for r in tuning_results if r['status'] == 'failed'),
    }
    with open(os.path.join(run_dir, 'metrics.json'), 'w') as f:
        json.dump(_to_builtin(metrics_json), f, indent=2)

    model_path = os.path.join(run_dir, 'model.joblib')
    joblib.dump(final['deployed'], model_path)
    print(f"Model saved to: {model_path}")

    if config.get('metrics', {}).get('save_plots', True):
        _save_comparison_plot(run_dir, config, table)

    print(f"Results saved to: {run_dir}")
    return run_dir


def save_exploration(run_dir, exploration):
    """Save correlation/PCA/PLS tables as CSV."""
    exploration['correlations'].to_csv(os.path.join(run_dir, 'target_correlations.csv'), index=False)
    exploration['correlation_matrix'].to_csv(os.path.join(run_dir, 'correlation_matrix.csv'))
    exploration['pca']['variance'].to_csv(os.path.join(run_dir, 'pca_variance.csv'), index=False)
    exploration['pca']['loadings'].to_csv(os.path.join(run_dir, 'pca_loadings.csv'))
    exploration['pls']['variance'].to_csv(os.path.join(run_dir, 'pls_variance.csv'), index=False)
    exploration['pls']['loadings'].to_csv(os.path.join(run_dir, 'pls_loadings.csv'))


def _save_comparison_plot(run_dir, config, table):
    """Save best-config mean +/- standard error per workflow for each metric."""
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    metrics = list(dict.fromkeys(table['Metric']))
    if not metrics:
        return

    fig, axes = plt.subplots(1, len(metrics), figsize=(5 * len(metrics), 4), squeeze=False)
    axes = axes.flatten()

    for ax, metric in zip(axes, metrics):
        rows = table[table['Metric'] == metric].sort_values('Rank')
        ax.errorbar(rows['Rank'], rows['Mean'], yerr=rows['StdErr'].fillna(0), fmt='o', capsize=4)
        ax.set_xticks(rows['Rank'])
        ax.set_xticklabels(rows['Model'], rotation=45, ha='right')
        ax.set_title(metric.upper())
        ax.set_xlabel("Workflow rank")

    plt.suptitle(f"{config['experiment']['name']} - log10({config['data']['target_column']})", fontsize=14)
    plt.tight_layout()
    plt.savefig(os.path.join(run_dir, 'model_comparison.png'), dpi=150)
    plt.close()


def save_data_profile(run_dir, raw_df, cleaned_df, X, y, dataset_path):
    """Save dataset fingerprint/profile for reproducibility tracking."""
    profile = {
        'dataset_path': str(dataset_path) if dataset_path else None,
        'dataset_hash': dataset_hash(raw_df),
        'raw_rows': len(raw_df),
        'total_rows': len(cleaned_df),
        'total_columns': len(cleaned_df.columns),
        'dropped_columns': [c for c in raw_df.columns if c.strip() not in cleaned_df.columns],
        'feature_count': len(X.columns),
        'features_used': list(X.columns),
        'target_column': y.name,
        'target_stats': {
            'mean': float(y.mean()),
            'std': float(y.std()),
            'min': float(y.min()),
            'max': float(y.max()),
        },
        'missing_values_raw': int(raw_df.isnull().sum().sum()),
        'timestamp': datetime.now().isoformat()
    }

    with open(os.path.join(run_dir, 'data_profile.json'), 'w') as f:
        json.dump(profile, f, indent=2)

    return profile
