# Full model-selection run
# Clean -> split -> grid search -> rank -> refit on train -> score -> refit on all data

import argparse
import random
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np

from soil_acidity.config_schema import validate_config, ConfigValidationError
from soil_acidity.errors import SoilModelError
from soil_acidity.io import load_config, save_results, create_run_dir, save_data_profile, save_exploration
from soil_acidity.data import (
    load_dataset, clean_dataset, split_features_target, log_target, validate_data_integrity
)
from soil_acidity.explore import correlation_summary, correlation_matrix, pca_summary, pls_summary
from soil_acidity.split import plan_split, plan_folds
from soil_acidity.tuning import run_grid_search, rank_results, results_table, select_best, failed_results
from soil_acidity.models import get_model_spec, get_model_info
from soil_acidity.final import last_fit, deploy_fit


def set_seeds(seed):
    """Set all random seeds for reproducibility."""
    random.seed(seed)
    np.random.seed(seed)


def _print_metrics(label, metrics):
    print(f"{label:6s} RMSE: {metrics['rmse']:.4f} | MAE: {metrics['mae']:.4f} | R2: {metrics['rsq']:.4f}")


def run_pipeline(config_path, dataset_path=None, output_dir=None):
    """
    Run the complete model-selection pipeline.

    Args:
        config_path: Path to YAML config file
        dataset_path: Optional path to dataset CSV (overrides config)
        output_dir: Optional output directory (overrides config)

    Returns:
        run_dir: Path to experiment output directory
    """
    config = load_config(config_path)

    if output_dir:
        config['experiment']['output_dir'] = output_dir

    try:
        validate_config(config)
    except ConfigValidationError as e:
        print(f"\nCONFIG ERROR:\n{e}")
        raise

    seed = config['experiment']['seed']
    set_seeds(seed)

    target = config['data']['target_column']
    metric = config['tuning']['metric']
    cv_config = config['cross_validation']

    print("=" * 60)
    print("SOIL ACIDITY MODEL SELECTION")
    print("=" * 60)
    print(f"Experiment: {config['experiment']['name']}")
    print(f"Target: log10({target})")
    print(f"Seed: {seed}")
    print(f"CV: {cv_config['n_splits']}-fold x {cv_config['n_repeats']} repeats")
    print(f"Models: {config['models']['types']} | Preprocessors: {config['features']['preprocessors']}")
    for model_type in config['models']['types']:
        info = get_model_info(model_type, config)
        seeded = " (seeded)" if info['supports_random_state'] else ""
        print(f"  {model_type}{seeded}: tunable={info['tunable']} fixed={info['fixed']}")
    print("=" * 60)

    stage = 'loading'
    try:
        raw_df, actual_path = load_dataset(config, dataset_path)

        stage = 'cleaning'
        cleaned = clean_dataset(raw_df, config)
        X, y = split_features_target(cleaned, config)
        validate_data_integrity(X, y)
        print(f"\nCleaned dataset shape: {cleaned.shape} (raw: {raw_df.shape})")
        print(f"Target stats: mean={y.mean():.4f}, std={y.std():.4f}, min={y.min():.4f}, max={y.max():.4f}")

        stage = 'exploration'
        exploration = {
            'correlations': correlation_summary(X, y),
            'correlation_matrix': correlation_matrix(X),
            'pca': pca_summary(X, random_state=seed),
            'pls': pls_summary(X, y),
        }
        top = exploration['correlations'].head(3)
        print(f"Strongest correlations with log10({target}): "
              + ", ".join(f"{r.feature}={r.correlation:.3f}" for r in top.itertuples()))

        stage = 'splitting'
        split_plan = plan_split(cleaned, config)
        fold_plan = plan_folds(cleaned, split_plan, config)
        train = split_plan['train']
        print(f"Train: {len(train)} | Test: {len(split_plan['test'])} | Folds: {len(fold_plan)}")

        stage = 'tuning'
        y_log = log_target(y)
        tuning_results = run_grid_search(X.loc[train], y_log.loc[train], fold_plan, config)
        ranking = rank_results(tuning_results, metric)
        table = results_table(tuning_results)
        best = select_best(tuning_results, metric)

        failures = failed_results(tuning_results)
        if failures:
            print(f"\nFailed configs ({len(failures)}):")
            for failure in failures:
                print(f"  {failure['workflow']} {failure['config_id']} {failure['params']}: "
                      f"{failure['errors'][0]['error']}")

        print("\n" + "=" * 60)
        print(f"WORKFLOW RANKING (best config per workflow, {metric.upper()} on log10 scale)")
        print("=" * 60)
        for row in table[table['Metric'] == metric].itertuples():
            print(f"{row.Rank:2d}. {row.Model:28s} {row.Mean:.4f} ± {row.StdErr:.4f} (n={row.n}, {row.Config})")

        print(f"\nSelected: {best['workflow']} {best['config_id']} {best['params']}")

        stage = 'final fit'
        final = last_fit(best, cleaned, split_plan, config)
        print("\n" + "=" * 60)
        print(f"FINAL MODEL ({target}, original units)")
        print("=" * 60)
        _print_metrics('Train', final['train'])
        _print_metrics('Test', final['test'])
        _print_metrics('Full', final['full'])

        stage = 'deployment'
        spec = get_model_spec(best['model'], config)
        final['deployed'], predictions = deploy_fit(
            best['preprocessor'], spec, best['params'], cleaned, config, config_id=best['config_id']
        )
    except SoilModelError as e:
        print(f"\nPIPELINE FAILED at stage '{stage}' ({type(e).__name__}):\n{e}")
        raise

    run_dir = create_run_dir(config)
    save_data_profile(run_dir, raw_df, cleaned, X, y, actual_path)
    save_exploration(run_dir, exploration)
    save_results(run_dir, config, tuning_results, ranking, table, final, predictions, cleaned)

    print("\n" + "=" * 60)
    print("Model selection complete!")
    print("=" * 60)

    return run_dir


def main():
    parser = argparse.ArgumentParser(
        description='Tune, compare and refit titratable acidity regression models'
    )
    parser.add_argument('--config', '-c', type=str, default='configs/soil_acidity.yaml',
                        help='Path to config YAML file')
    parser.add_argument('--dataset', '-d', type=str, default=None,
                        help='Path to dataset CSV (overrides config)')
    parser.add_argument('--output-dir', '-o', type=str, default=None,
                        help='Output directory for run artifacts (overrides config)')
    args = parser.parse_args()

    run_pipeline(args.config, args.dataset, args.output_dir)


if __name__ == "__main__":
    main()
