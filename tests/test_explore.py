import numpy as np
import pytest

from soil_acidity.explore import correlation_summary, correlation_matrix, pca_summary, pls_summary


def _features(soil_df):
    return soil_df.drop(columns=["sample_id", "titratable_acidity"])


def test_correlation_summary_sorted_by_strength(soil_df):
    X, y = _features(soil_df), soil_df["titratable_acidity"]
    summary = correlation_summary(X, y)

    assert list(summary.columns) == ["feature", "correlation", "p_value", "abs_correlation"]
    assert "texture" not in summary["feature"].values
    assert summary["abs_correlation"].is_monotonic_decreasing
    # pH drives the synthetic target and lowers acidity
    assert summary.iloc[0]["feature"] == "ph_water"
    assert summary.iloc[0]["correlation"] < 0
    assert summary.iloc[0]["p_value"] < 1e-6


def test_correlation_summary_spearman(soil_df):
    X, y = _features(soil_df), soil_df["titratable_acidity"]
    summary = correlation_summary(X, y, method="spearman")
    assert summary.iloc[0]["feature"] == "ph_water"

    with pytest.raises(ValueError, match="Unknown correlation method"):
        correlation_summary(X, y, method="kendall-ish")


def test_correlation_matrix_is_symmetric(soil_df):
    corr = correlation_matrix(_features(soil_df))
    assert corr.shape == (6, 6)
    np.testing.assert_allclose(corr.values, corr.values.T)


def test_pca_summary(soil_df):
    result = pca_summary(_features(soil_df))
    variance = result["variance"]

    assert len(variance) == 6
    assert variance["cumulative_ratio"].iloc[-1] == pytest.approx(1.0)
    assert variance["explained_variance_ratio"].is_monotonic_decreasing
    assert result["loadings"].shape == (6, 6)


def test_pls_summary(soil_df):
    X, y = _features(soil_df), soil_df["titratable_acidity"]
    result = pls_summary(X, y, n_components=3)
    variance = result["variance"]

    assert variance["component"].tolist() == ["Comp1", "Comp2", "Comp3"]
    assert variance["y_r2_cumulative"].is_monotonic_increasing
    assert variance["y_r2_cumulative"].iloc[-1] > 0.8
    assert result["loadings"].shape == (6, 3)


def test_summaries_reject_inputs_without_numeric_predictors(soil_df):
    X = soil_df[["texture"]]
    y = soil_df["titratable_acidity"]
    with pytest.raises(ValueError, match="PLS needs at least one numeric predictor"):
        pls_summary(X, y)
    with pytest.raises(ValueError, match="PCA needs at least one numeric predictor"):
        pca_summary(X)


def test_pls_summary_rejects_single_record(soil_df):
    X = _features(soil_df).iloc[:1]
    y = soil_df["titratable_acidity"].iloc[:1]
    with pytest.raises(ValueError, match="two records"):
        pls_summary(X, y)
