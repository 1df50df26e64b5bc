import numpy as np
import pandas as pd
import pytest
from sklearn.base import clone

from soil_acidity.features import SoilFeatureTransformer, build_feature_pipeline, correlation_filter
from soil_acidity.errors import SchemaError


def _features(soil_df):
    return soil_df.drop(columns=["sample_id", "titratable_acidity"])


def test_basic_transformer_dummies_and_scaling(soil_df):
    X = _features(soil_df)
    tf = SoilFeatureTransformer(categorical_columns=("texture",), interaction_columns=())
    out = tf.fit(X).transform(X)

    # clay is the reference level
    assert "texture_loam" in out.columns
    assert "texture_sand" in out.columns
    assert "texture_clay" not in out.columns
    assert "texture" not in out.columns
    np.testing.assert_allclose(out.mean().values, 0.0, atol=1e-10)
    np.testing.assert_allclose(out.std(ddof=0).values, 1.0, atol=1e-10)


def test_interactions_are_pairwise_products(soil_df):
    X = _features(soil_df)
    tf = SoilFeatureTransformer(
        interaction_columns=("ph_water", "organic_carbon", "exch_ca"), normalize=False
    )
    out = tf.fit(X).transform(X)

    for name in ["ph_water_x_organic_carbon", "ph_water_x_exch_ca", "organic_carbon_x_exch_ca"]:
        assert name in out.columns
    np.testing.assert_allclose(
        out["ph_water_x_exch_ca"].values, (X["ph_water"] * X["exch_ca"]).values
    )


def test_correlation_filter_keeps_earlier_column():
    rng = np.random.default_rng(0)
    a = rng.normal(size=50)
    frame = pd.DataFrame({
        "a": a,
        "b": rng.normal(size=50),
        "a_copy": a * 2 + rng.normal(scale=0.01, size=50),
    })
    kept, dropped = correlation_filter(frame, 0.75)
    assert kept == ["a", "b"]
    assert dropped == ["a_copy"]


def test_correlation_filter_is_greedy_in_canonical_order():
    rng = np.random.default_rng(1)
    base = rng.normal(size=200)
    frame = pd.DataFrame({
        "x": base,
        "y": base + rng.normal(scale=0.3, size=200),
        "z": rng.normal(size=200),
    })
    frame["w"] = frame["y"] + rng.normal(scale=0.01, size=200)
    kept, _ = correlation_filter(frame, 0.75)
    # y is dropped against x, so w is compared against x (still correlated) and dropped too
    assert kept == ["x", "z"]


def test_pruning_is_frozen_at_fit(soil_df):
    rng = np.random.default_rng(3)
    train = _features(soil_df)
    train["base_saturation"] = train["exch_ca"] * 5 + rng.normal(scale=0.1, size=len(train))

    tf = SoilFeatureTransformer(interaction_columns=(), corr_threshold=0.75)
    tf.fit(train)
    assert tf.dropped_correlated_ == ["base_saturation"]

    # On new data the two columns are unrelated, a fresh fit would keep both
    test = _features(soil_df).iloc[:30].copy()
    refit_cols = SoilFeatureTransformer(interaction_columns=(), corr_threshold=0.75).fit(test).feature_names_out_
    assert "base_saturation" in refit_cols

    out = tf.transform(test)
    assert list(out.columns) == tf.feature_names_out_
    assert "base_saturation" not in out.columns


def test_zero_variance_columns_are_dropped(soil_df):
    X = _features(soil_df)
    X["constant"] = 3.0
    tf = SoilFeatureTransformer().fit(X)
    assert "constant" in tf.zero_variance_
    assert "constant" not in tf.feature_names_out_


def test_unseen_category_maps_to_reference(soil_df):
    X = _features(soil_df)
    tf = SoilFeatureTransformer(normalize=False).fit(X)
    new = X.iloc[:2].copy()
    new["texture"] = "peat"
    out = tf.transform(new)
    assert (out[["texture_loam", "texture_sand"]].values == 0).all()


def test_missing_input_column_raises(soil_df):
    X = _features(soil_df)
    tf = SoilFeatureTransformer().fit(X)
    with pytest.raises(SchemaError, match="exch_mg"):
        tf.transform(X.drop(columns=["exch_mg"]))


def test_unknown_interaction_column_raises(soil_df):
    X = _features(soil_df)
    with pytest.raises(SchemaError, match="bogus"):
        SoilFeatureTransformer(interaction_columns=("ph_water", "bogus")).fit(X)


def test_transformer_is_cloneable(soil_df):
    tf = SoilFeatureTransformer(interaction_columns=("ph_water", "exch_ca"), corr_threshold=0.5)
    copy = clone(tf)
    assert copy.get_params() == tf.get_params()
    assert not hasattr(copy, "feature_names_out_")


def test_build_feature_pipeline(base_config):
    basic = build_feature_pipeline("basic", base_config)
    interact = build_feature_pipeline("interact", base_config)

    assert basic.interaction_columns == ()
    assert basic.corr_threshold is None
    assert interact.interaction_columns == ("ph_water", "organic_carbon", "exch_ca")
    assert interact.corr_threshold == 0.75

    with pytest.raises(ValueError, match="Unknown preprocessor"):
        build_feature_pipeline("pca", base_config)
