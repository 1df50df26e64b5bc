# Exploratory analysis of predictor relationships
# Correlation with the log target, PCA and PLS summaries

from typing import Dict, Optional

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.cross_decomposition import PLSRegression
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler


def correlation_matrix(X: pd.DataFrame, method: str = 'pearson') -> pd.DataFrame:
    """Pairwise correlation of the numeric predictors."""
    return X.select_dtypes(include=[np.number]).corr(method=method)


def correlation_summary(
    X: pd.DataFrame,
    y: pd.Series,
    method: str = 'pearson'
) -> pd.DataFrame:
    """
    Correlation of each numeric predictor with log10(y).

    Returns:
        DataFrame with feature, correlation, p_value, abs_correlation sorted by strength
    """
    if method not in ('pearson', 'spearman'):
        raise ValueError(f"Unknown correlation method '{method}'. Use 'pearson' or 'spearman'")

    numeric = X.select_dtypes(include=[np.number])
    log_y = np.log10(y.astype(float).values)
    test = stats.pearsonr if method == 'pearson' else stats.spearmanr

    rows = []
    for col in numeric.columns:
        values = numeric[col].values.astype(float)
        if np.std(values) > 1e-12:
            r, p_value = test(values, log_y)
        else:
            r, p_value = np.nan, np.nan
        rows.append({'feature': col, 'correlation': float(r), 'p_value': float(p_value), 'abs_correlation': abs(float(r))})

    summary = pd.DataFrame(rows, columns=['feature', 'correlation', 'p_value', 'abs_correlation'])
    return summary.sort_values('abs_correlation', ascending=False, kind='mergesort').reset_index(drop=True)


def pca_summary(
    X: pd.DataFrame,
    n_components: Optional[int] = None,
    random_state: int = 42
) -> Dict[str, pd.DataFrame]:
    """
    PCA on standardised numeric predictors.

    Returns:
        Dict with 'variance' (per component explained / cumulative ratio)
        and 'loadings' (feature x component)
    """
    numeric = X.select_dtypes(include=[np.number])
    if numeric.shape[1] == 0 or len(numeric) < 2:
        raise ValueError(
            f"PCA needs at least one numeric predictor and two records, got shape {numeric.shape}"
        )
    n_components = n_components or min(numeric.shape)
    scaled = StandardScaler().fit_transform(numeric)

    pca = PCA(n_components=n_components, random_state=random_state)
    pca.fit(scaled)

    components = [f"PC{i + 1}" for i in range(pca.n_components_)]
    variance = pd.DataFrame({
        'component': components,
        'explained_variance_ratio': pca.explained_variance_ratio_,
        'cumulative_ratio': np.cumsum(pca.explained_variance_ratio_),
    })
    loadings = pd.DataFrame(pca.components_.T, index=numeric.columns, columns=components)

    return {'variance': variance, 'loadings': loadings}


def pls_summary(
    X: pd.DataFrame,
    y: pd.Series,
    n_components: int = 3
) -> Dict[str, pd.DataFrame]:
    """
    PLS regression of log10(y) on standardised numeric predictors.

    Returns:
        Dict with 'variance' (X variance explained and cumulative R^2 of
        the log target per component) and 'loadings' (X loadings)
    """
    numeric = X.select_dtypes(include=[np.number])
    n_components = min(n_components, numeric.shape[1], numeric.shape[0] - 1)
    if n_components < 1:
        raise ValueError(
            f"PLS needs at least one numeric predictor and two records, got shape {numeric.shape}"
        )
    scaled = StandardScaler().fit_transform(numeric)
    log_y = np.log10(y.astype(float).values)

    rows = []
    total_x = np.sum(scaled ** 2)
    for k in range(1, n_components + 1):
        pls = PLSRegression(n_components=k, scale=False)
        pls.fit(scaled, log_y)
        x_scores = pls.x_scores_[:, k - 1]
        x_var = np.sum(np.outer(x_scores, pls.x_loadings_[:, k - 1]) ** 2) / total_x
        rows.append({
            'component': f"Comp{k}",
            'x_variance_ratio': float(x_var),
            'y_r2_cumulative': float(pls.score(scaled, log_y)),
        })

    loadings = pd.DataFrame(
        pls.x_loadings_,
        index=numeric.columns,
        columns=[f"Comp{i + 1}" for i in range(n_components)],
    )
    return {'variance': pd.DataFrame(rows), 'loadings': loadings}
