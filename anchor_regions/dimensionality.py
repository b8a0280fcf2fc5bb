# dimensionality.py
"""
Single-factor extraction per variable group.

Each group's normalized columns are reduced to one composite score per MSA,
either as the first principal component or as a one-factor latent model.
Loadings are estimated jointly over all MSAs in the run, so a score for a new
MSA means recomputing the whole group.
"""

import logging
import numbers
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
from sklearn.decomposition import FactorAnalysis, PCA

from .config import (
    DEFAULT_N_BINS, GroupSpec, PERCENTILE_SUFFIX, RANDOM_SEED, REDUCERS, SCORE_SUFFIX,
)
from .exceptions import ConfigurationError, InsufficientVarianceError
from .preprocessing import normalized_columns

logger = logging.getLogger(__name__)


@dataclass
class CompositeResult:
    """Composite score of one variable group."""
    group: str
    method: str
    scores: pd.Series
    loadings: pd.Series
    explained_variance_ratio: float
    dropped_columns: List[str] = field(default_factory=list)


@dataclass
class CompositeTable:
    """Scores and percentile bins of every group, keyed by MSA identifier."""
    scores: pd.DataFrame
    percentiles: pd.DataFrame
    results: Dict[str, CompositeResult]
    n_bins: int

    def loadings_frame(self) -> pd.DataFrame:
        """Long table of loadings: group, variable, loading."""
        rows = []
        for name, res in self.results.items():
            for var, value in res.loadings.items():
                rows.append({"group": name, "variable": var, "loading": value,
                             "explained_variance_ratio": res.explained_variance_ratio})
        return pd.DataFrame(rows)


def _retained(frame: pd.DataFrame) -> pd.DataFrame:
    """Drop zero-variance columns; require at least two survivors."""
    if frame.shape[1] < 2:
        raise InsufficientVarianceError(
            f"Single-factor extraction needs at least 2 columns, got {list(frame.columns)}"
        )
    std = frame.std(ddof=0)
    kept = frame.loc[:, std > 0]
    dropped = sorted(set(frame.columns) - set(kept.columns))
    if dropped:
        logger.warning(f"Dropping zero-variance columns before extraction: {dropped}")
    if kept.shape[1] < 2:
        raise InsufficientVarianceError(
            f"Only {kept.shape[1]} column(s) with non-zero variance "
            f"among {list(frame.columns)}"
        )
    return kept


def _pca_factor(X: np.ndarray, random_state: int):
    pca = PCA(n_components=1, svd_solver="full", random_state=random_state)
    scores = pca.fit_transform(X)[:, 0]
    loadings = pca.components_[0]
    # Orient so that larger scores mean larger (more favourable) inputs
    if loadings.sum() < 0:
        scores, loadings = -scores, -loadings
    return scores, loadings, float(pca.explained_variance_ratio_[0])


def _latent_factor(X: np.ndarray, random_state: int):
    fa = FactorAnalysis(n_components=1, max_iter=1000, random_state=random_state)
    scores = fa.fit_transform(X)[:, 0]
    loadings = fa.components_[0]
    anchor = loadings[0]
    if np.isclose(anchor, 0.0):
        raise InsufficientVarianceError("Anchor variable does not load on the latent factor")
    # Fix the anchor loading at 1 to identify the factor's scale and sign
    scores = scores * anchor
    loadings = loadings / anchor
    communality = (fa.components_[0] ** 2).sum()
    total = communality + fa.noise_variance_.sum()
    return scores, loadings, float(communality / total)


def extract_composite(frame: pd.DataFrame, method: str = "pca",
                      random_state: int = RANDOM_SEED, group: str = "") -> CompositeResult:
    """
    Extract one composite factor from a group's normalized columns.

    Parameters
    ----------
    frame : DataFrame
        Normalized columns of one variable group (rows=MSAs).
    method : {"pca", "factor"}
        ``pca`` takes the first principal component; ``factor`` fits a
        one-factor model whose first column is the anchor (loading fixed at 1).
    random_state : int
        Seed for any stochastic step, so repeated runs are identical.

    Returns
    -------
    CompositeResult

    Raises
    ------
    InsufficientVarianceError
        Fewer than two columns with non-zero variance.
    """
    if method not in REDUCERS:
        raise ConfigurationError(f"Unknown reducer '{method}'; expected one of {REDUCERS}")

    kept = _retained(frame)
    X = kept.to_numpy(dtype=float)
    if method == "pca":
        scores, loadings, evr = _pca_factor(X, random_state)
    else:
        scores, loadings, evr = _latent_factor(X, random_state)

    name = f"{group}{SCORE_SUFFIX}" if group else "composite"
    return CompositeResult(
        group=group,
        method=method,
        scores=pd.Series(scores, index=frame.index, name=name),
        loadings=pd.Series(loadings, index=kept.columns, name="loading"),
        explained_variance_ratio=evr,
        dropped_columns=sorted(set(frame.columns) - set(kept.columns)),
    )


def percentile_bins(scores: pd.Series, n_bins: int = DEFAULT_N_BINS) -> pd.Series:
    """
    Equal-frequency bins 1..n_bins of a score (deciles for 10, centiles for 100).

    Ties are broken by order of appearance so every run bins identically.
    """
    if not isinstance(n_bins, numbers.Integral) or isinstance(n_bins, bool) or n_bins < 1:
        raise ConfigurationError(f"n_bins must be an integer >= 1, got {n_bins!r}")
    n = len(scores)
    order = scores.rank(method="first").to_numpy() - 1
    bins = np.floor(n_bins * order / n).astype(int) + 1
    return pd.Series(bins, index=scores.index, name=scores.name)


def compute_composites(normalized: pd.DataFrame, groups: Sequence[GroupSpec],
                       n_bins: int = DEFAULT_N_BINS, method: str = "pca",
                       random_state: int = RANDOM_SEED) -> CompositeTable:
    """Composite score and percentile bin for every variable group."""
    results = {}
    scores = {}
    percentiles = {}
    for group in groups:
        res = extract_composite(normalized[normalized_columns(group)], method=method,
                                random_state=random_state, group=group.name)
        results[group.name] = res
        scores[f"{group.name}{SCORE_SUFFIX}"] = res.scores
        percentiles[f"{group.name}{PERCENTILE_SUFFIX}"] = percentile_bins(res.scores, n_bins)
        logger.info(f"  {group.name}: {method} explains "
                    f"{res.explained_variance_ratio:.1%} of variance")

    return CompositeTable(
        scores=pd.DataFrame(scores, index=normalized.index),
        percentiles=pd.DataFrame(percentiles, index=normalized.index),
        results=results,
        n_bins=n_bins,
    )
