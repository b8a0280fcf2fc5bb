# clustering.py
"""
Pairwise dissimilarities, complete-linkage hierarchical clustering and k-means,
plus k sweeps and seed-stability checks.
"""

import logging
import warnings
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import cut_tree, linkage
from scipy.spatial.distance import pdist, squareform
from sklearn.cluster import KMeans
from sklearn.metrics import adjusted_rand_score, silhouette_score

from .config import CLUSTER_COLUMN, CLUSTER_INPUTS, ClusterConfig, DISTANCES
from .dimensionality import CompositeTable
from .exceptions import ConfigurationError, ConvergenceWarning, DegenerateVariableError
from .preprocessing import negligible_spread

logger = logging.getLogger(__name__)


@dataclass
class ClusterResult:
    """A Cluster Assignment together with the configuration that produced it."""
    assignment: pd.Series
    config: ClusterConfig
    distances: pd.DataFrame
    linkage: Optional[np.ndarray] = None
    inertia: Optional[float] = None
    n_iter: Optional[int] = None

    @property
    def k(self) -> int:
        return self.config.k

    def sizes(self) -> pd.Series:
        """Members per cluster label, largest first."""
        return self.assignment.value_counts().rename("n_msas")


# ── Feature selection ─────────────────────────────────────────────────────────

def select_features(composites: CompositeTable, normalized: pd.DataFrame,
                    source: str = "scores") -> pd.DataFrame:
    """
    Clustering input: composite scores, their percentile bins, or the raw
    normalized variables. The first two give materially different cluster
    boundaries, so the choice is always explicit.
    """
    if source == "scores":
        return composites.scores
    if source == "percentiles":
        return composites.percentiles.astype(float)
    if source == "normalized":
        return normalized
    raise ConfigurationError(f"Unknown clustering input '{source}'; expected one of {CLUSTER_INPUTS}")


# ── Distances ─────────────────────────────────────────────────────────────────

def _correlation_distance(X: np.ndarray) -> np.ndarray:
    """1 - Pearson correlation between observation profiles (rows)."""
    if X.shape[1] < 2:
        raise DegenerateVariableError(
            "Correlation distance needs at least 2 features per observation"
        )
    flat = negligible_spread(X.std(axis=1), np.abs(X).max(axis=1))
    if flat.any():
        raise DegenerateVariableError(
            f"{int(flat.sum())} observation(s) have a constant feature profile; "
            "their correlation with other profiles is undefined"
        )
    D = 1.0 - np.corrcoef(X)
    D = (D + D.T) / 2
    np.fill_diagonal(D, 0.0)
    return np.clip(D, 0.0, 2.0)


def distance_matrix(features: pd.DataFrame, metric: str = "euclidean") -> pd.DataFrame:
    """
    Square, symmetric dissimilarity matrix between observations.

    ``euclidean`` measures absolute position; ``correlation`` measures the
    shape of each observation's profile across features.
    """
    if metric not in DISTANCES:
        raise ConfigurationError(f"Unknown distance '{metric}'; expected one of {DISTANCES}")
    X = features.to_numpy(dtype=float)
    if metric == "euclidean":
        D = squareform(pdist(X, metric="euclidean"))
    else:
        D = _correlation_distance(X)
    return pd.DataFrame(D, index=features.index, columns=features.index)


# ── Label handling ────────────────────────────────────────────────────────────

def _relabel(raw_labels: Sequence[int], index: pd.Index) -> pd.Series:
    """Renumber labels 1..k in order of first appearance."""
    mapping = {}
    for lab in raw_labels:
        if lab not in mapping:
            mapping[lab] = len(mapping) + 1
    labels = [mapping[lab] for lab in raw_labels]
    return pd.Series(labels, index=index, name=CLUSTER_COLUMN, dtype="int64")


def _log_sizes(result: ClusterResult):
    sizes = result.sizes()
    singletons = int((sizes == 1).sum())
    logger.info(f"  {result.config.label}: sizes {sizes.sort_index().to_dict()}")
    if singletons:
        logger.info(f"  {singletons} singleton cluster(s); largest holds "
                    f"{int(sizes.max())}/{int(sizes.sum())} MSAs")


# ── Algorithms ────────────────────────────────────────────────────────────────

def hierarchical_clusters(features: pd.DataFrame, config: ClusterConfig) -> ClusterResult:
    """
    Complete-linkage agglomerative clustering cut to exactly ``k`` groups.

    scipy merges deterministically for a fixed input, so the same matrix
    always yields the same tree and the same cut.
    """
    config.validate(n_obs=len(features))
    D = distance_matrix(features, config.distance)
    if len(features) == 1:
        assignment = _relabel([0], features.index)
        return ClusterResult(assignment, config, D)

    condensed = squareform(D.to_numpy(), checks=False)
    Z = linkage(condensed, method="complete")
    raw = cut_tree(Z, n_clusters=config.k).ravel()
    result = ClusterResult(_relabel(raw, features.index), config, D, linkage=Z)
    _log_sizes(result)
    return result


def _profile_standardize(X: np.ndarray) -> np.ndarray:
    """Centre and scale each row so squared Euclidean = 2p(1 - r)."""
    centred = X - X.mean(axis=1, keepdims=True)
    return centred / X.std(axis=1, keepdims=True)


def kmeans_clusters(features: pd.DataFrame, config: ClusterConfig) -> ClusterResult:
    """
    K-means with a fixed seed. Reaching ``max_iter`` emits ConvergenceWarning
    and the last assignment is returned.
    """
    config.validate(n_obs=len(features))
    D = distance_matrix(features, config.distance)
    X = features.to_numpy(dtype=float)
    if config.distance == "correlation":
        X = _profile_standardize(X)

    km = KMeans(
        n_clusters=config.k,
        init="k-means++",
        n_init=config.n_init,
        max_iter=config.max_iter,
        tol=config.tol,
        random_state=config.random_state,
    )
    raw = km.fit_predict(X)
    if km.n_iter_ >= config.max_iter:
        warnings.warn(
            f"K-means ({config.label}) stopped at max_iter={config.max_iter} "
            "without confirmed convergence; returning last assignment",
            ConvergenceWarning,
            stacklevel=2,
        )

    result = ClusterResult(
        _relabel(raw, features.index), config, D,
        inertia=float(km.inertia_), n_iter=int(km.n_iter_),
    )
    _log_sizes(result)
    return result


def cluster_observations(features: pd.DataFrame, config: ClusterConfig) -> ClusterResult:
    """Dispatch on ``config.method``."""
    config.validate(n_obs=len(features))
    if config.method == "hierarchical":
        return hierarchical_clusters(features, config)
    return kmeans_clusters(features, config)


# ── k sweeps and stability ────────────────────────────────────────────────────

def sweep_k(features: pd.DataFrame, k_values: Iterable[int],
            base_config: ClusterConfig) -> pd.DataFrame:
    """
    Cluster once per k and record silhouette (on the configured distance)
    and the size balance of the partition.
    """
    rows = []
    for k in k_values:
        config = base_config.with_k(int(k))
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            result = cluster_observations(features, config)
        sizes = result.sizes()
        n_labels = result.assignment.nunique()
        if 2 <= n_labels < len(features):
            sil = silhouette_score(result.distances.to_numpy(), result.assignment.to_numpy(),
                                   metric="precomputed")
        else:
            sil = np.nan
        rows.append({
            "k": config.k,
            "silhouette": float(sil),
            "largest_cluster": int(sizes.max()),
            "smallest_cluster": int(sizes.min()),
            "n_singletons": int((sizes == 1).sum()),
        })
        logger.info(f"  k={config.k:2d}  silhouette={sil:.3f}  largest={int(sizes.max())}")
    return pd.DataFrame(rows)


def stability_ari(features: pd.DataFrame, config: ClusterConfig,
                  seeds: Iterable[int] = range(10)) -> float:
    """
    Mean pairwise adjusted Rand index of k-means assignments across seeds.
    1.0 means every seed finds the same partition.
    """
    assignments = []
    for seed in seeds:
        cfg = ClusterConfig(config.distance, "kmeans", config.k, seed,
                            n_init=1, max_iter=config.max_iter, tol=config.tol)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            assignments.append(kmeans_clusters(features, cfg).assignment)

    scores = [adjusted_rand_score(a, b) for a, b in combinations(assignments, 2)]
    mean_ari = float(np.mean(scores)) if scores else 1.0
    logger.info(f"  Stability ({len(assignments)} seeds): ARI = {mean_ari:.3f}")
    return mean_ari
