# visualization.py
"""
Diagnostic figures for the cluster analysis.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from scipy.cluster.hierarchy import dendrogram

from .config import CLUSTER_COLUMN, FIGSIZE_WIDE, FIGURE_DPI, FIGURE_FORMAT

logger = logging.getLogger(__name__)


def _save(fig, directory, stem) -> List[Path]:
    """Save figure in all configured formats."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for fmt in FIGURE_FORMAT:
        path = directory / f"{stem}.{fmt}"
        fig.savefig(path, dpi=FIGURE_DPI, bbox_inches="tight")
        paths.append(path)
    logger.info(f"  Saved {stem}")
    return paths


def _with_cluster(frame: pd.DataFrame, assignment: pd.Series) -> pd.DataFrame:
    name = assignment.name or CLUSTER_COLUMN
    return frame.join(assignment.rename(name), how="inner")


# ── Cluster sizes ─────────────────────────────────────────────────────────────

def plot_cluster_sizes(assignment: pd.Series, directory, name: str) -> List[Path]:
    """Histogram of cluster sizes (left) and members per label (right)."""
    sizes = assignment.value_counts().sort_index()
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=FIGSIZE_WIDE)

    bins = min(len(sizes), 20) or 1
    ax1.hist(sizes.values, bins=bins, color="#2c7bb6", edgecolor="k")
    ax1.set_xlabel("MSAs per cluster")
    ax1.set_ylabel("Number of clusters")
    ax1.set_title(f"Distribution of cluster sizes — {name}")
    ax1.grid(True, alpha=0.3)

    ax2.bar(sizes.index.astype(str), sizes.values, color="#d7191c", edgecolor="k")
    ax2.set_xlabel("Cluster")
    ax2.set_ylabel("MSAs")
    ax2.set_title(f"Cluster membership — {name}")
    ax2.grid(True, axis="y", alpha=0.3)

    fig.tight_layout()
    paths = _save(fig, directory, f"cluster_sizes_{name}")
    plt.close(fig)
    return paths


# ── Score distributions ───────────────────────────────────────────────────────

def plot_score_distributions(scores: pd.DataFrame, assignment: pd.Series,
                             directory, name: str) -> List[Path]:
    """Density of each composite score, one curve per cluster."""
    data = _with_cluster(scores, assignment)
    cluster_col = data.columns[-1]
    data[cluster_col] = data[cluster_col].astype(str)
    n = scores.shape[1]
    fig, axes = plt.subplots(1, n, figsize=(4.5 * n, 4), squeeze=False)

    for ax, col in zip(axes[0], scores.columns):
        sns.histplot(data=data, x=col, hue=cluster_col, element="step",
                     stat="density", common_norm=False, palette="tab10", ax=ax)
        ax.set_title(col)
        ax.grid(True, alpha=0.2)

    fig.suptitle(f"Composite score distributions by cluster — {name}")
    fig.tight_layout()
    paths = _save(fig, directory, f"score_distributions_{name}")
    plt.close(fig)
    return paths


def plot_pair_density_grid(scores: pd.DataFrame, assignment: pd.Series,
                           pair: Tuple[str, str], directory, name: str,
                           bins: int = 10) -> List[Path]:
    """
    2-D histogram heatmaps over one pair of composite scores, one facet per
    cluster. Axis ranges are shared so facets are directly comparable.
    """
    x, y = pair
    data = _with_cluster(scores[[x, y]], assignment)
    cluster_col = data.columns[-1]
    n_clusters = data[cluster_col].nunique()

    grid = sns.FacetGrid(data, col=cluster_col, col_wrap=min(n_clusters, 5),
                         height=3, sharex=True, sharey=True)
    x_edges = np.linspace(data[x].min(), data[x].max(), bins + 1)
    y_edges = np.linspace(data[y].min(), data[y].max(), bins + 1)
    grid.map_dataframe(sns.histplot, x=x, y=y, bins=(x_edges, y_edges),
                       cmap="viridis", cbar=False)
    grid.set_titles(col_template="Cluster {col_name}")
    grid.figure.suptitle(f"{x} vs {y} — {name}", y=1.02)

    paths = _save(grid.figure, directory, f"density_{x}_{y}_{name}")
    plt.close(grid.figure)
    return paths


def plot_all_pair_grids(scores: pd.DataFrame, assignment: pd.Series,
                        directory, name: str, bins: int = 10) -> List[Path]:
    paths = []
    cols = list(scores.columns)
    for i, x in enumerate(cols):
        for y in cols[i + 1:]:
            paths.extend(plot_pair_density_grid(scores, assignment, (x, y),
                                                directory, name, bins=bins))
    return paths


# ── Profiles ──────────────────────────────────────────────────────────────────

def plot_cluster_profile_heatmap(normalized: pd.DataFrame, assignment: pd.Series,
                                 directory, name: str) -> List[Path]:
    """Heatmap of per-cluster mean normalized variables."""
    data = _with_cluster(normalized, assignment)
    cluster_col = data.columns[-1]
    profiles = data.groupby(cluster_col).mean()

    height = max(4, 0.4 * len(profiles) + 2)
    fig, ax = plt.subplots(figsize=(FIGSIZE_WIDE[0], height))
    sns.heatmap(
        profiles, annot=len(profiles) <= 15, fmt=".2f", cmap="RdBu_r", center=0,
        linewidths=0.5, ax=ax,
    )
    ax.set_title(f"Cluster profiles (mean normalized value) — {name}", fontsize=14)
    ax.set_ylabel("Cluster")
    ax.set_xlabel("Variable")
    plt.tight_layout()
    paths = _save(fig, directory, f"cluster_profiles_{name}")
    plt.close(fig)
    return paths


def plot_dendrogram(Z: np.ndarray, labels: Optional[Sequence[str]], k: int,
                    directory, name: str) -> List[Path]:
    """Complete-linkage dendrogram with the cut producing k clusters marked."""
    fig, ax = plt.subplots(figsize=FIGSIZE_WIDE)
    show_labels = labels is not None and len(labels) <= 60
    dendrogram(Z, labels=list(labels) if show_labels else None,
               no_labels=not show_labels, color_threshold=None, ax=ax)
    if 1 < k <= len(Z):
        # Height between the (n-k)th and (n-k+1)th merge
        heights = Z[:, 2]
        cut = (heights[-k] + heights[-(k - 1)]) / 2
        ax.axhline(cut, color="gray", ls="--", lw=0.8, label=f"cut at k={k}")
        ax.legend()
    ax.set_ylabel("Complete-linkage distance")
    ax.set_title(f"Dendrogram — {name}")
    fig.tight_layout()
    paths = _save(fig, directory, f"dendrogram_{name}")
    plt.close(fig)
    return paths


def plot_k_sweep(sweep: pd.DataFrame, directory, name: str) -> List[Path]:
    """Silhouette score and largest-cluster size vs k."""
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=FIGSIZE_WIDE)

    ax1.plot(sweep["k"], sweep["silhouette"], "o-", color="#d7191c")
    ax1.set_xlabel("Number of clusters (k)")
    ax1.set_ylabel("Mean silhouette score")
    ax1.set_title(f"Silhouette analysis — {name}")
    ax1.grid(True, alpha=0.3)

    ax2.plot(sweep["k"], sweep["largest_cluster"], "o-", color="#2c7bb6",
             label="largest cluster")
    ax2.plot(sweep["k"], sweep["n_singletons"], "s--", color="gray",
             label="singleton clusters")
    ax2.set_xlabel("Number of clusters (k)")
    ax2.set_ylabel("MSAs / clusters")
    ax2.set_title(f"Cluster balance — {name}")
    ax2.legend()
    ax2.grid(True, alpha=0.3)

    fig.tight_layout()
    paths = _save(fig, directory, f"k_sweep_{name}")
    plt.close(fig)
    return paths


def plot_score_scatter(scores: pd.DataFrame, assignment: pd.Series,
                       directory, name: str) -> List[Path]:
    """Pairwise scatter of composite scores coloured by cluster."""
    data = _with_cluster(scores, assignment)
    cluster_col = data.columns[-1]
    data[cluster_col] = data[cluster_col].astype(str)
    grid = sns.pairplot(data, hue=cluster_col, palette="tab10",
                        plot_kws=dict(alpha=0.7, edgecolor="k", linewidth=0.3),
                        height=2.5, diag_kind="hist")
    grid.figure.suptitle(f"Composite scores — {name}", y=1.02)
    paths = _save(grid.figure, directory, f"score_pairs_{name}")
    plt.close(grid.figure)
    return paths
