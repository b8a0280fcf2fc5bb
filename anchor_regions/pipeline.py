"""
Configurable Analysis Pipeline
==============================

One entity for the rescale -> reduce -> cluster -> summarize -> export -> plot
sequence. Every stage is a pure function of its declared inputs and the
configuration, and returns a new table keyed by the MSA identifier; nothing
is shared or overwritten between stages or between runs.

Example Usage:
    from anchor_regions import AnalysisPipeline, PipelineConfig

    pipeline = AnalysisPipeline(PipelineConfig(input_path='data/msas.xlsx'))
    result = pipeline.run()
    pipeline.export(result)
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from .clustering import ClusterResult, cluster_observations, select_features, sweep_k
from .config import ClusterConfig, PipelineConfig
from .data_ingestion import ObservationLoader
from .dimensionality import CompositeTable, compute_composites
from .preprocessing import group_vif_table, rescale_groups, validate_groups
from .regression import compare_models
from .reporting import ClusterReport, assemble_full_table, export_table
from . import visualization as viz

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Immutable outputs of one pipeline run for one cluster configuration."""
    config: PipelineConfig
    observations: pd.DataFrame
    normalized: pd.DataFrame
    composites: CompositeTable
    features: pd.DataFrame
    clusters: ClusterResult
    report: ClusterReport
    vif: pd.DataFrame
    regression: Optional[pd.DataFrame] = None
    full_table: Optional[pd.DataFrame] = None

    @property
    def assignment(self) -> pd.Series:
        return self.clusters.assignment

    @property
    def label(self) -> str:
        return f"{self.config.cluster_on}_{self.clusters.config.label}"


class AnalysisPipeline:
    """
    Loader -> Rescaler -> Dimensionality Reducer -> Clusterer -> Reporter.

    Parameters
    ----------
    config : PipelineConfig
        Run-time choices; validated on construction.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = (config or PipelineConfig()).validate()

    # ── Stages ────────────────────────────────────────────────────────────

    def load(self, path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        cfg = self.config
        loader = ObservationLoader(cfg.id_column, cfg.name_column, cfg.state_column)
        observations = loader.load(path or cfg.input_path, sheet_name=cfg.sheet_name)
        validate_groups(observations, cfg.groups, cfg.population_column)
        return observations

    def rescale(self, observations: pd.DataFrame) -> pd.DataFrame:
        return rescale_groups(observations, self.config.groups, self.config.population_column)

    def reduce(self, normalized: pd.DataFrame) -> CompositeTable:
        cfg = self.config
        return compute_composites(normalized, cfg.groups, n_bins=cfg.n_bins,
                                  method=cfg.reducer, random_state=cfg.cluster.random_state)

    def features(self, composites: CompositeTable, normalized: pd.DataFrame) -> pd.DataFrame:
        return select_features(composites, normalized, self.config.cluster_on)

    def cluster(self, features: pd.DataFrame,
                cluster_config: Optional[ClusterConfig] = None) -> ClusterResult:
        return cluster_observations(features, cluster_config or self.config.cluster)

    def report(self, observations: pd.DataFrame, clusters: ClusterResult) -> ClusterReport:
        return ClusterReport.build(observations, clusters.assignment,
                                   label=f"{self.config.cluster_on}_{clusters.config.label}")

    def regress(self, observations: pd.DataFrame, composites: CompositeTable,
                assignment: pd.Series) -> Optional[pd.DataFrame]:
        cfg = self.config
        if not cfg.regression_outcome:
            return None
        table = observations.join(composites.scores).join(assignment)
        predictors = cfg.regression_predictors or list(composites.scores.columns)
        return compare_models(table, cfg.regression_outcome, predictors,
                              group=assignment.name)

    # ── Runs ──────────────────────────────────────────────────────────────

    def _prepared(self, path):
        observations = self.load(path)
        normalized = self.rescale(observations)
        composites = self.reduce(normalized)
        features = self.features(composites, normalized)
        logger.info(f"Clustering input: {self.config.cluster_on} "
                    f"({features.shape[0]} MSAs x {features.shape[1]} features)")
        return observations, normalized, composites, features

    def _finish(self, observations, normalized, composites, features,
                clusters: ClusterResult) -> PipelineResult:
        report = self.report(observations, clusters)
        return PipelineResult(
            config=self.config,
            observations=observations,
            normalized=normalized,
            composites=composites,
            features=features,
            clusters=clusters,
            report=report,
            vif=group_vif_table(normalized, self.config.groups),
            regression=self.regress(observations, composites, clusters.assignment),
            full_table=assemble_full_table(observations, normalized, composites,
                                           clusters.assignment),
        )

    def run(self, path: Optional[Union[str, Path]] = None) -> PipelineResult:
        """Run every stage once with the configured cluster settings."""
        logger.info("Running anchor regions pipeline")
        observations, normalized, composites, features = self._prepared(path)
        clusters = self.cluster(features)
        return self._finish(observations, normalized, composites, features, clusters)

    def run_k_series(self, k_values: Iterable[int],
                     path: Optional[Union[str, Path]] = None) -> Dict[int, PipelineResult]:
        """
        Load, rescale and reduce once, then cluster for every k. Each
        assignment is independent of the others.
        """
        observations, normalized, composites, features = self._prepared(path)
        results = {}
        for k in k_values:
            clusters = self.cluster(features, self.config.cluster.with_k(int(k)))
            results[int(k)] = self._finish(observations, normalized, composites,
                                           features, clusters)
        return results

    def sweep(self, k_values: Iterable[int],
              path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        """Silhouette and size balance per k for the configured method."""
        *_, features = self._prepared(path)
        return sweep_k(features, k_values, self.config.cluster)

    # ── Outputs ───────────────────────────────────────────────────────────

    def export(self, result: PipelineResult,
               output_dir: Optional[Union[str, Path]] = None) -> List[Path]:
        """Write tables and, unless disabled, figures. Returns written paths."""
        cfg = replace(self.config, output_dir=output_dir) if output_dir else self.config
        results_dir, figures_dir = cfg.results_dir, cfg.figures_dir
        label = result.label

        paths = []
        paths.extend(export_table(result.full_table, results_dir, f"msa_table_{label}"))
        paths.extend(result.report.write(results_dir))
        paths.extend(export_table(result.composites.loadings_frame(), results_dir,
                                  f"composite_loadings_{cfg.reducer}", index=False))
        paths.extend(export_table(result.vif, results_dir, "group_vif", index=False))
        if result.regression is not None:
            paths.extend(export_table(result.regression, results_dir,
                                      f"regression_{label}", index=False))

        if cfg.make_plots:
            paths.extend(self.plot(result, figures_dir))
        logger.info(f"Wrote {len(paths)} files under {cfg.output_dir}")
        return paths

    def plot(self, result: PipelineResult, figures_dir: Union[str, Path]) -> List[Path]:
        label = result.label
        assignment = result.assignment
        scores = result.composites.scores
        paths = []
        paths.extend(viz.plot_cluster_sizes(assignment, figures_dir, label))
        paths.extend(viz.plot_score_distributions(scores, assignment, figures_dir, label))
        paths.extend(viz.plot_all_pair_grids(scores, assignment, figures_dir, label))
        paths.extend(viz.plot_score_scatter(scores, assignment, figures_dir, label))
        paths.extend(viz.plot_cluster_profile_heatmap(result.normalized, assignment,
                                                      figures_dir, label))
        if result.clusters.linkage is not None:
            names = result.observations[self.config.name_column].reindex(assignment.index)
            paths.extend(viz.plot_dendrogram(result.clusters.linkage, list(names),
                                             result.clusters.k, figures_dir, label))
        return paths
