"""
Anchor Regions Analysis
=======================

Groups U.S. metropolitan statistical areas (MSAs) by socioeconomic and
anchor-institution indicators: hospitals and higher-education institutions.

Main Components:
- data_ingestion: Load and validate the per-MSA indicator spreadsheet
- preprocessing: Per-capita ratios, polarity flips, z-score / min-max scaling
- dimensionality: One composite score per variable group (PCA or latent factor)
- clustering: Complete-linkage hierarchical clustering and k-means
- reporting: Cluster summaries and CSV / spreadsheet exports
- visualization: Cluster-size, density and profile figures
- regression: OLS and multilevel regression diagnostics

Example Usage:
    from anchor_regions import AnalysisPipeline, PipelineConfig, ClusterConfig

    config = PipelineConfig(
        input_path='data/anchor regions analysis.xlsx',
        cluster=ClusterConfig(distance='euclidean', method='hierarchical', k=15),
        cluster_on='percentiles',
        n_bins=100,
    )
    pipeline = AnalysisPipeline(config)
    result = pipeline.run()
    pipeline.export(result)
"""

__version__ = '1.0.0'

from .config import (
    ClusterConfig,
    GroupSpec,
    PipelineConfig,
    VARIABLE_GROUPS,
)

from .exceptions import (
    AnchorRegionsError,
    ConfigurationError,
    ConvergenceWarning,
    DataSourceError,
    DegenerateVariableError,
    InsufficientVarianceError,
)

from .data_ingestion import (
    ObservationLoader,
    load_observations,
)

from .preprocessing import (
    rescale_group,
    rescale_groups,
    zscore,
    minmax,
    two_sd,
    flip_polarity,
    per_capita,
)

from .dimensionality import (
    CompositeResult,
    CompositeTable,
    compute_composites,
    extract_composite,
    percentile_bins,
)

from .clustering import (
    ClusterResult,
    cluster_observations,
    distance_matrix,
    hierarchical_clusters,
    kmeans_clusters,
    select_features,
)

from .reporting import (
    ClusterReport,
    summarize_clusters,
    export_table,
)

from .pipeline import (
    AnalysisPipeline,
    PipelineResult,
)

__all__ = [
    # Configuration
    'ClusterConfig',
    'GroupSpec',
    'PipelineConfig',
    'VARIABLE_GROUPS',

    # Errors
    'AnchorRegionsError',
    'ConfigurationError',
    'ConvergenceWarning',
    'DataSourceError',
    'DegenerateVariableError',
    'InsufficientVarianceError',

    # Data loading
    'ObservationLoader',
    'load_observations',

    # Rescaling
    'rescale_group',
    'rescale_groups',
    'zscore',
    'minmax',
    'two_sd',
    'flip_polarity',
    'per_capita',

    # Composite scores
    'CompositeResult',
    'CompositeTable',
    'compute_composites',
    'extract_composite',
    'percentile_bins',

    # Clustering
    'ClusterResult',
    'cluster_observations',
    'distance_matrix',
    'hierarchical_clusters',
    'kmeans_clusters',
    'select_features',

    # Reporting
    'ClusterReport',
    'summarize_clusters',
    'export_table',

    # Pipeline
    'AnalysisPipeline',
    'PipelineResult',
]
