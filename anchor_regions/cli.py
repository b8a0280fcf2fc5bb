"""
Command line entry point for the anchor regions analysis.

    anchor-regions --input "data/anchor regions analysis.xlsx" -k 10
    anchor-regions --k-series --method hierarchical --cluster-on percentiles
    anchor-regions --sweep --method kmeans --distance correlation
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import (
    CLUSTER_INPUTS, ClusterConfig, DEFAULT_INPUT_FILE, DEFAULT_K, DEFAULT_N_BINS,
    DISTANCES, K_SERIES, METHODS, OUTPUTS_DIR, PipelineConfig, RANDOM_SEED,
    REDUCERS, TRANSFORMS, VARIABLE_GROUPS,
)
from .exceptions import AnchorRegionsError
from .pipeline import AnalysisPipeline
from .visualization import plot_k_sweep

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cluster metropolitan statistical areas on composite indicator scores."
    )
    parser.add_argument("--input", type=Path, default=DEFAULT_INPUT_FILE,
                        help="Spreadsheet or CSV with one MSA per row.")
    parser.add_argument("--sheet", default=0,
                        help="Worksheet name or position (default: first sheet).")
    parser.add_argument("--output-dir", type=Path, default=OUTPUTS_DIR,
                        help="Directory for tables and figures.")
    parser.add_argument("-k", "--k", type=int, action="append", dest="k_values",
                        help=f"Number of clusters; repeat for several (default: {DEFAULT_K}).")
    parser.add_argument("--k-series", action="store_true",
                        help=f"Cluster for every k in {list(K_SERIES)}.")
    parser.add_argument("--distance", choices=DISTANCES, default="euclidean")
    parser.add_argument("--method", choices=METHODS, default="hierarchical")
    parser.add_argument("--cluster-on", choices=CLUSTER_INPUTS, default="scores",
                        help="Cluster on composite scores, their percentile bins, "
                             "or the normalized variables.")
    parser.add_argument("--reducer", choices=REDUCERS, default="pca")
    parser.add_argument("--n-bins", type=int, default=DEFAULT_N_BINS,
                        help="Percentile bins for ranking (10 = deciles, 100 = centiles).")
    parser.add_argument("--transform", choices=TRANSFORMS, default=None,
                        help="Override the scaling transform of every variable group.")
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)
    parser.add_argument("--outcome", default=None,
                        help="Raw indicator to regress on the composite scores.")
    parser.add_argument("--no-plots", action="store_true", help="Skip figures.")
    parser.add_argument("--sweep", action="store_true",
                        help="Report silhouette and cluster balance across k instead.")
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    groups = VARIABLE_GROUPS
    if args.transform:
        groups = tuple(g.with_transform(args.transform) for g in groups)
    sheet = int(args.sheet) if str(args.sheet).isdigit() else args.sheet
    k = args.k_values[0] if args.k_values else DEFAULT_K
    return PipelineConfig(
        input_path=args.input,
        sheet_name=sheet,
        groups=groups,
        reducer=args.reducer,
        n_bins=args.n_bins,
        cluster_on=args.cluster_on,
        cluster=ClusterConfig(distance=args.distance, method=args.method, k=k,
                              random_state=args.seed),
        regression_outcome=args.outcome,
        output_dir=args.output_dir,
        make_plots=not args.no_plots,
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    print("=" * 70)
    print("  ANCHOR REGIONS — MSA CLUSTER ANALYSIS")
    print("=" * 70)

    try:
        config = config_from_args(args)
        pipeline = AnalysisPipeline(config)

        if args.sweep:
            k_values = args.k_values or list(K_SERIES)
            sweep = pipeline.sweep(k_values)
            print(sweep.to_string(index=False))
            results_dir = config.results_dir
            results_dir.mkdir(parents=True, exist_ok=True)
            name = f"{config.cluster_on}_{config.cluster.method}_{config.cluster.distance}"
            sweep.to_csv(results_dir / f"k_sweep_{name}.csv", index=False)
            if config.make_plots:
                plot_k_sweep(sweep, config.figures_dir, name)
            return 0

        k_values = list(K_SERIES) if args.k_series else (args.k_values or [DEFAULT_K])
        if len(k_values) == 1:
            results = {k_values[0]: pipeline.run()}
        else:
            results = pipeline.run_k_series(k_values)

        for k, result in results.items():
            print(f"\n  k={k}: cluster sizes")
            print(result.report.sizes.to_string())
            pipeline.export(result)

    except AnchorRegionsError as e:
        logger.error(str(e))
        print(f"\n  ✗ FAILED: {e}")
        return 1

    print(f"\n{'=' * 70}")
    print(f"  DONE — outputs under {config.output_dir}")
    print(f"{'=' * 70}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
