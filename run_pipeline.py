#!/usr/bin/env python3
"""
Anchor Regions Analysis — Full Pipeline
=======================================

Runs the complete analysis from the MSA spreadsheet to cluster tables and
figures. Execute from the repository root:

    python run_pipeline.py                              # k=10, hierarchical, Euclidean
    python run_pipeline.py -k 15 -k 35                  # two independent assignments
    python run_pipeline.py --k-series                   # k = 5, 10, ..., 40
    python run_pipeline.py --cluster-on percentiles --n-bins 10
    python run_pipeline.py --method kmeans --distance correlation
    python run_pipeline.py --sweep                      # silhouette / balance vs k
    python run_pipeline.py --outcome real_gdp_21        # add regression diagnostics

Steps:
    1.  Load the per-MSA indicator spreadsheet
    2.  Rescale each variable group (per-capita, polarity flips, z-score / min-max)
    3.  One composite score per group (first principal component) + percentile bins
    4.  Distance matrix and clustering (complete linkage or k-means)
    5.  Cluster summaries, CSV / spreadsheet exports, figures

Outputs:
    outputs/data/     tables (.csv and .xlsx)
    outputs/figures/  diagnostic figures
"""

import sys

from anchor_regions.cli import main


if __name__ == "__main__":
    sys.exit(main())
