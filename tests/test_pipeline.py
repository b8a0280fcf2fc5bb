"""
End-to-end tests for the analysis pipeline and its command line entry point.

Run: pytest tests/test_pipeline.py -v
"""

import pandas as pd
import pytest

from anchor_regions.cli import build_parser, config_from_args, main
from anchor_regions.config import ClusterConfig, GroupSpec, PipelineConfig
from anchor_regions.exceptions import ConfigurationError, DataSourceError
from anchor_regions.pipeline import AnalysisPipeline


@pytest.fixture
def config(spreadsheet_path, tmp_path):
    return PipelineConfig(
        input_path=spreadsheet_path,
        output_dir=tmp_path / "outputs",
        cluster=ClusterConfig(k=4),
        n_bins=10,
        make_plots=False,
    )


# ===================================================================
# Configuration
# ===================================================================

class TestPipelineConfig:

    def test_overlapping_groups_rejected(self, config):
        config.groups = (GroupSpec("a", ("totpop_19", "net_mig")),
                         GroupSpec("b", ("net_mig", "pct_bachelors")))
        with pytest.raises(ConfigurationError, match="disjoint"):
            AnalysisPipeline(config)

    def test_unknown_cluster_input(self, config):
        config.cluster_on = "raw"
        with pytest.raises(ConfigurationError):
            AnalysisPipeline(config)

    def test_output_subdirectories(self, config):
        assert config.figures_dir == config.output_dir / "figures"
        assert config.results_dir == config.output_dir / "data"


# ===================================================================
# Runs
# ===================================================================

class TestAnalysisPipeline:

    def test_run_end_to_end(self, config):
        result = AnalysisPipeline(config).run()
        assert result.assignment.nunique() == 4
        assert result.assignment.index.equals(result.observations.index)
        assert list(result.features.columns) == [
            "demographic_score", "economic_score",
            "higher_education_score", "hospital_score",
        ]
        assert result.report.sizes["n_msas"].sum() == 60
        assert result.label == "scores_hierarchical_euclidean_k4"
        assert result.regression is None

    def test_runs_are_identical(self, config):
        a = AnalysisPipeline(config).run()
        b = AnalysisPipeline(config).run()
        pd.testing.assert_series_equal(a.assignment, b.assignment)
        pd.testing.assert_frame_equal(a.composites.scores, b.composites.scores,
                                      check_exact=True)

    def test_inputs_not_modified(self, config):
        pipeline = AnalysisPipeline(config)
        observations = pipeline.load()
        before = observations.copy()
        normalized = pipeline.rescale(observations)
        pipeline.reduce(normalized)
        pd.testing.assert_frame_equal(observations, before)

    def test_cluster_on_percentiles(self, config):
        config.cluster_on = "percentiles"
        result = AnalysisPipeline(config).run()
        assert list(result.features.columns)[0] == "demographic_pctile"
        assert result.features.max().max() <= 10

    def test_kmeans_correlation_factor(self, config):
        config.reducer = "factor"
        config.cluster = ClusterConfig("correlation", "kmeans", 3)
        result = AnalysisPipeline(config).run()
        assert set(result.assignment) == {1, 2, 3}
        assert result.clusters.linkage is None

    def test_k_series_independent(self, config):
        pipeline = AnalysisPipeline(config)
        results = pipeline.run_k_series([3, 6])
        assert sorted(results) == [3, 6]
        assert results[3].assignment.nunique() == 3
        assert results[6].assignment.nunique() == 6
        single = pipeline.run()
        pd.testing.assert_series_equal(
            AnalysisPipeline(config).run_k_series([4])[4].assignment, single.assignment)

    def test_regression_attached(self, config):
        config.regression_outcome = "pct_bachelors"
        config.regression_predictors = ["economic_score", "hospital_score"]
        result = AnalysisPipeline(config).run()
        assert list(result.regression["model"]) == ["ols", "multilevel"]

    def test_sweep(self, config):
        table = AnalysisPipeline(config).sweep([2, 3, 5])
        assert list(table["k"]) == [2, 3, 5]

    def test_missing_input(self, config, tmp_path):
        with pytest.raises(DataSourceError):
            AnalysisPipeline(config).run(tmp_path / "missing.xlsx")

    def test_export_tables(self, config):
        pipeline = AnalysisPipeline(config)
        result = pipeline.run()
        paths = pipeline.export(result)
        assert all(p.exists() for p in paths)
        table = pd.read_csv(config.results_dir / f"msa_table_{result.label}.csv",
                            index_col=0, dtype={"cbsa_code": str})
        assert "cluster" in table.columns
        assert "hospital_pctile" in table.columns
        assert (config.results_dir / "group_vif.xlsx").exists()
        assert not config.figures_dir.exists()

    def test_export_with_figures(self, config):
        config.make_plots = True
        pipeline = AnalysisPipeline(config)
        result = pipeline.run()
        paths = pipeline.export(result)
        figures = [p for p in paths if p.suffix == ".png"]
        assert any(p.name.startswith("dendrogram_") for p in figures)
        assert any(p.name.startswith("density_") for p in figures)
        assert all(p.exists() for p in figures)


# ===================================================================
# Command line
# ===================================================================

class TestCLI:

    def test_parser_defaults(self):
        args = build_parser().parse_args([])
        cfg = config_from_args(args)
        assert cfg.cluster.method == "hierarchical"
        assert cfg.cluster_on == "scores"
        assert cfg.sheet_name == 0

    def test_transform_override(self):
        args = build_parser().parse_args(["--transform", "minmax"])
        cfg = config_from_args(args)
        assert all(g.transform == "minmax" for g in cfg.groups)

    def test_main_success(self, spreadsheet_path, tmp_path):
        out = tmp_path / "cli_out"
        code = main(["--input", str(spreadsheet_path), "--output-dir", str(out),
                     "-k", "3", "-k", "5", "--n-bins", "10", "--no-plots"])
        assert code == 0
        assert (out / "data" / "msa_table_scores_hierarchical_euclidean_k3.csv").exists()
        assert (out / "data" / "msa_table_scores_hierarchical_euclidean_k5.csv").exists()

    def test_main_sweep(self, spreadsheet_path, tmp_path):
        out = tmp_path / "sweep_out"
        code = main(["--input", str(spreadsheet_path), "--output-dir", str(out),
                     "--sweep", "-k", "2", "-k", "4", "--no-plots"])
        assert code == 0
        assert (out / "data" / "k_sweep_scores_hierarchical_euclidean.csv").exists()

    def test_main_missing_file(self, tmp_path):
        code = main(["--input", str(tmp_path / "absent.xlsx"),
                     "--output-dir", str(tmp_path / "o"), "--no-plots"])
        assert code == 1
