"""
Tests for composite-score extraction and percentile binning.

Run: pytest tests/test_dimensionality.py -v
"""

import numpy as np
import pandas as pd
import pytest

from anchor_regions.config import VARIABLE_GROUPS
from anchor_regions.dimensionality import (
    compute_composites,
    extract_composite,
    percentile_bins,
)
from anchor_regions.exceptions import ConfigurationError, InsufficientVarianceError
from anchor_regions.preprocessing import normalized_columns, rescale_groups


@pytest.fixture
def normalized(observations):
    return rescale_groups(observations, VARIABLE_GROUPS)


class TestExtractComposite:

    def test_pca_is_deterministic(self, normalized):
        cols = normalized_columns(VARIABLE_GROUPS[1])
        a = extract_composite(normalized[cols], method="pca")
        b = extract_composite(normalized[cols], method="pca")
        assert a.scores.equals(b.scores)
        assert a.loadings.equals(b.loadings)

    def test_factor_is_deterministic(self, normalized):
        cols = normalized_columns(VARIABLE_GROUPS[0])
        a = extract_composite(normalized[cols], method="factor", random_state=7)
        b = extract_composite(normalized[cols], method="factor", random_state=7)
        assert a.scores.equals(b.scores)

    def test_one_score_per_observation(self, normalized):
        cols = normalized_columns(VARIABLE_GROUPS[2])
        res = extract_composite(normalized[cols], group="higher_education")
        assert len(res.scores) == len(normalized)
        pd.testing.assert_index_equal(res.scores.index, normalized.index)
        assert res.scores.name == "higher_education_score"
        assert 0 < res.explained_variance_ratio <= 1

    def test_orientation_follows_inputs(self):
        rng = np.random.default_rng(0)
        base = rng.normal(size=50)
        frame = pd.DataFrame({
            "a_norm": base + rng.normal(scale=0.1, size=50),
            "b_norm": base + rng.normal(scale=0.1, size=50),
        })
        res = extract_composite(frame)
        assert res.loadings.sum() > 0
        assert np.corrcoef(res.scores, base)[0, 1] > 0.9

    def test_factor_anchor_loading_is_one(self, normalized):
        cols = normalized_columns(VARIABLE_GROUPS[1])
        res = extract_composite(normalized[cols], method="factor")
        assert res.loadings.iloc[0] == pytest.approx(1.0)

    def test_single_constant_column_raises(self):
        frame = pd.DataFrame({"flat_norm": [2.0] * 10})
        with pytest.raises(InsufficientVarianceError):
            extract_composite(frame)

    def test_one_varying_column_raises(self):
        frame = pd.DataFrame({"x_norm": np.arange(10.0), "flat_norm": [1.0] * 10})
        with pytest.raises(InsufficientVarianceError):
            extract_composite(frame)

    def test_zero_variance_column_dropped(self):
        rng = np.random.default_rng(1)
        frame = pd.DataFrame({
            "a_norm": rng.normal(size=20),
            "b_norm": rng.normal(size=20),
            "flat_norm": [0.5] * 20,
        })
        res = extract_composite(frame)
        assert res.dropped_columns == ["flat_norm"]
        assert list(res.loadings.index) == ["a_norm", "b_norm"]

    def test_unknown_method(self, normalized):
        with pytest.raises(ConfigurationError):
            extract_composite(normalized.iloc[:, :3], method="ica")


class TestPercentileBins:

    def test_deciles_equal_frequency(self):
        scores = pd.Series(np.linspace(-3, 3, 100), name="s")
        bins = percentile_bins(scores, n_bins=10)
        assert bins.min() == 1
        assert bins.max() == 10
        assert (bins.value_counts() == 10).all()

    def test_bins_preserve_order(self):
        rng = np.random.default_rng(3)
        scores = pd.Series(rng.normal(size=200))
        bins = percentile_bins(scores, n_bins=100)
        order = scores.sort_values().index
        assert bins.loc[order].is_monotonic_increasing

    def test_ties_are_deterministic(self):
        scores = pd.Series([1.0, 1.0, 1.0, 1.0])
        a = percentile_bins(scores, n_bins=2)
        b = percentile_bins(scores, n_bins=2)
        assert list(a) == list(b) == [1, 1, 2, 2]

    def test_invalid_bin_count(self):
        with pytest.raises(ConfigurationError):
            percentile_bins(pd.Series([1.0, 2.0]), n_bins=0)

    def test_numpy_integer_bin_count(self):
        bins = percentile_bins(pd.Series(np.arange(20.0)), n_bins=np.int64(4))
        assert (bins.value_counts() == 5).all()


class TestComputeComposites:

    def test_columns_named_by_group(self, normalized):
        table = compute_composites(normalized, VARIABLE_GROUPS, n_bins=10)
        names = [g.name for g in VARIABLE_GROUPS]
        assert list(table.scores.columns) == [f"{n}_score" for n in names]
        assert list(table.percentiles.columns) == [f"{n}_pctile" for n in names]
        assert table.percentiles.max().max() == 10

    def test_twice_identical(self, normalized):
        a = compute_composites(normalized, VARIABLE_GROUPS)
        b = compute_composites(normalized, VARIABLE_GROUPS)
        pd.testing.assert_frame_equal(a.scores, b.scores, check_exact=True)
        pd.testing.assert_frame_equal(a.percentiles, b.percentiles, check_exact=True)

    def test_loadings_frame(self, normalized):
        table = compute_composites(normalized, VARIABLE_GROUPS)
        loadings = table.loadings_frame()
        assert set(loadings["group"]) == {g.name for g in VARIABLE_GROUPS}
        assert len(loadings) == sum(len(g.columns) for g in VARIABLE_GROUPS)
