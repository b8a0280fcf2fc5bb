"""
Tests for loading the MSA indicator spreadsheet.

Run: pytest tests/test_data_ingestion.py -v
"""

import pandas as pd
import pytest

from anchor_regions.data_ingestion import (
    DataValidationResult,
    ObservationLoader,
    indicator_columns,
    load_observations,
)
from anchor_regions.exceptions import DataSourceError


class TestObservationLoader:
    """Loader contract: Observation table keyed by identifier, or DataSourceError."""

    def test_loads_spreadsheet(self, spreadsheet_path, raw_msa_table):
        df = load_observations(spreadsheet_path)
        assert len(df) == len(raw_msa_table)
        assert df.index.name == "cbsa_code"
        assert df.index.is_unique
        assert "msa_name" in df.columns
        assert "state" in df.columns

    def test_loads_csv(self, csv_path, raw_msa_table):
        df = load_observations(csv_path)
        assert len(df) == len(raw_msa_table)
        assert list(df.index[:2]) == ["10000", "10020"]

    def test_spreadsheet_and_csv_agree(self, spreadsheet_path, csv_path):
        a = load_observations(spreadsheet_path)
        b = load_observations(csv_path)
        pd.testing.assert_index_equal(a.index, b.index)
        pd.testing.assert_series_equal(a["totpop_19"], b["totpop_19"], check_dtype=False)

    def test_unexpected_columns_pass_through(self, spreadsheet_path):
        df = load_observations(spreadsheet_path)
        assert "region_note" in df.columns

    def test_validation_result_recorded(self, spreadsheet_path):
        loader = ObservationLoader()
        loader.load(spreadsheet_path)
        result = loader.validation_result
        assert result.is_valid
        assert result.metadata["n_rows"] == 60
        # region_note is text, flagged but not fatal
        assert any("region_note" in w for w in result.warnings)

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataSourceError, match="not found"):
            load_observations(tmp_path / "nope.xlsx")

    def test_missing_identifier_column(self, tmp_path, raw_msa_table):
        path = tmp_path / "no_id.csv"
        raw_msa_table.drop(columns=["cbsa_code"]).to_csv(path, index=False)
        with pytest.raises(DataSourceError, match="cbsa_code"):
            load_observations(path)

    def test_duplicate_identifiers(self, tmp_path, raw_msa_table):
        dup = pd.concat([raw_msa_table, raw_msa_table.iloc[[0]]], ignore_index=True)
        path = tmp_path / "dup.csv"
        dup.to_csv(path, index=False)
        with pytest.raises(DataSourceError, match="Duplicate"):
            load_observations(path)

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_text("this is not a workbook")
        with pytest.raises(DataSourceError):
            load_observations(path)

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "msas.json"
        path.write_text("{}")
        with pytest.raises(DataSourceError, match="Unsupported"):
            load_observations(path)

    def test_custom_identifier_column(self, tmp_path, raw_msa_table):
        path = tmp_path / "renamed.csv"
        raw_msa_table.rename(columns={"cbsa_code": "msa_id"}).to_csv(path, index=False)
        df = ObservationLoader(id_column="msa_id").load(path)
        assert df.index.name == "msa_id"


class TestIndicatorColumns:

    def test_numeric_indicators_only(self, observations):
        cols = indicator_columns(observations)
        assert "totpop_19" in cols
        assert "msa_name" not in cols
        assert "state" not in cols
        assert "region_note" not in cols


class TestDataValidationResult:

    def test_defaults_are_fresh_containers(self):
        a = DataValidationResult(True)
        b = DataValidationResult(True)
        assert a.errors == [] and a.warnings == [] and a.metadata == {}
        a.warnings.append("note")
        assert b.warnings == []

    def test_failed_load_records_errors(self, tmp_path, raw_msa_table):
        path = tmp_path / "no_state.csv"
        raw_msa_table.drop(columns=["state"]).to_csv(path, index=False)
        loader = ObservationLoader()
        with pytest.raises(DataSourceError):
            loader.load(path)
        assert not loader.validation_result.is_valid
        assert any("state" in e for e in loader.validation_result.errors)
