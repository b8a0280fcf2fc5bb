"""
Data Ingestion for the Anchor Regions Analysis
==============================================

Loads the per-MSA indicator spreadsheet into an Observation table: one row
per metropolitan statistical area, indexed by its identifier, with the
display name, the state and every raw indicator column passed through.

Only the presence of the required columns and identifier uniqueness are
validated; unexpected columns are kept as they are.
"""

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from .config import ID_COLUMN, NAME_COLUMN, STATE_COLUMN
from .exceptions import DataSourceError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {'.xlsx', '.xlsm', '.xls'}
TEXT_SUFFIXES = {'.csv', '.txt', '.tsv'}


@dataclass
class DataValidationResult:
    """
    Outcome of checking a freshly read MSA table.

    ``errors`` abort the load; ``warnings`` are logged and the table is kept.
    ``metadata`` holds row, indicator and state counts.
    """
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    metadata: Dict = field(default_factory=dict)

    def log_results(self):
        """Log each error and warning, then the overall verdict."""
        for error in self.errors:
            logger.error(f"  - {error}")
        for warning in self.warnings:
            logger.warning(f"  - {warning}")
        if self.is_valid:
            logger.info(f"Observation table passed validation "
                        f"({len(self.warnings)} warnings)")
        else:
            logger.error(f"Observation table failed validation "
                         f"with {len(self.errors)} errors")


class ObservationLoader:
    """
    Loads and validates the MSA indicator table.

    Parameters
    ----------
    id_column : str
        Column holding the unique MSA identifier (becomes the index).
    name_column : str
        Human-readable MSA name.
    state_column : str
        State code(s) of the MSA.
    """

    def __init__(self, id_column: str = ID_COLUMN,
                 name_column: str = NAME_COLUMN,
                 state_column: str = STATE_COLUMN):
        self.id_column = id_column
        self.name_column = name_column
        self.state_column = state_column
        self.data: Optional[pd.DataFrame] = None
        self.validation_result: Optional[DataValidationResult] = None

    @property
    def required_columns(self) -> List[str]:
        return [self.id_column, self.name_column, self.state_column]

    def load(self, filepath: Union[str, Path], sheet_name: Union[int, str] = 0) -> pd.DataFrame:
        """
        Load the Observation table from a spreadsheet or delimited text file.

        Parameters
        ----------
        filepath : str or Path
            Path to an .xlsx/.xls workbook or a .csv/.tsv/.txt file
        sheet_name : int or str, default 0
            Worksheet to read when the source is a workbook

        Returns
        -------
        pd.DataFrame
            Observation table indexed by the MSA identifier

        Raises
        ------
        DataSourceError
            If the file is missing or unreadable, or required columns are absent
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise DataSourceError(f"Input file not found: {filepath}")

        logger.info(f"Loading MSA indicators from: {filepath}")
        df = self._read(filepath, sheet_name)

        self.data = df
        self.validation_result = self._validate()
        self.validation_result.log_results()

        if not self.validation_result.is_valid:
            raise DataSourceError(
                f"Observation table validation failed for {filepath}: "
                + "; ".join(self.validation_result.errors)
            )

        self.data = self._standardize()

        logger.info(f"Successfully loaded {len(self.data)} MSAs "
                    f"with {self.data.shape[1]} columns")
        return self.data

    def _read(self, filepath: Path, sheet_name: Union[int, str]) -> pd.DataFrame:
        suffix = filepath.suffix.lower()
        try:
            if suffix in EXCEL_SUFFIXES:
                return pd.read_excel(filepath, sheet_name=sheet_name)
            if suffix in TEXT_SUFFIXES:
                sep = '\t' if suffix == '.tsv' else ','
                return pd.read_csv(filepath, sep=sep)
        except (OSError, ValueError, KeyError, ImportError, zipfile.BadZipFile) as e:
            raise DataSourceError(f"Failed to read {filepath}: {e}") from e
        raise DataSourceError(
            f"Unsupported file type '{suffix}' for {filepath}; "
            f"expected one of {sorted(EXCEL_SUFFIXES | TEXT_SUFFIXES)}"
        )

    def _validate(self) -> DataValidationResult:
        """
        Validate the structure of the loaded table.

        Returns
        -------
        DataValidationResult
            Validation results with errors, warnings, and metadata
        """
        errors = []
        warnings = []
        metadata = {}

        if self.data.empty:
            errors.append("Input table has no rows")
            return DataValidationResult(False, errors, warnings, metadata)

        missing_cols = [c for c in self.required_columns if c not in self.data.columns]
        if missing_cols:
            errors.append(f"Missing required columns: {missing_cols}")
            return DataValidationResult(False, errors, warnings, metadata)

        ids = self.data[self.id_column]
        if ids.isnull().any():
            errors.append(f"{int(ids.isnull().sum())} rows have no '{self.id_column}'")
        duplicated = ids[ids.duplicated(keep=False)].dropna().unique().tolist()
        if duplicated:
            errors.append(f"Duplicate identifiers in '{self.id_column}': {duplicated[:10]}")

        indicators = self.data.drop(columns=self.required_columns)
        numeric = indicators.select_dtypes(include='number')
        non_numeric = sorted(set(indicators.columns) - set(numeric.columns))
        if non_numeric:
            warnings.append(f"Non-numeric indicator columns passed through: {non_numeric}")

        null_counts = numeric.isnull().sum()
        if null_counts.any():
            warnings.append(
                f"Missing values in indicator columns: {null_counts[null_counts > 0].to_dict()}"
            )

        metadata['n_rows'] = len(self.data)
        metadata['n_indicators'] = numeric.shape[1]
        metadata['n_states'] = self.data[self.state_column].nunique()

        is_valid = len(errors) == 0

        return DataValidationResult(is_valid, errors, warnings, metadata)

    def _standardize(self) -> pd.DataFrame:
        """Normalise identifiers to stripped strings and index by them."""
        df = self.data.copy()
        ids = df[self.id_column]
        if pd.api.types.is_float_dtype(ids) and (ids % 1 == 0).all():
            # Spreadsheet readers hand back integer codes as floats
            ids = ids.astype('int64')
        df[self.id_column] = ids.astype(str).str.strip()
        df = df.set_index(self.id_column, verify_integrity=True)
        return df


def load_observations(filepath: Union[str, Path],
                      sheet_name: Union[int, str] = 0,
                      id_column: str = ID_COLUMN,
                      name_column: str = NAME_COLUMN,
                      state_column: str = STATE_COLUMN) -> pd.DataFrame:
    """Convenience wrapper around :class:`ObservationLoader`."""
    loader = ObservationLoader(id_column, name_column, state_column)
    return loader.load(filepath, sheet_name=sheet_name)


def indicator_columns(observations: pd.DataFrame,
                      name_column: str = NAME_COLUMN,
                      state_column: str = STATE_COLUMN) -> List[str]:
    """Numeric raw indicator columns of an Observation table."""
    rest = observations.drop(columns=[c for c in (name_column, state_column)
                                      if c in observations.columns])
    return list(rest.select_dtypes(include='number').columns)
