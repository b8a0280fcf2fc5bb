# preprocessing.py
"""
Variable selection and rescaling: per-capita ratios, polarity flips,
z-score / min-max / two-sd scaling, and within-group VIF checks.

Every function returns new columns; the Observation table is never modified.
"""

import logging
from typing import Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler
from statsmodels.stats.outliers_influence import variance_inflation_factor

from .config import GroupSpec, NORM_SUFFIX, POPULATION_COLUMN
from .exceptions import ConfigurationError, DataSourceError, DegenerateVariableError

logger = logging.getLogger(__name__)

PERCENT_MAX = 100.0


# ── Schema validation ─────────────────────────────────────────────────────────

def validate_groups(table: pd.DataFrame, groups: Iterable[GroupSpec],
                    population_column: Optional[str] = POPULATION_COLUMN):
    """
    Check every group column against the loaded table before any computation.

    A missing or non-numeric column raises ConfigurationError, missing values
    raise DataSourceError. Partial computation would corrupt every composite
    score, so nothing is skipped silently.
    """
    groups = list(groups)
    needed = [c for g in groups for c in g.columns]
    if population_column and any(g.per_capita for g in groups):
        needed.append(population_column)

    missing = [c for c in dict.fromkeys(needed) if c not in table.columns]
    if missing:
        raise ConfigurationError(f"Columns not found in the input table: {missing}")

    non_numeric = [c for c in dict.fromkeys(needed)
                   if not pd.api.types.is_numeric_dtype(table[c])]
    if non_numeric:
        raise ConfigurationError(f"Variable-group columns must be numeric: {non_numeric}")

    nulls = table[list(dict.fromkeys(needed))].isnull().sum()
    nulls = nulls[nulls > 0]
    if not nulls.empty:
        raise DataSourceError(f"Missing values in variable-group columns: {nulls.to_dict()}")


# ── Column transforms ─────────────────────────────────────────────────────────

def negligible_spread(sd, magnitude):
    """
    True where a standard deviation is indistinguishable from rounding noise
    at the data's magnitude. Works elementwise on arrays.
    """
    return sd <= np.finfo(float).eps * np.maximum(1.0, magnitude)


def zscore(x: pd.Series) -> pd.Series:
    """
    Z-score standardisation (mean=0, std=1, population std as in StandardScaler).
    """
    values = x.to_numpy(dtype=float).reshape(-1, 1)
    if negligible_spread(values.std(), np.abs(values).max()):
        raise DegenerateVariableError(f"'{x.name}' has zero standard deviation")
    scaled = StandardScaler().fit_transform(values).ravel()
    return pd.Series(scaled, index=x.index, name=x.name)


def minmax(x: pd.Series) -> pd.Series:
    """Scale by the maximum: x / max(x). Values are expected non-negative."""
    values = x.astype(float)
    if (values < 0).any():
        raise DegenerateVariableError(
            f"'{x.name}' has negative values; min-max scaling expects non-negative data"
        )
    peak = values.max()
    if peak <= 0:
        raise DegenerateVariableError(f"'{x.name}' has max {peak}; cannot divide by it")
    return values / peak


def two_sd(x: pd.Series) -> pd.Series:
    """
    Centre and divide by two sample standard deviations, so that scaled
    continuous inputs are on a scale comparable to binary ones.
    """
    values = x.astype(float)
    sd = values.std(ddof=1)
    if not np.isfinite(sd) or negligible_spread(sd, values.abs().max()):
        raise DegenerateVariableError(f"'{x.name}' has zero standard deviation")
    return (values - values.mean()) / (2 * sd)


def flip_polarity(x: pd.Series) -> pd.Series:
    """100 - x, so that larger values mean more favourable."""
    values = x.astype(float)
    outside = ((values < 0) | (values > PERCENT_MAX)).sum()
    if outside:
        logger.warning(f"'{x.name}': {outside} values outside [0, 100]; "
                       "polarity flip assumes percentages")
    return PERCENT_MAX - values


def per_capita(x: pd.Series, population: pd.Series) -> pd.Series:
    """Divide a count by total population to remove city-size effects."""
    if (population <= 0).any():
        raise DegenerateVariableError(
            f"Population column '{population.name}' has zero or negative values"
        )
    return x.astype(float) / population.astype(float)


TRANSFORM_FUNCTIONS = {
    "zscore": zscore,
    "minmax": minmax,
    "two_sd": two_sd,
}


# ── Group rescaling ───────────────────────────────────────────────────────────

def rescale_group(table: pd.DataFrame, group: GroupSpec,
                  population_column: Optional[str] = POPULATION_COLUMN) -> pd.DataFrame:
    """
    Produce one ``<column>_norm`` column per group member.

    Order within a column: per-capita ratio, polarity flip, then scaling.
    """
    group.validate()
    validate_groups(table, [group], population_column)
    scale = TRANSFORM_FUNCTIONS[group.transform]

    out = {}
    for col in group.columns:
        x = table[col]
        if col in group.per_capita:
            x = per_capita(x, table[population_column])
        if col in group.flip:
            x = flip_polarity(x)
        out[f"{col}{NORM_SUFFIX}"] = scale(x.rename(col)).to_numpy()

    normalized = pd.DataFrame(out, index=table.index)
    logger.info(f"Rescaled group '{group.name}' ({group.transform}): "
                f"{len(group.columns)} columns")
    return normalized


def rescale_groups(table: pd.DataFrame, groups: Sequence[GroupSpec],
                   population_column: Optional[str] = POPULATION_COLUMN) -> pd.DataFrame:
    """Rescale every group and concatenate the normalized columns."""
    validate_groups(table, groups, population_column)
    frames = [rescale_group(table, g, population_column) for g in groups]
    return pd.concat(frames, axis=1)


def normalized_columns(group: GroupSpec) -> List[str]:
    return [f"{c}{NORM_SUFFIX}" for c in group.columns]


# ── Collinearity diagnostics ──────────────────────────────────────────────────

def calculate_vif(df: pd.DataFrame) -> pd.DataFrame:
    """
    Variance Inflation Factor for each feature.
    VIF > 10 → severe multicollinearity.
    """
    cols = list(df.columns)
    X = df.values.astype(float)
    # Guard against constant columns
    keep = [i for i in range(X.shape[1]) if X[:, i].std() > 0]
    X_clean = X[:, keep]
    cols_clean = [cols[i] for i in keep]

    if len(cols_clean) < 2:
        return pd.DataFrame({"Feature": cols_clean, "VIF": [np.nan] * len(cols_clean)})

    vif_data = pd.DataFrame({
        "Feature": cols_clean,
        "VIF": [
            variance_inflation_factor(X_clean, i)
            for i in range(len(cols_clean))
        ],
    })
    return vif_data.sort_values("VIF", ascending=False).reset_index(drop=True)


def group_vif_table(normalized: pd.DataFrame, groups: Sequence[GroupSpec]) -> pd.DataFrame:
    """Within-group VIF of every normalized variable, one row per variable."""
    rows = []
    for group in groups:
        vif = calculate_vif(normalized[normalized_columns(group)])
        vif.insert(0, "group", group.name)
        rows.append(vif)
    return pd.concat(rows, ignore_index=True)
