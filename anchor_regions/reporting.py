# reporting.py
"""
Cluster summaries and tabular exports (delimited text and spreadsheet).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .config import CLUSTER_COLUMN, NAME_COLUMN, STATE_COLUMN
from .data_ingestion import indicator_columns
from .dimensionality import CompositeTable

logger = logging.getLogger(__name__)


def summarize_clusters(observations: pd.DataFrame, assignment: pd.Series,
                       columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Mean raw feature values per cluster.

    Parameters
    ----------
    observations : DataFrame
        Observation table, indexed by MSA identifier.
    assignment : Series
        Cluster labels, same index. Joined by identifier, never by position.
    columns : list[str], optional
        Indicators to average; defaults to every numeric raw indicator.
    """
    if columns is None:
        columns = indicator_columns(observations)
    cluster_name = assignment.name or CLUSTER_COLUMN
    frame = observations[list(columns)].join(assignment.rename(cluster_name), how="inner")

    grouped = frame.groupby(cluster_name)
    profiles = grouped[list(columns)].mean()
    profiles.insert(0, "n_msas", grouped.size())
    return profiles.sort_index()


def cluster_sizes(assignment: pd.Series) -> pd.DataFrame:
    """Cluster label, member count and share of all MSAs."""
    counts = assignment.value_counts().sort_index()
    return pd.DataFrame({
        "n_msas": counts,
        "share": counts / counts.sum(),
    }).rename_axis(assignment.name or CLUSTER_COLUMN)


def cluster_members(observations: pd.DataFrame, assignment: pd.Series,
                    name_column: str = NAME_COLUMN,
                    state_column: str = STATE_COLUMN) -> pd.DataFrame:
    """MSA name and state listed by cluster."""
    cols = [c for c in (name_column, state_column) if c in observations.columns]
    assignment = assignment.rename(assignment.name or CLUSTER_COLUMN)
    members = observations[cols].join(assignment, how="inner")
    sort_by = [assignment.name] + [c for c in cols if c == name_column]
    return members.sort_values(sort_by)


def assemble_full_table(observations: pd.DataFrame, normalized: pd.DataFrame,
                        composites: CompositeTable,
                        assignment: Optional[pd.Series] = None) -> pd.DataFrame:
    """
    Raw indicators, normalized indicators, composite scores, percentile bins
    and the cluster label, all joined on the MSA identifier.
    """
    parts = [observations, normalized, composites.scores, composites.percentiles]
    if assignment is not None:
        parts.append(assignment.to_frame())
    full = parts[0]
    for part in parts[1:]:
        overlap = set(full.columns) & set(part.columns)
        if overlap:
            raise ValueError(f"Column name clash while assembling output: {sorted(overlap)}")
        full = full.join(part, how="left")
    return full


def export_table(frame: pd.DataFrame, directory: Path, stem: str,
                 index: bool = True) -> Tuple[Path, Path]:
    """Write ``<stem>.csv`` and ``<stem>.xlsx``; returns both paths."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    csv_path = directory / f"{stem}.csv"
    xlsx_path = directory / f"{stem}.xlsx"
    frame.to_csv(csv_path, index=index)
    frame.to_excel(xlsx_path, index=index, engine="openpyxl")
    logger.info(f"  Saved {csv_path.name} and {xlsx_path.name}")
    return csv_path, xlsx_path


@dataclass
class ClusterReport:
    """Everything the reporter derives from one Cluster Assignment."""
    summary: pd.DataFrame
    sizes: pd.DataFrame
    members: pd.DataFrame
    label: str

    @classmethod
    def build(cls, observations: pd.DataFrame, assignment: pd.Series, label: str,
              columns: Optional[Sequence[str]] = None) -> "ClusterReport":
        return cls(
            summary=summarize_clusters(observations, assignment, columns),
            sizes=cluster_sizes(assignment),
            members=cluster_members(observations, assignment),
            label=label,
        )

    def write(self, directory: Path) -> List[Path]:
        paths = []
        paths.extend(export_table(self.summary, directory, f"cluster_summary_{self.label}"))
        paths.extend(export_table(self.sizes, directory, f"cluster_sizes_{self.label}"))
        paths.extend(export_table(self.members, directory, f"cluster_members_{self.label}"))
        return paths
