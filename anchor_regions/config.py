# config.py - Configuration for the anchor regions analysis
# Edit paths, variable groups and parameters as needed

import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .exceptions import ConfigurationError

# ── Paths ──────────────────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
OUTPUTS_DIR = BASE_DIR / "outputs"

# Input data
DEFAULT_INPUT_FILE = DATA_DIR / "anchor regions analysis.xlsx"

# Output subdirectories (under the run's output directory)
FIGURES_SUBDIR = "figures"
RESULTS_SUBDIR = "data"

# ── Observation schema ─────────────────────────────────────────────────────────
ID_COLUMN = "cbsa_code"
NAME_COLUMN = "msa_name"
STATE_COLUMN = "state"
POPULATION_COLUMN = "totpop_19"
CLUSTER_COLUMN = "cluster"

NORM_SUFFIX = "_norm"
SCORE_SUFFIX = "_score"
PERCENTILE_SUFFIX = "_pctile"

# ── Clustering parameters ──────────────────────────────────────────────────────
RANDOM_SEED = 42
N_INIT = 20                     # Number of k-means random initializations
MAX_ITER = 300
TOLERANCE = 1e-4

DEFAULT_K = 10
K_SERIES = (5, 10, 15, 20, 25, 30, 35, 40)
DEFAULT_N_BINS = 100            # centiles; 10 gives deciles

TRANSFORMS = ("zscore", "minmax", "two_sd")
REDUCERS = ("pca", "factor")
DISTANCES = ("euclidean", "correlation")
METHODS = ("hierarchical", "kmeans")
CLUSTER_INPUTS = ("scores", "percentiles", "normalized")

# ── Visualization parameters ──────────────────────────────────────────────────
FIGURE_DPI = 300
FIGURE_FORMAT = ["png"]
FIGSIZE_WIDE = (14, 8)


# ── Variable groups ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GroupSpec:
    """
    A named list of substantively related indicator columns.

    ``flip`` columns are percentages where larger raw values are worse and get
    ``100 - x`` before scaling. ``per_capita`` columns are institutional counts
    divided by total population before scaling.
    """
    name: str
    columns: Tuple[str, ...]
    transform: str = "zscore"
    flip: Tuple[str, ...] = ()
    per_capita: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept lists from callers but store tuples
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "flip", tuple(self.flip))
        object.__setattr__(self, "per_capita", tuple(self.per_capita))

    def validate(self):
        if not self.name:
            raise ConfigurationError("Variable group needs a name")
        if not self.columns:
            raise ConfigurationError(f"Variable group '{self.name}' has no columns")
        if len(set(self.columns)) != len(self.columns):
            raise ConfigurationError(f"Variable group '{self.name}' repeats a column")
        if self.transform not in TRANSFORMS:
            raise ConfigurationError(
                f"Unknown transform '{self.transform}' for group '{self.name}'; "
                f"expected one of {TRANSFORMS}"
            )
        for attr in ("flip", "per_capita"):
            stray = set(getattr(self, attr)) - set(self.columns)
            if stray:
                raise ConfigurationError(
                    f"Group '{self.name}': {attr} columns {sorted(stray)} are not group members"
                )
        both = set(self.flip) & set(self.per_capita)
        if both:
            raise ConfigurationError(
                f"Group '{self.name}': columns {sorted(both)} cannot be both "
                "polarity-flipped and per-capita"
            )

    def with_transform(self, transform: str) -> "GroupSpec":
        return GroupSpec(self.name, self.columns, transform, self.flip, self.per_capita)


VARIABLE_GROUPS = (
    GroupSpec(
        name="demographic",
        columns=("totpop_19", "pop_growth_10_19", "net_mig", "pct_bachelors"),
    ),
    GroupSpec(
        name="economic",
        columns=("real_gdp_21", "median_hh_income", "poverty_rate", "unemployment_rate"),
        flip=("poverty_rate", "unemployment_rate"),
    ),
    GroupSpec(
        name="higher_education",
        columns=("n_institutions", "total_enrollment", "research_expenditure"),
        per_capita=("n_institutions", "total_enrollment", "research_expenditure"),
    ),
    GroupSpec(
        name="hospital",
        columns=("n_hospitals", "hospital_beds", "hospital_employment"),
        per_capita=("n_hospitals", "hospital_beds", "hospital_employment"),
    ),
)


# ── Clustering configuration ──────────────────────────────────────────────────

@dataclass(frozen=True)
class ClusterConfig:
    """One (distance, algorithm, k) configuration. Assignments from different
    configurations are independent and not comparable."""
    distance: str = "euclidean"
    method: str = "hierarchical"
    k: int = DEFAULT_K
    random_state: int = RANDOM_SEED
    n_init: int = N_INIT
    max_iter: int = MAX_ITER
    tol: float = TOLERANCE

    def validate(self, n_obs: Optional[int] = None):
        if self.distance not in DISTANCES:
            raise ConfigurationError(
                f"Unknown distance '{self.distance}'; expected one of {DISTANCES}"
            )
        if self.method not in METHODS:
            raise ConfigurationError(
                f"Unknown clustering method '{self.method}'; expected one of {METHODS}"
            )
        if not isinstance(self.k, numbers.Integral) or isinstance(self.k, bool) or self.k < 1:
            raise ConfigurationError(f"k must be an integer >= 1, got {self.k!r}")
        if n_obs is not None and self.k > n_obs:
            raise ConfigurationError(
                f"k={self.k} exceeds the number of observations ({n_obs})"
            )
        if self.max_iter < 1 or self.n_init < 1:
            raise ConfigurationError("max_iter and n_init must be >= 1")

    @property
    def label(self) -> str:
        return f"{self.method}_{self.distance}_k{self.k}"

    def with_k(self, k: int) -> "ClusterConfig":
        return ClusterConfig(
            self.distance, self.method, k, self.random_state,
            self.n_init, self.max_iter, self.tol,
        )


# ── Pipeline configuration ────────────────────────────────────────────────────

@dataclass
class PipelineConfig:
    """All run-time choices for one pass of the pipeline."""
    input_path: Path = DEFAULT_INPUT_FILE
    sheet_name: Union[int, str] = 0
    groups: Tuple[GroupSpec, ...] = VARIABLE_GROUPS
    id_column: str = ID_COLUMN
    name_column: str = NAME_COLUMN
    state_column: str = STATE_COLUMN
    population_column: str = POPULATION_COLUMN
    reducer: str = "pca"
    n_bins: int = DEFAULT_N_BINS
    cluster_on: str = "scores"
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    regression_outcome: Optional[str] = None
    regression_predictors: Optional[List[str]] = None
    output_dir: Path = OUTPUTS_DIR
    make_plots: bool = True

    def __post_init__(self):
        self.input_path = Path(self.input_path)
        self.output_dir = Path(self.output_dir)
        self.groups = tuple(self.groups)

    def validate(self):
        """Fail fast on malformed configuration."""
        if not self.groups:
            raise ConfigurationError("At least one variable group is required")
        seen: Dict[str, str] = {}
        names = set()
        for group in self.groups:
            group.validate()
            if group.name in names:
                raise ConfigurationError(f"Duplicate variable group name '{group.name}'")
            names.add(group.name)
            for col in group.columns:
                if col in seen:
                    raise ConfigurationError(
                        f"Column '{col}' appears in groups '{seen[col]}' and '{group.name}'; "
                        "groups must be disjoint"
                    )
                seen[col] = group.name
        if self.reducer not in REDUCERS:
            raise ConfigurationError(
                f"Unknown reducer '{self.reducer}'; expected one of {REDUCERS}"
            )
        if self.cluster_on not in CLUSTER_INPUTS:
            raise ConfigurationError(
                f"Unknown clustering input '{self.cluster_on}'; expected one of {CLUSTER_INPUTS}"
            )
        if (not isinstance(self.n_bins, numbers.Integral) or isinstance(self.n_bins, bool)
                or self.n_bins < 1):
            raise ConfigurationError(f"n_bins must be an integer >= 1, got {self.n_bins!r}")
        self.cluster.validate()
        return self

    @property
    def figures_dir(self) -> Path:
        return self.output_dir / FIGURES_SUBDIR

    @property
    def results_dir(self) -> Path:
        return self.output_dir / RESULTS_SUBDIR
