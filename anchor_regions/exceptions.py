"""
Error taxonomy for the anchor regions analysis.

Every failure aborts the run; nothing here is retried.
"""


class AnchorRegionsError(Exception):
    """Base class for all analysis errors."""


class DataSourceError(AnchorRegionsError):
    """Input spreadsheet is missing, unreadable or lacks required columns."""


class DegenerateVariableError(AnchorRegionsError):
    """A variable cannot be scaled (zero variance, zero max, zero population)."""


class InsufficientVarianceError(AnchorRegionsError):
    """Too few usable columns for a single-factor extraction."""


class ConfigurationError(AnchorRegionsError, ValueError):
    """Malformed run configuration or variable-group schema."""


class ConvergenceWarning(UserWarning):
    """K-means stopped at its iteration budget; the last assignment is kept."""
