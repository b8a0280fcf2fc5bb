# regression.py
"""
Simple regression diagnostics on top of a cluster assignment.

An outcome indicator is regressed on the composite scores twice: pooled OLS,
and a multilevel model with a random intercept per cluster. The intra-class
correlation of the multilevel fit says how much of the outcome's residual
variance sits between clusters.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import ConvergenceWarning as StatsmodelsConvergenceWarning

from .config import CLUSTER_COLUMN
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class RegressionDiagnostics:
    """Fit summary of one regression model."""
    model: str
    outcome: str
    coefficients: pd.DataFrame
    n_obs: int
    llf: float
    aic: float
    n_groups: Optional[int] = None
    icc: Optional[float] = None
    r_squared: Optional[float] = None
    converged: bool = True

    def summary_row(self) -> dict:
        return {
            "model": self.model,
            "outcome": self.outcome,
            "n_obs": self.n_obs,
            "n_groups": self.n_groups,
            "llf": self.llf,
            "aic": self.aic,
            "r_squared": self.r_squared,
            "icc": self.icc,
            "converged": self.converged,
        }


def _prepare(table: pd.DataFrame, outcome: str, predictors: Sequence[str],
             group: Optional[str] = None) -> pd.DataFrame:
    predictors = list(predictors)
    if not predictors:
        raise ConfigurationError("Regression needs at least one predictor")
    if outcome in predictors:
        raise ConfigurationError(f"Outcome '{outcome}' is also listed as a predictor")
    needed = [outcome] + predictors + ([group] if group else [])
    missing = [c for c in needed if c not in table.columns]
    if missing:
        raise ConfigurationError(f"Regression columns not found: {missing}")
    for col in needed:
        if not col.isidentifier():
            raise ConfigurationError(f"Column '{col}' cannot be used in a model formula")
    return table[needed].dropna()


def _formula(outcome: str, predictors: Sequence[str]) -> str:
    return f"{outcome} ~ " + " + ".join(predictors)


def _coefficient_table(result) -> pd.DataFrame:
    conf = result.conf_int()
    return pd.DataFrame({
        "estimate": result.params,
        "std_error": result.bse,
        "p_value": result.pvalues,
        "ci_lower": conf.iloc[:, 0],
        "ci_upper": conf.iloc[:, 1],
    })


def fit_ols(table: pd.DataFrame, outcome: str, predictors: Sequence[str]) -> RegressionDiagnostics:
    """Pooled ordinary least squares."""
    data = _prepare(table, outcome, predictors)
    result = smf.ols(_formula(outcome, predictors), data=data).fit()
    logger.info(f"  OLS {outcome}: R²={result.rsquared:.3f}, AIC={result.aic:.1f}")
    return RegressionDiagnostics(
        model="ols",
        outcome=outcome,
        coefficients=_coefficient_table(result),
        n_obs=int(result.nobs),
        llf=float(result.llf),
        aic=float(result.aic),
        r_squared=float(result.rsquared),
    )


def fit_multilevel(table: pd.DataFrame, outcome: str, predictors: Sequence[str],
                   group: str = CLUSTER_COLUMN) -> RegressionDiagnostics:
    """
    Random-intercept model by cluster (statsmodels MixedLM).

    Fitted by maximum likelihood rather than REML so that AIC is comparable
    with the pooled OLS fit.
    """
    data = _prepare(table, outcome, predictors, group)
    n_groups = data[group].nunique()
    if n_groups < 2:
        raise ConfigurationError(
            f"Multilevel model needs at least 2 groups in '{group}', got {n_groups}"
        )

    model = smf.mixedlm(_formula(outcome, predictors), data=data, groups=data[group])
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", StatsmodelsConvergenceWarning)
        result = model.fit(reml=False)
    converged = bool(getattr(result, "converged", True)) and not any(
        issubclass(w.category, StatsmodelsConvergenceWarning) for w in caught
    )
    if not converged:
        logger.warning(f"  MixedLM {outcome}: optimizer did not converge cleanly")

    group_var = float(result.cov_re.iloc[0, 0])
    resid_var = float(result.scale)
    total = group_var + resid_var
    icc = group_var / total if total > 0 else np.nan

    # Fixed effects only; the last row of params is the group variance
    fe_names = list(result.fe_params.index)
    coefficients = _coefficient_table(result).loc[fe_names]

    n_params = len(fe_names) + 2
    aic = -2 * float(result.llf) + 2 * n_params
    logger.info(f"  MixedLM {outcome}: ICC={icc:.3f}, AIC={aic:.1f}, groups={n_groups}")
    return RegressionDiagnostics(
        model="multilevel",
        outcome=outcome,
        coefficients=coefficients,
        n_obs=int(result.nobs),
        llf=float(result.llf),
        aic=aic,
        n_groups=int(n_groups),
        icc=float(icc),
        converged=converged,
    )


def compare_models(table: pd.DataFrame, outcome: str, predictors: Sequence[str],
                   group: str = CLUSTER_COLUMN) -> pd.DataFrame:
    """Fit both models and return one summary row each."""
    ols = fit_ols(table, outcome, predictors)
    mixed = fit_multilevel(table, outcome, predictors, group)
    return pd.DataFrame([ols.summary_row(), mixed.summary_row()])
