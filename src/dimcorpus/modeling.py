"""
modeling.py — Regression battery over the final diminutives table.

Each model is described by a ModelSpec (outcome, predictors, family) and
fitted by a RegressionBackend. The default backend uses statsmodels:
logistic regression for the binomial accuracy outcome, OLS for the
continuous percent-used outcome.

The pipeline's part is the data: each model is fitted on the rows with no
missing outcome or predictor value. A model whose subset is empty, whose
outcome does not vary, or whose categorical predictor has a single level is
reported as skipped rather than fitted.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from dimcorpus.errors import SchemaMismatchError


logger = logging.getLogger(__name__)

CATEGORICAL = {'l1', 'proficiency_range', 'upos', 'variant', 'subcorpus', 'task'}
FAMILIES = ('binomial', 'gaussian')


@dataclass(frozen=True)
class ModelSpec:
    name: str
    outcome: str
    predictors: tuple
    family: str = 'gaussian'

    def __post_init__(self):
        if self.family not in FAMILIES:
            raise ValueError(f"Unknown model family '{self.family}' (expected one of {FAMILIES})")
        if not self.predictors:
            raise ValueError(f"Model '{self.name}' has no predictors")

    @property
    def formula(self) -> str:
        terms = [f"C({p})" if p in CATEGORICAL else p for p in self.predictors]
        return f"{self.outcome} ~ {' + '.join(terms)}"

    @property
    def variables(self) -> List[str]:
        return [self.outcome] + list(self.predictors)

    @classmethod
    def from_dict(cls, data: Dict) -> 'ModelSpec':
        return cls(
            name=data['name'],
            outcome=data['outcome'],
            predictors=tuple(data['predictors']),
            family=data.get('family', 'gaussian'),
        )


@dataclass
class ModelResult:
    name: str
    formula: str
    family: str
    nobs: int = 0
    params: pd.Series = field(default_factory=lambda: pd.Series(dtype=float))
    bse: pd.Series = field(default_factory=lambda: pd.Series(dtype=float))
    pvalues: pd.Series = field(default_factory=lambda: pd.Series(dtype=float))
    aic: Optional[float] = None
    fit_statistic: Optional[float] = None
    skipped: Optional[str] = None

    @property
    def fitted(self) -> bool:
        return self.skipped is None


class RegressionBackend(Protocol):
    def fit(self, spec: ModelSpec, data: pd.DataFrame) -> ModelResult:
        ...


class StatsmodelsBackend:
    """Fit specs with statsmodels' formula API."""

    def fit(self, spec: ModelSpec, data: pd.DataFrame) -> ModelResult:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore', ConvergenceWarning)
                warnings.simplefilter('error', PerfectSeparationWarning)
                if spec.family == 'binomial':
                    model = smf.logit(spec.formula, data=data).fit(disp=0)
                    fit_statistic = float(model.prsquared)
                else:
                    model = smf.ols(spec.formula, data=data).fit()
                    fit_statistic = float(model.rsquared)
        except (PerfectSeparationError, PerfectSeparationWarning, np.linalg.LinAlgError) as e:
            logger.warning(f"  {spec.name}: not estimable ({e})")
            return ModelResult(spec.name, spec.formula, spec.family,
                               nobs=len(data), skipped=f"not estimable: {e}")

        return ModelResult(
            name=spec.name,
            formula=spec.formula,
            family=spec.family,
            nobs=int(model.nobs),
            params=model.params,
            bse=model.bse,
            pvalues=model.pvalues,
            aic=float(model.aic),
            fit_statistic=fit_statistic,
        )


def model_frame(df: pd.DataFrame, spec: ModelSpec) -> pd.DataFrame:
    """Rows of `df` with every variable of `spec` present."""
    missing = [col for col in spec.variables if col not in df.columns]
    if missing:
        raise SchemaMismatchError(f"Model '{spec.name}' needs missing columns {missing}", missing=missing)
    return df[spec.variables].dropna().reset_index(drop=True)


def _skip_reason(frame: pd.DataFrame, spec: ModelSpec) -> Optional[str]:
    if frame.empty:
        return "no complete rows"
    if frame[spec.outcome].nunique() < 2:
        return f"{spec.outcome} is constant"
    for predictor in spec.predictors:
        if frame[predictor].nunique() < 2:
            return f"{predictor} has a single value"
    return None


def fit_battery(df: pd.DataFrame, specs: Iterable[ModelSpec],
                backend: Optional[RegressionBackend] = None) -> List[ModelResult]:
    """Fit every spec on its complete-case subset of `df`."""
    backend = backend or StatsmodelsBackend()
    results = []
    for spec in specs:
        frame = model_frame(df, spec)
        reason = _skip_reason(frame, spec)
        if reason:
            logger.warning(f"  {spec.name}: skipped ({reason})")
            results.append(ModelResult(spec.name, spec.formula, spec.family,
                                       nobs=len(frame), skipped=reason))
            continue

        logger.info(f"  {spec.name}: {spec.formula} (n={len(frame):,})")
        results.append(backend.fit(spec, frame))
    return results


def coefficient_table(results: Iterable[ModelResult]) -> pd.DataFrame:
    """Tidy coefficients of all fitted models."""
    rows = []
    for result in results:
        if not result.fitted:
            continue
        for term in result.params.index:
            rows.append({
                'model': result.name,
                'formula': result.formula,
                'family': result.family,
                'term': term,
                'estimate': float(result.params[term]),
                'std_error': float(result.bse.get(term, np.nan)),
                'p_value': float(result.pvalues.get(term, np.nan)),
                'nobs': result.nobs,
            })
    columns = ['model', 'formula', 'family', 'term', 'estimate', 'std_error', 'p_value', 'nobs']
    return pd.DataFrame(rows, columns=columns)


def model_summary(results: Iterable[ModelResult]) -> pd.DataFrame:
    """One row per model: fit statistics, or the reason it was skipped."""
    rows = [{
        'model': r.name,
        'formula': r.formula,
        'family': r.family,
        'nobs': r.nobs,
        'aic': r.aic,
        'fit_statistic': r.fit_statistic,
        'skipped': r.skipped,
    } for r in results]
    return pd.DataFrame(rows, columns=['model', 'formula', 'family', 'nobs', 'aic',
                                       'fit_statistic', 'skipped'])
