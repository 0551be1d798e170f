import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from turnover_wrappers import config
from turnover_wrappers.data_loader import recode_departments
from turnover_wrappers.exceptions import DegenerateStatisticError, ModelFitError
from turnover_wrappers.modeling import evaluate_model, fit_glm

logger = logging.getLogger(__name__)


@dataclass
class ModelSpec:
    name: str
    terms: list
    note: str = ""

    @property
    def formula(self):
        return f"{config.TARGET} ~ " + " + ".join(self.terms)


FULL_TERMS = [
    "satisfaction_level", "salary", "tenure", "last_evaluation", "work_accident",
    "average_monthly_hours", "number_project", "promotion_last_5years",
]


def _without(terms, *dropped):
    return [t for t in terms if t not in dropped]


_M1 = FULL_TERMS + ["department"]
_M4 = FULL_TERMS + ["management", "RandD"]
_M7 = _without(_M4, "last_evaluation")

MODEL_SPECS = [
    ModelSpec("Model 1", _M1,
              "All predictors. Several department dummies are not significant and their "
              "odds-ratio intervals cross 1."),
    ModelSpec("Model 2", _without(_M1, "number_project"),
              "number_project correlates with average_monthly_hours and last_evaluation, "
              "so it is dropped first."),
    ModelSpec("Model 3", _without(_M1, "number_project", "average_monthly_hours"),
              "Model 1 without average_monthly_hours or number_project."),
    ModelSpec("Model 4", _M4,
              "Department replaced by management and RandD indicators."),
    ModelSpec("Model 5", _without(_M4, "number_project"),
              "Worse fit than Model 4; last_evaluation loses significance."),
    ModelSpec("Model 6", _without(_M4, "average_monthly_hours"),
              "Between Model 4 and Model 5 in fit."),
    ModelSpec("Model 7", _M7,
              "Model 4 without last_evaluation."),
    ModelSpec("Model 8", _without(_M7, "number_project"),
              "Model 7 without number_project."),
    ModelSpec("Model 9", _without(_M7, "average_monthly_hours"),
              "Model 7 without average_monthly_hours; no retained continuous predictors "
              "correlate above 0.2."),
]


def _crosses_one(lower, upper):
    # a NaN bound is unbounded on its side: NaN lower with upper < 1 still excludes 1
    return not (lower > 1 or upper < 1)


#returns coefficients and terms worth dropping in the next variant
def flag_terms(evaluation, alpha=config.ALPHA):
    coefs = evaluation.coefficients.drop(index='Intercept', errors='ignore')
    flagged = []
    for name, row in coefs.iterrows():
        if row['Pr(>|z|)'] >= alpha or _crosses_one(row['or_lower'], row['or_upper']):
            flagged.append(name)
    for term in evaluation.vif.index[evaluation.vif['serious']]:
        if term not in flagged:
            flagged.append(term)
    return flagged


def max_predictor_correlation(corr, terms):
    continuous = [t for t in terms if t in config.CONTINUOUS_PREDICTORS and t in corr.columns]
    if len(continuous) < 2:
        return 0.0
    sub = corr.loc[continuous, continuous].abs().to_numpy(copy=True)
    np.fill_diagonal(sub, np.nan)
    return float(np.nanmax(sub))


def final_criteria_failures(evaluation, corr, strict_alpha=config.STRICT_ALPHA,
                            correlation_cutoff=config.CORRELATION_CUTOFF):
    """Reasons a model cannot be the terminal one; empty when it qualifies.

    The terminal model has every coefficient (intercept aside) significant
    at ``strict_alpha``, no odds-ratio interval crossing 1, no term with
    tolerance below the cutoff, and its continuous predictors correlate no
    more than ``correlation_cutoff`` with each other.
    """
    reasons = []
    coefs = evaluation.coefficients.drop(index='Intercept', errors='ignore')

    weak = coefs.index[coefs['Pr(>|z|)'] >= strict_alpha].tolist()
    if weak:
        reasons.append(f"not significant at {strict_alpha}: {weak}")

    crossing = [name for name, row in coefs.iterrows()
                if _crosses_one(row['or_lower'], row['or_upper'])]
    if crossing:
        reasons.append(f"odds-ratio interval crosses 1: {crossing}")

    serious = evaluation.vif.index[evaluation.vif['serious']].tolist()
    if serious:
        reasons.append(f"tolerance below {config.TOLERANCE_CUTOFF}: {serious}")

    max_corr = max_predictor_correlation(corr, evaluation.terms)
    if max_corr > correlation_cutoff:
        reasons.append(f"continuous predictors correlate at {max_corr:.2f}")
    return reasons


def meets_final_criteria(evaluation, corr, **kwargs):
    return not final_criteria_failures(evaluation, corr, **kwargs)


def run_model_sequence(df, specs=MODEL_SPECS, level=config.CONFIDENCE_LEVEL,
                       method=config.CI_METHOD):
    """Fit and evaluate each variant in order.

    A variant that cannot be fitted is logged and skipped. Returns the list
    of evaluations and a dict of failures keyed by model name.
    """
    if any(col not in df.columns for col in config.INDICATOR_DEPARTMENTS):
        df = recode_departments(df)

    evaluations = []
    failures = {}
    for spec in specs:
        logger.info("Fitting %s: %s", spec.name, spec.formula)
        try:
            result = fit_glm(spec.formula, df)
            evaluation = evaluate_model(spec.name, result, formula=spec.formula,
                                        note=spec.note, level=level, method=method)
        except ModelFitError as e:
            if e.result is not None:
                logger.error("%s is a dead end: %s (deviance %.4f when the solver stopped)",
                             spec.name, e, e.result.deviance)
            else:
                logger.error("%s is a dead end: %s", spec.name, e)
            failures[spec.name] = str(e)
            continue
        except DegenerateStatisticError as e:
            logger.error("%s is a dead end: %s", spec.name, e)
            failures[spec.name] = str(e)
            continue
        evaluation.flagged = flag_terms(evaluation)
        evaluations.append(evaluation)
    return evaluations, failures


#lowest residual deviance among the models passing the final criteria
def select_model(evaluations, corr, **kwargs):
    candidates = [e for e in evaluations if meets_final_criteria(e, corr, **kwargs)]
    if not candidates:
        return None
    return min(candidates, key=lambda e: e.deviance)


def comparison_table(evaluations):
    rows = []
    for e in evaluations:
        rows.append({
            'model': e.name,
            'deviance': e.deviance,
            'aic': e.aic,
            'model_chi': e.lr_test['model_chi'],
            'chi_df': e.lr_test['chi_df'],
            'chi_prob': e.lr_test['chi_prob'],
            'hosmer_lemeshow': e.pseudo_r2['hosmer_lemeshow'],
            'cox_snell': e.pseudo_r2['cox_snell'],
            'nagelkerke': e.pseudo_r2['nagelkerke'],
            'max_gvif': e.vif['GVIF'].max(),
            'flagged': len(e.flagged),
        })
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows).set_index('model')
