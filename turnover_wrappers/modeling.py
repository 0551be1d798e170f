import logging
import warnings
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from scipy import optimize, stats
from statsmodels.stats.outliers_influence import variance_inflation_factor
from statsmodels.tools.sm_exceptions import (ConvergenceWarning, PerfectSeparationError,
                                             PerfectSeparationWarning)

from turnover_wrappers import config
from turnover_wrappers.exceptions import DegenerateStatisticError, ModelFitError

logger = logging.getLogger(__name__)

# fitted probabilities this close to 0 or 1 count as separated
SEPARATION_EPS = 1e-10


def fit_glm(formula, data, allow_separation=False, maxiter=100):
    """Fit a binomial GLM (logit link) by IRLS from a patsy formula.

    Categorical terms are dummy coded against their first level. Raises
    ``ModelFitError`` for a singular design, a fit that does not converge,
    or perfect separation. With ``allow_separation`` a separated fit is
    returned with a warning instead, the way standard GLM routines behave.
    """
    model = smf.glm(formula, data=data, family=sm.families.Binomial())

    exog = model.exog
    rank = np.linalg.matrix_rank(exog)
    if rank < exog.shape[1]:
        raise ModelFitError(
            f"Singular design matrix for '{formula}' (rank {rank} < {exog.shape[1]} columns)",
            formula=formula,
        )

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            result = model.fit(maxiter=maxiter)
        except PerfectSeparationError as e:
            raise ModelFitError(f"Perfect separation in '{formula}': {e}", formula=formula) from e

    separated = False
    for w in caught:
        if issubclass(w.category, PerfectSeparationWarning):
            separated = True
        elif not issubclass(w.category, ConvergenceWarning):
            warnings.warn(w.message, w.category)

    mu = np.asarray(result.mu)
    endog = np.asarray(model.endog)
    if np.allclose(mu, endog, rtol=0, atol=1e-6):
        separated = True
    elif np.any((mu < SEPARATION_EPS) | (mu > 1 - SEPARATION_EPS)):
        separated = True

    if separated:
        if allow_separation:
            logger.warning("Fitted probabilities numerically 0 or 1 in '%s'", formula)
            return result
        raise ModelFitError(
            f"Perfect separation in '{formula}': fitted probabilities numerically 0 or 1",
            formula=formula, result=result,
        )

    if not result.converged:
        raise ModelFitError(
            f"IRLS did not converge in {maxiter} iterations for '{formula}'",
            formula=formula, result=result,
        )
    return result


#degrees of freedom of the intercept-only model
def null_df(result):
    return int(round(result.nobs - result.model.k_constant))


def likelihood_ratio_test(result):
    model_chi = result.null_deviance - result.deviance
    chi_df = null_df(result) - int(round(result.df_resid))
    if chi_df <= 0:
        raise DegenerateStatisticError(
            "Likelihood ratio test needs at least one predictor beyond the intercept")
    chi_prob = stats.chi2.sf(model_chi, chi_df)
    return {"model_chi": float(model_chi), "chi_df": chi_df, "chi_prob": float(chi_prob)}


def pseudo_r2s(dev, null_dev, n):
    """Hosmer-Lemeshow, Cox-Snell and Nagelkerke pseudo R^2 from deviances."""
    if n <= 0:
        raise DegenerateStatisticError("Pseudo R^2 needs at least one fitted observation")
    if null_dev <= 0:
        raise DegenerateStatisticError("Pseudo R^2 is undefined when the null deviance is 0")

    r_l = 1 - dev / null_dev
    r_cs = 1 - np.exp(-(null_dev - dev) / n)
    r_n = r_cs / (1 - np.exp(-(null_dev / n)))
    return {"hosmer_lemeshow": float(r_l), "cox_snell": float(r_cs), "nagelkerke": float(r_n)}


def logistic_pseudo_r2s(result):
    n = len(result.fittedvalues)
    return pseudo_r2s(result.deviance, result.null_deviance, n)


def format_pseudo_r2s(values):
    return (
        "Pseudo R^2 for logistic regression\n"
        f"Hosmer and Lemeshow R^2   {values['hosmer_lemeshow']:.3f}\n"
        f"Cox and Snell R^2         {values['cox_snell']:.3f}\n"
        f"Nagelkerke R^2            {values['nagelkerke']:.3f}"
    )


def odds_ratios(result):
    return np.exp(result.params)


def _profile_root(excess, estimate, step, max_doublings=12):
    # walk outwards from the estimate until the deviance excess changes sign
    if not np.isfinite(step) or step == 0:
        step = np.copysign(1.0, step) if np.isfinite(step) else 1.0
    near = estimate
    for _ in range(max_doublings):
        far = estimate + step
        if excess(far) > 0:
            return optimize.brentq(excess, near, far)
        near = far
        step *= 2
    return np.nan


def profile_confint(result, level=config.CONFIDENCE_LEVEL):
    """Profile-likelihood confidence intervals for GLM coefficients.

    For each coefficient the other coefficients are refitted with it held
    fixed (as an offset); the bounds are where the constrained deviance
    exceeds the minimum by the chi-square(1) quantile for ``level``.
    """
    model = result.model
    endog = np.asarray(model.endog)
    exog = np.asarray(model.exog)
    family = model.family
    params = np.asarray(result.params)
    bse = np.asarray(result.bse)
    threshold = result.deviance + stats.chi2.ppf(level, 1)

    bounds = []
    for j, name in enumerate(result.params.index):
        others = np.delete(exog, j, axis=1)
        start = np.delete(params, j)
        column = exog[:, j]

        def excess(value, others=others, start=start, column=column):
            offset = value * column
            if others.shape[1] == 0:
                dev = family.deviance(endog, family.fitted(offset))
            else:
                dev = sm.GLM(endog, others, family=family, offset=offset).fit(start_params=start).deviance
            return dev - threshold

        lower = _profile_root(excess, params[j], -bse[j])
        upper = _profile_root(excess, params[j], bse[j])
        if np.isnan(lower) or np.isnan(upper):
            logger.warning("Profile likelihood for '%s' did not cross the %.0f%% cutoff; "
                           "interval left open", name, level * 100)
        bounds.append((lower, upper))

    return pd.DataFrame(bounds, index=result.params.index, columns=['lower', 'upper'])


def confint(result, level=config.CONFIDENCE_LEVEL, method=config.CI_METHOD):
    if method == "profile":
        return profile_confint(result, level)
    if method == "wald":
        ci = result.conf_int(alpha=1 - level)
        ci.columns = ['lower', 'upper']
        return ci
    raise ValueError(f"Unknown confidence interval method: {method!r}")


def odds_ratio_confint(result, level=config.CONFIDENCE_LEVEL, method=config.CI_METHOD):
    return np.exp(confint(result, level, method))


def term_columns(exog_names):
    """Group design columns by the model term they came from.

    Dummy columns carry their factor as a prefix (``salary[T.medium]``
    belongs to ``salary``); every other column is its own term. The
    intercept is left out and first-appearance order is kept.
    """
    terms = {}
    for name in exog_names:
        if name == 'Intercept':
            continue
        term = name.split('[', 1)[0]
        terms.setdefault(term, []).append(name)
    return terms


def variance_inflation(result, cutoff=config.TOLERANCE_CUTOFF):
    """VIF and tolerance per model term, intercept excluded.

    One-column terms get the usual 1/(1 - R^2) from regressing the column on
    all other columns. Dummy-coded factors get the generalized VIF,
    det(R_term) * det(R_rest) / det(R) over the predictor correlations, so a
    factor is judged as a whole rather than dummy by dummy.
    """
    names = list(result.model.exog_names)
    exog = np.asarray(result.model.exog)
    terms = list(term_columns(names).items())

    predictor_names = [n for n in names if n != 'Intercept']
    predictors = exog[:, [names.index(n) for n in predictor_names]]
    corr = np.corrcoef(predictors, rowvar=False) if len(predictor_names) > 1 else None

    rows = []
    for term, columns in terms:
        df = len(columns)
        if len(terms) == 1:
            gvif = 1.0
        elif df == 1:
            gvif = variance_inflation_factor(exog, names.index(columns[0]))
        else:
            inside = [predictor_names.index(c) for c in columns]
            outside = [i for i in range(len(predictor_names)) if i not in inside]
            gvif = (np.linalg.det(corr[np.ix_(inside, inside)])
                    * np.linalg.det(corr[np.ix_(outside, outside)])
                    / np.linalg.det(corr))
        rows.append({
            'term': term,
            'GVIF': float(gvif),
            'Df': df,
            'GVIF^(1/(2*Df))': float(gvif ** (1 / (2 * df))),
            'tolerance': float(1 / gvif),
        })

    vif = pd.DataFrame(rows).set_index('term')
    vif['serious'] = vif['tolerance'] < cutoff
    return vif


def coefficient_table(result, or_ci=None, level=config.CONFIDENCE_LEVEL, method=config.CI_METHOD):
    if or_ci is None:
        or_ci = odds_ratio_confint(result, level, method)
    table = pd.DataFrame({
        'Estimate': result.params,
        'Std. Error': result.bse,
        'z value': result.tvalues,
        'Pr(>|z|)': result.pvalues,
        'odds_ratio': odds_ratios(result),
        'or_lower': or_ci['lower'],
        'or_upper': or_ci['upper'],
    })
    return table


@dataclass
class ModelEvaluation:
    name: str
    formula: str
    result: object
    lr_test: dict
    pseudo_r2: dict
    coefficients: pd.DataFrame
    vif: pd.DataFrame
    note: str = ""
    flagged: list = field(default_factory=list)

    @property
    def deviance(self):
        return float(self.result.deviance)

    @property
    def aic(self):
        return float(self.result.aic)

    @property
    def terms(self):
        return list(self.vif.index)


def evaluate_model(name, result, formula="", note="", level=config.CONFIDENCE_LEVEL,
                   method=config.CI_METHOD):
    logger.info("Evaluating %s", name)
    return ModelEvaluation(
        name=name,
        formula=formula,
        result=result,
        lr_test=likelihood_ratio_test(result),
        pseudo_r2=logistic_pseudo_r2s(result),
        coefficients=coefficient_table(result, level=level, method=method),
        vif=variance_inflation(result),
        note=note,
    )


def print_evaluation(evaluation):
    print("\n" + "=" * 70)
    print(f"{evaluation.name}: {evaluation.formula}")
    print("=" * 70)
    print(evaluation.result.summary())

    lr = evaluation.lr_test
    print("\nImprovement over the null model")
    print(f"  Model chi-square : {lr['model_chi']:.4f}")
    print(f"  Degrees of freedom: {lr['chi_df']}")
    print(f"  p value          : {lr['chi_prob']:.6g}")

    print()
    print(format_pseudo_r2s(evaluation.pseudo_r2))

    print("\nOdds ratios with confidence intervals")
    print(evaluation.coefficients[['odds_ratio', 'or_lower', 'or_upper']].round(4).to_string())

    print("\nVariance inflation and tolerance")
    print(evaluation.vif.round(4).to_string())
    serious = evaluation.vif.index[evaluation.vif['serious']].tolist()
    if serious:
        print(f"  WARNING: tolerance below {config.TOLERANCE_CUTOFF} for {serious}")

    if evaluation.flagged:
        print(f"\nCandidates for removal: {evaluation.flagged}")
    if evaluation.note:
        print(f"\nNote: {evaluation.note}")
