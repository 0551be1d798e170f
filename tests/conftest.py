import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from turnover_wrappers import config
from turnover_wrappers.data_loader import clean_dataset


def make_raw_hr_frame(n=1000, seed=7):
    """Synthetic extract in the source schema with a known turnover signal."""
    rng = np.random.default_rng(seed)
    satisfaction = rng.uniform(0.05, 1.0, n).round(2)
    evaluation = rng.uniform(0.35, 1.0, n).round(2)
    projects = rng.integers(2, 8, n)
    hours = (140 + 12 * projects + rng.normal(0, 35, n)).round().astype(int)
    tenure = rng.integers(2, 11, n)
    accident = rng.binomial(1, 0.15, n)
    promotion = rng.binomial(1, 0.08, n)
    departments = np.array(config.DEPARTMENTS)[np.arange(n) % len(config.DEPARTMENTS)]
    salary = rng.choice(config.SALARY_LEVELS, n, p=[0.5, 0.4, 0.1])

    salary_effect = pd.Series(salary).map({'low': 0.6, 'medium': 0.0, 'high': -1.0}).to_numpy()
    logit = (0.8 - 3.5 * satisfaction + 0.25 * (tenure - 4) - 1.2 * accident - 1.0 * promotion
             + salary_effect + 0.004 * (hours - 200)
             + 0.4 * (departments == 'hr') - 0.6 * (departments == 'management'))
    left = rng.binomial(1, 1 / (1 + np.exp(-logit)))

    return pd.DataFrame({
        'satisfaction_level': satisfaction,
        'last_evaluation': evaluation,
        'number_project': projects,
        'average_montly_hours': hours,
        'time_spend_company': tenure,
        'Work_accident': accident,
        'left': left,
        'promotion_last_5years': promotion,
        'sales': departments,
        'salary': salary,
    })[config.SOURCE_COLUMNS]


@pytest.fixture
def raw_frame():
    return make_raw_hr_frame()


@pytest.fixture
def hr_csv(tmp_path, raw_frame):
    path = tmp_path / "HR_comma_sep.csv"
    raw_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def clean_frame(raw_frame):
    return clean_dataset(raw_frame, derive_indicators=True)
