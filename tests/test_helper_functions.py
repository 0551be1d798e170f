import numpy as np
import pytest

from turnover_wrappers.helper_functions import (classify_fitted, decile_analysis, eval_statistics,
                                                plot_confusion_matrix)
from turnover_wrappers.model_selection import MODEL_SPECS
from turnover_wrappers.modeling import fit_glm


@pytest.fixture
def fitted(clean_frame):
    return fit_glm(MODEL_SPECS[8].formula, clean_frame)


def test_eval_statistics(capsys):
    cnf = np.array([[50, 10], [5, 35]])
    stats = eval_statistics(cnf)
    assert stats['TPR'] == pytest.approx(35 / 40)
    assert stats['FPR'] == pytest.approx(10 / 60)
    assert stats['TNR'] == pytest.approx(50 / 60)
    assert stats['FNR'] == pytest.approx(5 / 40)
    assert stats['Precision'] == pytest.approx(35 / 45)
    assert stats['Recall'] == stats['TPR']
    assert stats['Specificity'] == stats['TNR']
    assert "TPR :" in capsys.readouterr().out


def test_eval_statistics_without_positives():
    stats = eval_statistics(np.array([[10, 0], [0, 0]]))
    assert np.isnan(stats['TPR'])
    assert stats['TNR'] == 1.0


def test_classify_fitted(fitted, clean_frame):
    cnf, auc = classify_fitted(fitted, 0.5)
    assert cnf.shape == (2, 2)
    assert cnf.sum() == len(clean_frame)
    assert cnf[1].sum() == clean_frame['left_employer'].sum()
    assert 0.5 < auc <= 1


def test_decile_analysis(fitted, clean_frame):
    analysis = decile_analysis(fitted)
    assert analysis['Decile'].tolist() == list(range(1, 11))
    assert analysis['No. of Employees'].sum() == len(clean_frame)
    assert analysis['Responders'].sum() == clean_frame['left_employer'].sum()
    assert analysis['Gain'].iloc[-1] == pytest.approx(100)
    assert analysis['lift'].iloc[-1] == pytest.approx(1)
    # highest-risk decile holds the highest probabilities
    assert analysis['Min Prob'].iloc[0] >= analysis['Max Prob'].iloc[-1]


def test_plot_confusion_matrix(tmp_path):
    path = plot_confusion_matrix(np.array([[50, 10], [5, 35]]), ['Retained', 'Left'],
                                 tmp_path / "cm.png")
    assert path.exists()
