from pathlib import Path

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from sklearn.metrics import confusion_matrix, roc_auc_score

from turnover_wrappers import config


#returns the confusion matrix and AUC of a fitted GLM at a probability cut-off
def classify_fitted(result, cutoff=config.CLASSIFICATION_CUTOFF):
    y_true = np.asarray(result.model.endog).astype(int)
    probs = np.asarray(result.fittedvalues)
    y_pred = (probs > cutoff).astype(int)
    cnf_matrix = confusion_matrix(y_true, y_pred, labels=[0, 1])
    auc = roc_auc_score(y_true, probs) if len(np.unique(y_true)) == 2 else np.nan
    return cnf_matrix, auc


def _ratio(num, den):
    return num / den if den else np.nan


#returns classification stats
def eval_statistics(cnf_matrix):
    TN = cnf_matrix[0, 0]
    TP = cnf_matrix[1, 1]
    FN = cnf_matrix[1, 0]
    FP = cnf_matrix[0, 1]

    stats = {
        'TPR': _ratio(TP, TP + FN),
        'FPR': _ratio(FP, FP + TN),
        'TNR': _ratio(TN, TN + FP),
        'FNR': _ratio(FN, FN + TP),
        'Precision': _ratio(TP, TP + FP),
        'Accuracy': _ratio(TP + TN, cnf_matrix.sum()),
    }
    stats['Recall'] = stats['TPR']
    stats['Specificity'] = stats['TNR']

    for name in ['TPR', 'FPR', 'TNR', 'FNR', 'Precision', 'Accuracy']:
        print(f"{name} :", round(stats[name], 4))

    return stats


def plot_confusion_matrix(cm, target_names, path, title='Confusion matrix', cmap=plt.cm.viridis):
    fig, ax = plt.subplots(figsize=(8.7, 4.27))
    ax.grid(False)
    im = ax.imshow(cm, interpolation='nearest', cmap=cmap)
    fig.colorbar(im, ax=ax)
    ax.set_title(title)
    tick_marks = np.arange(len(target_names))
    ax.set_xticks(tick_marks)
    ax.set_xticklabels(target_names, rotation=45)
    ax.set_yticks(tick_marks)
    ax.set_yticklabels(target_names)
    ax.set_ylim([1.5, -.5])

    width, height = cm.shape
    for x in range(width):
        for y in range(height):
            ax.annotate(str(cm[x][y]), xy=(y, x),
                        horizontalalignment='center',
                        verticalalignment='center', color='black', fontsize=22)
    ax.set_ylabel('True label')
    ax.set_xlabel('Predicted label')
    fig.tight_layout()

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=100)
    plt.close(fig)
    return path


def decile_analysis(result, target=config.TARGET):
    """Gain and lift of a fitted GLM by decile of predicted leave probability.

    Decile 1 holds the employees with the highest fitted probability.
    """
    decile_set = pd.DataFrame({
        target: np.asarray(result.model.endog).astype(int),
        'Probs': np.asarray(result.fittedvalues),
    })
    # rank first so tied probabilities still split into ten equal groups
    ranks = decile_set['Probs'].rank(method='first')
    decile_set['Decile'] = pd.qcut(ranks, 10, labels=list(range(10, 0, -1))).astype(int)

    grouped = decile_set.groupby('Decile')
    analysis = pd.DataFrame({
        'No. of Employees': grouped.size(),
        'Responders': grouped[target].sum(),
        'Max Prob': grouped['Probs'].max(),
        'Min Prob': grouped['Probs'].min(),
    }).sort_index()

    analysis['Cumulative Employees'] = analysis['No. of Employees'].cumsum()
    analysis['Cumulative % employees'] = np.arange(10, 101, 10)
    analysis['Response Rate'] = analysis['Responders'] / analysis['No. of Employees'] * 100
    total_responders = analysis['Responders'].sum()
    if total_responders:
        analysis['percentage_responders'] = analysis['Responders'] / total_responders * 100
    else:
        analysis['percentage_responders'] = 0.0
    analysis['Gain'] = analysis['percentage_responders'].cumsum()
    analysis['lift'] = analysis['Gain'] / analysis['Cumulative % employees']

    analysis = analysis.rename_axis('Decile').reset_index()
    return analysis[['Decile', 'No. of Employees', 'Cumulative Employees', 'Cumulative % employees',
                     'Responders', 'Response Rate', 'percentage_responders', 'Gain', 'lift',
                     'Max Prob', 'Min Prob']]
