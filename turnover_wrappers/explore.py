import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from turnover_wrappers import config
from turnover_wrappers.exceptions import DegenerateStatisticError

logger = logging.getLogger(__name__)


#percent of employees who left
def overall_turnover_rate(df, target=config.TARGET):
    if len(df) == 0:
        raise DegenerateStatisticError("Turnover rate of an empty dataset is undefined")
    return df[target].sum() / len(df) * 100


#returns total, leavers and turnover rate per department
def turnover_by_department(df, target=config.TARGET):
    grouped = df.groupby('department', observed=True)[target]
    rates = pd.DataFrame({'total': grouped.size(), 'left': grouped.sum()})
    rates['rate'] = rates['left'] / rates['total']
    rates = rates.rename_axis('Department').reset_index()
    rates['Department'] = rates['Department'].astype(str)
    return rates


def _with_group(df, target):
    d = df.copy()
    d['Group'] = d[target].map(config.GROUP_LABELS)
    return d


def _save(fig, outdir, name):
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    path = outdir / f"{name}.png"
    fig.tight_layout()
    fig.savefig(path, dpi=100)
    plt.close(fig)
    return path


def plot_distributions(df, outdir=config.FIGURE_DIR, target=config.TARGET):
    """Draw each predictor split by outcome and save one PNG per predictor.

    Count-like and continuous predictors get dodged histograms with the bin
    count from ``config.HIST_BINS``; salary and department get bar charts.
    Returns the list of written paths.
    """
    d = _with_group(df, target)
    hue_order = [config.GROUP_LABELS[0], config.GROUP_LABELS[1]]
    paths = []

    for col, title_xlabel in config.PLOT_LABELS.items():
        title, xlabel = title_xlabel
        fig, ax = plt.subplots(figsize=(9, 5))
        if col in config.BAR_PREDICTORS:
            sns.countplot(data=d, x=col, hue='Group', hue_order=hue_order, ax=ax)
            if col == 'department':
                ax.tick_params(axis='x', rotation=45)
        else:
            sns.histplot(data=d, x=col, hue='Group', hue_order=hue_order,
                         bins=config.HIST_BINS[col], multiple='dodge', shrink=0.8, ax=ax)
        ax.set_title(title)
        ax.set_xlabel(xlabel)
        ax.set_ylabel("Employee Count")
        paths.append(_save(fig, outdir, f"distribution_{col}"))

    logger.info("Saved %d distribution charts to %s", len(paths), outdir)
    return paths


def plot_department_turnover(rates, outdir=config.FIGURE_DIR):
    fig, ax = plt.subplots(figsize=(9, 5))
    ordered = rates.sort_values('rate', ascending=False)
    sns.barplot(data=ordered, x='Department', y='rate', color='steelblue', ax=ax)
    ax.set_title("Turnover Rate by Department")
    ax.set_ylabel("Share of Employees Who Left")
    ax.tick_params(axis='x', rotation=45)
    return _save(fig, outdir, "department_turnover_rate")


def plot_correlation_matrix(matrix, outdir=config.FIGURE_DIR):
    fig, ax = plt.subplots(figsize=(9, 7))
    sns.heatmap(matrix, annot=True, fmt=".2f", cmap='coolwarm', vmin=-1, vmax=1,
                square=True, ax=ax)
    ax.set_title("Correlation Matrix")
    return _save(fig, outdir, "correlation_matrix")
