#!/usr/bin/env python
# coding: utf-8

#load required packages
import logging
import sys
from datetime import datetime

import pandas as pd
pd.set_option('display.max_columns', None)
pd.set_option('display.width', 160)

#load required helper functions
from turnover_wrappers import config
from turnover_wrappers.data_loader import (load_dataset, clean_dataset, describe_dataset,
                                           correlation_matrix, write_correlation_matrix)
from turnover_wrappers.exceptions import DatasetError
from turnover_wrappers.explore import (overall_turnover_rate, turnover_by_department,
                                       plot_distributions, plot_department_turnover,
                                       plot_correlation_matrix)
from turnover_wrappers.model_selection import (MODEL_SPECS, run_model_sequence, select_model,
                                               final_criteria_failures, comparison_table)
from turnover_wrappers.modeling import print_evaluation
from turnover_wrappers.helper_functions import (classify_fitted, eval_statistics,
                                                plot_confusion_matrix, decile_analysis)

logger = logging.getLogger("turnover")


def setup_logger(log_dir=None):
    log_dir = log_dir or config.LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = log_dir / f"turnover_{timestamp}.log"

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)
    return log_path


def main():
    log_path = setup_logger()
    logger.info("Logging to %s", log_path)

    #load dataset
    try:
        raw = load_dataset(config.DATA_PATH)
    except DatasetError as e:
        logger.error("Cannot start the analysis: %s", e)
        return 1

    #rename columns, relevel salary and department
    df = clean_dataset(raw)
    describe_dataset(df)

    #numeric copy for the collinearity check, before the indicators exist
    corr = correlation_matrix(df)
    write_correlation_matrix(corr, config.OUTPUT_DIR / config.CORR_MATRIX_FILE)

    #exploration
    print(f"\nOverall turnover rate: {overall_turnover_rate(df):.2f}%")
    dept_rates = turnover_by_department(df)
    print("\nTurnover rate by department")
    print(dept_rates.to_string(index=False))

    plot_distributions(df, config.FIGURE_DIR)
    plot_department_turnover(dept_rates, config.FIGURE_DIR)
    plot_correlation_matrix(corr, config.FIGURE_DIR)

    #management and RandD indicators replace department from Model 4 on
    df = clean_dataset(df, derive_indicators=True)

    #fit and evaluate the nine variants
    evaluations, failures = run_model_sequence(df, MODEL_SPECS, level=config.CONFIDENCE_LEVEL,
                                               method=config.CI_METHOD)
    for evaluation in evaluations:
        print_evaluation(evaluation)
        reasons = final_criteria_failures(evaluation, corr)
        if reasons:
            print("Not a final candidate:")
            for reason in reasons:
                print(f"  - {reason}")
        else:
            print("Meets every final-model criterion.")

    for name, message in failures.items():
        print(f"\n{name} could not be fitted: {message}")

    print("\nModel comparison")
    print(comparison_table(evaluations).round(4).to_string())

    best = select_model(evaluations, corr)
    if best is None:
        logger.warning("No model meets the final criteria")
        return 0

    print(f"\nSelected model: {best.name} ({best.formula})")

    #classification view of the selected model
    cnf_matrix, auc = classify_fitted(best.result, config.CLASSIFICATION_CUTOFF)
    print(f"\nConfusion matrix at cut-off {config.CLASSIFICATION_CUTOFF}")
    print(cnf_matrix)
    eval_statistics(cnf_matrix)
    print(f"AUC : {auc:.4f}")
    plot_confusion_matrix(cnf_matrix, ['Retained', 'Left'],
                          config.FIGURE_DIR / "confusion_matrix.png",
                          title=f"{best.name} confusion matrix")

    print("\nDecile analysis")
    print(decile_analysis(best.result).round(3).to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
