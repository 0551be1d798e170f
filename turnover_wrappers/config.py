"""Fixed inputs, outputs and thresholds for the turnover analysis."""
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_PATH = PROJECT_ROOT / "HR_comma_sep.csv"
OUTPUT_DIR = PROJECT_ROOT / "output"
FIGURE_DIR = OUTPUT_DIR / "figures"
LOG_DIR = OUTPUT_DIR / "logs"
CORR_MATRIX_FILE = "corr_matrix.csv"

TARGET = "left_employer"

# source header, in file order (average_montly_hours is misspelled upstream)
SOURCE_COLUMNS = [
    "satisfaction_level",
    "last_evaluation",
    "number_project",
    "average_montly_hours",
    "time_spend_company",
    "Work_accident",
    "left",
    "promotion_last_5years",
    "sales",
    "salary",
]

RENAME_COLUMNS = {
    "left": "left_employer",
    "time_spend_company": "tenure",
    "Work_accident": "work_accident",
    "average_montly_hours": "average_monthly_hours",
    "sales": "department",
}

BINARY_COLUMNS = ["work_accident", "left_employer", "promotion_last_5years"]
UNIT_INTERVAL_COLUMNS = ["satisfaction_level", "last_evaluation"]

CONTINUOUS_PREDICTORS = [
    "satisfaction_level",
    "last_evaluation",
    "number_project",
    "average_monthly_hours",
    "tenure",
]

# columns coerced to float for the correlation matrix
NUMERIC_COLUMNS = [
    "satisfaction_level",
    "last_evaluation",
    "number_project",
    "average_monthly_hours",
    "tenure",
    "work_accident",
    "left_employer",
    "promotion_last_5years",
]

SALARY_LEVELS = ["low", "medium", "high"]
DEPARTMENTS = [
    "sales", "accounting", "hr", "technical", "support",
    "IT", "management", "product_mng", "marketing", "RandD",
]
INDICATOR_DEPARTMENTS = ["management", "RandD"]

# histogram bins per predictor; salary and department are drawn as bar charts
HIST_BINS = {
    "satisfaction_level": 6,
    "tenure": 9,
    "last_evaluation": 15,
    "work_accident": 2,
    "promotion_last_5years": 2,
    "number_project": 5,
    "average_monthly_hours": 20,
}
BAR_PREDICTORS = ["salary", "department"]

PLOT_LABELS = {
    "satisfaction_level": ("Distribution of Satisfaction Ratings", "Satisfaction Rating"),
    "salary": ("Distribution of Salaries", "Salary Range"),
    "tenure": ("Distribution of Tenure", "Years with Company"),
    "last_evaluation": ("Distribution of Evaluation Scores", "Score on Last Evaluation"),
    "work_accident": ("Distribution of Work Accidents", "No Accident vs. Accident"),
    "promotion_last_5years": ("Distribution of Promotions in the Last 5 Years",
                              "Not Promoted vs Promoted"),
    "number_project": ("Distribution of Project Count", "Number of Projects"),
    "average_monthly_hours": ("Distribution of Hours Worked", "Hours per Month"),
    "department": ("Distribution of Departments", "Department"),
}
GROUP_LABELS = {0: "Retained", 1: "Left"}

ALPHA = 0.05
STRICT_ALPHA = 0.0001
TOLERANCE_CUTOFF = 0.1
CORRELATION_CUTOFF = 0.2
CONFIDENCE_LEVEL = 0.95
CI_METHOD = "profile"
CLASSIFICATION_CUTOFF = 0.5
