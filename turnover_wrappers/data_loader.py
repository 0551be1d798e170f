import logging
from pathlib import Path

import pandas as pd

from turnover_wrappers import config
from turnover_wrappers.exceptions import DatasetError

logger = logging.getLogger(__name__)


def load_dataset(path=config.DATA_PATH):
    """Read the HR extract and check it against the fixed source schema.

    ``salary`` and ``sales`` are read as categorical text. Any problem with
    the file is fatal and raised as ``DatasetError``.
    """
    path = Path(path)
    if not path.is_file():
        raise DatasetError(f"Dataset not found: {path}")

    try:
        df = pd.read_csv(path, header=0, dtype={'sales': 'category', 'salary': 'category'})
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise DatasetError(f"Could not read {path}: {e}") from e

    missing = [c for c in config.SOURCE_COLUMNS if c not in df.columns]
    unexpected = [c for c in df.columns if c not in config.SOURCE_COLUMNS]
    if missing or unexpected:
        raise DatasetError(
            f"Header of {path.name} does not match the expected schema "
            f"(missing: {missing}, unexpected: {unexpected})"
        )
    if df.empty:
        raise DatasetError(f"{path.name} has a header but no rows")

    report = validate_data_quality(df)
    for warning in report['warnings']:
        logger.warning(warning)
    if not report['passed']:
        raise DatasetError("; ".join(report['errors']))

    logger.info("Loaded %d employees from %s", len(df), path)
    return df


#returns errors (fatal) and warnings (logged) for a raw or cleaned frame
def validate_data_quality(df):
    warnings = []
    errors = []
    d = df.rename(columns=config.RENAME_COLUMNS)

    missing_counts = d.isna().sum()
    for col, count in missing_counts[missing_counts > 0].items():
        errors.append(f"{col}: {count} missing values")

    numeric = config.NUMERIC_COLUMNS
    for col in numeric:
        if col in d.columns and not pd.api.types.is_numeric_dtype(d[col]):
            errors.append(f"{col}: non-numeric values")

    for col in config.BINARY_COLUMNS:
        if col in d.columns and pd.api.types.is_numeric_dtype(d[col]):
            bad = (~d[col].dropna().isin([0, 1])).sum()
            if bad:
                errors.append(f"{col}: {bad} values are not 0/1")

    if 'salary' in d.columns:
        bad = (~d['salary'].dropna().astype(str).isin(config.SALARY_LEVELS)).sum()
        if bad:
            errors.append(f"salary: {bad} values outside {config.SALARY_LEVELS}")

    for col in config.UNIT_INTERVAL_COLUMNS:
        if col in d.columns and pd.api.types.is_numeric_dtype(d[col]):
            outside = ((d[col] < 0) | (d[col] > 1)).sum()
            if outside:
                warnings.append(f"{col}: {outside} values outside [0, 1]")

    if 'department' in d.columns:
        unknown = sorted(set(d['department'].dropna().astype(str)) - set(config.DEPARTMENTS))
        if unknown:
            warnings.append(f"department: unknown levels {unknown}")

    return {"warnings": warnings, "errors": errors, "passed": len(errors) == 0}


def clean_dataset(df, derive_indicators=False):
    """Rename columns, relevel the categoricals and optionally add indicators.

    Returns a new frame with the same rows in the same order. Safe to apply
    to an already-cleaned frame.
    """
    cleaned = df.rename(columns=config.RENAME_COLUMNS)

    cleaned['salary'] = pd.Categorical(
        cleaned['salary'].astype(str), categories=config.SALARY_LEVELS, ordered=True
    )
    # case-insensitive order puts 'accounting' first, which becomes the reference level
    departments = cleaned['department'].astype(str)
    levels = sorted(departments.unique(), key=str.lower)
    cleaned['department'] = pd.Categorical(departments, categories=levels)

    if derive_indicators:
        cleaned = recode_departments(cleaned)
    return cleaned


#adds 0/1 columns for the departments that stand out in the full model
def recode_departments(df, departments=config.INDICATOR_DEPARTMENTS):
    recoded = df.copy()
    for name in departments:
        recoded[name] = (recoded['department'].astype(str) == name).astype(int)
    return recoded


def describe_dataset(df):
    print(f"Rows: {df.shape[0]}  Columns: {df.shape[1]}")
    print("\nColumn types:")
    print(df.dtypes.to_string())
    print("\nFirst rows:")
    print(df.head())

    summary = df.describe()
    print("\nNumeric summary:")
    print(summary)

    categorical = df.select_dtypes(include=['category', 'object'])
    if not categorical.empty:
        print("\nCategorical summary:")
        print(categorical.describe())

    print("\nMissing values per column:")
    print(df.isnull().sum().to_string())
    return summary


def correlation_matrix(df, columns=config.NUMERIC_COLUMNS):
    num_df = df[columns].astype(float)
    return num_df.corr()


def write_correlation_matrix(matrix, path):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    matrix.to_csv(path)
    logger.info("Correlation matrix written to %s", path)
    return path


def read_correlation_matrix(path):
    return pd.read_csv(path, index_col=0)
