import logging
from pathlib import Path

import pandas as pd
from django.conf import settings
from django.db import transaction

from creditrisksystem.values import to_decimal, to_int, to_text
from .models import CreditRiskStaging

logger = logging.getLogger(__name__)

# Column order of the source file, header row included
STAGING_COLUMNS = [
    'person_age',
    'person_income',
    'person_home_ownership',
    'person_emp_length',
    'loan_amnt',
    'loan_intent',
    'loan_grade',
    'loan_int_rate',
    'loan_percent_income',
    'cb_person_default_on_file',
    'cb_person_cred_hist_length',
    'loan_status',
]

INTEGER_COLUMNS = ['person_age', 'cb_person_cred_hist_length', 'loan_status']
TEXT_COLUMNS = ['person_home_ownership', 'loan_intent', 'loan_grade', 'cb_person_default_on_file']
# column -> decimal places
DECIMAL_COLUMNS = {
    'person_income': 2,
    'person_emp_length': 2,
    'loan_amnt': 2,
    'loan_int_rate': 2,
    'loan_percent_income': 4,
}


class StagingLoadError(Exception):
    """Base error for a staging load that has to abort the run."""


class StagingFileNotFound(StagingLoadError):
    pass


class StagingSchemaError(StagingLoadError):
    pass


class StagingParseError(StagingLoadError):
    pass


def staging_dtypes():
    dtypes = {column: 'Int64' for column in INTEGER_COLUMNS}
    dtypes.update({column: 'string' for column in TEXT_COLUMNS})
    dtypes.update({column: 'float64' for column in DECIMAL_COLUMNS})
    return dtypes


def read_staging_csv(file_path):
    """
    Read the credit risk CSV into a DataFrame with the fixed staging schema.
    The header must match STAGING_COLUMNS exactly; nothing is inferred.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise StagingFileNotFound(f"Credit risk data file not found: {file_path}")

    try:
        header = list(pd.read_csv(file_path, nrows=0).columns)
    except pd.errors.EmptyDataError as e:
        raise StagingSchemaError(f"{file_path} has no header row") from e

    if header != STAGING_COLUMNS:
        raise StagingSchemaError(
            f"Unexpected header in {file_path}: {header}. Expected: {STAGING_COLUMNS}"
        )

    try:
        df = pd.read_csv(file_path, dtype=staging_dtypes(), skipinitialspace=True)
    except (ValueError, TypeError) as e:
        raise StagingParseError(f"Could not parse {file_path}: {e}") from e

    logger.info(f"Read {len(df)} rows from {file_path}")
    return df


def staging_record_from_row(row):
    return CreditRiskStaging(
        person_age=to_int(row['person_age']),
        person_income=to_decimal(row['person_income'], DECIMAL_COLUMNS['person_income']),
        person_home_ownership=to_text(row['person_home_ownership']),
        person_emp_length=to_decimal(row['person_emp_length'], DECIMAL_COLUMNS['person_emp_length']),
        loan_amnt=to_decimal(row['loan_amnt'], DECIMAL_COLUMNS['loan_amnt']),
        loan_intent=to_text(row['loan_intent']),
        loan_grade=to_text(row['loan_grade']),
        loan_int_rate=to_decimal(row['loan_int_rate'], DECIMAL_COLUMNS['loan_int_rate']),
        loan_percent_income=to_decimal(row['loan_percent_income'], DECIMAL_COLUMNS['loan_percent_income']),
        cb_person_default_on_file=to_text(row['cb_person_default_on_file']),
        cb_person_cred_hist_length=to_int(row['cb_person_cred_hist_length']),
        loan_status=to_int(row['loan_status']),
    )


def load_staging(file_path=None):
    """
    Replace the staging table with the contents of the CSV.
    Returns the number of rows loaded. Any parse failure aborts before
    anything is deleted.
    """
    file_path = file_path or settings.CREDIT_RISK_CSV_PATH
    df = read_staging_csv(file_path)

    records = [staging_record_from_row(row) for _, row in df.iterrows()]

    with transaction.atomic():
        deleted, _ = CreditRiskStaging.objects.all().delete()
        if deleted:
            logger.info(f"Cleared {deleted} existing staging rows")
        CreditRiskStaging.objects.bulk_create(records, batch_size=settings.CREDIT_RISK_BATCH_SIZE)

    logger.info(f"Loaded {len(records)} staging rows")
    return len(records)


def read_staging_frame():
    """Staging table as a DataFrame in file order, numeric cells as Decimal/None."""
    fields = ['id'] + STAGING_COLUMNS
    rows = CreditRiskStaging.objects.order_by('id').values(*fields)
    return pd.DataFrame.from_records(list(rows), columns=fields)
