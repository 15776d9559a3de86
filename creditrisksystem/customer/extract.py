import logging
from decimal import Decimal

import pandas as pd
from django.conf import settings
from django.db import transaction

from creditrisksystem.values import is_missing, to_decimal, to_int, to_text
from loan.models import DefaultEvent, Loan
from staging.loader import read_staging_frame
from .models import Customer, Region

logger = logging.getLogger(__name__)

REGIONS = [
    Region.NORTHEAST.value,
    Region.SOUTHEAST.value,
    Region.MIDWEST.value,
    Region.SOUTHWEST.value,
    Region.WEST.value,
]

CUSTOMER_COLUMNS = [
    'customer_id',
    'person_age',
    'person_income',
    'person_home_ownership',
    'person_emp_length',
    'historical_default',
    'credit_history_length',
    'region',
    'source_row',
]


def build_customers(staging, rng):
    """
    Project staging rows onto customers.

    Every staging row yields one customer. Ids are a random permutation of
    1..N, so they carry no trace of file order. Missing employment length
    becomes 0 and the region is a uniform draw over REGIONS, unrelated to
    anything in the row.
    """
    n = len(staging)
    if n == 0:
        return pd.DataFrame(columns=CUSTOMER_COLUMNS)

    customers = pd.DataFrame({
        'customer_id': rng.permutation(n) + 1,
        'person_age': staging['person_age'].values,
        'person_income': staging['person_income'].values,
        'person_home_ownership': staging['person_home_ownership'].values,
        'person_emp_length': [
            Decimal('0') if is_missing(value) else value for value in staging['person_emp_length']
        ],
        'historical_default': staging['cb_person_default_on_file'].values,
        'credit_history_length': staging['cb_person_cred_hist_length'].values,
        'region': [REGIONS[i] for i in rng.integers(0, len(REGIONS), size=n)],
        'source_row': staging['id'].values,
    })
    return customers[CUSTOMER_COLUMNS]


def customer_from_row(row):
    return Customer(
        customer_id=int(row['customer_id']),
        person_age=to_int(row['person_age']),
        person_income=to_decimal(row['person_income']),
        person_home_ownership=to_text(row['person_home_ownership']),
        person_emp_length=to_decimal(row['person_emp_length']),
        historical_default=to_text(row['historical_default']),
        credit_history_length=to_int(row['credit_history_length']),
        region=row['region'],
        source_row=to_int(row['source_row']),
    )


def extract_customers(rng):
    """
    Rebuild the customers table from staging.
    Loans and defaults depend on customers, so they are cleared first.
    """
    customers = build_customers(read_staging_frame(), rng)
    records = [customer_from_row(row) for _, row in customers.iterrows()]

    with transaction.atomic():
        DefaultEvent.objects.all().delete()
        Loan.objects.all().delete()
        Customer.objects.all().delete()
        Customer.objects.bulk_create(records, batch_size=settings.CREDIT_RISK_BATCH_SIZE)

    logger.info(f"Built {len(records)} customers from staging")
    return len(records)
