import datetime
import logging
import math
from decimal import Decimal, ROUND_HALF_UP

import pandas as pd
from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import transaction

from creditrisksystem.values import CENTS, is_missing, to_decimal, to_int, to_text
from customer.models import Customer
from staging.loader import read_staging_frame
from .models import DefaultEvent, Loan, RecoveryStatus

logger = logging.getLogger(__name__)

ORIGINATION_EPOCH = datetime.date(2020, 1, 1)
ORIGINATION_WINDOW_DAYS = 1825
DEFAULT_INTEREST_RATE = Decimal('10.00')

LINK_PERMUTED = 'permuted'
LINK_ROW = 'row'
LINK_MODES = (LINK_PERMUTED, LINK_ROW)

LOAN_COLUMNS = [
    'loan_id',
    'customer_id',
    'loan_amnt',
    'loan_intent',
    'loan_grade',
    'loan_int_rate',
    'loan_percent_income',
    'loan_status',
    'origination_date',
    'loan_term_months',
    'monthly_payment',
    'source_row',
]

DEFAULT_COLUMNS = [
    'loan_id',
    'customer_id',
    'default_date',
    'outstanding_balance',
    'recovered_amount',
    'recovery_status',
]


class LoanExtractError(Exception):
    pass


def term_bucket(amount):
    """Term in months by loan size; a missing amount falls through to 60."""
    if is_missing(amount):
        return 60
    if amount < 5000:
        return 12
    if amount < 10000:
        return 24
    if amount < 20000:
        return 36
    return 60


def monthly_payment(amount):
    """Straight-line payment: amount / term, no interest, rounded half up to cents."""
    if is_missing(amount):
        return None
    return (Decimal(str(amount)) / term_bucket(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)


def recovery_status_for(draw):
    """Split one uniform draw 30/30/40 across the recovery statuses."""
    if draw < 0.3:
        return RecoveryStatus.IN_COLLECTION.value
    if draw < 0.6:
        return RecoveryStatus.PARTIALLY_RECOVERED.value
    return RecoveryStatus.CHARGED_OFF.value


def build_loans(staging, rng, customer_ids=None):
    """
    Project staging rows onto loans.

    Loan ids are a random permutation of 1..N. Without customer_ids the
    customer link is a second, independent permutation of 1..N, so a loan
    points at some customer but not necessarily the one built from the same
    row. Pass customer_ids (one per staging row) to link by row instead.
    """
    n = len(staging)
    if n == 0:
        return pd.DataFrame(columns=LOAN_COLUMNS)

    loan_ids = rng.permutation(n) + 1
    if customer_ids is None:
        customer_ids = rng.permutation(n) + 1
    elif len(customer_ids) != n:
        raise LoanExtractError(f"Got {len(customer_ids)} customer ids for {n} staging rows")

    offsets = rng.integers(0, ORIGINATION_WINDOW_DAYS + 1, size=n)
    amounts = list(staging['loan_amnt'])

    loans = pd.DataFrame({
        'loan_id': loan_ids,
        'customer_id': list(customer_ids),
        'loan_amnt': amounts,
        'loan_intent': staging['loan_intent'].values,
        'loan_grade': staging['loan_grade'].values,
        'loan_int_rate': [
            DEFAULT_INTEREST_RATE if is_missing(rate) else rate for rate in staging['loan_int_rate']
        ],
        'loan_percent_income': staging['loan_percent_income'].values,
        'loan_status': staging['loan_status'].values,
        'origination_date': [ORIGINATION_EPOCH + datetime.timedelta(days=int(days)) for days in offsets],
        'loan_term_months': [term_bucket(amount) for amount in amounts],
        'monthly_payment': [monthly_payment(amount) for amount in amounts],
        'source_row': staging['id'].values,
    })
    return loans[LOAN_COLUMNS]


def build_defaults(loans, rng):
    """
    One default event per loan with status 1.

    Each event gets its own independent draws:
      default date  = origination + round(term * U[0.3, 0.7]) months
      outstanding   = amount * U[0.4, 0.8]
      recovered     = outstanding * U[0.2, 0.5]
      status        = 30% IN_COLLECTION, 30% PARTIALLY_RECOVERED, 40% CHARGED_OFF
    """
    defaulted = loans[loans['loan_status'] == 1]
    m = len(defaulted)
    if m == 0:
        return pd.DataFrame(columns=DEFAULT_COLUMNS)

    date_fractions = rng.uniform(0.3, 0.7, size=m)
    balance_fractions = rng.uniform(0.4, 0.8, size=m)
    recovery_fractions = rng.uniform(0.2, 0.5, size=m)
    status_draws = rng.random(size=m)

    rows = []
    for i, loan in enumerate(defaulted.itertuples(index=False)):
        months = int(math.floor(loan.loan_term_months * date_fractions[i] + 0.5))
        outstanding = None
        recovered = None
        if not is_missing(loan.loan_amnt):
            # rounded to the cent, so each bound holds to within half a cent
            outstanding = to_decimal(float(loan.loan_amnt) * balance_fractions[i])
            recovered = to_decimal(float(outstanding) * recovery_fractions[i])
        rows.append({
            'loan_id': loan.loan_id,
            'customer_id': loan.customer_id,
            'default_date': loan.origination_date + relativedelta(months=months),
            'outstanding_balance': outstanding,
            'recovered_amount': recovered,
            'recovery_status': recovery_status_for(status_draws[i]),
        })
    return pd.DataFrame(rows, columns=DEFAULT_COLUMNS)


def loan_from_row(row):
    return Loan(
        loan_id=int(row['loan_id']),
        customer_id=int(row['customer_id']),
        loan_amnt=to_decimal(row['loan_amnt']),
        loan_intent=to_text(row['loan_intent']),
        loan_grade=to_text(row['loan_grade']),
        loan_int_rate=to_decimal(row['loan_int_rate']),
        loan_percent_income=to_decimal(row['loan_percent_income'], 4),
        loan_status=to_int(row['loan_status']),
        origination_date=row['origination_date'],
        loan_term_months=int(row['loan_term_months']),
        monthly_payment=to_decimal(row['monthly_payment']),
        source_row=to_int(row['source_row']),
    )


def customer_ids_by_row(staging):
    """customer_id for each staging row, using the lineage kept on customers."""
    by_source = dict(Customer.objects.values_list('source_row', 'customer_id'))
    missing = [row_id for row_id in staging['id'] if row_id not in by_source]
    if missing:
        raise LoanExtractError(
            f"{len(missing)} staging rows have no customer, rebuild customers first "
            f"(first few: {missing[:10]})"
        )
    return [by_source[row_id] for row_id in staging['id']]


def extract_loans(rng, link_mode=None):
    """Rebuild the loans table from staging. Defaults depend on loans and are cleared too."""
    link_mode = link_mode or settings.CREDIT_RISK_CUSTOMER_LINK
    if link_mode not in LINK_MODES:
        raise LoanExtractError(f"Unknown customer link mode {link_mode!r}, expected one of {LINK_MODES}")

    staging = read_staging_frame()
    customer_count = Customer.objects.count()
    if customer_count != len(staging):
        raise LoanExtractError(
            f"Customers ({customer_count}) do not match staging ({len(staging)}), rebuild customers first"
        )

    customer_ids = customer_ids_by_row(staging) if link_mode == LINK_ROW else None
    loans = build_loans(staging, rng, customer_ids=customer_ids)
    records = [loan_from_row(row) for _, row in loans.iterrows()]

    with transaction.atomic():
        DefaultEvent.objects.all().delete()
        Loan.objects.all().delete()
        Loan.objects.bulk_create(records, batch_size=settings.CREDIT_RISK_BATCH_SIZE)

    logger.info(f"Built {len(records)} loans from staging (customer link: {link_mode})")
    return len(records)


def read_loans_frame():
    fields = ['loan_id', 'customer_id', 'loan_amnt', 'loan_status', 'origination_date', 'loan_term_months']
    rows = Loan.objects.order_by('loan_id').values(*fields)
    return pd.DataFrame.from_records(list(rows), columns=fields)


def extract_defaults(rng):
    """Rebuild the defaults table from the defaulted loans."""
    defaults = build_defaults(read_loans_frame(), rng)
    records = [
        DefaultEvent(
            loan_id=int(row['loan_id']),
            customer_id=int(row['customer_id']),
            default_date=row['default_date'],
            outstanding_balance=to_decimal(row['outstanding_balance']),
            recovered_amount=to_decimal(row['recovered_amount']),
            recovery_status=row['recovery_status'],
        )
        for _, row in defaults.iterrows()
    ]

    with transaction.atomic():
        DefaultEvent.objects.all().delete()
        DefaultEvent.objects.bulk_create(records, batch_size=settings.CREDIT_RISK_BATCH_SIZE)

    logger.info(f"Built {len(records)} default events")
    return len(records)
