"""
Read-only reporting over the customers, loans and defaults tables.

Nothing here is stored: the loan summary is recomputed from the base tables
on every call, and the checks are plain aggregates.
"""
import pandas as pd
from dateutil.relativedelta import relativedelta
from django.db.models import Avg, Count, Sum
from django.utils import timezone

from creditrisksystem.values import percentage, to_decimal
from customer.models import Customer
from loan.models import DefaultEvent, Loan
from staging.models import CreditRiskStaging

SUMMARY_COLUMNS = [
    'loan_id',
    'customer_id',
    'person_age',
    'person_income',
    'person_home_ownership',
    'person_emp_length',
    'credit_history_length',
    'historical_default',
    'region',
    'loan_amnt',
    'loan_intent',
    'loan_grade',
    'loan_int_rate',
    'loan_percent_income',
    'loan_status',
    'origination_date',
    'loan_term_months',
    'monthly_payment',
    'default_date',
    'outstanding_balance',
    'recovered_amount',
    'recovery_status',
    'loan_age_months',
]


def months_between(start, end):
    """Whole calendar months from start to end."""
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def loan_summary_queryset(grade=None, status=None, loan_ids=None):
    # customer is a required FK (inner join), default_event is optional (left join)
    queryset = Loan.objects.select_related('customer', 'default_event').order_by('loan_id')
    if grade:
        queryset = queryset.filter(loan_grade=grade)
    if status is not None:
        queryset = queryset.filter(loan_status=status)
    if loan_ids is not None:
        queryset = queryset.filter(loan_id__in=loan_ids)
    return queryset


def summary_row(loan, as_of=None):
    as_of = as_of or timezone.now().date()
    customer = loan.customer
    default_event = getattr(loan, 'default_event', None)

    if loan.loan_status == 1 and default_event is not None:
        age_until = default_event.default_date
    else:
        age_until = as_of

    return {
        'loan_id': loan.loan_id,
        'customer_id': customer.customer_id,
        'person_age': customer.person_age,
        'person_income': customer.person_income,
        'person_home_ownership': customer.person_home_ownership,
        'person_emp_length': customer.person_emp_length,
        'credit_history_length': customer.credit_history_length,
        'historical_default': customer.historical_default,
        'region': customer.region,
        'loan_amnt': loan.loan_amnt,
        'loan_intent': loan.loan_intent,
        'loan_grade': loan.loan_grade,
        'loan_int_rate': loan.loan_int_rate,
        'loan_percent_income': loan.loan_percent_income,
        'loan_status': loan.loan_status,
        'origination_date': loan.origination_date,
        'loan_term_months': loan.loan_term_months,
        'monthly_payment': loan.monthly_payment,
        'default_date': default_event.default_date if default_event else None,
        'outstanding_balance': default_event.outstanding_balance if default_event else None,
        'recovered_amount': default_event.recovered_amount if default_event else None,
        'recovery_status': default_event.recovery_status if default_event else None,
        'loan_age_months': months_between(loan.origination_date, age_until),
    }


def loan_summary(grade=None, status=None, loan_ids=None, as_of=None):
    """Denormalized loan rows: loan + customer + default event (if any) + loan age."""
    as_of = as_of or timezone.now().date()
    return [
        summary_row(loan, as_of)
        for loan in loan_summary_queryset(grade=grade, status=status, loan_ids=loan_ids)
    ]


def loan_summary_frame(**filters):
    return pd.DataFrame(loan_summary(**filters), columns=SUMMARY_COLUMNS)


def table_row_counts():
    return [
        {'table_name': 'STAGING', 'row_count': CreditRiskStaging.objects.count(),
         'description': 'Raw CSV data'},
        {'table_name': 'CUSTOMERS', 'row_count': Customer.objects.count(),
         'description': 'Unique customer records'},
        {'table_name': 'LOANS', 'row_count': Loan.objects.count(),
         'description': 'All loan records'},
        {'table_name': 'DEFAULTS', 'row_count': DefaultEvent.objects.count(),
         'description': 'Defaulted loans only'},
    ]


def integrity_checks():
    """Each issue_count should be 0 after a clean rebuild."""
    orphaned_loans = Loan.objects.exclude(
        customer_id__in=Customer.objects.values('customer_id')
    ).count()
    missing_defaults = Loan.objects.filter(loan_status=1, default_event__isnull=True).count()
    orphaned_defaults = DefaultEvent.objects.exclude(
        loan_id__in=Loan.objects.values('loan_id')
    ).count()
    unexpected_defaults = DefaultEvent.objects.exclude(
        loan_id__in=Loan.objects.filter(loan_status=1).values('loan_id')
    ).count()

    return [
        {'integrity_check': 'Orphaned Loans', 'issue_count': orphaned_loans},
        {'integrity_check': 'Loans with status=1 missing default record', 'issue_count': missing_defaults},
        {'integrity_check': 'Defaults without matching loan', 'issue_count': orphaned_defaults},
        {'integrity_check': 'Defaults on loans without status=1', 'issue_count': unexpected_defaults},
    ]


def grade_summary():
    rows = (
        Loan.objects.values('loan_grade')
        .annotate(
            loan_count=Count('loan_id'),
            avg_loan_amount=Avg('loan_amnt'),
            avg_interest_rate=Avg('loan_int_rate'),
            total_defaults=Sum('loan_status'),
        )
        .order_by('loan_grade')
    )
    return [
        {
            'loan_grade': row['loan_grade'],
            'loan_count': row['loan_count'],
            'avg_loan_amount': to_decimal(row['avg_loan_amount'], 0),
            'avg_interest_rate': to_decimal(row['avg_interest_rate'], 2),
            'total_defaults': row['total_defaults'] or 0,
            'default_rate_pct': percentage(row['total_defaults'], row['loan_count']),
        }
        for row in rows
    ]


def portfolio_summary():
    stats = Loan.objects.aggregate(
        total_loans=Count('loan_id'),
        unique_customers=Count('customer', distinct=True),
        total_loan_volume=Sum('loan_amnt'),
        avg_loan_size=Avg('loan_amnt'),
        total_defaults=Sum('loan_status'),
        avg_interest_rate=Avg('loan_int_rate'),
    )
    return {
        'total_loans': stats['total_loans'],
        'unique_customers': stats['unique_customers'],
        'total_loan_volume': to_decimal(stats['total_loan_volume'], 0),
        'avg_loan_size': to_decimal(stats['avg_loan_size'], 0),
        'total_defaults': stats['total_defaults'] or 0,
        'overall_default_rate': percentage(stats['total_defaults'], stats['total_loans']),
        'avg_interest_rate': to_decimal(stats['avg_interest_rate'], 2),
    }


def default_recovery_summary():
    rows = (
        DefaultEvent.objects.values('recovery_status')
        .annotate(
            default_count=Count('loan_id'),
            total_outstanding=Sum('outstanding_balance'),
            total_recovered=Sum('recovered_amount'),
        )
        .order_by('recovery_status')
    )
    return [
        {
            'recovery_status': row['recovery_status'],
            'default_count': row['default_count'],
            'total_outstanding': to_decimal(row['total_outstanding'], 2),
            'total_recovered': to_decimal(row['total_recovered'], 2),
            'recovery_rate_pct': percentage(row['total_recovered'], row['total_outstanding']),
        }
        for row in rows
    ]
