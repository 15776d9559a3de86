from django.db.models import Count, Max, Min, Sum

from creditrisksystem.values import percentage
from .models import CreditRiskStaging

NULL_CHECK_COLUMNS = ['person_age', 'person_income', 'person_emp_length', 'loan_int_rate']


def staging_profile():
    """Sanity check that the CSV landed: counts, ranges and the raw default rate."""
    stats = CreditRiskStaging.objects.aggregate(
        total_records=Count('id'),
        min_age=Min('person_age'),
        max_age=Max('person_age'),
        min_loan=Min('loan_amnt'),
        max_loan=Max('loan_amnt'),
        total_defaults=Sum('loan_status'),
    )
    stats['total_defaults'] = stats['total_defaults'] or 0
    stats['default_rate_pct'] = percentage(stats['total_defaults'], stats['total_records'])
    return stats


def staging_null_rates(columns=None):
    total = CreditRiskStaging.objects.count()
    results = []
    for column in columns or NULL_CHECK_COLUMNS:
        null_count = CreditRiskStaging.objects.filter(**{f'{column}__isnull': True}).count()
        results.append({
            'column_name': column,
            'null_count': null_count,
            'null_pct': percentage(null_count, total),
        })
    return results
