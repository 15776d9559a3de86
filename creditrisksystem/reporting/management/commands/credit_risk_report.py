from django.core.management.base import BaseCommand
from staging.validation import staging_profile, staging_null_rates
from reporting.queries import (
    table_row_counts,
    integrity_checks,
    grade_summary,
    portfolio_summary,
    default_recovery_summary,
)


class Command(BaseCommand):
    help = 'Print the staging validation, integrity checks and portfolio summaries'

    def handle(self, *args, **options):
        self.section('Staging profile')
        for key, value in staging_profile().items():
            self.stdout.write(f'{key}: {value}')

        self.section('Null rates')
        for row in staging_null_rates():
            self.stdout.write(f"{row['column_name']}: {row['null_count']} ({row['null_pct']}%)")

        self.section('Row counts')
        for row in table_row_counts():
            self.stdout.write(f"{row['table_name']}: {row['row_count']}")

        self.section('Integrity checks')
        for check in integrity_checks():
            style = self.style.SUCCESS if check['issue_count'] == 0 else self.style.ERROR
            self.stdout.write(style(f"{check['integrity_check']}: {check['issue_count']}"))

        self.section('By grade')
        for row in grade_summary():
            self.stdout.write(
                f"{row['loan_grade']}: {row['loan_count']} loans, avg {row['avg_loan_amount']} "
                f"at {row['avg_interest_rate']}%, {row['total_defaults']} defaults ({row['default_rate_pct']}%)"
            )

        self.section('Portfolio')
        for key, value in portfolio_summary().items():
            self.stdout.write(f'{key}: {value}')

        self.section('Recovery')
        for row in default_recovery_summary():
            self.stdout.write(
                f"{row['recovery_status']}: {row['default_count']} defaults, "
                f"{row['total_recovered']} of {row['total_outstanding']} recovered ({row['recovery_rate_pct']}%)"
            )

    def section(self, title):
        self.stdout.write(self.style.MIGRATE_HEADING(title))
