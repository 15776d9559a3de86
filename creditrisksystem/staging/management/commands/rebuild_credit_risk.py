import argparse

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from creditrisksystem.rng import check_seed
from customer.tasks import extract_customer_data
from loan.extract import LINK_MODES
from loan.tasks import extract_loan_data, extract_default_data
from reporting.queries import table_row_counts, integrity_checks
from staging.tasks import load_staging_data


def seed_argument(value):
    try:
        return check_seed(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


class Command(BaseCommand):
    help = 'Rebuild staging, customers, loans and defaults from the credit risk CSV (clean slate every run)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--csv',
            dest='csv_path',
            default=None,
            help='Path to the credit risk CSV (defaults to CREDIT_RISK_CSV_PATH)',
        )
        parser.add_argument(
            '--seed',
            type=seed_argument,
            default=None,
            help='Seed for the synthetic columns; the same seed rebuilds the same dataset',
        )
        parser.add_argument(
            '--link-mode',
            choices=LINK_MODES,
            default=None,
            help='How loans pick their customer_id (defaults to CREDIT_RISK_CUSTOMER_LINK)',
        )

    def handle(self, *args, **options):
        csv_path = options['csv_path'] or str(settings.CREDIT_RISK_CSV_PATH)
        seed = options['seed'] if options['seed'] is not None else settings.CREDIT_RISK_SEED
        link_mode = options['link_mode'] or settings.CREDIT_RISK_CUSTOMER_LINK

        # Reject a bad seed before step 1 replaces staging
        try:
            seed = check_seed(seed)
        except ValueError as e:
            raise CommandError(f"Invalid seed: {e}")

        self.stdout.write(self.style.SUCCESS(f'Rebuilding credit risk tables from {csv_path}'))
        if seed is None:
            self.stdout.write(self.style.WARNING('No seed given - synthetic columns will differ from the last run'))

        steps = [
            ('Step 1: Loading staging table...', load_staging_data, {'csv_path': csv_path}),
            ('Step 2: Building customers...', extract_customer_data, {'seed': seed}),
            ('Step 3: Building loans...', extract_loan_data, {'seed': seed, 'link_mode': link_mode}),
            ('Step 4: Building default events...', extract_default_data, {'seed': seed}),
        ]
        for label, task, kwargs in steps:
            self.stdout.write(label)
            self.run_step(task, kwargs)

        # Final count check
        for row in table_row_counts():
            self.stdout.write(f"{row['table_name']}: {row['row_count']} ({row['description']})")

        failed = False
        for check in integrity_checks():
            if check['issue_count']:
                failed = True
                self.stdout.write(self.style.ERROR(f"{check['integrity_check']}: {check['issue_count']}"))
            else:
                self.stdout.write(self.style.SUCCESS(f"{check['integrity_check']}: 0"))

        if failed:
            raise CommandError('Integrity checks failed after rebuild')
        self.stdout.write(self.style.SUCCESS('Rebuild complete'))

    def run_step(self, task, kwargs):
        """Run one pipeline task and stop the whole rebuild if it did not succeed"""
        result = task.delay(**kwargs).get(timeout=settings.CREDIT_RISK_TASK_TIMEOUT)

        if result['status'] != 'success':
            raise CommandError(f"{task.name} failed: {result['message']}")

        self.stdout.write(self.style.SUCCESS(result['message']))
        return result
