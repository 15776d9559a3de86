import datetime
import tempfile
from decimal import Decimal
from io import StringIO
from pathlib import Path

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from creditrisksystem.sample_data import SAMPLE_DEFAULTS, SAMPLE_ROWS, write_sample_csv
from customer.models import Customer
from loan.models import DefaultEvent, Loan
from staging.models import CreditRiskStaging
from .queries import (
    SUMMARY_COLUMNS,
    months_between,
    loan_summary,
    loan_summary_frame,
    table_row_counts,
    integrity_checks,
    grade_summary,
    portfolio_summary,
    default_recovery_summary,
)


def rebuild(csv_path, seed=42, link_mode=None):
    args = ['--csv', str(csv_path), '--seed', str(seed)]
    if link_mode:
        args += ['--link-mode', link_mode]
    out = StringIO()
    call_command('rebuild_credit_risk', *args, stdout=out)
    return out.getvalue()


class MonthsBetweenTest(SimpleTestCase):
    def test_whole_months(self):
        self.assertEqual(months_between(datetime.date(2020, 1, 1), datetime.date(2020, 1, 31)), 0)
        self.assertEqual(months_between(datetime.date(2020, 1, 1), datetime.date(2020, 2, 1)), 1)
        self.assertEqual(months_between(datetime.date(2020, 1, 15), datetime.date(2021, 3, 14)), 13)
        self.assertEqual(months_between(datetime.date(2020, 1, 1), datetime.date(2025, 1, 1)), 60)


class ReportingTestCase(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.csv_path = write_sample_csv(Path(self.tmp.name) / 'credit_risk_dataset.csv')
        self.output = rebuild(self.csv_path)


class RebuildCommandTest(ReportingTestCase):
    def test_row_counts(self):
        counts = {row['table_name']: row['row_count'] for row in table_row_counts()}
        self.assertEqual(counts, {
            'STAGING': len(SAMPLE_ROWS),
            'CUSTOMERS': len(SAMPLE_ROWS),
            'LOANS': len(SAMPLE_ROWS),
            'DEFAULTS': SAMPLE_DEFAULTS,
        })
        self.assertEqual(DefaultEvent.objects.count(), Loan.objects.filter(loan_status=1).count())

    def test_integrity_checks_pass(self):
        for check in integrity_checks():
            self.assertEqual(check['issue_count'], 0, check['integrity_check'])
        self.assertIn('Rebuild complete', self.output)

    def test_rerun_is_a_clean_slate(self):
        rebuild(self.csv_path, seed=43)
        self.assertEqual(CreditRiskStaging.objects.count(), 10)
        self.assertEqual(Customer.objects.count(), 10)
        self.assertEqual(Loan.objects.count(), 10)
        self.assertEqual(DefaultEvent.objects.count(), SAMPLE_DEFAULTS)

    def test_same_seed_same_dataset(self):
        def snapshot():
            return (
                list(Customer.objects.order_by('source_row').values_list('customer_id', 'region')),
                list(Loan.objects.order_by('source_row').values_list('loan_id', 'customer_id', 'origination_date')),
                list(DefaultEvent.objects.order_by('loan_id').values_list(
                    'loan_id', 'default_date', 'outstanding_balance', 'recovery_status')),
            )

        first = snapshot()
        rebuild(self.csv_path, seed=42)
        self.assertEqual(snapshot(), first)

    def test_row_link_mode(self):
        rebuild(self.csv_path, link_mode='row')
        for loan in Loan.objects.select_related('customer'):
            self.assertEqual(loan.customer.source_row, loan.source_row)
        for check in integrity_checks():
            self.assertEqual(check['issue_count'], 0)

    def test_missing_csv_is_fatal(self):
        with self.assertRaises(CommandError):
            rebuild(Path(self.tmp.name) / 'missing.csv')

    def test_bad_csv_leaves_previous_dataset(self):
        rows = list(SAMPLE_ROWS)
        rows[0] = 'abc,59000,RENT,123.0,35000,PERSONAL,D,16.02,0.59,Y,3,1'
        bad = write_sample_csv(Path(self.tmp.name) / 'bad.csv', rows=rows)
        with self.assertRaises(CommandError):
            rebuild(bad)
        self.assertEqual(CreditRiskStaging.objects.count(), 10)
        self.assertEqual(Loan.objects.count(), 10)

    def test_negative_seed_leaves_previous_dataset(self):
        smaller = write_sample_csv(Path(self.tmp.name) / 'small.csv', rows=list(SAMPLE_ROWS[:4]))
        with self.assertRaises(CommandError):
            rebuild(smaller, seed=-1)
        self.assertEqual(CreditRiskStaging.objects.count(), 10)
        self.assertEqual(Customer.objects.count(), 10)
        self.assertEqual(DefaultEvent.objects.count(), SAMPLE_DEFAULTS)

    @override_settings(CREDIT_RISK_SEED=-5)
    def test_negative_seed_setting_is_rejected(self):
        smaller = write_sample_csv(Path(self.tmp.name) / 'small.csv', rows=list(SAMPLE_ROWS[:4]))
        with self.assertRaises(CommandError):
            call_command('rebuild_credit_risk', '--csv', str(smaller), stdout=StringIO())
        self.assertEqual(CreditRiskStaging.objects.count(), 10)
        self.assertEqual(Customer.objects.count(), 10)


class IntegrityCheckTest(ReportingTestCase):
    def issues(self):
        return {check['integrity_check']: check['issue_count'] for check in integrity_checks()}

    def test_missing_default_record_detected(self):
        DefaultEvent.objects.order_by('loan_id').first().delete()
        self.assertEqual(self.issues()['Loans with status=1 missing default record'], 1)

    def test_default_on_performing_loan_detected(self):
        event = DefaultEvent.objects.order_by('loan_id').first()
        Loan.objects.filter(loan_id=event.loan_id).update(loan_status=0)
        self.assertEqual(self.issues()['Defaults on loans without status=1'], 1)
        self.assertEqual(self.issues()['Orphaned Loans'], 0)


class LoanSummaryTest(ReportingTestCase):
    def test_one_row_per_loan(self):
        rows = loan_summary()
        self.assertEqual(len(rows), Loan.objects.count())
        self.assertEqual(set(rows[0]), set(SUMMARY_COLUMNS))

    def test_defaulted_rows_carry_default_data(self):
        for row in loan_summary():
            if row['loan_status'] == 1:
                self.assertIsNotNone(row['default_date'])
                self.assertIsNotNone(row['recovery_status'])
            else:
                self.assertIsNone(row['default_date'])
                self.assertIsNone(row['outstanding_balance'])

    def test_loan_age(self):
        as_of = datetime.date(2026, 1, 1)
        for row in loan_summary(as_of=as_of):
            end = row['default_date'] if row['loan_status'] == 1 else as_of
            self.assertEqual(row['loan_age_months'], months_between(row['origination_date'], end))

    def test_customer_columns_match_customer(self):
        row = loan_summary()[0]
        customer = Customer.objects.get(customer_id=row['customer_id'])
        self.assertEqual(row['region'], customer.region)
        self.assertEqual(row['person_income'], customer.person_income)

    def test_filters(self):
        rows = loan_summary(grade='C')
        self.assertEqual(len(rows), 3)
        rows = loan_summary(status=0)
        self.assertEqual(len(rows), len(SAMPLE_ROWS) - SAMPLE_DEFAULTS)

    def test_frame(self):
        frame = loan_summary_frame()
        self.assertEqual(list(frame.columns), SUMMARY_COLUMNS)
        self.assertEqual(len(frame), 10)


class SummaryQueriesTest(ReportingTestCase):
    def test_grade_summary(self):
        grades = {row['loan_grade']: row for row in grade_summary()}
        self.assertEqual(sorted(grades), ['A', 'B', 'C', 'D'])
        self.assertEqual(grades['A']['loan_count'], 2)
        self.assertEqual(grades['A']['total_defaults'], 2)
        self.assertEqual(grades['A']['default_rate_pct'], Decimal('100.00'))
        self.assertEqual(grades['B']['loan_count'], 4)
        self.assertEqual(grades['B']['total_defaults'], 0)
        self.assertEqual(grades['B']['avg_interest_rate'], Decimal('11.17'))

    def test_portfolio_summary(self):
        summary = portfolio_summary()
        self.assertEqual(summary['total_loans'], 10)
        self.assertEqual(summary['unique_customers'], 10)
        self.assertEqual(summary['total_defaults'], SAMPLE_DEFAULTS)
        self.assertEqual(summary['overall_default_rate'], Decimal('60.00'))
        self.assertEqual(summary['total_loan_volume'], Decimal('174000'))

    def test_recovery_summary(self):
        rows = default_recovery_summary()
        self.assertEqual(sum(row['default_count'] for row in rows), SAMPLE_DEFAULTS)
        for row in rows:
            self.assertLessEqual(row['total_recovered'], row['total_outstanding'])


class ReportCommandTest(ReportingTestCase):
    def test_report_prints_sections(self):
        out = StringIO()
        call_command('credit_risk_report', stdout=out)
        output = out.getvalue()
        self.assertIn('Staging profile', output)
        self.assertIn('Orphaned Loans: 0', output)
        self.assertIn('total_loans: 10', output)


class ReportingAPITest(APITestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        rebuild(write_sample_csv(Path(self.tmp.name) / 'credit_risk_dataset.csv'))

    def test_list_loan_summary(self):
        response = self.client.get(reverse('loan-summary-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['count'], 10)
        self.assertEqual(len(data['data']), 10)

    def test_filter_by_status(self):
        response = self.client.get(reverse('loan-summary-list'), {'status': 1})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['count'], SAMPLE_DEFAULTS)
        self.assertTrue(all(row['recovery_status'] for row in data['data']))

    def test_invalid_status_filter(self):
        response = self.client.get(reverse('loan-summary-list'), {'status': 7})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.json())

    def test_retrieve_loan_summary(self):
        loan = Loan.objects.get(loan_amnt=Decimal('12000'))
        response = self.client.get(reverse('loan-summary-detail', kwargs={'loan_id': loan.loan_id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(data['loan_id'], loan.loan_id)
        self.assertEqual(data['loan_term_months'], 36)
        self.assertEqual(data['monthly_payment'], 333.33)
        self.assertIsNone(data['default_date'])

    def test_retrieve_missing_loan(self):
        response = self.client.get(reverse('loan-summary-detail', kwargs={'loan_id': 999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_page_out_of_range(self):
        response = self.client.get(reverse('loan-summary-list'), {'page': 99})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['error'], 'Page not found')

    def test_integrity_checks_endpoint(self):
        response = self.client.get(reverse('integrity-checks'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertTrue(data['passed'])
        self.assertEqual(len(data['data']), 4)

    def test_summary_endpoint(self):
        response = self.client.get(reverse('portfolio-summary'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['portfolio']['total_loans'], 10)
        self.assertEqual(len(data['row_counts']), 4)

    def test_staging_profile_endpoint(self):
        response = self.client.get(reverse('staging-profile'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['profile']['total_records'], 10)
        self.assertEqual(data['profile']['max_age'], 144)
