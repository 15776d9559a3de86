import tempfile
from decimal import Decimal
from pathlib import Path

from django.test import TestCase

from creditrisksystem.sample_data import SAMPLE_ROWS, write_sample_csv
from .models import CreditRiskStaging
from .loader import (
    STAGING_COLUMNS,
    load_staging,
    read_staging_csv,
    read_staging_frame,
    StagingFileNotFound,
    StagingParseError,
    StagingSchemaError,
)
from .tasks import load_staging_data
from .validation import staging_profile, staging_null_rates
"""UNIT TESTS FOR THE STAGING LOADER AND VALIDATION QUERIES"""


class StagingTestCase(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.csv_path = write_sample_csv(Path(self.tmp.name) / 'credit_risk_dataset.csv')


class ReadStagingCsvTest(StagingTestCase):
    def test_reads_all_rows_with_fixed_columns(self):
        df = read_staging_csv(self.csv_path)
        self.assertEqual(len(df), len(SAMPLE_ROWS))
        self.assertEqual(list(df.columns), STAGING_COLUMNS)

    def test_missing_file(self):
        with self.assertRaises(StagingFileNotFound):
            read_staging_csv(Path(self.tmp.name) / 'nope.csv')

    def test_header_mismatch(self):
        header = list(STAGING_COLUMNS)
        header[0], header[1] = header[1], header[0]
        bad = write_sample_csv(Path(self.tmp.name) / 'bad_header.csv', header=header)
        with self.assertRaises(StagingSchemaError):
            read_staging_csv(bad)

    def test_empty_file(self):
        empty = Path(self.tmp.name) / 'empty.csv'
        empty.write_text('')
        with self.assertRaises(StagingSchemaError):
            read_staging_csv(empty)

    def test_unparseable_number_is_fatal(self):
        rows = list(SAMPLE_ROWS)
        rows[2] = '25,9600,MORTGAGE,1.0,lots,MEDICAL,C,12.87,0.57,N,3,1'
        bad = write_sample_csv(Path(self.tmp.name) / 'bad_value.csv', rows=rows)
        with self.assertRaises(StagingParseError):
            read_staging_csv(bad)


class LoadStagingTest(StagingTestCase):
    def test_load_staging(self):
        count = load_staging(self.csv_path)
        self.assertEqual(count, 10)
        self.assertEqual(CreditRiskStaging.objects.count(), 10)

        first = CreditRiskStaging.objects.order_by('id').first()
        self.assertEqual(first.person_age, 22)
        self.assertEqual(first.person_income, Decimal('59000.00'))
        self.assertEqual(first.loan_percent_income, Decimal('0.5900'))
        self.assertEqual(first.cb_person_default_on_file, 'Y')

    def test_nulls_are_kept(self):
        load_staging(self.csv_path)
        row = CreditRiskStaging.objects.get(person_age=30)
        self.assertIsNone(row.person_emp_length)
        self.assertIsNone(row.loan_int_rate)

    def test_reload_replaces_rows(self):
        load_staging(self.csv_path)
        load_staging(self.csv_path)
        self.assertEqual(CreditRiskStaging.objects.count(), 10)

    def test_failed_load_keeps_previous_rows(self):
        load_staging(self.csv_path)
        with self.assertRaises(StagingFileNotFound):
            load_staging(Path(self.tmp.name) / 'nope.csv')
        self.assertEqual(CreditRiskStaging.objects.count(), 10)

    def test_frame_keeps_file_order(self):
        load_staging(self.csv_path)
        frame = read_staging_frame()
        self.assertEqual(len(frame), 10)
        self.assertEqual(list(frame['id']), sorted(frame['id']))
        self.assertEqual(frame['person_age'].iloc[-1], 144)


class LoadStagingTaskTest(StagingTestCase):
    def test_task_success(self):
        result = load_staging_data(str(self.csv_path))
        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['count'], 10)

    def test_task_reports_error(self):
        result = load_staging_data(str(Path(self.tmp.name) / 'nope.csv'))
        self.assertEqual(result['status'], 'error')
        self.assertIn('not found', result['message'])


class StagingValidationTest(StagingTestCase):
    def test_profile(self):
        load_staging(self.csv_path)
        profile = staging_profile()
        self.assertEqual(profile['total_records'], 10)
        self.assertEqual(profile['min_age'], 21)
        self.assertEqual(profile['max_age'], 144)
        self.assertEqual(profile['min_loan'], Decimal('1000'))
        self.assertEqual(profile['max_loan'], Decimal('35000'))
        self.assertEqual(profile['total_defaults'], 6)
        self.assertEqual(profile['default_rate_pct'], Decimal('60.00'))

    def test_profile_empty_table(self):
        profile = staging_profile()
        self.assertEqual(profile['total_records'], 0)
        self.assertEqual(profile['total_defaults'], 0)
        self.assertIsNone(profile['default_rate_pct'])

    def test_null_rates(self):
        load_staging(self.csv_path)
        rates = {row['column_name']: row for row in staging_null_rates()}
        self.assertEqual(rates['person_age']['null_count'], 0)
        self.assertEqual(rates['person_emp_length']['null_count'], 1)
        self.assertEqual(rates['person_emp_length']['null_pct'], Decimal('10.00'))
        self.assertEqual(rates['loan_int_rate']['null_count'], 1)
