import datetime
import tempfile
from decimal import Decimal
from pathlib import Path

import numpy as np
import pandas as pd
from dateutil.relativedelta import relativedelta
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from creditrisksystem.rng import make_rng, CUSTOMER_STREAM, LOAN_STREAM, DEFAULT_STREAM
from creditrisksystem.sample_data import SAMPLE_DEFAULTS, write_sample_csv
from customer.extract import extract_customers
from customer.models import Customer
from staging.loader import load_staging
from .extract import (
    ORIGINATION_EPOCH,
    LINK_ROW,
    build_loans,
    build_defaults,
    extract_loans,
    extract_defaults,
    monthly_payment,
    recovery_status_for,
    term_bucket,
    LoanExtractError,
)
from .models import DefaultEvent, Loan, RecoveryStatus
from .tasks import extract_loan_data, extract_default_data
"""UNIT TESTS FOR LOAN AND DEFAULT EXTRACTION"""


def staging_rows(amounts, statuses=None, rates=None):
    n = len(amounts)
    return pd.DataFrame({
        'id': list(range(1, n + 1)),
        'loan_amnt': amounts,
        'loan_intent': ['PERSONAL'] * n,
        'loan_grade': ['B'] * n,
        'loan_int_rate': rates if rates is not None else [Decimal('11.50')] * n,
        'loan_percent_income': [Decimal('0.2000')] * n,
        'loan_status': statuses if statuses is not None else [0] * n,
    })


class TermAndPaymentTest(SimpleTestCase):
    def test_term_bucket_boundaries(self):
        self.assertEqual(term_bucket(Decimal('4999.99')), 12)
        self.assertEqual(term_bucket(Decimal('5000')), 24)
        self.assertEqual(term_bucket(Decimal('9999.99')), 24)
        self.assertEqual(term_bucket(Decimal('10000')), 36)
        self.assertEqual(term_bucket(Decimal('19999.99')), 36)
        self.assertEqual(term_bucket(Decimal('20000')), 60)
        self.assertEqual(term_bucket(None), 60)

    def test_monthly_payment(self):
        self.assertEqual(monthly_payment(Decimal('12000')), Decimal('333.33'))
        self.assertEqual(monthly_payment(Decimal('3000')), Decimal('250.00'))
        self.assertEqual(monthly_payment(Decimal('35000')), Decimal('583.33'))
        # 416.66625 rounds half up
        self.assertEqual(monthly_payment(Decimal('9999.99')), Decimal('416.67'))
        self.assertIsNone(monthly_payment(None))

    def test_recovery_status_thresholds(self):
        self.assertEqual(recovery_status_for(0.0), RecoveryStatus.IN_COLLECTION)
        self.assertEqual(recovery_status_for(0.2999), RecoveryStatus.IN_COLLECTION)
        self.assertEqual(recovery_status_for(0.3), RecoveryStatus.PARTIALLY_RECOVERED)
        self.assertEqual(recovery_status_for(0.5999), RecoveryStatus.PARTIALLY_RECOVERED)
        self.assertEqual(recovery_status_for(0.6), RecoveryStatus.CHARGED_OFF)
        self.assertEqual(recovery_status_for(0.99), RecoveryStatus.CHARGED_OFF)


class BuildLoansTest(SimpleTestCase):
    def test_ids_are_permutations(self):
        loans = build_loans(staging_rows([Decimal('1000')] * 40), np.random.default_rng(5))
        self.assertEqual(sorted(loans['loan_id']), list(range(1, 41)))
        self.assertEqual(sorted(loans['customer_id']), list(range(1, 41)))

    def test_customer_link_is_independent_of_loan_id(self):
        loans = build_loans(staging_rows([Decimal('1000')] * 200), np.random.default_rng(5))
        self.assertNotEqual(list(loans['loan_id']), list(loans['customer_id']))

    def test_row_link_uses_given_ids(self):
        loans = build_loans(
            staging_rows([Decimal('1000')] * 3), np.random.default_rng(5), customer_ids=[3, 1, 2]
        )
        self.assertEqual(list(loans['customer_id']), [3, 1, 2])

    def test_row_link_length_mismatch(self):
        with self.assertRaises(LoanExtractError):
            build_loans(staging_rows([Decimal('1000')] * 3), np.random.default_rng(5), customer_ids=[1])

    def test_origination_window(self):
        loans = build_loans(staging_rows([Decimal('1000')] * 300), np.random.default_rng(6))
        latest = ORIGINATION_EPOCH + datetime.timedelta(days=1825)
        for origination in loans['origination_date']:
            self.assertGreaterEqual(origination, ORIGINATION_EPOCH)
            self.assertLessEqual(origination, latest)

    def test_missing_rate_defaults_to_ten(self):
        loans = build_loans(
            staging_rows([Decimal('1000'), Decimal('2000')], rates=[None, Decimal('7.25')]),
            np.random.default_rng(5),
        )
        self.assertEqual(list(loans['loan_int_rate']), [Decimal('10.00'), Decimal('7.25')])

    def test_term_and_payment_derived_from_amount(self):
        amounts = [Decimal('12000'), Decimal('3000'), Decimal('25000')]
        loans = build_loans(staging_rows(amounts), np.random.default_rng(5))
        self.assertEqual(list(loans['loan_term_months']), [36, 12, 60])
        self.assertEqual(list(loans['monthly_payment']), [Decimal('333.33'), Decimal('250.00'), Decimal('416.67')])


class BuildDefaultsTest(SimpleTestCase):
    def loans_frame(self, amounts, statuses):
        loans = build_loans(staging_rows(amounts, statuses=statuses), np.random.default_rng(8))
        return loans

    def test_only_defaulted_loans(self):
        loans = self.loans_frame([Decimal('12000'), Decimal('3000')], [0, 1])
        defaults = build_defaults(loans, np.random.default_rng(9))
        self.assertEqual(len(defaults), 1)
        defaulted_loan = loans[loans['loan_status'] == 1].iloc[0]
        self.assertEqual(defaults['loan_id'].iloc[0], defaulted_loan['loan_id'])
        self.assertEqual(defaults['customer_id'].iloc[0], defaulted_loan['customer_id'])

    def test_three_thousand_loan_default(self):
        loans = self.loans_frame([Decimal('3000')], [1])
        defaults = build_defaults(loans, np.random.default_rng(9))
        outstanding = defaults['outstanding_balance'].iloc[0]
        self.assertGreaterEqual(outstanding, Decimal('1200'))
        self.assertLessEqual(outstanding, Decimal('2400'))

    def test_synthetic_ranges(self):
        amounts = [Decimal(str(a)) for a in range(1000, 41000, 400)]
        loans = self.loans_frame(amounts, [1] * len(amounts))
        defaults = build_defaults(loans, np.random.default_rng(10)).merge(
            loans[['loan_id', 'loan_amnt', 'origination_date', 'loan_term_months']], on='loan_id'
        )
        # amounts are stored rounded half up to the cent
        half_cent = Decimal('0.005')
        for row in defaults.itertuples(index=False):
            self.assertGreaterEqual(row.outstanding_balance, row.loan_amnt * Decimal('0.4') - half_cent)
            self.assertLessEqual(row.outstanding_balance, row.loan_amnt * Decimal('0.8') + half_cent)
            self.assertGreaterEqual(row.recovered_amount, row.outstanding_balance * Decimal('0.2') - half_cent)
            self.assertLessEqual(row.recovered_amount, row.outstanding_balance * Decimal('0.5') + half_cent)

            earliest = row.origination_date + relativedelta(months=int(row.loan_term_months * 0.3))
            latest = row.origination_date + relativedelta(months=int(row.loan_term_months * 0.7) + 1)
            self.assertGreaterEqual(row.default_date, earliest)
            self.assertLessEqual(row.default_date, latest)

    def test_recovery_status_mix(self):
        n = 20000
        loans = pd.DataFrame({
            'loan_id': list(range(1, n + 1)),
            'customer_id': list(range(1, n + 1)),
            'loan_amnt': [Decimal('1000')] * n,
            'loan_status': [1] * n,
            'origination_date': [ORIGINATION_EPOCH] * n,
            'loan_term_months': [12] * n,
        })
        shares = build_defaults(loans, np.random.default_rng(11))['recovery_status'].value_counts(normalize=True)
        self.assertAlmostEqual(shares[RecoveryStatus.IN_COLLECTION.value], 0.3, delta=0.02)
        self.assertAlmostEqual(shares[RecoveryStatus.PARTIALLY_RECOVERED.value], 0.3, delta=0.02)
        self.assertAlmostEqual(shares[RecoveryStatus.CHARGED_OFF.value], 0.4, delta=0.02)

    def test_no_defaulted_loans(self):
        loans = self.loans_frame([Decimal('3000')], [0])
        self.assertEqual(len(build_defaults(loans, np.random.default_rng(9))), 0)


class LoanExtractionTestCase(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        load_staging(write_sample_csv(Path(self.tmp.name) / 'credit_risk_dataset.csv'))
        extract_customers(make_rng(21, CUSTOMER_STREAM))


class ExtractLoansTest(LoanExtractionTestCase):
    def test_one_loan_per_staging_row(self):
        self.assertEqual(extract_loans(make_rng(21, LOAN_STREAM)), 10)
        self.assertEqual(Loan.objects.count(), 10)
        self.assertEqual(sorted(Loan.objects.values_list('loan_id', flat=True)), list(range(1, 11)))

    def test_every_loan_has_a_customer(self):
        extract_loans(make_rng(21, LOAN_STREAM))
        customer_ids = set(Customer.objects.values_list('customer_id', flat=True))
        for customer_id in Loan.objects.values_list('customer_id', flat=True):
            self.assertIn(customer_id, customer_ids)

    def test_status_is_binary(self):
        extract_loans(make_rng(21, LOAN_STREAM))
        self.assertEqual(set(Loan.objects.values_list('loan_status', flat=True)), {0, 1})

    def test_example_loan(self):
        extract_loans(make_rng(21, LOAN_STREAM))
        loan = Loan.objects.get(loan_amnt=Decimal('12000'))
        self.assertEqual(loan.loan_term_months, 36)
        self.assertEqual(loan.monthly_payment, Decimal('333.33'))
        self.assertEqual(loan.loan_int_rate, Decimal('10.00'))

    def test_payment_matches_term_bucket(self):
        extract_loans(make_rng(21, LOAN_STREAM))
        for loan in Loan.objects.all():
            self.assertEqual(loan.loan_term_months, term_bucket(loan.loan_amnt))
            self.assertEqual(loan.monthly_payment, monthly_payment(loan.loan_amnt))

    def test_row_link_mode(self):
        extract_loans(make_rng(21, LOAN_STREAM), link_mode=LINK_ROW)
        for loan in Loan.objects.select_related('customer'):
            self.assertEqual(loan.customer.source_row, loan.source_row)

    def test_unknown_link_mode(self):
        with self.assertRaises(LoanExtractError):
            extract_loans(make_rng(21, LOAN_STREAM), link_mode='sideways')

    def test_requires_customers(self):
        Customer.objects.all().delete()
        with self.assertRaises(LoanExtractError):
            extract_loans(make_rng(21, LOAN_STREAM))

    def test_same_seed_same_loans(self):
        extract_loans(make_rng(21, LOAN_STREAM))
        first = list(Loan.objects.order_by('source_row').values_list('loan_id', 'customer_id', 'origination_date'))
        extract_loans(make_rng(21, LOAN_STREAM))
        second = list(Loan.objects.order_by('source_row').values_list('loan_id', 'customer_id', 'origination_date'))
        self.assertEqual(first, second)

    def test_task_reports_error(self):
        Customer.objects.all().delete()
        result = extract_loan_data(seed=1)
        self.assertEqual(result['status'], 'error')


class ExtractDefaultsTest(LoanExtractionTestCase):
    def setUp(self):
        super().setUp()
        extract_loans(make_rng(21, LOAN_STREAM))

    def test_bijection_with_defaulted_loans(self):
        count = extract_defaults(make_rng(21, DEFAULT_STREAM))
        self.assertEqual(count, SAMPLE_DEFAULTS)
        defaulted = set(Loan.objects.filter(loan_status=1).values_list('loan_id', flat=True))
        events = list(DefaultEvent.objects.values_list('loan_id', flat=True))
        self.assertEqual(len(events), len(set(events)))
        self.assertEqual(set(events), defaulted)

    def test_default_event_copies_customer(self):
        extract_defaults(make_rng(21, DEFAULT_STREAM))
        for event in DefaultEvent.objects.select_related('loan'):
            self.assertEqual(event.customer_id, event.loan.customer_id)

    def test_three_thousand_loan(self):
        extract_defaults(make_rng(21, DEFAULT_STREAM))
        loan = Loan.objects.get(loan_amnt=Decimal('3000'))
        self.assertEqual(loan.loan_term_months, 12)
        self.assertEqual(loan.monthly_payment, Decimal('250.00'))
        event = DefaultEvent.objects.get(loan=loan)
        self.assertGreaterEqual(event.outstanding_balance, Decimal('1200'))
        self.assertLessEqual(event.outstanding_balance, Decimal('2400'))

    def test_non_defaulted_loan_has_no_event(self):
        extract_defaults(make_rng(21, DEFAULT_STREAM))
        loan = Loan.objects.get(loan_amnt=Decimal('12000'))
        self.assertFalse(DefaultEvent.objects.filter(loan=loan).exists())

    def test_rebuilding_loans_clears_defaults(self):
        extract_defaults(make_rng(21, DEFAULT_STREAM))
        extract_loans(make_rng(22, LOAN_STREAM))
        self.assertEqual(DefaultEvent.objects.count(), 0)

    def test_task(self):
        result = extract_default_data(seed=3)
        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['count'], SAMPLE_DEFAULTS)


class LoanModelTest(LoanExtractionTestCase):
    def test_status_check_constraint(self):
        customer = Customer.objects.first()
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Loan.objects.create(
                    loan_id=999,
                    customer=customer,
                    loan_amnt=Decimal('1000'),
                    loan_status=2,
                    origination_date=ORIGINATION_EPOCH,
                    loan_term_months=12,
                    monthly_payment=Decimal('83.33'),
                )


class LoanViewTest(LoanExtractionTestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        extract_loans(make_rng(21, LOAN_STREAM))
        extract_defaults(make_rng(21, DEFAULT_STREAM))

    def test_view_loan_with_default(self):
        loan = Loan.objects.get(loan_amnt=Decimal('3000'))
        response = self.client.get(reverse('view-loan', kwargs={'loan_id': loan.loan_id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['loan_id'], loan.loan_id)
        self.assertEqual(response.data['loan_term_months'], 12)
        self.assertIsNotNone(response.data['default_event'])

    def test_view_performing_loan(self):
        loan = Loan.objects.get(loan_amnt=Decimal('12000'))
        response = self.client.get(reverse('view-loan', kwargs={'loan_id': loan.loan_id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['default_event'])

    def test_view_loan_not_found(self):
        response = self.client.get(reverse('view-loan', kwargs={'loan_id': 999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_view_loans_for_customer(self):
        loan = Loan.objects.order_by('loan_id').first()
        response = self.client.get(reverse('view-loans', kwargs={'customer_id': loan.customer_id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsInstance(response.data, list)
        self.assertIn(loan.loan_id, [row['loan_id'] for row in response.data])

    def test_view_loans_customer_not_found(self):
        response = self.client.get(reverse('view-loans', kwargs={'customer_id': 999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
