import tempfile
from decimal import Decimal
from pathlib import Path

import numpy as np
import pandas as pd
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from creditrisksystem.rng import make_rng, CUSTOMER_STREAM
from creditrisksystem.sample_data import write_sample_csv
from staging.loader import load_staging, read_staging_frame
from staging.models import CreditRiskStaging
from .extract import REGIONS, build_customers, extract_customers
from .models import Customer
from .tasks import extract_customer_data


def staging_rows(n):
    return pd.DataFrame({
        'id': list(range(1, n + 1)),
        'person_age': [30] * n,
        'person_income': [Decimal('50000')] * n,
        'person_home_ownership': ['RENT'] * n,
        'person_emp_length': [None if i % 3 == 0 else Decimal('4') for i in range(n)],
        'cb_person_default_on_file': ['N'] * n,
        'cb_person_cred_hist_length': [5] * n,
    })


class BuildCustomersTest(SimpleTestCase):
    """Customer projection without the database"""

    def test_ids_are_a_permutation(self):
        customers = build_customers(staging_rows(50), np.random.default_rng(1))
        self.assertEqual(sorted(customers['customer_id']), list(range(1, 51)))

    def test_missing_emp_length_becomes_zero(self):
        customers = build_customers(staging_rows(6), np.random.default_rng(1))
        self.assertEqual(customers['person_emp_length'].iloc[0], Decimal('0'))
        self.assertEqual(customers['person_emp_length'].iloc[1], Decimal('4'))
        self.assertTrue(all(value >= 0 for value in customers['person_emp_length']))

    def test_regions_come_from_fixed_set(self):
        customers = build_customers(staging_rows(500), np.random.default_rng(2))
        self.assertTrue(set(customers['region']) <= set(REGIONS))
        # 500 uniform draws over 5 regions hit every one of them
        self.assertEqual(set(customers['region']), set(REGIONS))

    def test_same_seed_same_customers(self):
        first = build_customers(staging_rows(20), make_rng(7, CUSTOMER_STREAM))
        second = build_customers(staging_rows(20), make_rng(7, CUSTOMER_STREAM))
        self.assertEqual(list(first['customer_id']), list(second['customer_id']))
        self.assertEqual(list(first['region']), list(second['region']))

    def test_negative_seed_rejected(self):
        with self.assertRaises(ValueError):
            make_rng(-1, CUSTOMER_STREAM)

    def test_empty_staging(self):
        customers = build_customers(staging_rows(0), np.random.default_rng(1))
        self.assertEqual(len(customers), 0)

    def test_source_row_lineage(self):
        customers = build_customers(staging_rows(5), np.random.default_rng(1))
        self.assertEqual(list(customers['source_row']), [1, 2, 3, 4, 5])


class ExtractCustomersTest(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        load_staging(write_sample_csv(Path(self.tmp.name) / 'credit_risk_dataset.csv'))

    def test_one_customer_per_staging_row(self):
        count = extract_customers(make_rng(3, CUSTOMER_STREAM))
        self.assertEqual(count, CreditRiskStaging.objects.count())
        self.assertEqual(Customer.objects.count(), 10)
        self.assertEqual(
            sorted(Customer.objects.values_list('customer_id', flat=True)),
            list(range(1, 11))
        )

    def test_income_and_emp_length_non_negative(self):
        extract_customers(make_rng(3, CUSTOMER_STREAM))
        self.assertFalse(Customer.objects.filter(person_income__lt=0).exists())
        self.assertFalse(Customer.objects.filter(person_emp_length__lt=0).exists())

    def test_missing_emp_length_stored_as_zero(self):
        extract_customers(make_rng(3, CUSTOMER_STREAM))
        customer = Customer.objects.get(person_age=30)
        self.assertEqual(customer.person_emp_length, Decimal('0'))

    def test_implausible_age_is_kept(self):
        extract_customers(make_rng(3, CUSTOMER_STREAM))
        self.assertTrue(Customer.objects.filter(person_age=144).exists())

    def test_lineage_points_at_staging(self):
        extract_customers(make_rng(3, CUSTOMER_STREAM))
        staging_ids = set(read_staging_frame()['id'])
        self.assertEqual(set(Customer.objects.values_list('source_row', flat=True)), staging_ids)

    def test_rebuild_replaces_customers(self):
        extract_customers(make_rng(3, CUSTOMER_STREAM))
        extract_customers(make_rng(4, CUSTOMER_STREAM))
        self.assertEqual(Customer.objects.count(), 10)

    def test_task(self):
        result = extract_customer_data(seed=11)
        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['count'], 10)


class CustomerModelTest(TestCase):
    """Simple model tests"""

    def test_customer_creation(self):
        customer = Customer.objects.create(
            customer_id=1,
            person_age=25,
            person_income=Decimal('40000'),
            person_home_ownership='OWN',
            person_emp_length=Decimal('2'),
            historical_default='N',
            credit_history_length=3,
            region='West',
        )
        self.assertEqual(str(customer), "Customer 1")

    def test_negative_income_rejected(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Customer.objects.create(
                    customer_id=2,
                    person_age=25,
                    person_income=Decimal('-1'),
                    region='West',
                )

    def test_negative_emp_length_rejected(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Customer.objects.create(
                    customer_id=3,
                    person_age=25,
                    person_income=Decimal('1'),
                    person_emp_length=Decimal('-2'),
                    region='West',
                )


class CustomerListTest(APITestCase):
    """Simple test cases for Customer List API"""

    def setUp(self):
        self.list_url = reverse('customer-list')
        self.customer = Customer.objects.create(
            customer_id=1,
            person_age=25,
            person_income=Decimal('60000'),
            person_home_ownership='RENT',
            person_emp_length=Decimal('3'),
            historical_default='N',
            credit_history_length=4,
            region='Midwest',
        )

    def test_list_customers(self):
        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()

        self.assertTrue(data['success'])
        self.assertEqual(data['count'], 1)
        self.assertEqual(data['data'][0]['loan_count'], 0)

    def test_filter_by_region(self):
        response = self.client.get(self.list_url, {'region': 'West'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['count'], 0)

    def test_unknown_region(self):
        response = self.client.get(self.list_url, {'region': 'Atlantis'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.json())

    def test_get_specific_customer(self):
        detail_url = reverse('customer-detail', kwargs={'pk': self.customer.pk})
        response = self.client.get(detail_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()

        self.assertTrue(data['success'])
        self.assertEqual(data['data']['region'], 'Midwest')

    def test_customer_not_found(self):
        response = self.client.get(reverse('customer-detail', kwargs={'pk': 999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_page_out_of_range(self):
        response = self.client.get(self.list_url, {'page': 99})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['error'], 'Page not found')
