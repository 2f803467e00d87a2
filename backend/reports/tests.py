"""
Test suite for Reports module
Tests: chart series helpers, growth rate, dashboard endpoint and its cache
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.invoices.models import Invoice
from backend.reports import analytics
from backend.reports.views import build_dashboard


def at(year, month, day):
    return timezone.make_aware(datetime(year, month, day, 12, 0))


class RevenueDataTests(TestCase):

    def test_groups_by_month_oldest_first(self):
        invoices = [
            {'created_at': at(2025, 3, 2), 'total': Decimal('100.40')},
            {'created_at': at(2025, 1, 15), 'total': '250'},
            {'created_at': at(2025, 3, 20), 'total': 100.2},
        ]
        self.assertEqual(analytics.process_revenue_data(invoices), [
            {'month': 'Jan 2025', 'revenue': 250},
            {'month': 'Mar 2025', 'revenue': 201},
        ])

    def test_keeps_last_six_months_with_data(self):
        invoices = [{'created_at': at(2024, month, 1), 'total': month} for month in range(1, 10)]
        data = analytics.process_revenue_data(invoices)
        self.assertEqual(len(data), 6)
        self.assertEqual(data[0]['month'], 'Apr 2024')
        self.assertEqual(data[-1], {'month': 'Sep 2024', 'revenue': 9})

    def test_empty(self):
        self.assertEqual(analytics.process_revenue_data([]), [])


class SeriesTests(TestCase):

    def test_job_card_status_counts(self):
        job_cards = [{'status': 'pending'}, {'status': 'approved'}, {'status': 'pending'}]
        self.assertEqual(analytics.process_job_card_status_data(job_cards), [
            {'name': 'Pending', 'value': 2},
            {'name': 'Approved', 'value': 1},
        ])

    def test_inventory_by_category(self):
        products = [
            {'category': 'Brakes', 'quantity': 4, 'unit_price': '150.25'},
            {'category': 'Brakes', 'quantity': 2, 'unit_price': '10'},
            {'category': 'Tyres', 'quantity': 0, 'unit_price': '3000'},
        ]
        self.assertEqual(analytics.process_inventory_data(products), [
            {'category': 'Brakes', 'quantity': 6, 'value': 621},
            {'category': 'Tyres', 'quantity': 0, 'value': 0},
        ])

    def test_top_products_by_stock_value(self):
        products = [{'name': f'P{i}', 'quantity': i, 'unit_price': '10'} for i in range(1, 8)]
        top = analytics.process_top_products_data(products)
        self.assertEqual([row['name'] for row in top], ['P7', 'P6', 'P5', 'P4', 'P3'])
        self.assertEqual(top[0], {'name': 'P7', 'value': 70.0, 'quantity': 7})

    def test_weekly_job_cards(self):
        today = date(2025, 1, 8)
        job_cards = [
            {'created_at': at(2025, 1, 8)},
            {'created_at': at(2025, 1, 8)},
            {'created_at': at(2025, 1, 2)},
            {'created_at': at(2025, 1, 1)},
        ]
        data = analytics.process_weekly_job_cards(job_cards, today)
        self.assertEqual(len(data), 7)
        self.assertEqual(data[0], {'day': 'Thu', 'count': 1})
        self.assertEqual(data[-1], {'day': 'Wed', 'count': 2})
        self.assertEqual(sum(row['count'] for row in data), 3)

    def test_top_customers(self):
        job_cards = [{'customer_name': name} for name in ['Asha', 'Ravi', 'Asha', 'Mina', 'Asha', 'Ravi']]
        self.assertEqual(analytics.get_top_customers(job_cards)[:2], [
            {'name': 'Asha', 'visits': 3},
            {'name': 'Ravi', 'visits': 2},
        ])

    def test_growth_rate(self):
        self.assertEqual(analytics.calculate_growth_rate(150, 100), 50.0)
        self.assertEqual(analytics.calculate_growth_rate(100, 300), -66.7)
        self.assertEqual(analytics.calculate_growth_rate(10, 0), 100)
        self.assertEqual(analytics.calculate_growth_rate(0, 0), 0)
        self.assertEqual(analytics.calculate_growth_rate(Decimal('0'), None), 0)


class DashboardTests(TestCase):
    """Test the dashboard endpoint"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_worker()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_requires_auth(self):
        self.client.logout()
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_stats(self):
        admin = TestDataFactory.create_admin()
        TestDataFactory.create_product(quantity=9)
        TestDataFactory.create_product(quantity=10)
        TestDataFactory.create_product(quantity=50)
        TestDataFactory.create_job_card(self.user)
        TestDataFactory.create_job_card(self.user, status='approved')
        TestDataFactory.create_invoice(admin, total='590.00')
        TestDataFactory.create_invoice(admin, total='1180.00')

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.data['stats']
        self.assertEqual(stats['products'], 3)
        # two invoiced cards come from the invoices
        self.assertEqual(stats['job_cards'], 4)
        self.assertEqual(stats['invoices'], 2)
        self.assertEqual(stats['total_revenue'], 1770.0)
        self.assertEqual(stats['completed_jobs'], 2)
        self.assertEqual(stats['pending_jobs'], 1)
        self.assertEqual(stats['low_stock_items'], 1)

        charts = response.data['analytics']
        self.assertEqual(len(charts['weekly_job_cards']), 7)
        self.assertEqual(charts['weekly_job_cards'][-1]['count'], 4)
        self.assertEqual(charts['growth_rate'], 100)

    def test_growth_against_last_month(self):
        admin = TestDataFactory.create_admin()
        today = date(2025, 3, 15)
        old = TestDataFactory.create_invoice(admin, total='1000.00')
        new = TestDataFactory.create_invoice(admin, total='1500.00')
        Invoice.objects.filter(pk=old.pk).update(created_at=at(2025, 2, 10))
        Invoice.objects.filter(pk=new.pk).update(created_at=at(2025, 3, 5))

        data = build_dashboard(today)
        self.assertEqual(data['analytics']['growth_rate'], 50.0)
        self.assertEqual(data['analytics']['revenue_data'], [
            {'month': 'Feb 2025', 'revenue': 1000},
            {'month': 'Mar 2025', 'revenue': 1500},
        ])

    def test_served_from_cache(self):
        first = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(first.data['stats']['products'], 0)
        TestDataFactory.create_product()
        # on_commit invalidation does not run inside a test transaction
        second = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(second.data['stats']['products'], 0)
        self.assertEqual(second.data['generated_at'], first.data['generated_at'])
        cache.clear()
        third = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(third.data['stats']['products'], 1)
