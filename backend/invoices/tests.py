"""
Test suite for Invoices module
Tests: totals, invoice creation with stock deduction, role checks, PDF export, summary
"""
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, override_settings
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.invoices.models import Invoice
from backend.invoices.utils import calculate_invoice_totals
from backend.job_cards.models import JobCard


class InvoiceTotalsTests(TestCase):
    """Test invoice arithmetic"""

    def test_totals(self):
        totals = calculate_invoice_totals([(Decimal('150.00'), 2), (Decimal('99.99'), 1)])
        self.assertEqual(totals['parts_total'], Decimal('399.99'))
        self.assertEqual(totals['service_charge'], Decimal('500.00'))
        self.assertEqual(totals['subtotal'], Decimal('899.99'))
        self.assertEqual(totals['tax'], Decimal('162.00'))
        self.assertEqual(totals['total'], Decimal('1061.99'))

    def test_missing_product_counts_as_zero(self):
        totals = calculate_invoice_totals([(None, 4)])
        self.assertEqual(totals['parts_total'], Decimal('0.00'))
        self.assertEqual(totals['total'], Decimal('590.00'))

    @override_settings(WORKSHOP_SERVICE_CHARGE=Decimal('300'), WORKSHOP_TAX_RATE=Decimal('0.13'))
    def test_configurable_charge_and_rate(self):
        totals = calculate_invoice_totals([(Decimal('100'), 1)])
        self.assertEqual(totals['subtotal'], Decimal('400.00'))
        self.assertEqual(totals['tax'], Decimal('52.00'))
        self.assertEqual(totals['total'], Decimal('452.00'))

    def test_tax_percent_label(self):
        self.assertEqual(Invoice(tax_rate=Decimal('0.18')).tax_percent, '18')
        self.assertEqual(Invoice(tax_rate=Decimal('0.10')).tax_percent, '10')
        self.assertEqual(Invoice(tax_rate=Decimal('0.20')).tax_percent, '20')
        self.assertEqual(Invoice(tax_rate=Decimal('0.125')).tax_percent, '12.5')
        self.assertEqual(Invoice(tax_rate=Decimal('0')).tax_percent, '0')


@patch('backend.invoices.views.check_low_stock')
@patch('backend.invoices.views.notify_job_completion')
class InvoiceCreateTests(TestCase):
    """Test invoicing an approved job card"""

    def setUp(self):
        self.owner = TestDataFactory.create_owner()
        self.admin = TestDataFactory.create_admin()
        self.worker = TestDataFactory.create_worker()
        self.filter = TestDataFactory.create_product(name='Oil Filter', quantity=12, unit_price='150.00')
        self.pads = TestDataFactory.create_product(name='Brake Pads', category='Brake System', quantity=1, unit_price='800.00')
        self.job_card = TestDataFactory.create_job_card(
            self.worker, status='approved', customer_name='Sita', vehicle_number='BA2PA4455',
            parts=[(self.filter, 2), (self.pads, 3)],
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_invoice(self, mock_completion, mock_low_stock):
        response = self.client.post('/api/v1/invoices/', {'job_card': self.job_card.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('-U_A01-001', response.data['custom_id'])
        self.assertEqual(response.data['parts_total'], '2700.00')
        self.assertEqual(response.data['subtotal'], '3200.00')
        self.assertEqual(response.data['tax'], '576.00')
        self.assertEqual(response.data['total'], '3776.00')
        self.assertEqual(len(response.data['items']), 2)

        self.job_card.refresh_from_db()
        self.assertEqual(self.job_card.status, 'invoiced')

        self.filter.refresh_from_db()
        self.pads.refresh_from_db()
        self.assertEqual(self.filter.quantity, 10)
        self.assertEqual(self.pads.quantity, 0)  # clamped at zero

        self.assertTrue(AuditLog.objects.filter(action='create_invoice').exists())
        mock_completion.assert_called_once()
        affected = mock_low_stock.call_args[0][0]
        self.assertEqual({p.name for p in affected}, {'Oil Filter', 'Brake Pads'})

    def test_uses_current_product_price(self, mock_completion, mock_low_stock):
        type(self.filter).objects.filter(pk=self.filter.pk).update(unit_price=Decimal('200.00'))
        response = self.client.post('/api/v1/invoices/', {'job_card': self.job_card.id}, format='json')
        self.assertEqual(response.data['parts_total'], '2800.00')

    def test_deleted_product_contributes_zero(self, mock_completion, mock_low_stock):
        self.pads.delete()
        response = self.client.post('/api/v1/invoices/', {'job_card': self.job_card.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['parts_total'], '300.00')
        names = [item['product_name'] for item in response.data['items']]
        self.assertIn('Brake Pads', names)

    def test_worker_cannot_create_invoice(self, mock_completion, mock_low_stock):
        self.client.authenticate_user(self.worker)
        response = self.client.post('/api/v1/invoices/', {'job_card': self.job_card.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Invoice.objects.exists())

    def test_job_card_must_be_approved(self, mock_completion, mock_low_stock):
        JobCard.objects.filter(pk=self.job_card.pk).update(status='verified')
        response = self.client.post('/api/v1/invoices/', {'job_card': self.job_card.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.filter.refresh_from_db()
        self.assertEqual(self.filter.quantity, 12)

    def test_cannot_invoice_twice(self, mock_completion, mock_low_stock):
        self.client.post('/api/v1/invoices/', {'job_card': self.job_card.id}, format='json')
        response = self.client.post('/api/v1/invoices/', {'job_card': self.job_card.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Invoice.objects.count(), 1)

    def test_unknown_job_card(self, mock_completion, mock_low_stock):
        response = self.client.post('/api/v1/invoices/', {'job_card': 9999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_second_invoice_same_day_increments(self, mock_completion, mock_low_stock):
        self.client.post('/api/v1/invoices/', {'job_card': self.job_card.id}, format='json')
        other = TestDataFactory.create_job_card(self.worker, status='approved')
        response = self.client.post('/api/v1/invoices/', {'job_card': other.id}, format='json')
        self.assertTrue(response.data['custom_id'].endswith('-U_A01-002'))


class InvoiceReadTests(TestCase):
    """Test invoice listing, summary and PDF download"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.worker = TestDataFactory.create_worker()
        product = TestDataFactory.create_product(name='Spark Plug', unit_price='250.00')
        job_card = TestDataFactory.create_job_card(self.worker, status='invoiced', customer_name='Gita',
                                                   vehicle_number='BA1PA1111', parts=[(product, 4)])
        self.invoice = TestDataFactory.create_invoice(self.admin, job_card=job_card, total='1770.00')
        self.invoice.items.create(product=product, product_name='Spark Plug', qty=4,
                                  unit_price=Decimal('250.00'), line_total=Decimal('1000.00'))
        TestDataFactory.create_invoice(self.admin, total='590.00')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.worker)

    def test_list_and_search(self):
        response = self.client.get('/api/v1/invoices/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/invoices/?search=gita')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['items'][0]['product_name'], 'Spark Plug')

    def test_detail(self):
        response = self.client.get(f'/api/v1/invoices/{self.invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['custom_id'], self.invoice.custom_id)

    def test_summary(self):
        response = self.client.get('/api/v1/invoices/summary/')
        self.assertEqual(response.data, {'total_invoices': 2, 'total_revenue': 2360.0})

    def test_pdf_download(self):
        response = self.client.get(f'/api/v1/invoices/{self.invoice.id}/pdf/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn(f'invoice-{self.invoice.custom_id}.pdf', response['Content-Disposition'])
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_pdf_missing_invoice(self):
        response = self.client.get('/api/v1/invoices/9999/pdf/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
