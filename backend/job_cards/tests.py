"""
Test suite for Job Cards module
Tests: creation with parts, editing rules, status workflow, invoice requests, summary
"""
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.job_cards.models import JobCard


@patch('backend.job_cards.views.notify_new_job_card')
class JobCardCreateTests(TestCase):
    """Test job card creation and editing"""

    def setUp(self):
        self.worker = TestDataFactory.create_worker(name='Ram')
        self.admin = TestDataFactory.create_admin()
        self.product = TestDataFactory.create_product(name='Oil Filter', unit_price='150.00')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.worker)

    def payload(self, **extra):
        data = {
            'customer_name': 'Sita Sharma',
            'vehicle_number': 'ba 2 pa 4455',
            'vehicle_model': 'Hyundai i20',
            'issue': 'Oil leak',
            'parts_used': [{'product_id': self.product.id, 'qty': 2}],
        }
        data.update(extra)
        return data

    def test_create_job_card(self, mock_notify):
        """Any role can open a job card; parts capture the current price"""
        response = self.client.post('/api/v1/job-cards/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['custom_id'].startswith('JOB-'))
        self.assertTrue(response.data['custom_id'].endswith('-001'))
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['vehicle_number'], 'BA 2 PA 4455')
        self.assertEqual(response.data['created_by_name'], 'Ram')
        self.assertEqual(len(response.data['parts']), 1)
        self.assertEqual(response.data['parts'][0]['price'], '150.00')

        job_card = JobCard.objects.get()
        self.assertEqual(job_card.created_by, self.worker)
        self.assertTrue(AuditLog.objects.filter(action='create_job_card', object_reference=job_card.custom_id).exists())
        mock_notify.assert_called_once_with(job_card, self.worker)

    def test_required_fields(self, mock_notify):
        response = self.client.post('/api/v1/job-cards/', {'customer_name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vehicle_number', response.data)
        self.assertIn('issue', response.data)
        mock_notify.assert_not_called()

    def test_unknown_part_rejected(self, mock_notify):
        response = self.client.post('/api/v1/job-cards/', self.payload(parts_used=[{'product_id': 9999, 'qty': 1}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(JobCard.objects.exists())

    def test_zero_quantity_rejected(self, mock_notify):
        response = self.client.post('/api/v1/job-cards/', self.payload(parts_used=[{'product_id': self.product.id, 'qty': 0}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_pending_job_card(self, mock_notify):
        job_card = TestDataFactory.create_job_card(self.worker, parts=[(self.product, 1)])
        response = self.client.patch(f'/api/v1/job-cards/{job_card.id}/', {
            'services_done': 'Replaced oil filter',
            'parts_used': [{'product_id': self.product.id, 'qty': 3}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['services_done'], 'Replaced oil filter')
        self.assertEqual(response.data['parts'][0]['qty'], 3)
        self.assertTrue(AuditLog.objects.filter(action='update_job_card').exists())

    def test_other_worker_cannot_edit(self, mock_notify):
        job_card = TestDataFactory.create_job_card(self.admin)
        response = self.client.patch(f'/api/v1/job-cards/{job_card.id}/', {'issue': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_edit_after_verification(self, mock_notify):
        job_card = TestDataFactory.create_job_card(self.worker, status='verified')
        response = self.client.patch(f'/api/v1/job-cards/{job_card.id}/', {'issue': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_search_and_status(self, mock_notify):
        TestDataFactory.create_job_card(self.worker, customer_name='Gita', vehicle_number='BA1PA1111')
        TestDataFactory.create_job_card(self.worker, customer_name='Hari', vehicle_number='BA2PA2222', status='approved')

        response = self.client.get('/api/v1/job-cards/?search=gita')
        self.assertEqual([j['customer_name'] for j in response.data], ['Gita'])
        response = self.client.get('/api/v1/job-cards/?search=2222')
        self.assertEqual([j['customer_name'] for j in response.data], ['Hari'])
        response = self.client.get('/api/v1/job-cards/?status=approved')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/job-cards/?status=all')
        self.assertEqual(len(response.data), 2)


@patch('backend.job_cards.views.notify_job_approved')
@patch('backend.job_cards.views.notify_job_verified')
class JobCardWorkflowTests(TestCase):
    """Test pending -> verified -> approved and invoice requests"""

    def setUp(self):
        self.owner = TestDataFactory.create_owner()
        self.admin = TestDataFactory.create_admin()
        self.worker = TestDataFactory.create_worker()
        self.job_card = TestDataFactory.create_job_card(self.worker)
        self.client = AuthenticatedAPIClient()

    def set_status(self, user, new_status):
        self.client.authenticate_user(user)
        return self.client.post(f'/api/v1/job-cards/{self.job_card.id}/status/', {'status': new_status}, format='json')

    def test_full_workflow(self, mock_verified, mock_approved):
        response = self.set_status(self.admin, 'verified')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'verified')
        self.assertEqual(response.data['verified_by'], self.admin.id)
        mock_verified.assert_called_once()

        response = self.set_status(self.owner, 'approved')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['approved_by'], self.owner.id)
        self.assertIsNotNone(response.data['approved_at'])
        mock_approved.assert_called_once()

        logs = AuditLog.objects.filter(action='update_job_card').order_by('created_at', 'id')
        self.assertEqual(logs[0].changes['status'], {'old': 'pending', 'new': 'verified'})

    def test_worker_cannot_verify(self, mock_verified, mock_approved):
        response = self.set_status(self.worker, 'verified')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.job_card.refresh_from_db()
        self.assertEqual(self.job_card.status, 'pending')

    def test_admin_cannot_approve(self, mock_verified, mock_approved):
        self.set_status(self.admin, 'verified')
        response = self.set_status(self.admin, 'approved')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_skip_verification(self, mock_verified, mock_approved):
        response = self.set_status(self.owner, 'approved')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_invoice_through_status(self, mock_verified, mock_approved):
        self.set_status(self.admin, 'verified')
        self.set_status(self.owner, 'approved')
        response = self.set_status(self.owner, 'invoiced')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_status(self, mock_verified, mock_approved):
        response = self.set_status(self.owner, 'done')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('backend.job_cards.views.notify_invoice_request')
    def test_request_invoice(self, mock_request, mock_verified, mock_approved):
        self.client.authenticate_user(self.worker)
        response = self.client.post(f'/api/v1/job-cards/{self.job_card.id}/request-invoice/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        JobCard.objects.filter(pk=self.job_card.pk).update(status='approved')
        response = self.client.post(f'/api/v1/job-cards/{self.job_card.id}/request-invoice/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['invoice_requested_by'], self.worker.id)
        mock_request.assert_called_once()

    def test_summary(self, mock_verified, mock_approved):
        TestDataFactory.create_job_card(self.worker, status='approved')
        TestDataFactory.create_job_card(self.worker, status='invoiced')
        self.client.authenticate_user(self.worker)
        response = self.client.get('/api/v1/job-cards/summary/')
        self.assertEqual(response.data, {'total': 3, 'pending': 1, 'verified': 0, 'approved': 1, 'invoiced': 1})

    def test_part_line_total(self, mock_verified, mock_approved):
        product = TestDataFactory.create_product(unit_price='75.50')
        job_card = TestDataFactory.create_job_card(self.worker, parts=[(product, 2)])
        self.assertEqual(job_card.parts.get().line_total, Decimal('151.00'))
