"""
Test suite for Notifications module
Tests: templates, token handling, role fan-out, FCM transport, endpoints, low stock command
"""
from io import StringIO
from unittest.mock import patch, MagicMock

from django.core.management import call_command
from django.test import TestCase, override_settings
from firebase_admin import messaging
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications import services
from backend.notifications.fcm import clean_tokens, send_multicast


def batch_response(*results):
    """Fake firebase BatchResponse; each result is True or an exception"""
    responses = []
    for result in results:
        if result is True:
            responses.append(MagicMock(success=True, message_id='msg-1', exception=None))
        else:
            responses.append(MagicMock(success=False, message_id=None, exception=result))
    success = sum(1 for r in responses if r.success)
    return MagicMock(responses=responses, success_count=success, failure_count=len(responses) - success)


class TemplateTests(TestCase):
    """Test notification templates"""

    def test_low_stock_template(self):
        notification = services.get_notification_template('LOW_STOCK', product_name='Brake Pads', quantity=3, product_id='BRK0001')
        self.assertEqual(notification['title'], '⚠️ Low Stock Alert')
        self.assertEqual(notification['body'], 'Brake Pads is running low (3 remaining)')
        self.assertEqual(notification['data'], {'type': 'LOW_STOCK', 'productId': 'BRK0001'})
        self.assertEqual(notification['target_roles'], ['owner', 'lv2'])

    def test_job_templates(self):
        notification = services.get_notification_template('INVOICE_REQUEST', worker_name='Ram', job_card_id='JOB-20250101-001')
        self.assertEqual(notification['body'], 'Ram has requested invoice generation for job JOB-20250101-001')
        self.assertEqual(notification['target_roles'], ['owner'])

        notification = services.get_notification_template('JOB_COMPLETION', job_card_id='JOB-1', vehicle_number='BA1')
        self.assertEqual(notification['target_roles'], ['owner', 'lv2', 'lv1'])
        self.assertEqual(notification['data']['jobCardId'], 'JOB-1')

    def test_unknown_type(self):
        self.assertIsNone(services.get_notification_template('BIRTHDAY'))


class TokenTests(TestCase):
    """Test device token registration and cleanup"""

    def setUp(self):
        self.user = TestDataFactory.create_worker()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_register_and_remove_token(self):
        response = self.client.post('/api/v1/notifications/tokens/', {'token': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client.post('/api/v1/notifications/tokens/', {'token': 'abc'}, format='json')
        self.client.post('/api/v1/notifications/tokens/', {'token': 'def'}, format='json')
        self.user.refresh_from_db()
        self.assertEqual(self.user.fcm_tokens, ['abc', 'def'])
        self.assertIsNotNone(self.user.last_token_update)

        response = self.client.delete('/api/v1/notifications/tokens/', {'token': 'abc'}, format='json')
        self.assertEqual(response.data['token_count'], 1)
        self.user.refresh_from_db()
        self.assertEqual(self.user.fcm_tokens, ['def'])

    def test_blank_token_rejected(self):
        response = self.client.post('/api/v1/notifications/tokens/', {'token': '  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_clean_tokens(self):
        self.assertEqual(clean_tokens(['a', '', '  ', None, 'a', 'b']), ['a', 'b'])


@override_settings(FCM_ENABLED=True)
@patch('backend.notifications.fcm.get_firebase_app')
@patch('backend.notifications.fcm.messaging.send_each_for_multicast')
class TransportTests(TestCase):
    """Test FCM sending with firebase mocked"""

    def test_send_multicast(self, mock_send, mock_app):
        mock_send.return_value = batch_response(True, Exception('quota'))
        result = send_multicast('Hi', 'There', {'n': 1}, ['t1', 't2', ''])
        self.assertTrue(result['success'])
        self.assertEqual(result['success_count'], 1)
        self.assertEqual(result['failure_count'], 1)
        self.assertEqual(result['responses'][1]['error'], 'quota')

        message = mock_send.call_args[0][0]
        self.assertEqual(message.tokens, ['t1', 't2'])
        self.assertEqual(message.data, {'n': '1'})
        self.assertEqual(message.android.priority, 'high')
        self.assertEqual(message.android.notification.channel_id, 'workshop_notifications')
        self.assertEqual(message.webpush.notification.tag, 'workshop-notification')
        self.assertTrue(message.webpush.notification.require_interaction)

    def test_unregistered_tokens_are_pruned(self, mock_send, mock_app):
        owner = TestDataFactory.create_owner(fcm_tokens=['good', 'stale'])
        mock_send.return_value = batch_response(True, messaging.UnregisteredError('gone'))
        notification = services.get_notification_template('LOW_STOCK', product_name='Fuse', quantity=1, product_id='ELC0001')
        services.send_role_based_notification(notification)
        owner.refresh_from_db()
        self.assertEqual(owner.fcm_tokens, ['good'])

    def test_role_targeting(self, mock_send, mock_app):
        TestDataFactory.create_owner(fcm_tokens=['owner-token'])
        TestDataFactory.create_admin(fcm_tokens=['admin-token'])
        TestDataFactory.create_worker(fcm_tokens=['worker-token'])
        TestDataFactory.create_admin(fcm_tokens=['disabled-token'], status='disabled')
        mock_send.return_value = batch_response(True)

        notification = services.get_notification_template('INVOICE_REQUEST', worker_name='Ram', job_card_id='JOB-1')
        services.send_role_based_notification(notification)
        self.assertEqual(mock_send.call_args[0][0].tokens, ['owner-token'])

        notification = services.get_notification_template('LOW_STOCK', product_name='X', quantity=1, product_id='GEN0001')
        mock_send.return_value = batch_response(True, True)
        services.send_role_based_notification(notification)
        self.assertEqual(sorted(mock_send.call_args[0][0].tokens), ['admin-token', 'owner-token'])

    def test_job_verified_goes_to_creator(self, mock_send, mock_app):
        worker = TestDataFactory.create_worker(fcm_tokens=['creator'])
        TestDataFactory.create_worker(fcm_tokens=['someone-else'])
        job_card = TestDataFactory.create_job_card(worker)
        mock_send.return_value = batch_response(True)
        services.notify_job_verified(job_card)
        self.assertEqual(mock_send.call_args[0][0].tokens, ['creator'])

    def test_delivery_failure_is_swallowed(self, mock_send, mock_app):
        TestDataFactory.create_owner(fcm_tokens=['t'])
        mock_send.side_effect = Exception('network down')
        job_card = TestDataFactory.create_job_card(TestDataFactory.create_worker())
        self.assertIsNone(services.notify_job_completion(job_card))


class DisabledTransportTests(TestCase):

    @override_settings(FCM_ENABLED=False)
    @patch('backend.notifications.fcm.messaging.send_each_for_multicast')
    def test_disabled_push_only_logs(self, mock_send):
        result = send_multicast('Hi', 'There', {}, ['t1'])
        self.assertTrue(result['skipped'])
        mock_send.assert_not_called()


@patch('backend.notifications.services.send_role_based_notification')
class LowStockTests(TestCase):
    """Test low stock alerts"""

    def test_one_alert_per_low_product(self, mock_send):
        TestDataFactory.create_product(name='Fuse', quantity=10)
        TestDataFactory.create_product(name='Bulb', quantity=0)
        TestDataFactory.create_product(name='Belt', quantity=11)
        self.assertEqual(services.check_low_stock(), 2)
        bodies = sorted(call[0][0]['body'] for call in mock_send.call_args_list)
        self.assertEqual(bodies, ['Bulb is running low (0 remaining)', 'Fuse is running low (10 remaining)'])

    def test_explicit_products_filtered(self, mock_send):
        low = TestDataFactory.create_product(quantity=2)
        high = TestDataFactory.create_product(quantity=40)
        self.assertEqual(services.check_low_stock([low, high]), 1)

    def test_management_command(self, mock_send):
        TestDataFactory.create_product(quantity=1)
        out = StringIO()
        call_command('check_low_stock', stdout=out)
        self.assertIn('1 product(s) low on stock', out.getvalue())
        mock_send.assert_called_once()


class SendEndpointTests(TestCase):
    """Test the send notification endpoint"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_title_and_body_required(self):
        response = self.client.post('/api/v1/notifications/send/', {'tokens': ['t']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Title and body are required')

    def test_tokens_required(self):
        response = self.client.post('/api/v1/notifications/send/', {'title': 'a', 'body': 'b', 'tokens': ['', ' ']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Valid tokens array is required')

    def test_worker_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_worker())
        response = self.client.post('/api/v1/notifications/send/', {'title': 'a', 'body': 'b', 'tokens': ['t']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @override_settings(FCM_ENABLED=True)
    @patch('backend.notifications.fcm.get_firebase_app')
    @patch('backend.notifications.fcm.messaging.send_each_for_multicast')
    def test_send_to_tokens(self, mock_send, mock_app):
        mock_send.return_value = batch_response(True, True)
        response = self.client.post('/api/v1/notifications/send/', {
            'title': 'Shop closed', 'body': 'Closed tomorrow', 'tokens': ['t1', 't2'], 'data': {'type': 'INFO'}
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['success_count'], 2)
        self.assertEqual(response.data['failure_count'], 0)
