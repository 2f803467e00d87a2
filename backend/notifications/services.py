"""
Workshop notifications

Templates for each business event, role-based fan-out to the device tokens
stored on users, and the low stock check. Delivery failures are logged and
never raised to the caller.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from .fcm import send_multicast

logger = logging.getLogger('backend.notifications')

User = get_user_model()

NOTIFICATION_TEMPLATES = {
    'LOW_STOCK': {
        'title': '⚠️ Low Stock Alert',
        'body': '{product_name} is running low ({quantity} remaining)',
        'data_key': 'productId',
        'data_value': 'product_id',
        'target_roles': ['owner', 'lv2'],
    },
    'NEW_JOB_CARD': {
        'title': '📋 New Job Card Created',
        'body': 'Job card for {vehicle_number} has been created by {created_by}',
        'data_key': 'jobCardId',
        'data_value': 'job_card_id',
        'target_roles': ['owner', 'lv2'],
    },
    'INVOICE_REQUEST': {
        'title': '💰 Invoice Request',
        'body': '{worker_name} has requested invoice generation for job {job_card_id}',
        'data_key': 'jobCardId',
        'data_value': 'job_card_id',
        'target_roles': ['owner'],
    },
    'JOB_COMPLETION': {
        'title': '✅ Job Completed',
        'body': 'Job card {job_card_id} for {vehicle_number} has been completed',
        'data_key': 'jobCardId',
        'data_value': 'job_card_id',
        'target_roles': ['owner', 'lv2', 'lv1'],
    },
    'JOB_VERIFIED': {
        'title': '✅ Job Verified',
        'body': 'Your job card {job_card_id} has been verified and is ready for approval',
        'data_key': 'jobCardId',
        'data_value': 'job_card_id',
        'target_roles': ['lv1'],
    },
    'JOB_APPROVED': {
        'title': '🎉 Job Approved',
        'body': 'Job card {job_card_id} has been approved and is ready for invoicing',
        'data_key': 'jobCardId',
        'data_value': 'job_card_id',
        'target_roles': ['lv2', 'lv1'],
    },
}


class _Blank(dict):
    def __missing__(self, key):
        return ''


def get_notification_template(notification_type, **data):
    """Fill in a notification template; None for an unknown type"""
    template = NOTIFICATION_TEMPLATES.get(notification_type)
    if template is None:
        return None
    values = _Blank(data)
    return {
        'type': notification_type,
        'title': template['title'],
        'body': template['body'].format_map(values),
        'data': {'type': notification_type, template['data_key']: str(values[template['data_value']])},
        'target_roles': list(template['target_roles']),
    }


def send_to_tokens(notification, tokens):
    """Send a notification to explicit tokens and drop tokens FCM no longer knows"""
    try:
        result = send_multicast(notification['title'], notification['body'], notification.get('data'), tokens)
    except Exception as e:
        logger.error(f"Error sending notification '{notification.get('title')}': {str(e)}", exc_info=True)
        return None

    if result['invalid_tokens']:
        remove_tokens(result['invalid_tokens'])
    return result


def send_role_based_notification(notification):
    """Send to every active user whose role is one of the notification's target roles"""
    if not notification:
        return None
    users = User.objects.filter(role__in=notification['target_roles'], status='active')
    tokens = []
    for user in users:
        tokens.extend(user.fcm_tokens or [])
    if not tokens:
        logger.debug(f"No registered devices for roles {notification['target_roles']}")
        return None
    return send_to_tokens(notification, tokens)


def send_to_specific_user(notification, user):
    if not notification or user is None or not user.fcm_tokens:
        return None
    return send_to_tokens(notification, user.fcm_tokens)


def register_token(user, token):
    """Add a device token to the user's set of tokens"""
    tokens = list(user.fcm_tokens or [])
    if token not in tokens:
        tokens.append(token)
    user.fcm_tokens = tokens
    user.last_token_update = timezone.now()
    user.save(update_fields=['fcm_tokens', 'last_token_update'])
    return tokens


def unregister_token(user, token):
    tokens = [t for t in (user.fcm_tokens or []) if t != token]
    user.fcm_tokens = tokens
    user.last_token_update = timezone.now()
    user.save(update_fields=['fcm_tokens', 'last_token_update'])
    return tokens


def remove_tokens(tokens):
    """Remove tokens from whichever users hold them"""
    stale = set(tokens)
    for user in User.objects.all():
        current = user.fcm_tokens or []
        kept = [t for t in current if t not in stale]
        if len(kept) != len(current):
            user.fcm_tokens = kept
            user.save(update_fields=['fcm_tokens'])
            logger.info(f"Removed {len(current) - len(kept)} unregistered token(s) from {user.email}")


def _job_card_ref(job_card):
    return job_card.custom_id or job_card.id


def check_low_stock(products=None):
    """Send one LOW_STOCK alert per product at or under the low stock threshold; returns the alert count"""
    threshold = settings.LOW_STOCK_THRESHOLD
    if products is None:
        from backend.inventory.models import Product
        products = Product.objects.filter(quantity__lte=threshold)

    sent = 0
    for product in products:
        if product.quantity > threshold:
            continue
        notification = get_notification_template(
            'LOW_STOCK',
            product_name=product.name,
            quantity=product.quantity,
            product_id=product.custom_id or product.id,
        )
        send_role_based_notification(notification)
        sent += 1
    if sent:
        logger.info(f"Low stock alerts sent for {sent} product(s)")
    return sent


def notify_new_job_card(job_card, created_by):
    notification = get_notification_template(
        'NEW_JOB_CARD',
        vehicle_number=job_card.vehicle_number,
        created_by=created_by.display_name if created_by else 'Unknown',
        job_card_id=_job_card_ref(job_card),
    )
    return send_role_based_notification(notification)


def notify_invoice_request(job_card, worker):
    notification = get_notification_template(
        'INVOICE_REQUEST',
        worker_name=worker.display_name,
        job_card_id=_job_card_ref(job_card),
        vehicle_number=job_card.vehicle_number,
    )
    return send_role_based_notification(notification)


def notify_job_completion(job_card):
    notification = get_notification_template(
        'JOB_COMPLETION',
        job_card_id=_job_card_ref(job_card),
        vehicle_number=job_card.vehicle_number,
        customer_name=job_card.customer_name,
    )
    return send_role_based_notification(notification)


def notify_job_verified(job_card):
    """Tell the worker who opened the job card"""
    notification = get_notification_template(
        'JOB_VERIFIED',
        job_card_id=_job_card_ref(job_card),
        vehicle_number=job_card.vehicle_number,
    )
    return send_to_specific_user(notification, job_card.created_by)


def notify_job_approved(job_card):
    notification = get_notification_template(
        'JOB_APPROVED',
        job_card_id=_job_card_ref(job_card),
        vehicle_number=job_card.vehicle_number,
    )
    return send_role_based_notification(notification)
