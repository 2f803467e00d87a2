"""
Firebase Cloud Messaging transport

Builds multicast messages with web push and Android options and sends them
through firebase_admin. When FCM_ENABLED is off, messages are only logged.
"""
import logging

import firebase_admin
from firebase_admin import credentials, messaging
from django.conf import settings

logger = logging.getLogger('backend.notifications')

# FCM accepts at most 500 tokens per multicast
MULTICAST_LIMIT = 500
NOTIFICATION_TAG = 'workshop-notification'
ANDROID_CHANNEL_ID = 'workshop_notifications'
ANDROID_ICON = 'ic_notification'
ANDROID_COLOR = '#4F46E5'


def get_firebase_app():
    """Return the default Firebase app, initialising it from settings on first use"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cred = credentials.Certificate({
        'type': 'service_account',
        'project_id': settings.FIREBASE_PROJECT_ID,
        'private_key_id': settings.FIREBASE_PRIVATE_KEY_ID,
        'private_key': settings.FIREBASE_PRIVATE_KEY,
        'client_email': settings.FIREBASE_CLIENT_EMAIL,
        'client_id': settings.FIREBASE_CLIENT_ID,
        'token_uri': 'https://oauth2.googleapis.com/token',
    })
    logger.info(f"Initialising Firebase app for project {settings.FIREBASE_PROJECT_ID}")
    return firebase_admin.initialize_app(cred, {'projectId': settings.FIREBASE_PROJECT_ID})


def clean_tokens(tokens):
    """Drop empty tokens and duplicates, keeping order"""
    cleaned = []
    for token in tokens or []:
        if isinstance(token, str) and token.strip() and token not in cleaned:
            cleaned.append(token)
    return cleaned


def build_message(title, body, data, tokens):
    # FCM data payloads only carry strings
    payload = {str(key): str(value) for key, value in (data or {}).items() if value is not None}
    return messaging.MulticastMessage(
        tokens=tokens,
        data=payload,
        notification=messaging.Notification(title=title, body=body),
        webpush=messaging.WebpushConfig(
            notification=messaging.WebpushNotification(
                title=title,
                body=body,
                icon=settings.FCM_ICON,
                badge=settings.FCM_BADGE,
                tag=NOTIFICATION_TAG,
                require_interaction=True,
                actions=[
                    messaging.WebpushNotificationAction('view', 'View'),
                    messaging.WebpushNotificationAction('dismiss', 'Dismiss'),
                ],
            ),
        ),
        android=messaging.AndroidConfig(
            priority='high',
            notification=messaging.AndroidNotification(
                title=title,
                body=body,
                icon=ANDROID_ICON,
                color=ANDROID_COLOR,
                sound='default',
                channel_id=ANDROID_CHANNEL_ID,
            ),
        ),
    )


def send_multicast(title, body, data, tokens):
    """
    Send one notification to many device tokens.

    Returns a dict with ``success``, ``success_count``, ``failure_count``,
    per-token ``responses`` and the ``invalid_tokens`` FCM reported as no
    longer registered.
    """
    tokens = clean_tokens(tokens)
    result = {
        'success': False,
        'success_count': 0,
        'failure_count': 0,
        'responses': [],
        'invalid_tokens': [],
    }
    if not tokens:
        return result

    if not settings.FCM_ENABLED:
        logger.info(f"Push disabled, not sending '{title}' to {len(tokens)} device(s): {body}")
        result['skipped'] = True
        return result

    app = get_firebase_app()
    for start in range(0, len(tokens), MULTICAST_LIMIT):
        batch = tokens[start:start + MULTICAST_LIMIT]
        response = messaging.send_each_for_multicast(build_message(title, body, data, batch), app=app)
        result['success_count'] += response.success_count
        result['failure_count'] += response.failure_count

        for token, send_response in zip(batch, response.responses):
            entry = {'token': token, 'success': send_response.success, 'message_id': send_response.message_id}
            if not send_response.success:
                entry['error'] = str(send_response.exception)
                if isinstance(send_response.exception, messaging.UnregisteredError):
                    result['invalid_tokens'].append(token)
            result['responses'].append(entry)

    result['success'] = result['success_count'] > 0
    logger.info(f"Sent '{title}': {result['success_count']} delivered, {result['failure_count']} failed")
    if result['failure_count']:
        failed = [r for r in result['responses'] if not r['success']]
        logger.warning(f"Failed tokens for '{title}': {failed}")
    return result
