import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from backend.core.permissions import HasAdminRole
from .serializers import SendNotificationSerializer, DeviceTokenSerializer
from .services import send_to_tokens, send_role_based_notification, register_token, unregister_token

logger = logging.getLogger('backend.notifications')


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasAdminRole])
def send_notification(request):
    """Send a push notification to explicit tokens or to every user holding one of the target roles"""
    serializer = SendNotificationSerializer(data=request.data)
    if not serializer.is_valid():
        errors = serializer.errors
        if 'error' in errors:
            return Response({'error': errors['error'][0]}, status=status.HTTP_400_BAD_REQUEST)
        return Response(errors, status=status.HTTP_400_BAD_REQUEST)

    payload = serializer.validated_data
    notification = {
        'title': payload['title'],
        'body': payload['body'],
        'data': payload.get('data') or {},
        'target_roles': payload.get('target_roles') or [],
    }
    logger.info(f"User {request.user.email} sending notification '{notification['title']}'")

    if payload['tokens']:
        result = send_to_tokens(notification, payload['tokens'])
    else:
        result = send_role_based_notification(notification)

    if result is None and payload['tokens']:
        return Response({'error': 'Failed to send notification'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if result is None:
        return Response({'error': 'No registered devices for the target roles'}, status=status.HTTP_400_BAD_REQUEST)
    return Response({
        'success': result['success'],
        'success_count': result['success_count'],
        'failure_count': result['failure_count'],
        'responses': result['responses'],
    })


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def device_tokens(request):
    """Register or remove the caller's push token"""
    serializer = DeviceTokenSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    token = serializer.validated_data['token']

    if request.method == 'POST':
        tokens = register_token(request.user, token)
        logger.info(f"User {request.user.email} registered a device token ({len(tokens)} total)")
        return Response({'message': 'Token registered', 'token_count': len(tokens)})

    tokens = unregister_token(request.user, token)
    logger.info(f"User {request.user.email} removed a device token ({len(tokens)} left)")
    return Response({'message': 'Token removed', 'token_count': len(tokens)})
