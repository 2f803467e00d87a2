import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ObjectDoesNotExist
from django.core.mail import send_mail
from django.db.models import Count, Max
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_encode, urlsafe_base64_decode

from .filters import AuditLogFilter
from .models import Setting, AuditLog
from .permissions import (
    HasOwnerRole, HasAdminRole, has_role, get_navigation, get_role_permissions
)
from .serializers import (
    UserSerializer, UserCreateSerializer, LoginSerializer,
    PasswordResetSerializer, PasswordResetConfirmSerializer,
    SettingSerializer, AuditLogSerializer
)
from .utils import create_audit_log

logger = logging.getLogger('backend.core')

User = get_user_model()

# Admins (lv2) only see this much of the activity history
ADMIN_LOG_WINDOW = timedelta(hours=48)


class LoginView(TokenObtainPairView):
    serializer_class = LoginSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as e:
            raise InvalidToken(e.args[0])

        user = serializer.user
        logger.info(f"User {user.email} logged in")
        create_audit_log(
            request=request,
            user=user,
            action='login',
            model_name='User',
            object_id=user.id,
            object_name=user.display_name,
            object_reference=user.custom_id,
            details=f'{user.display_name} logged in',
        )
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    """Custom token refresh view that handles deleted users gracefully"""
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Self sign-up endpoint"""
    serializer = UserCreateSerializer(data=request.data, context={'created_by': 'self'})
    if serializer.is_valid():
        user = serializer.save()
        logger.info(f"New account {user.email} ({user.custom_id}) signed up as {user.role}")
        refresh = LoginSerializer.get_token(user)
        return Response({
            'user': UserSerializer(user).data,
            'access': str(refresh.access_token),
            'refresh': str(refresh),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Blacklist the refresh token so it can no longer be used"""
    refresh = request.data.get('refresh')
    if not refresh:
        return Response({'error': 'Refresh token is required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        RefreshToken(refresh).blacklist()
    except TokenError as e:
        logger.warning(f"Logout failed for {request.user.email}: {str(e)}")
        return Response({'error': 'Failed to log out'}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='logout',
        model_name='User',
        object_id=request.user.id,
        object_name=request.user.display_name,
        object_reference=request.user.custom_id,
        details=f'{request.user.display_name} logged out',
    )
    return Response({'message': 'Logged out successfully'})


@api_view(['POST'])
@permission_classes([AllowAny])
def password_reset(request):
    """Email a password reset link"""
    serializer = PasswordResetSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    email = serializer.validated_data['email']
    user = User.objects.filter(email__iexact=email).first()
    if not user:
        return Response({'error': 'No user found with this email address.'}, status=status.HTTP_400_BAD_REQUEST)
    if user.status != 'active':
        return Response({'error': 'This user account has been disabled.'}, status=status.HTTP_400_BAD_REQUEST)

    uid = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    reset_url = f"{settings.FRONTEND_URL}/reset-password?uid={uid}&token={token}"
    send_mail(
        subject=f'{settings.WORKSHOP_NAME}: reset your password',
        message=(
            f'Hello {user.display_name},\n\n'
            f'Use the link below to choose a new password:\n{reset_url}\n\n'
            'If you did not request a password reset you can ignore this email.'
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    logger.info(f"Password reset email sent to {user.email}")
    return Response({'message': 'Password reset email sent.'})


@api_view(['POST'])
@permission_classes([AllowAny])
def password_reset_confirm(request):
    """Set a new password from a reset link"""
    serializer = PasswordResetConfirmSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        user_id = force_str(urlsafe_base64_decode(serializer.validated_data['uid']))
        user = User.objects.get(pk=user_id)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None

    if user is None or not default_token_generator.check_token(user, serializer.validated_data['token']):
        return Response({'error': 'Reset link is invalid or has expired.'}, status=status.HTTP_400_BAD_REQUEST)

    user.set_password(serializer.validated_data['new_password'])
    user.save()
    logger.info(f"Password reset completed for {user.email}")
    return Response({'message': 'Password has been reset.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role permissions and the navigation they may see"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['permissions'] = get_role_permissions(user)
    user_data['navigation'] = get_navigation(user)
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOwnerRole])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('role', 'custom_id')
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)

    serializer = UserCreateSerializer(
        data=request.data,
        context={'created_by': request.user.custom_id or request.user.username}
    )
    if serializer.is_valid():
        user = serializer.save()
        logger.info(f"User {request.user.email} created account {user.email} ({user.custom_id})")
        create_audit_log(
            request=request,
            action='add_user',
            model_name='User',
            object_id=user.id,
            object_name=user.display_name,
            object_reference=user.custom_id,
            details=f'User {user.display_name} ({user.get_role_display()}) added',
            changes={'role': user.role, 'email': user.email},
        )
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOwnerRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)

    if request.method == 'DELETE':
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        user_id, name, custom_id = user.id, user.display_name, user.custom_id
        user.delete()
        logger.info(f"User {request.user.email} deleted account {name} ({custom_id})")
        create_audit_log(
            request=request,
            action='delete_user',
            model_name='User',
            object_id=user_id,
            object_name=name,
            object_reference=custom_id,
            details=f'User {name} deleted',
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    before = {'role': user.role, 'status': user.status, 'name': user.name, 'email': user.email}
    serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        user = serializer.save()
        after = {'role': user.role, 'status': user.status, 'name': user.name, 'email': user.email}
        changes = {
            field: {'old': before[field], 'new': after[field]}
            for field in before if before[field] != after[field]
        }
        create_audit_log(
            request=request,
            action='update_user',
            model_name='User',
            object_id=user.id,
            object_name=user.display_name,
            object_reference=user.custom_id,
            details=f'User {user.display_name} updated',
            changes=changes,
        )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOwnerRole])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if request.method == 'GET':
        settings_qs = Setting.objects.all()
        serializer = SettingSerializer(settings_qs, many=True)
        return Response(serializer.data)
    serializer = SettingSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOwnerRole])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        serializer = SettingSerializer(setting)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def get_visible_logs(user):
    """Owners see the whole history, admins only the last 48 hours"""
    queryset = AuditLog.objects.select_related('user')
    if not has_role(user, 'owner'):
        queryset = queryset.filter(created_at__gte=timezone.now() - ADMIN_LOG_WINDOW)
    return queryset


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, HasAdminRole])
def audit_log_list(request):
    """List activity logs with search, action, user, date range and ordering filters"""
    queryset = get_visible_logs(request.user).order_by('-created_at')
    log_filter = AuditLogFilter(request.query_params, queryset=queryset)
    if not log_filter.is_valid():
        return Response(log_filter.errors, status=status.HTTP_400_BAD_REQUEST)

    serializer = AuditLogSerializer(log_filter.qs, many=True)
    return Response({
        'window_hours': None if has_role(request.user, 'owner') else int(ADMIN_LOG_WINDOW.total_seconds() // 3600),
        'count': len(serializer.data),
        'results': serializer.data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasAdminRole])
def audit_log_detail(request, pk):
    """Retrieve an activity log entry"""
    audit_log = get_object_or_404(get_visible_logs(request.user), pk=pk)
    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasAdminRole])
def audit_log_user_stats(request):
    """Per-user activity totals over the filtered logs"""
    queryset = get_visible_logs(request.user)
    log_filter = AuditLogFilter(request.query_params, queryset=queryset)
    if not log_filter.is_valid():
        return Response(log_filter.errors, status=status.HTTP_400_BAD_REQUEST)
    logs = log_filter.qs.order_by()

    totals = logs.values('user_id').annotate(total=Count('id'), last_activity=Max('created_at'))
    action_counts = {}
    for row in logs.values('user_id', 'action').annotate(count=Count('id')):
        action_counts.setdefault(row['user_id'], {})[row['action']] = row['count']

    names = dict(
        User.objects.filter(pk__in=[row['user_id'] for row in totals if row['user_id']])
        .values_list('pk', 'name')
    )

    stats = []
    for row in totals:
        stats.append({
            'user_id': row['user_id'],
            'user_name': names.get(row['user_id']) or 'Unknown User',
            'total_actions': row['total'],
            'action_counts': action_counts.get(row['user_id'], {}),
            'last_activity': row['last_activity'],
        })
    stats.sort(key=lambda s: s['total_actions'], reverse=True)
    return Response(stats)
