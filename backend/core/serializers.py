from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed

from .id_generator import generate_user_id, save_with_custom_id
from .models import User, Setting, AuditLog


class UserSerializer(serializers.ModelSerializer):
    role_label = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'custom_id', 'email', 'name', 'role', 'role_label', 'status', 'phone',
                  'created_by', 'last_login', 'created_at', 'updated_at']
        read_only_fields = ['custom_id', 'created_by', 'last_login', 'created_at', 'updated_at']

    def validate_name(self, value):
        if len(value.strip()) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return value.strip()

    def validate_email(self, value):
        value = value.strip().lower()
        others = User.objects.filter(email__iexact=value)
        if self.instance is not None:
            others = others.exclude(pk=self.instance.pk)
        if others.exists():
            raise serializers.ValidationError('An account with this email already exists.')
        return value

    def update(self, instance, validated_data):
        role_changed = 'role' in validated_data and validated_data['role'] != instance.role
        if 'email' in validated_data:
            validated_data['username'] = validated_data['email'][:150]
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if role_changed:
            return save_with_custom_id(instance, lambda: generate_user_id(instance.role))
        instance.save()
        return instance


class UserCreateSerializer(serializers.ModelSerializer):
    """Sign-up and owner-created accounts; email is the login identifier"""
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)
    name = serializers.CharField(max_length=200)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, default=User.ROLE_WORKER)

    class Meta:
        model = User
        fields = ['name', 'email', 'password', 'password_confirm', 'role', 'phone']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return value

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('An account with this email already exists.')
        return value

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password_confirm": "Passwords do not match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        created_by = self.context.get('created_by', 'self')
        user = User(
            username=validated_data['email'][:150],
            created_by=created_by,
            status='active',
            **validated_data
        )
        user.set_password(password)
        return save_with_custom_id(user, lambda: generate_user_id(user.role))


class LoginSerializer(TokenObtainPairSerializer):
    """Email/password login returning the JWT pair and the user's profile"""
    default_error_messages = {
        'no_active_account': 'Invalid email or password.',
    }

    def validate(self, attrs):
        email = attrs.get(self.username_field, '')
        existing = User.objects.filter(email__iexact=email).first()
        if existing and existing.status != 'active':
            raise AuthenticationFailed('This user account has been disabled.')
        if existing:
            attrs[self.username_field] = existing.email

        data = super().validate(attrs)
        data['user'] = {
            'uid': self.user.id,
            'custom_id': self.user.custom_id,
            'email': self.user.email,
            'name': self.user.name or 'User',
            'role': self.user.role or User.ROLE_WORKER,
            'created_at': self.user.created_at,
            'last_login': self.user.last_login,
        }
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.role
        token['custom_id'] = user.custom_id
        return token


class PasswordResetSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetConfirmSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField(write_only=True, validators=[validate_password])


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class AuditLogSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(source='user.id', read_only=True, default=None)
    user_name = serializers.SerializerMethodField()
    action_label = serializers.CharField(read_only=True)
    action_color = serializers.CharField(read_only=True)
    timestamp = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user_id', 'user_name', 'action', 'action_label', 'action_color',
                  'model_name', 'object_id', 'object_name', 'object_reference', 'details',
                  'changes', 'ip_address', 'timestamp']

    def get_user_name(self, obj):
        return obj.user.display_name if obj.user else 'Unknown User'
