from rest_framework import serializers

from backend.core.models import User


class SendNotificationSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True)
    body = serializers.CharField(required=False, allow_blank=True)
    data = serializers.DictField(required=False, default=dict)
    tokens = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False)
    target_roles = serializers.ListField(
        child=serializers.ChoiceField(choices=[role for role, _label in User.ROLE_CHOICES]),
        required=False
    )

    def validate(self, attrs):
        if not attrs.get('title') or not attrs.get('body'):
            raise serializers.ValidationError({'error': 'Title and body are required'})
        tokens = [t for t in attrs.get('tokens') or [] if t.strip()]
        if not tokens and not attrs.get('target_roles'):
            raise serializers.ValidationError({'error': 'Valid tokens array is required'})
        attrs['tokens'] = tokens
        return attrs


class DeviceTokenSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=4096)

    def validate_token(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Token is required')
        return value
