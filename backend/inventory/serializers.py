from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    stock_status = serializers.CharField(read_only=True)
    total_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    last_updated_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'custom_id', 'name', 'category', 'quantity', 'unit_price', 'description',
                  'low_stock_threshold', 'stock_status', 'total_value',
                  'last_updated_by', 'last_updated_by_name', 'created_at', 'updated_at']
        read_only_fields = ['custom_id', 'last_updated_by', 'created_at', 'updated_at']

    def get_last_updated_by_name(self, obj):
        return obj.last_updated_by.display_name if obj.last_updated_by else None

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Product name is required')
        return value

    def validate_quantity(self, value):
        if value < 0:
            raise serializers.ValidationError('Quantity cannot be negative')
        return value
