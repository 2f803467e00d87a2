from rest_framework import serializers
from .models import Invoice, InvoiceItem


class InvoiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceItem
        fields = ['id', 'product', 'product_name', 'qty', 'unit_price', 'line_total']


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, read_only=True)
    job_card_custom_id = serializers.CharField(source='job_card.custom_id', read_only=True, default=None)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            'id', 'custom_id', 'job_card', 'job_card_custom_id', 'customer_name', 'vehicle_number',
            'vehicle_model', 'services_done', 'items', 'parts_total', 'service_charge', 'subtotal',
            'tax_rate', 'tax', 'total', 'created_by', 'created_by_name', 'created_at',
        ]
        read_only_fields = fields

    def get_created_by_name(self, obj):
        return obj.created_by.display_name if obj.created_by else None


class InvoiceCreateSerializer(serializers.Serializer):
    job_card = serializers.IntegerField()
