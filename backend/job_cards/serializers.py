from rest_framework import serializers
from django.db import transaction

from backend.core.id_generator import generate_job_card_id, save_with_custom_id
from backend.inventory.models import Product
from .models import JobCard, JobCardPart


class JobCardPartSerializer(serializers.ModelSerializer):
    product_custom_id = serializers.CharField(source='product.custom_id', read_only=True, default=None)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = JobCardPart
        fields = ['id', 'product', 'product_custom_id', 'product_name', 'qty', 'price', 'line_total']


class PartInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    qty = serializers.IntegerField(min_value=1)


def _user_name(user):
    return user.display_name if user else None


class JobCardSerializer(serializers.ModelSerializer):
    parts = JobCardPartSerializer(many=True, read_only=True)
    parts_used = PartInputSerializer(many=True, write_only=True, required=False)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    created_by_name = serializers.SerializerMethodField()
    verified_by_name = serializers.SerializerMethodField()
    approved_by_name = serializers.SerializerMethodField()
    invoice_requested_by_name = serializers.SerializerMethodField()
    invoice_id = serializers.SerializerMethodField()

    class Meta:
        model = JobCard
        fields = [
            'id', 'custom_id', 'customer_name', 'vehicle_number', 'vehicle_model', 'issue',
            'services_done', 'status', 'status_label', 'parts', 'parts_used',
            'created_by', 'created_by_name', 'verified_by', 'verified_by_name', 'verified_at',
            'approved_by', 'approved_by_name', 'approved_at',
            'invoice_requested_by', 'invoice_requested_by_name', 'invoice_requested_at',
            'invoice_id', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'custom_id', 'status', 'created_by', 'verified_by', 'verified_at', 'approved_by',
            'approved_at', 'invoice_requested_by', 'invoice_requested_at', 'created_at', 'updated_at',
        ]

    def get_created_by_name(self, obj):
        return _user_name(obj.created_by)

    def get_verified_by_name(self, obj):
        return _user_name(obj.verified_by)

    def get_approved_by_name(self, obj):
        return _user_name(obj.approved_by)

    def get_invoice_requested_by_name(self, obj):
        return _user_name(obj.invoice_requested_by)

    def get_invoice_id(self, obj):
        invoice = getattr(obj, 'invoice', None)
        return invoice.id if invoice else None

    def validate_customer_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Customer name is required')
        return value

    def validate_vehicle_number(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError('Vehicle number is required')
        return value

    def validate_parts_used(self, value):
        product_ids = [part['product_id'] for part in value]
        products = Product.objects.in_bulk(product_ids)
        missing = sorted({pid for pid in product_ids if pid not in products})
        if missing:
            raise serializers.ValidationError(f'Product(s) not found: {", ".join(str(pid) for pid in missing)}')
        return [{'product': products[part['product_id']], 'qty': part['qty']} for part in value]

    def _set_parts(self, job_card, parts):
        job_card.parts.all().delete()
        JobCardPart.objects.bulk_create([
            JobCardPart(
                job_card=job_card,
                product=part['product'],
                product_name=part['product'].name,
                qty=part['qty'],
                price=part['product'].unit_price,
            )
            for part in parts
        ])

    @transaction.atomic
    def create(self, validated_data):
        parts = validated_data.pop('parts_used', [])
        job_card = JobCard(**validated_data)
        save_with_custom_id(job_card, generate_job_card_id)
        self._set_parts(job_card, parts)
        return job_card

    @transaction.atomic
    def update(self, instance, validated_data):
        parts = validated_data.pop('parts_used', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if parts is not None:
            self._set_parts(instance, parts)
        return instance


class JobCardStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=JobCard.STATUS_CHOICES)
