from django.contrib import admin
from .models import Invoice, InvoiceItem


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'qty', 'unit_price', 'line_total']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['custom_id', 'customer_name', 'vehicle_number', 'total', 'created_by', 'created_at']
    list_filter = ['created_at']
    search_fields = ['custom_id', 'customer_name', 'vehicle_number']
    ordering = ['-created_at']
    readonly_fields = ['custom_id', 'parts_total', 'service_charge', 'subtotal', 'tax_rate', 'tax', 'total', 'created_at']
    inlines = [InvoiceItemInline]
