from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['custom_id', 'name', 'category', 'quantity', 'unit_price', 'stock_status', 'last_updated_by', 'updated_at']
    list_filter = ['category', 'updated_at']
    search_fields = ['custom_id', 'name', 'description']
    ordering = ['name']
    readonly_fields = ['custom_id', 'created_at', 'updated_at']
