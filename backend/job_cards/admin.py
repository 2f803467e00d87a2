from django.contrib import admin
from .models import JobCard, JobCardPart


class JobCardPartInline(admin.TabularInline):
    model = JobCardPart
    extra = 1


@admin.register(JobCard)
class JobCardAdmin(admin.ModelAdmin):
    list_display = ['custom_id', 'customer_name', 'vehicle_number', 'vehicle_model', 'status', 'created_by', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['custom_id', 'customer_name', 'vehicle_number']
    ordering = ['-created_at']
    readonly_fields = ['custom_id', 'created_at', 'updated_at', 'verified_at', 'approved_at', 'invoice_requested_at']
    inlines = [JobCardPartInline]
