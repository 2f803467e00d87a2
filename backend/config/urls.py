"""
URL configuration for the workshop manager backend.

Every app exposes its endpoints under /api/v1/; the Django admin site is
kept for support staff.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Workshop Manager Admin Panel"
admin.site.site_title = "Workshop Manager Admin Portal"
admin.site.index_title = "Welcome to the Workshop Manager Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.inventory.urls')),
    path('api/v1/', include('backend.job_cards.urls')),
    path('api/v1/', include('backend.invoices.urls')),
    path('api/v1/', include('backend.notifications.urls')),
    path('api/v1/', include('backend.reports.urls')),
]
