from django.urls import path
from .views import (
    job_card_list_create, job_card_detail, job_card_summary,
    job_card_update_status, job_card_request_invoice,
)

urlpatterns = [
    path('job-cards/', job_card_list_create, name='job-card-list-create'),
    path('job-cards/summary/', job_card_summary, name='job-card-summary'),
    path('job-cards/<int:pk>/', job_card_detail, name='job-card-detail'),
    path('job-cards/<int:pk>/status/', job_card_update_status, name='job-card-update-status'),
    path('job-cards/<int:pk>/request-invoice/', job_card_request_invoice, name='job-card-request-invoice'),
]
