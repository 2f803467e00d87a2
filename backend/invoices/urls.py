from django.urls import path
from .views import invoice_list_create, invoice_detail, invoice_summary, invoice_pdf

urlpatterns = [
    path('invoices/', invoice_list_create, name='invoice-list-create'),
    path('invoices/summary/', invoice_summary, name='invoice-summary'),
    path('invoices/<int:pk>/', invoice_detail, name='invoice-detail'),
    path('invoices/<int:pk>/pdf/', invoice_pdf, name='invoice-pdf'),
]
