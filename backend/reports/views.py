import logging
from datetime import timedelta

from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum
from django.utils import timezone

from backend.core.cache_utils import DASHBOARD_CACHE_KEY, get_cached, set_cached, get_dashboard_ttl
from backend.inventory.models import Product
from backend.invoices.models import Invoice
from backend.job_cards.models import JobCard
from .analytics import (
    process_revenue_data, process_job_card_status_data, process_inventory_data,
    process_top_products_data, process_weekly_job_cards, calculate_growth_rate, get_top_customers,
)

logger = logging.getLogger('backend.reports')

# Dashboard "low stock" counts strictly under this quantity
DASHBOARD_LOW_STOCK_BELOW = 10


def _month_bounds(today):
    this_month = today.replace(day=1)
    last_month = (this_month - timedelta(days=1)).replace(day=1)
    return this_month, last_month


def build_dashboard(today=None):
    """Stats and chart series for the dashboard"""
    today = today or timezone.localdate()
    products = list(Product.objects.only('name', 'category', 'quantity', 'unit_price'))
    job_cards = list(JobCard.objects.only('status', 'customer_name', 'created_at'))
    invoices = list(Invoice.objects.only('total', 'created_at'))

    this_month, last_month = _month_bounds(today)
    current_revenue = Invoice.objects.filter(created_at__date__gte=this_month).aggregate(total=Sum('total'))['total'] or 0
    previous_revenue = Invoice.objects.filter(
        created_at__date__gte=last_month, created_at__date__lt=this_month
    ).aggregate(total=Sum('total'))['total'] or 0

    stats = {
        'products': len(products),
        'job_cards': len(job_cards),
        'invoices': len(invoices),
        'total_revenue': float(sum(invoice.total for invoice in invoices)),
        'completed_jobs': sum(1 for job_card in job_cards if job_card.status == JobCard.STATUS_INVOICED),
        'pending_jobs': sum(1 for job_card in job_cards if job_card.status == JobCard.STATUS_PENDING),
        'low_stock_items': sum(1 for product in products if product.quantity < DASHBOARD_LOW_STOCK_BELOW),
    }
    analytics = {
        'revenue_data': process_revenue_data(invoices),
        'job_card_status_data': process_job_card_status_data(job_cards),
        'inventory_data': process_inventory_data(products),
        'top_products': process_top_products_data(products),
        'weekly_job_cards': process_weekly_job_cards(job_cards, today),
        'top_customers': get_top_customers(job_cards),
        'growth_rate': calculate_growth_rate(current_revenue, previous_revenue),
    }
    return {'stats': stats, 'analytics': analytics, 'generated_at': timezone.now().isoformat()}


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Dashboard stats and analytics, cached until products, job cards or invoices change"""
    data, hit = get_cached(DASHBOARD_CACHE_KEY)
    if hit:
        return Response(data)

    data = build_dashboard()
    set_cached(DASHBOARD_CACHE_KEY, data, get_dashboard_ttl())
    logger.info(f"Dashboard rebuilt for {request.user.email}")
    return Response(data)
