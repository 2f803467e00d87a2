import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count
from django.http import HttpResponse
from django.shortcuts import get_object_or_404

from backend.core.permissions import has_role
from backend.core.utils import create_audit_log
from backend.notifications.services import notify_job_completion, check_low_stock
from .filters import InvoiceFilter
from .models import Invoice
from .pdf import render_invoice_pdf
from .serializers import InvoiceSerializer, InvoiceCreateSerializer
from .utils import InvoiceError, create_invoice_from_job_card

logger = logging.getLogger('backend.invoices')


def _invoices():
    return Invoice.objects.select_related('created_by', 'job_card').prefetch_related('items')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_list_create(request):
    """List invoices or invoice an approved job card"""
    if request.method == 'GET':
        invoice_filter = InvoiceFilter(request.query_params, queryset=_invoices().order_by('-created_at'))
        if not invoice_filter.is_valid():
            return Response(invoice_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = InvoiceSerializer(invoice_filter.qs, many=True)
        return Response(serializer.data)

    if not has_role(request.user, 'lv2'):
        logger.warning(f"User {request.user.email} tried to create an invoice without admin role")
        return Response({'error': 'Admin or owner access required to create invoices.'}, status=status.HTTP_403_FORBIDDEN)

    serializer = InvoiceCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        invoice, affected_products = create_invoice_from_job_card(serializer.validated_data['job_card'], request.user)
    except InvoiceError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='create_invoice',
        model_name='Invoice',
        object_id=invoice.id,
        object_name=invoice.vehicle_number,
        object_reference=invoice.custom_id,
        details=f'Created invoice {invoice.custom_id} for {invoice.vehicle_number} (total {invoice.total})',
        changes={
            'job_card': invoice.job_card.custom_id if invoice.job_card else None,
            'total': str(invoice.total),
            'stock': {p.custom_id: p.quantity for p in affected_products},
        },
    )
    if invoice.job_card:
        notify_job_completion(invoice.job_card)
    check_low_stock(affected_products)

    return Response(InvoiceSerializer(get_object_or_404(_invoices(), pk=invoice.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_detail(request, pk):
    """Retrieve an invoice"""
    invoice = get_object_or_404(_invoices(), pk=pk)
    serializer = InvoiceSerializer(invoice)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_summary(request):
    totals = Invoice.objects.aggregate(total_invoices=Count('id'), total_revenue=Sum('total'))
    return Response({
        'total_invoices': totals['total_invoices'] or 0,
        'total_revenue': float(totals['total_revenue'] or 0),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_pdf(request, pk):
    """Download the invoice as a PDF"""
    invoice = get_object_or_404(_invoices(), pk=pk)
    try:
        content = render_invoice_pdf(invoice)
    except Exception as e:
        logger.error(f"Failed to render PDF for invoice {invoice.custom_id}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to generate PDF'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    response = HttpResponse(content, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="invoice-{invoice.custom_id}.pdf"'
    return response
