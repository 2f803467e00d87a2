import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.core.permissions import has_role
from backend.core.utils import create_audit_log
from backend.notifications.services import (
    notify_new_job_card, notify_job_verified, notify_job_approved, notify_invoice_request
)
from .filters import JobCardFilter
from .models import JobCard
from .serializers import JobCardSerializer, JobCardStatusSerializer

logger = logging.getLogger('backend.job_cards')

# target status -> (required current status, required role)
STATUS_TRANSITIONS = {
    JobCard.STATUS_VERIFIED: (JobCard.STATUS_PENDING, 'lv2'),
    JobCard.STATUS_APPROVED: (JobCard.STATUS_VERIFIED, 'owner'),
}


def _job_cards():
    return JobCard.objects.select_related(
        'created_by', 'verified_by', 'approved_by', 'invoice_requested_by', 'invoice'
    ).prefetch_related('parts__product')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def job_card_list_create(request):
    """List job cards (newest first) or open a new one"""
    if request.method == 'GET':
        job_card_filter = JobCardFilter(request.query_params, queryset=_job_cards().order_by('-created_at'))
        if not job_card_filter.is_valid():
            return Response(job_card_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = JobCardSerializer(job_card_filter.qs, many=True)
        return Response(serializer.data)

    serializer = JobCardSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    job_card = serializer.save(created_by=request.user)

    logger.info(f"User {request.user.email} created job card {job_card.custom_id} for {job_card.vehicle_number}")
    create_audit_log(
        request=request,
        action='create_job_card',
        model_name='JobCard',
        object_id=job_card.id,
        object_name=job_card.vehicle_number,
        object_reference=job_card.custom_id,
        details=f'Created job card for {job_card.vehicle_number} ({job_card.customer_name})',
        changes={'parts': [{'product': p.product_name, 'qty': p.qty} for p in job_card.parts.all()]},
    )
    notify_new_job_card(job_card, request.user)
    return Response(JobCardSerializer(job_card).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def job_card_detail(request, pk):
    """Retrieve a job card, or edit it while it is still pending"""
    job_card = get_object_or_404(_job_cards(), pk=pk)

    if request.method == 'GET':
        serializer = JobCardSerializer(job_card)
        return Response(serializer.data)

    if job_card.created_by_id != request.user.id and not has_role(request.user, 'lv2'):
        return Response({'error': 'You can only edit your own job cards.'}, status=status.HTTP_403_FORBIDDEN)
    if job_card.status != JobCard.STATUS_PENDING:
        return Response({'error': f'Job card is {job_card.status} and can no longer be edited.'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = JobCardSerializer(job_card, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    job_card = serializer.save()

    create_audit_log(
        request=request,
        action='update_job_card',
        model_name='JobCard',
        object_id=job_card.id,
        object_name=job_card.vehicle_number,
        object_reference=job_card.custom_id,
        details=f'Updated job card details for {job_card.vehicle_number}',
        changes={key: str(value) for key, value in request.data.items() if key != 'parts_used'},
    )
    return Response(JobCardSerializer(get_object_or_404(_job_cards(), pk=pk)).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def job_card_summary(request):
    """Job card counts per status"""
    counts = dict(JobCard.objects.order_by().values_list('status').annotate(count=Count('id')))
    summary = {'total': sum(counts.values())}
    for value, _label in JobCard.STATUS_CHOICES:
        summary[value] = counts.get(value, 0)
    return Response(summary)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def job_card_update_status(request, pk):
    """Move a job card forward: pending -> verified (admin), verified -> approved (owner)"""
    job_card = get_object_or_404(JobCard, pk=pk)
    serializer = JobCardStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']

    transition = STATUS_TRANSITIONS.get(new_status)
    if transition is None or transition[0] != job_card.status:
        return Response(
            {'error': f'Cannot change job card status from {job_card.status} to {new_status}.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    required_role = transition[1]
    if not has_role(request.user, required_role):
        logger.warning(f"User {request.user.email} ({request.user.role}) tried to set {job_card.custom_id} to {new_status}")
        return Response(
            {'error': f'You do not have permission to mark job cards as {new_status}.'},
            status=status.HTTP_403_FORBIDDEN
        )

    old_status = job_card.status
    job_card.status = new_status
    now = timezone.now()
    if new_status == JobCard.STATUS_VERIFIED:
        job_card.verified_by = request.user
        job_card.verified_at = now
    else:
        job_card.approved_by = request.user
        job_card.approved_at = now
    job_card.save()

    logger.info(f"User {request.user.email} moved job card {job_card.custom_id} from {old_status} to {new_status}")
    create_audit_log(
        request=request,
        action='update_job_card',
        model_name='JobCard',
        object_id=job_card.id,
        object_name=job_card.vehicle_number,
        object_reference=job_card.custom_id,
        details=f'Job card status updated from {old_status} to {new_status}',
        changes={'status': {'old': old_status, 'new': new_status}},
    )
    if new_status == JobCard.STATUS_VERIFIED:
        notify_job_verified(job_card)
    else:
        notify_job_approved(job_card)

    return Response(JobCardSerializer(get_object_or_404(_job_cards(), pk=pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def job_card_request_invoice(request, pk):
    """Ask the owner to raise the invoice for an approved job card"""
    job_card = get_object_or_404(JobCard, pk=pk)
    if job_card.status != JobCard.STATUS_APPROVED:
        return Response(
            {'error': 'Invoices can only be requested for approved job cards.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    job_card.invoice_requested_by = request.user
    job_card.invoice_requested_at = timezone.now()
    job_card.save(update_fields=['invoice_requested_by', 'invoice_requested_at', 'updated_at'])

    logger.info(f"User {request.user.email} requested an invoice for job card {job_card.custom_id}")
    notify_invoice_request(job_card, request.user)
    return Response(JobCardSerializer(get_object_or_404(_job_cards(), pk=pk)).data)
