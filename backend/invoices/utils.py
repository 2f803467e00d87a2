"""Invoice totals and invoice creation from an approved job card"""
import logging
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction

from backend.core.cache_signals import suspend_cache_signals, invalidate_all
from backend.core.id_generator import generate_invoice_id, save_with_custom_id
from backend.inventory.models import Product
from backend.job_cards.models import JobCard
from .models import Invoice, InvoiceItem

logger = logging.getLogger('backend.invoices')

CENTS = Decimal('0.01')


class InvoiceError(Exception):
    """Raised when a job card cannot be invoiced"""


def _money(value):
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_invoice_totals(lines, service_charge=None, tax_rate=None):
    """
    Totals for (unit_price, qty) lines.

    A line whose unit price is None (product gone) contributes 0.
    Service charge and tax rate default to WORKSHOP_SERVICE_CHARGE and
    WORKSHOP_TAX_RATE.
    """
    if service_charge is None:
        service_charge = settings.WORKSHOP_SERVICE_CHARGE
    if tax_rate is None:
        tax_rate = settings.WORKSHOP_TAX_RATE
    service_charge = Decimal(str(service_charge))
    tax_rate = Decimal(str(tax_rate))

    parts_total = sum(
        (Decimal(str(unit_price)) * qty for unit_price, qty in lines if unit_price is not None),
        Decimal('0')
    )
    subtotal = parts_total + service_charge
    tax = subtotal * tax_rate
    return {
        'parts_total': _money(parts_total),
        'service_charge': _money(service_charge),
        'subtotal': _money(subtotal),
        'tax_rate': tax_rate,
        'tax': _money(tax),
        'total': _money(subtotal + tax),
    }


def create_invoice_from_job_card(job_card_id, user):
    """
    Invoice an approved job card.

    Prices come from the current product records. Stock is deducted per
    product (never below zero) and the job card is marked invoiced, all in
    one transaction. Returns (invoice, affected_products).
    """
    with suspend_cache_signals():
        with transaction.atomic():
            try:
                job_card = JobCard.objects.select_for_update().get(pk=job_card_id)
            except JobCard.DoesNotExist:
                raise InvoiceError('Job card not found.')
            if job_card.status != JobCard.STATUS_APPROVED:
                raise InvoiceError(f'Only approved job cards can be invoiced (this one is {job_card.status}).')

            parts = list(job_card.parts.all())
            product_ids = {part.product_id for part in parts if part.product_id}
            products = {
                product.id: product
                for product in Product.objects.select_for_update().filter(id__in=product_ids)
            }

            lines = []
            used = OrderedDict()
            for part in parts:
                product = products.get(part.product_id)
                unit_price = product.unit_price if product else None
                lines.append({
                    'product': product,
                    'product_name': product.name if product else (part.product_name or 'Unknown Product'),
                    'qty': part.qty,
                    'unit_price': unit_price,
                })
                if product:
                    used[product.id] = used.get(product.id, 0) + part.qty

            totals = calculate_invoice_totals([(line['unit_price'], line['qty']) for line in lines])

            invoice = Invoice(
                job_card=job_card,
                customer_name=job_card.customer_name,
                vehicle_number=job_card.vehicle_number,
                vehicle_model=job_card.vehicle_model,
                services_done=job_card.services_done,
                created_by=user,
                **totals
            )
            save_with_custom_id(invoice, lambda: generate_invoice_id(user))

            InvoiceItem.objects.bulk_create([
                InvoiceItem(
                    invoice=invoice,
                    product=line['product'],
                    product_name=line['product_name'],
                    qty=line['qty'],
                    unit_price=_money(line['unit_price'] or 0),
                    line_total=_money((line['unit_price'] or 0) * line['qty']),
                )
                for line in lines
            ])

            affected = []
            for product_id, qty in used.items():
                product = products[product_id]
                if qty > product.quantity:
                    logger.warning(f"Invoice {invoice.custom_id} uses {qty} x {product.custom_id} but only {product.quantity} in stock")
                product.quantity = max(0, product.quantity - qty)
                product.last_updated_by = user
                product.save(update_fields=['quantity', 'last_updated_by', 'updated_at'])
                affected.append(product)

            job_card.status = JobCard.STATUS_INVOICED
            job_card.save(update_fields=['status', 'updated_at'])

    transaction.on_commit(invalidate_all)
    logger.info(f"Invoice {invoice.custom_id} created for job card {job_card.custom_id}: total {invoice.total}")
    return invoice, affected
