"""
Human-readable sequential IDs for users, products, job cards and invoices.

Each ID is a prefix followed by a zero-padded counter. The next counter is
one more than the highest number already stored under the prefix. Numbers
are compared as integers so U_O100 follows U_O99.

Formats:
- User:     U_O01 / U_A01 / U_W01 (U_U01 for an unknown role)
- Product:  ENG0001, BRK0001, ... (GEN0001 for an unknown category)
- Job card: JOB-20250114-001 (counter per day)
- Invoice:  INV-20250114-U_A01-001 (counter per user per day)
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

USER_ROLE_PREFIXES = {
    'owner': 'U_O',
    'lv2': 'U_A',
    'lv1': 'U_W',
}
DEFAULT_USER_PREFIX = 'U_U'
DEFAULT_INVOICE_USER_ID = 'U_U01'

PRODUCT_CATEGORY_PREFIXES = {
    'Engine Parts': 'ENG',
    'Brake System': 'BRK',
    'Electrical': 'ELC',
    'Body Parts': 'BDY',
    'Fluids': 'FLD',
    'Tools': 'TLS',
}
DEFAULT_PRODUCT_PREFIX = 'GEN'

MAX_ID_ATTEMPTS = 3


def get_max_number_for_prefix(queryset, prefix, field='custom_id'):
    """Highest integer suffix stored under prefix, 0 when none parses"""
    codes = queryset.filter(
        **{f'{field}__startswith': prefix}
    ).exclude(
        **{f'{field}__isnull': True}
    ).values_list(field, flat=True)

    max_number = 0
    for code in codes:
        suffix = code[len(prefix):]
        try:
            number = int(suffix)
        except ValueError:
            continue
        max_number = max(max_number, number)
    return max_number


def _date_str(today=None):
    today = today or timezone.localdate()
    return today.strftime('%Y%m%d')


def generate_user_id(role):
    from backend.core.models import User

    prefix = USER_ROLE_PREFIXES.get(role, DEFAULT_USER_PREFIX)
    next_number = get_max_number_for_prefix(User.objects.all(), prefix) + 1
    return f"{prefix}{next_number:02d}"


def generate_product_id(category):
    from backend.inventory.models import Product

    prefix = PRODUCT_CATEGORY_PREFIXES.get(category, DEFAULT_PRODUCT_PREFIX)
    next_number = get_max_number_for_prefix(Product.objects.all(), prefix) + 1
    return f"{prefix}{next_number:04d}"


def generate_job_card_id(today=None):
    from backend.job_cards.models import JobCard

    prefix = f"JOB-{_date_str(today)}-"
    next_number = get_max_number_for_prefix(JobCard.objects.all(), prefix) + 1
    return f"{prefix}{next_number:03d}"


def generate_invoice_id(user, today=None):
    from backend.invoices.models import Invoice

    user_custom_id = getattr(user, 'custom_id', None) or DEFAULT_INVOICE_USER_ID
    prefix = f"INV-{_date_str(today)}-{user_custom_id}-"
    next_number = get_max_number_for_prefix(Invoice.objects.all(), prefix) + 1
    return f"{prefix}{next_number:03d}"


def save_with_custom_id(instance, generate, attempts=MAX_ID_ATTEMPTS):
    """
    Assign ``instance.custom_id = generate()`` and save.

    custom_id is unique in every table, so two writers that read the same
    "last" ID cannot both succeed; the loser regenerates and tries again.
    """
    for attempt in range(1, attempts + 1):
        instance.custom_id = generate()
        try:
            with transaction.atomic():
                instance.save()
            return instance
        except IntegrityError:
            if attempt == attempts:
                logger.error(f"Could not allocate a unique custom_id for {type(instance).__name__} after {attempts} attempts")
                raise
            logger.warning(f"custom_id {instance.custom_id} already taken, retrying ({attempt}/{attempts})")
