"""
Cache invalidation signals
Automatically invalidate cache when products, job cards or invoices change
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache, invalidate_products_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

DASHBOARD_MODELS = ('Product', 'JobCard', 'JobCardPart', 'Invoice', 'InvoiceItem')
PRODUCT_MODELS = ('Product',)


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Used for multi-row writes such as invoice creation.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def invalidate_all():
    """Invalidate every cached summary"""
    invalidate_dashboard_cache()
    invalidate_products_cache()


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    """Invalidate dashboard and inventory caches after the change commits"""
    if is_suspended():
        return

    model_name = sender.__name__
    if model_name not in DASHBOARD_MODELS:
        return
    if sender._meta.app_label not in ('inventory', 'job_cards', 'invoices'):
        return

    def invalidate_after_commit():
        invalidate_dashboard_cache()
        if model_name in PRODUCT_MODELS:
            invalidate_products_cache()

    # Invalidate only after the DB commit
    transaction.on_commit(invalidate_after_commit)
