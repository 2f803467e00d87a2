"""
Dashboard analytics

Pure aggregation over in-memory records. Records may be model instances or
dicts with the same field names.
"""
from collections import OrderedDict
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone

REVENUE_MONTHS = 6
TOP_LIMIT = 5
WEEK_DAYS = 7


def _get(record, field, default=None):
    if isinstance(record, dict):
        return record.get(field, default)
    return getattr(record, field, default)


def _local_date(value):
    if hasattr(value, 'hour') and timezone.is_aware(value):
        return timezone.localtime(value).date()
    if hasattr(value, 'date'):
        return value.date()
    return value


def _round(value):
    """Round half away from zero to a whole number"""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def process_revenue_data(invoices):
    """Revenue per calendar month, oldest first, limited to the last six months with invoices"""
    monthly = {}
    for invoice in invoices:
        created = _local_date(_get(invoice, 'created_at'))
        if created is None:
            continue
        key = (created.year, created.month)
        monthly[key] = monthly.get(key, Decimal('0')) + Decimal(str(_get(invoice, 'total') or 0))

    months = sorted(monthly)[-REVENUE_MONTHS:]
    return [
        {
            'month': date(year, month, 1).strftime('%b %Y'),
            'revenue': _round(monthly[(year, month)]),
        }
        for year, month in months
    ]


def process_job_card_status_data(job_cards):
    counts = OrderedDict()
    for job_card in job_cards:
        job_status = _get(job_card, 'status') or ''
        counts[job_status] = counts.get(job_status, 0) + 1
    return [{'name': job_status[:1].upper() + job_status[1:], 'value': count} for job_status, count in counts.items()]


def process_inventory_data(products):
    """Quantity and stock value per category"""
    categories = OrderedDict()
    for product in products:
        category = _get(product, 'category')
        data = categories.setdefault(category, {'quantity': 0, 'value': Decimal('0')})
        quantity = _get(product, 'quantity') or 0
        data['quantity'] += quantity
        data['value'] += quantity * Decimal(str(_get(product, 'unit_price') or 0))
    return [
        {'category': category, 'quantity': data['quantity'], 'value': _round(data['value'])}
        for category, data in categories.items()
    ]


def process_top_products_data(products):
    rows = []
    for product in products:
        quantity = _get(product, 'quantity') or 0
        rows.append({
            'name': _get(product, 'name'),
            'value': float(quantity * Decimal(str(_get(product, 'unit_price') or 0))),
            'quantity': quantity,
        })
    rows.sort(key=lambda row: row['value'], reverse=True)
    return rows[:TOP_LIMIT]


def process_weekly_job_cards(job_cards, today=None):
    """Job cards opened on each of the last seven days, oldest first"""
    today = today or timezone.localdate()
    days = OrderedDict(
        (today - timedelta(days=offset), 0) for offset in range(WEEK_DAYS - 1, -1, -1)
    )
    for job_card in job_cards:
        created = _local_date(_get(job_card, 'created_at'))
        if created in days:
            days[created] += 1
    return [{'day': day.strftime('%a'), 'count': count} for day, count in days.items()]


def calculate_growth_rate(current, previous):
    """Percentage change; 100 when growing from nothing, 0 when both are nothing"""
    current = float(current or 0)
    previous = float(previous or 0)
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100, 1)


def get_top_customers(job_cards):
    visits = OrderedDict()
    for job_card in job_cards:
        name = _get(job_card, 'customer_name')
        visits[name] = visits.get(name, 0) + 1
    ranked = sorted(visits.items(), key=lambda item: item[1], reverse=True)
    return [{'name': name, 'visits': count} for name, count in ranked[:TOP_LIMIT]]
