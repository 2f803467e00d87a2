from django.db import models
from django.conf import settings
from decimal import Decimal


class Invoice(models.Model):
    """Bill for an approved job card; customer, vehicle and amounts are snapshots"""
    custom_id = models.CharField(max_length=50, unique=True, null=True, blank=True, help_text="Human-readable ID, e.g. INV-20250114-U_A01-001")
    job_card = models.OneToOneField('job_cards.JobCard', on_delete=models.SET_NULL, null=True, blank=True, related_name='invoice')
    customer_name = models.CharField(max_length=200, db_index=True)
    vehicle_number = models.CharField(max_length=50, db_index=True)
    vehicle_model = models.CharField(max_length=100, blank=True)
    services_done = models.TextField(blank=True)
    parts_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    service_charge = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal('0.18'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='invoices')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    @property
    def tax_percent(self):
        """Tax rate as a percentage string, e.g. '18' or '12.5'"""
        percent = f"{self.tax_rate * 100:f}"
        if '.' in percent:
            percent = percent.rstrip('0').rstrip('.')
        return percent

    def __str__(self):
        return f"{self.custom_id} {self.vehicle_number}"

    class Meta:
        db_table = 'invoices'
        ordering = ['-created_at']


class InvoiceItem(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('inventory.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='invoice_items')
    product_name = models.CharField(max_length=255)
    qty = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    def __str__(self):
        return f"{self.invoice.custom_id} - {self.product_name} x {self.qty}"

    class Meta:
        db_table = 'invoice_items'
