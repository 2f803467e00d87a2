from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator


class JobCard(models.Model):
    """Service job for one vehicle visit"""
    STATUS_PENDING = 'pending'
    STATUS_VERIFIED = 'verified'
    STATUS_APPROVED = 'approved'
    STATUS_INVOICED = 'invoiced'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_VERIFIED, 'Verified'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_INVOICED, 'Invoiced'),
    ]

    custom_id = models.CharField(max_length=30, unique=True, null=True, blank=True, help_text="Human-readable ID, e.g. JOB-20250114-001")
    customer_name = models.CharField(max_length=200, db_index=True)
    vehicle_number = models.CharField(max_length=50, db_index=True)
    vehicle_model = models.CharField(max_length=100)
    issue = models.TextField()
    services_done = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='job_cards')
    verified_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='verified_job_cards')
    verified_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_job_cards')
    approved_at = models.DateTimeField(null=True, blank=True)
    invoice_requested_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='requested_invoices')
    invoice_requested_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def reference(self):
        return self.custom_id or str(self.pk)

    def __str__(self):
        return f"{self.reference} {self.vehicle_number}"

    class Meta:
        db_table = 'job_cards'
        ordering = ['-created_at']


class JobCardPart(models.Model):
    """Spare part used on a job card"""
    job_card = models.ForeignKey(JobCard, on_delete=models.CASCADE, related_name='parts')
    product = models.ForeignKey('inventory.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='job_card_parts')
    product_name = models.CharField(max_length=255, blank=True)
    qty = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0, help_text="Unit price when the part was added")

    @property
    def line_total(self):
        return self.qty * self.price

    def __str__(self):
        return f"{self.product_name} x {self.qty}"

    class Meta:
        db_table = 'job_card_parts'
