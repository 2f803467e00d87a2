from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from decimal import Decimal


class Product(models.Model):
    """Spare part or consumable held in the workshop store"""
    CATEGORY_CHOICES = [
        ('Engine Parts', 'Engine Parts'),
        ('Brake System', 'Brake System'),
        ('Electrical', 'Electrical'),
        ('Body Parts', 'Body Parts'),
        ('Fluids', 'Fluids'),
        ('Tools', 'Tools'),
    ]

    custom_id = models.CharField(max_length=20, unique=True, null=True, blank=True, help_text="Human-readable ID, e.g. ENG0001")
    name = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=50, choices=CATEGORY_CHOICES, db_index=True)
    quantity = models.PositiveIntegerField(default=0)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    description = models.TextField(blank=True)
    low_stock_threshold = models.PositiveIntegerField(default=10)
    last_updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='updated_products')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def total_value(self):
        return self.quantity * self.unit_price

    @property
    def stock_status(self):
        return get_stock_status(self.quantity)

    @property
    def is_low_stock(self):
        return self.quantity <= self.low_stock_threshold

    def __str__(self):
        return f"{self.custom_id or '-'} {self.name}"

    class Meta:
        db_table = 'products'
        ordering = ['name']


STOCK_STATUS_LEVELS = [
    (0, 'Out of Stock'),
    (5, 'Critical'),
    (10, 'Low Stock'),
    (50, 'Medium Stock'),
]


def get_stock_status(quantity):
    for limit, label in STOCK_STATUS_LEVELS:
        if quantity <= limit:
            return label
    return 'High Stock'
