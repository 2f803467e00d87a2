"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.core.id_generator import (
    generate_user_id, generate_product_id, generate_job_card_id, generate_invoice_id
)
from backend.inventory.models import Product
from backend.job_cards.models import JobCard, JobCardPart
from backend.invoices.models import Invoice
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(role='lv1', email=None, password='testpass123', name=None, status='active', **extra):
        """Create a test user with a generated custom ID"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        user = User.objects.create_user(
            username=email,
            email=email,
            password=password,
            name=name or f'Test {role}',
            role=role,
            status=status,
            custom_id=generate_user_id(role),
            **extra
        )
        return user

    @staticmethod
    def create_owner(**kwargs):
        return TestDataFactory.create_user(role='owner', **kwargs)

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role='lv2', **kwargs)

    @staticmethod
    def create_worker(**kwargs):
        return TestDataFactory.create_user(role='lv1', **kwargs)

    @staticmethod
    def create_product(name=None, category='Engine Parts', quantity=20, unit_price=None, user=None):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if unit_price is None:
            unit_price = Decimal('100.00')
        return Product.objects.create(
            custom_id=generate_product_id(category),
            name=name,
            category=category,
            quantity=quantity,
            unit_price=Decimal(str(unit_price)),
            last_updated_by=user,
        )

    @staticmethod
    def create_job_card(user, status='pending', customer_name=None, vehicle_number=None, parts=None, **extra):
        """Create a test job card; parts is a list of (product, qty)"""
        job_card = JobCard.objects.create(
            custom_id=generate_job_card_id(),
            customer_name=customer_name or f'Customer {TestDataFactory.random_string(4)}',
            vehicle_number=vehicle_number or f'MH12{TestDataFactory.random_string(4).upper()}',
            vehicle_model='Maruti Swift',
            issue='Engine noise',
            status=status,
            created_by=user,
            **extra
        )
        for product, qty in parts or []:
            JobCardPart.objects.create(
                job_card=job_card,
                product=product,
                product_name=product.name,
                qty=qty,
                price=product.unit_price,
            )
        return job_card

    @staticmethod
    def create_invoice(user, job_card=None, total=None, **extra):
        """Create a bare invoice row (no stock movement)"""
        if job_card is None:
            job_card = TestDataFactory.create_job_card(user, status='invoiced')
        total = Decimal(str(total)) if total is not None else Decimal('590.00')
        return Invoice.objects.create(
            custom_id=generate_invoice_id(user),
            job_card=job_card,
            customer_name=job_card.customer_name,
            vehicle_number=job_card.vehicle_number,
            vehicle_model=job_card.vehicle_model,
            parts_total=Decimal('0.00'),
            service_charge=Decimal('500.00'),
            subtotal=Decimal('500.00'),
            tax_rate=Decimal('0.18'),
            tax=total - Decimal('500.00'),
            total=total,
            created_by=user,
            **extra
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
