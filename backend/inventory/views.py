import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.db.models import F, Sum, Count, DecimalField, ExpressionWrapper
from django.shortcuts import get_object_or_404

from backend.core.cache_utils import (
    PRODUCT_SUMMARY_CACHE_KEY, PRODUCT_SUMMARY_CACHE_TTL, get_cached, set_cached
)
from backend.core.id_generator import generate_product_id, save_with_custom_id
from backend.core.permissions import has_role
from backend.core.utils import create_audit_log
from backend.notifications.services import check_low_stock
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer

logger = logging.getLogger('backend.inventory')

OWNER_ONLY_ERROR = {'error': 'Only the workshop owner can manage inventory.'}
TRACKED_FIELDS = ['name', 'category', 'quantity', 'unit_price', 'description', 'low_stock_threshold']


def _snapshot(product):
    return {field: str(getattr(product, field)) for field in TRACKED_FIELDS}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products with search, category, stock level and ordering filters, or add a product"""
    if request.method == 'GET':
        product_filter = ProductFilter(
            request.query_params,
            queryset=Product.objects.select_related('last_updated_by')
        )
        if not product_filter.is_valid():
            return Response(product_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ProductSerializer(product_filter.qs, many=True)
        return Response(serializer.data)

    if not has_role(request.user, 'owner'):
        logger.warning(f"User {request.user.email} tried to add a product without owner role")
        return Response(OWNER_ONLY_ERROR, status=status.HTTP_403_FORBIDDEN)

    serializer = ProductSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    product = Product(last_updated_by=request.user, **serializer.validated_data)
    save_with_custom_id(product, lambda: generate_product_id(product.category))
    logger.info(f"User {request.user.email} added product {product.custom_id} ({product.name})")
    create_audit_log(
        request=request,
        action='add_product',
        model_name='Product',
        object_id=product.id,
        object_name=product.name,
        object_reference=product.custom_id,
        details=f'Added product {product.name} ({product.quantity} units)',
        changes=_snapshot(product),
    )
    return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)

    if not has_role(request.user, 'owner'):
        logger.warning(f"User {request.user.email} tried to modify product {product.custom_id} without owner role")
        return Response(OWNER_ONLY_ERROR, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'DELETE':
        product_id, name, custom_id = product.id, product.name, product.custom_id
        product.delete()
        logger.info(f"User {request.user.email} deleted product {custom_id} ({name})")
        create_audit_log(
            request=request,
            action='delete_product',
            model_name='Product',
            object_id=product_id,
            object_name=name,
            object_reference=custom_id,
            details=f'Deleted product {name}',
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    before = _snapshot(product)
    serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    product = serializer.save(last_updated_by=request.user)

    after = _snapshot(product)
    changes = {
        field: {'old': before[field], 'new': after[field]}
        for field in TRACKED_FIELDS if before[field] != after[field]
    }
    create_audit_log(
        request=request,
        action='update_product',
        model_name='Product',
        object_id=product.id,
        object_name=product.name,
        object_reference=product.custom_id,
        details=f'Updated product {product.name}',
        changes=changes,
    )
    if 'quantity' in changes and product.is_low_stock:
        check_low_stock([product])
    return Response(ProductSerializer(product).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_summary(request):
    """Inventory totals, category breakdown and the five most valuable products"""
    data, hit = get_cached(PRODUCT_SUMMARY_CACHE_KEY)
    if hit:
        return Response(data)

    value_expr = ExpressionWrapper(F('quantity') * F('unit_price'), output_field=DecimalField(max_digits=14, decimal_places=2))
    products = Product.objects.annotate(value=value_expr)

    totals = products.aggregate(total_value=Sum('value'), total_products=Count('id'))
    categories = list(
        products.values('category')
        .annotate(count=Count('id'), total_quantity=Sum('quantity'), category_value=Sum('value'))
        .order_by('category')
    )
    top_products = [
        {'id': p.id, 'custom_id': p.custom_id, 'name': p.name, 'quantity': p.quantity, 'value': float(p.value)}
        for p in products.order_by('-value', 'name')[:5]
    ]

    data = {
        'total_products': totals['total_products'] or 0,
        'total_value': float(totals['total_value'] or 0),
        'low_stock_count': Product.objects.filter(quantity__lte=settings.LOW_STOCK_THRESHOLD).count(),
        'out_of_stock_count': Product.objects.filter(quantity=0).count(),
        'categories': [
            {
                'category': row['category'],
                'count': row['count'],
                'quantity': row['total_quantity'] or 0,
                'value': float(row['category_value'] or 0),
            }
            for row in categories
        ],
        'top_products': top_products,
    }
    set_cached(PRODUCT_SUMMARY_CACHE_KEY, data, PRODUCT_SUMMARY_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_low_stock(request):
    """Products at or under their low stock threshold"""
    products = Product.objects.filter(quantity__lte=F('low_stock_threshold')).order_by('quantity', 'name')
    serializer = ProductSerializer(products, many=True)
    return Response(serializer.data)
