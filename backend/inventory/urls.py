from django.urls import path
from .views import product_list_create, product_detail, product_summary, product_low_stock

urlpatterns = [
    path('products/', product_list_create, name='product-list-create'),
    path('products/summary/', product_summary, name='product-summary'),
    path('products/low-stock/', product_low_stock, name='product-low-stock'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
]
