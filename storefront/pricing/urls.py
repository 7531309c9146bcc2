from django.urls import path
from .views import product_pricing

urlpatterns = [
    path('products/<int:pk>/pricing/', product_pricing, name='product-pricing'),
]
