from django.urls import path
from .views import (
    silo_list, product_list, product_detail,
    product_csv_template, product_csv_validate, product_csv_import,
    product_csv_export, product_changelog, product_csv_imports
)

urlpatterns = [
    # Catalog endpoints
    path('silos/', silo_list, name='silo-list'),
    path('products/', product_list, name='product-list'),
    path('products/<int:pk>/', product_detail, name='product-detail'),

    # Product CSV endpoints
    path('products/csv/template/', product_csv_template, name='product-csv-template'),
    path('products/csv/validate/', product_csv_validate, name='product-csv-validate'),
    path('products/csv/import/', product_csv_import, name='product-csv-import'),
    path('products/csv/export/', product_csv_export, name='product-csv-export'),
    path('products/csv/changelog/', product_changelog, name='product-csv-changelog'),
    path('products/csv/imports/', product_csv_imports, name='product-csv-imports'),
]
