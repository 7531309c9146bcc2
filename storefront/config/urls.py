"""
URL configuration for the storefront project.

All API endpoints live under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Storefront Admin Panel"
admin.site.site_title = "Storefront Admin Portal"
admin.site.index_title = "Catalog and distributors"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('storefront.core.urls')),
    path('api/v1/', include('storefront.catalog.urls')),
    path('api/v1/', include('storefront.distributors.urls')),
    path('api/v1/', include('storefront.pricing.urls')),
]
