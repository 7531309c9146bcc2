from django.contrib import admin
from .models import Distributor, DistributorCsvImport


@admin.register(Distributor)
class DistributorAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'company_rif', 'user', 'business_type', 'discount_percentage', 'credit_limit', 'is_active']
    list_filter = ['is_active', 'business_type']
    search_fields = ['company_name', 'company_rif', 'user__email', 'user__full_name']
    ordering = ['company_name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(DistributorCsvImport)
class DistributorCsvImportAdmin(admin.ModelAdmin):
    list_display = ['filename', 'import_mode', 'status', 'total_rows', 'rows_created', 'rows_updated',
                    'rows_invited', 'rows_error', 'imported_by', 'started_at']
    list_filter = ['status', 'import_mode', 'started_at']
    search_fields = ['filename']
    ordering = ['-started_at']
    readonly_fields = ['errors', 'started_at', 'completed_at']
