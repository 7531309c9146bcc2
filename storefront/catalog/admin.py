from django.contrib import admin
from .models import Silo, Subcategory, ProductType, Product, ProductCategory, ProductMedia, CsvImport, ProductChangeLog


@admin.register(Silo)
class SiloAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'sort_order', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'slug']
    ordering = ['sort_order', 'name']


@admin.register(Subcategory)
class SubcategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'silo', 'slug', 'sort_order', 'is_active']
    list_filter = ['is_active', 'silo']
    search_fields = ['name', 'slug']
    ordering = ['silo', 'sort_order', 'name']


@admin.register(ProductType)
class ProductTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'subcategory', 'slug']
    list_filter = ['subcategory__silo']
    search_fields = ['name', 'slug']
    ordering = ['name']


class ProductCategoryInline(admin.TabularInline):
    model = ProductCategory
    extra = 0


class ProductMediaInline(admin.TabularInline):
    model = ProductMedia
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'brand', 'price', 'stock_quantity', 'horeca', 'is_active', 'last_csv_update']
    list_filter = ['is_active', 'horeca', 'discontinued', 'is_on_sale']
    search_fields = ['code', 'public_ref', 'name', 'brand']
    ordering = ['code']
    readonly_fields = ['last_csv_update', 'created_by', 'updated_by', 'created_at', 'updated_at']
    inlines = [ProductCategoryInline, ProductMediaInline]


@admin.register(CsvImport)
class CsvImportAdmin(admin.ModelAdmin):
    list_display = ['filename', 'import_mode', 'status', 'total_rows', 'rows_created', 'rows_updated',
                    'rows_skipped', 'rows_error', 'imported_by', 'started_at']
    list_filter = ['status', 'import_mode', 'started_at']
    search_fields = ['filename']
    ordering = ['-started_at']
    readonly_fields = ['errors', 'started_at', 'completed_at']


@admin.register(ProductChangeLog)
class ProductChangeLogAdmin(admin.ModelAdmin):
    list_display = ['product', 'change_type', 'change_source', 'changed_by', 'csv_row_number', 'changed_at']
    list_filter = ['change_type', 'change_source', 'changed_at']
    search_fields = ['product__code', 'product__name']
    ordering = ['-changed_at']
    readonly_fields = ['product', 'change_type', 'change_source', 'fields_changed', 'changed_by',
                       'csv_import', 'csv_row_number', 'changed_at']
