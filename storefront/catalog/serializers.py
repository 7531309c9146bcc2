from rest_framework import serializers
from .models import Silo, Subcategory, ProductType, Product, ProductCategory, ProductMedia, CsvImport, ProductChangeLog


class ProductTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductType
        fields = ['id', 'name', 'slug']


class SubcategorySerializer(serializers.ModelSerializer):
    product_types = ProductTypeSerializer(many=True, read_only=True)

    class Meta:
        model = Subcategory
        fields = ['id', 'name', 'slug', 'sort_order', 'is_active', 'product_types']


class SiloSerializer(serializers.ModelSerializer):
    subcategories = SubcategorySerializer(many=True, read_only=True)

    class Meta:
        model = Silo
        fields = ['id', 'name', 'slug', 'sort_order', 'is_active', 'subcategories']


class ProductMediaSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductMedia
        fields = ['id', 'media_type', 'url', 'alt_text', 'order_index']


class ProductCategorySerializer(serializers.ModelSerializer):
    silo = serializers.CharField(source='subcategory.silo.name', read_only=True)
    silo_slug = serializers.CharField(source='subcategory.silo.slug', read_only=True)
    subcategory_name = serializers.CharField(source='subcategory.name', read_only=True)
    product_type_name = serializers.CharField(source='product_type.name', read_only=True, default=None)

    class Meta:
        model = ProductCategory
        fields = ['id', 'silo', 'silo_slug', 'subcategory', 'subcategory_name', 'product_type', 'product_type_name', 'is_primary']


class ProductListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for product lists"""
    primary_category = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'code', 'name', 'slug', 'brand', 'price', 'discount_percentage', 'is_on_sale',
                  'stock_quantity', 'horeca', 'main_image_url', 'is_active', 'primary_category']

    def get_primary_category(self, obj):
        # Uses the prefetched product_categories
        for category in obj.product_categories.all():
            if category.is_primary:
                return {
                    'silo': category.subcategory.silo.name,
                    'subcategory': category.subcategory.name,
                }
        return None


class ProductSerializer(serializers.ModelSerializer):
    categories = ProductCategorySerializer(source='product_categories', many=True, read_only=True)
    media = ProductMediaSerializer(many=True, read_only=True)
    product_type_name = serializers.CharField(source='product_type.name', read_only=True, default=None)

    class Meta:
        model = Product
        fields = [
            'id', 'code', 'public_ref', 'name', 'slug', 'short_description', 'brand',
            'price', 'discount_percentage', 'distributor_price', 'distributor_discount', 'is_on_sale',
            'stock_quantity', 'incoming_quantity', 'discontinued', 'inner_pack', 'outer_pack',
            'collection', 'product_type', 'product_type_name', 'horeca',
            'material', 'color', 'dimensions', 'weight_kg', 'capacity', 'origin_country',
            'long_description', 'usage_moments', 'related_refs',
            'distributor_description', 'sales_arguments', 'store_placement', 'suggested_margin', 'expected_rotation',
            'seo_title', 'seo_description', 'tags', 'video_url', 'datasheet_url', 'main_image_url', 'launch_date',
            'is_active', 'last_csv_update', 'categories', 'media', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CsvImportSerializer(serializers.ModelSerializer):
    imported_by_username = serializers.CharField(source='imported_by.username', read_only=True, default=None)

    class Meta:
        model = CsvImport
        fields = ['id', 'filename', 'total_rows', 'status', 'import_mode', 'rows_created', 'rows_updated',
                  'rows_skipped', 'rows_error', 'errors', 'imported_by', 'imported_by_username',
                  'started_at', 'completed_at']


class ProductChangeLogSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source='product.code', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    changed_by_username = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = ProductChangeLog
        fields = ['id', 'product', 'product_code', 'product_name', 'change_type', 'change_source',
                  'fields_changed', 'changed_by', 'changed_by_username', 'csv_import', 'csv_row_number', 'changed_at']
