from django.conf import settings
from django.db import models
from decimal import Decimal


class Silo(models.Model):
    """Top-level catalog category (Cocina, Mesa, ...)"""
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    sort_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'silos'
        ordering = ['sort_order', 'name']


class Subcategory(models.Model):
    """Second catalog level, always inside a silo"""
    silo = models.ForeignKey(Silo, on_delete=models.CASCADE, related_name='subcategories')
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200)
    sort_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.silo.name} / {self.name}"

    class Meta:
        db_table = 'subcategories'
        verbose_name_plural = 'subcategories'
        ordering = ['sort_order', 'name']
        unique_together = [['silo', 'slug']]


class ProductType(models.Model):
    """Third catalog level"""
    subcategory = models.ForeignKey(Subcategory, on_delete=models.CASCADE, related_name='product_types')
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'product_types'
        ordering = ['name']
        unique_together = [['subcategory', 'slug']]


class Product(models.Model):
    """Product master, keyed by its commercial reference (CSV Ref)"""
    ROTATION_CHOICES = [
        ('alta', 'Alta'),
        ('media', 'Media'),
        ('baja', 'Baja'),
    ]
    HORECA_CHOICES = [
        ('NO', 'No'),
        ('SI', 'Si'),
        ('EXCLUSIVO', 'Exclusivo'),
    ]

    code = models.CharField(max_length=100, unique=True, db_index=True)
    public_ref = models.CharField(max_length=100, blank=True, null=True)
    name = models.CharField(max_length=255, db_index=True)
    slug = models.SlugField(max_length=255, unique=True)
    short_description = models.TextField(blank=True, null=True)
    brand = models.CharField(max_length=200, blank=True, null=True)

    # Pricing
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    distributor_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    distributor_discount = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    is_on_sale = models.BooleanField(default=False)

    # Inventory
    stock_quantity = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    incoming_quantity = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discontinued = models.BooleanField(default=False)
    inner_pack = models.CharField(max_length=100, blank=True, null=True)
    outer_pack = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Classification
    collection = models.CharField(max_length=200, blank=True, null=True)
    product_type = models.ForeignKey(ProductType, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    horeca = models.CharField(max_length=10, choices=HORECA_CHOICES, default='NO')

    # Physical attributes
    material = models.CharField(max_length=200, blank=True, null=True)
    color = models.CharField(max_length=100, blank=True, null=True)
    dimensions = models.CharField(max_length=200, blank=True, null=True)
    weight_kg = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    capacity = models.CharField(max_length=100, blank=True, null=True)
    origin_country = models.CharField(max_length=100, blank=True, null=True)

    # Customer and channel content
    long_description = models.TextField(blank=True, null=True)
    usage_moments = models.TextField(blank=True, null=True)
    related_refs = models.TextField(blank=True, null=True)
    distributor_description = models.TextField(blank=True, null=True)
    sales_arguments = models.TextField(blank=True, null=True)
    store_placement = models.TextField(blank=True, null=True)
    suggested_margin = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    expected_rotation = models.CharField(max_length=10, choices=ROTATION_CHOICES, blank=True, null=True)

    # SEO and media
    seo_title = models.CharField(max_length=255, blank=True, null=True)
    seo_description = models.TextField(blank=True, null=True)
    tags = models.JSONField(default=list, blank=True)
    video_url = models.URLField(max_length=500, blank=True, null=True)
    datasheet_url = models.URLField(max_length=500, blank=True, null=True)
    main_image_url = models.URLField(max_length=500, blank=True, null=True)
    launch_date = models.DateField(null=True, blank=True)

    is_active = models.BooleanField(default=True, db_index=True)
    last_csv_update = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_products')
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='updated_products')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.code})"

    class Meta:
        db_table = 'products'
        ordering = ['code']


class ProductCategory(models.Model):
    """Product placement in the catalog tree (the first one is primary)"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='product_categories')
    subcategory = models.ForeignKey(Subcategory, on_delete=models.CASCADE, related_name='product_categories')
    product_type = models.ForeignKey(ProductType, on_delete=models.SET_NULL, null=True, blank=True, related_name='product_categories')
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'product_categories'
        unique_together = [['product', 'subcategory']]


class ProductMedia(models.Model):
    """Images and other media attached to a product"""
    MEDIA_TYPE_CHOICES = [
        ('image', 'Image'),
        ('video', 'Video'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='media')
    media_type = models.CharField(max_length=20, choices=MEDIA_TYPE_CHOICES, default='image')
    url = models.URLField(max_length=500)
    alt_text = models.CharField(max_length=255, blank=True, null=True)
    order_index = models.IntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'product_media'
        ordering = ['order_index']


class CsvImport(models.Model):
    """One product CSV import run"""
    STATUS_CHOICES = [
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('completed_with_errors', 'Completed with errors'),
    ]
    MODE_CHOICES = [
        ('update', 'Create and update'),
        ('add_only', 'Add only'),
        ('replace_all', 'Replace all'),
    ]

    filename = models.CharField(max_length=255)
    total_rows = models.IntegerField(default=0)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='processing')
    import_mode = models.CharField(max_length=20, choices=MODE_CHOICES, default='update')
    rows_created = models.IntegerField(default=0)
    rows_updated = models.IntegerField(default=0)
    rows_skipped = models.IntegerField(default=0)
    rows_error = models.IntegerField(default=0)
    errors = models.JSONField(null=True, blank=True)
    imported_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='csv_imports')
    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.filename} ({self.status})"

    class Meta:
        db_table = 'csv_imports'
        ordering = ['-started_at']


class ProductChangeLog(models.Model):
    """Field-level history of product changes"""
    CHANGE_TYPE_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
    ]
    SOURCE_CHOICES = [
        ('csv', 'CSV'),
        ('admin', 'Admin'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='change_logs')
    change_type = models.CharField(max_length=20, choices=CHANGE_TYPE_CHOICES)
    change_source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default='csv')
    fields_changed = models.JSONField(default=dict)
    changed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='product_changes')
    csv_import = models.ForeignKey(CsvImport, on_delete=models.SET_NULL, null=True, blank=True, related_name='change_logs')
    csv_row_number = models.IntegerField(null=True, blank=True)
    changed_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'product_change_log'
        ordering = ['-changed_at']
