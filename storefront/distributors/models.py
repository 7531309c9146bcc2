from django.conf import settings
from django.db import models
from decimal import Decimal


class Distributor(models.Model):
    """B2B customer company, linked to the user that signs in for it"""
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='distributor')
    company_rif = models.CharField(max_length=50, unique=True, db_index=True)
    company_name = models.CharField(max_length=255)
    business_type = models.CharField(max_length=100, blank=True, null=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    credit_limit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.company_name} ({self.company_rif})"

    class Meta:
        db_table = 'distributors'
        ordering = ['company_name']


class DistributorCsvImport(models.Model):
    """One distributor CSV import run"""
    STATUS_CHOICES = [
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('completed_with_errors', 'Completed with errors'),
    ]
    MODE_CHOICES = [
        ('update', 'Create and update'),
        ('add_only', 'Add only'),
    ]

    filename = models.CharField(max_length=255)
    total_rows = models.IntegerField(default=0)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='processing')
    import_mode = models.CharField(max_length=20, choices=MODE_CHOICES, default='update')
    rows_created = models.IntegerField(default=0)
    rows_updated = models.IntegerField(default=0)
    rows_skipped = models.IntegerField(default=0)
    rows_invited = models.IntegerField(default=0)
    rows_error = models.IntegerField(default=0)
    errors = models.JSONField(null=True, blank=True)
    imported_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='distributor_csv_imports')
    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.filename} ({self.status})"

    class Meta:
        db_table = 'distributor_csv_imports'
        ordering = ['-started_at']
