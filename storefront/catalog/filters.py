import django_filters
from django.db.models import Q
from .models import Product, ProductChangeLog


class ProductFilter(django_filters.FilterSet):
    """Filter for the product list"""

    # Searches across reference, name, brand and collection
    search = django_filters.CharFilter(method='filter_search', label='Search')

    silo = django_filters.CharFilter(method='filter_silo', label='Silo slug or ID')
    is_active = django_filters.BooleanFilter(field_name='is_active')
    horeca = django_filters.CharFilter(method='filter_horeca', label='HoReCa')

    class Meta:
        model = Product
        fields = ['search', 'silo', 'is_active', 'horeca']

    def filter_search(self, queryset, name, value):
        """All words must appear in at least one of the searchable fields"""
        words = value.split() if value else []
        for word in words:
            queryset = queryset.filter(
                Q(code__icontains=word) |
                Q(public_ref__icontains=word) |
                Q(name__icontains=word) |
                Q(brand__icontains=word) |
                Q(collection__icontains=word)
            )
        return queryset

    def filter_silo(self, queryset, name, value):
        if not value:
            return queryset
        value = value.strip()
        if value.isdigit():
            lookup = Q(product_categories__subcategory__silo_id=int(value))
        else:
            lookup = Q(product_categories__subcategory__silo__slug=value)
        return queryset.filter(lookup).distinct()

    def filter_horeca(self, queryset, name, value):
        if not value:
            return queryset
        value = value.strip().upper()
        # "SI" also lists exclusive HoReCa products
        if value == 'SI':
            return queryset.filter(horeca__in=['SI', 'EXCLUSIVO'])
        return queryset.filter(horeca=value)


class ProductChangeLogFilter(django_filters.FilterSet):
    product_id = django_filters.NumberFilter(field_name='product_id')
    change_type = django_filters.CharFilter(field_name='change_type')
    start_date = django_filters.DateFilter(field_name='changed_at', lookup_expr='date__gte')
    end_date = django_filters.DateFilter(field_name='changed_at', lookup_expr='date__lte')

    class Meta:
        model = ProductChangeLog
        fields = ['product_id', 'change_type', 'start_date', 'end_date']
