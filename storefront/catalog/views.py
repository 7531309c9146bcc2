import logging

from django.conf import settings
from django.core.paginator import Paginator
from django.db.models import Prefetch
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from storefront.core.csvtools import BOM, decode_upload
from storefront.core.permissions import IsSuperAdmin, IsSuperAdminOrCanal
from storefront.core.utils import create_audit_log

from .filters import ProductChangeLogFilter, ProductFilter
from .models import CsvImport, Product, ProductCategory, ProductChangeLog, Silo, Subcategory
from .product_csv.importer import IMPORT_MODES, export_products_csv, get_existing_products_map, import_products
from .product_csv.parser import compare_with_existing, parse_csv
from .product_csv.template import generate_empty_template, generate_template_with_descriptions
from .serializers import (
    CsvImportSerializer, ProductChangeLogSerializer, ProductListSerializer,
    ProductSerializer, SiloSerializer
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


def _clamp_limit(limit):
    return min(max(limit, 1), MAX_PAGE_SIZE)


def _csv_response(content, filename):
    response = HttpResponse(BOM + content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def _product_queryset():
    return Product.objects.select_related('product_type').prefetch_related(
        Prefetch(
            'product_categories',
            queryset=ProductCategory.objects.select_related('subcategory__silo', 'product_type'),
        ),
        'media',
    )


def _can_see_inactive(user):
    return bool(user and user.is_authenticated and (user.is_superadmin or user.role == 'canal'))


# Catalog views
@api_view(['GET'])
@permission_classes([AllowAny])
def silo_list(request):
    """List active silos with their subcategories and product types"""
    silos = Silo.objects.filter(is_active=True).prefetch_related(
        Prefetch('subcategories', queryset=Subcategory.objects.filter(is_active=True).prefetch_related('product_types'))
    )
    serializer = SiloSerializer(silos, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([AllowAny])
def product_list(request):
    """List products with filtering and pagination"""
    queryset = _product_queryset()
    if not _can_see_inactive(request.user):
        queryset = queryset.filter(is_active=True)

    filterset = ProductFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs.order_by('code')

    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 50))
    except (ValueError, TypeError):
        return Response({'error': 'Invalid page or limit'}, status=status.HTTP_400_BAD_REQUEST)
    limit = _clamp_limit(limit)

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = ProductListSerializer(page_obj, many=True)
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def product_detail(request, pk):
    """Retrieve a product with categories and media"""
    queryset = _product_queryset()
    if not _can_see_inactive(request.user):
        queryset = queryset.filter(is_active=True)
    product = get_object_or_404(queryset, pk=pk)
    return Response(ProductSerializer(product).data)


# CSV views
@api_view(['GET'])
@permission_classes([AllowAny])
def product_csv_template(request):
    """Download the product CSV template, optionally with a description row and an example"""
    with_descriptions = request.query_params.get('descriptions', '').lower() == 'true'
    if with_descriptions:
        return _csv_response(generate_template_with_descriptions(), 'productos_template_con_instrucciones.csv')
    return _csv_response(generate_empty_template(), 'productos_template.csv')


def _read_uploaded_csv(request):
    uploaded = request.FILES.get('file')
    if not uploaded:
        return None, None
    return uploaded.name, decode_upload(uploaded.read())


@api_view(['POST'])
@permission_classes([IsSuperAdmin])
def product_csv_validate(request):
    """Parse, validate and diff an uploaded CSV without writing anything"""
    filename, content = _read_uploaded_csv(request)
    if content is None:
        return Response({'error': 'No se proporcionó archivo'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        parse_result = parse_csv(content)
        diffs = compare_with_existing(parse_result.products, get_existing_products_map())
    except Exception as e:
        logger.error(f"Error validating product CSV {filename}: {str(e)}", exc_info=True)
        return Response({'error': 'Error al validar archivo CSV'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    preview_limit = settings.CSV_PREVIEW_LIMIT
    preview_products = parse_result.products[:preview_limit]
    error_products = [p for p in parse_result.products if not p.is_valid][:preview_limit]

    return Response({
        'success': parse_result.success,
        'stats': {
            'total': parse_result.total_rows,
            'valid': parse_result.valid_rows,
            'invalid': parse_result.invalid_rows,
            'to_create': sum(1 for d in diffs if d.change_type == 'create'),
            'to_update': sum(1 for d in diffs if d.change_type == 'update'),
            'unchanged': sum(1 for d in diffs if d.change_type == 'unchanged'),
        },
        'global_errors': parse_result.global_errors,
        'products': [p.to_dict() for p in preview_products],
        'error_products': [p.to_dict() for p in error_products],
        'diffs': [d.to_dict() for d in diffs[:preview_limit]],
        'has_more': parse_result.total_rows > len(preview_products),
        'has_more_errors': parse_result.invalid_rows > len(error_products),
    })


@api_view(['POST'])
@permission_classes([IsSuperAdmin])
def product_csv_import(request):
    """Apply an uploaded CSV to the catalog"""
    filename, content = _read_uploaded_csv(request)
    if content is None:
        return Response({'error': 'No se proporcionó archivo'}, status=status.HTTP_400_BAD_REQUEST)

    mode = request.data.get('mode') or 'update'
    if mode not in IMPORT_MODES:
        return Response({'error': 'Modo de importación inválido'}, status=status.HTTP_400_BAD_REQUEST)

    error_limit = settings.CSV_ERROR_LIMIT
    try:
        parse_result = parse_csv(content)
        if parse_result.invalid_rows > 0:
            return Response({
                'success': False,
                'error': 'El archivo contiene errores de validación',
                'invalid_rows': parse_result.invalid_rows,
                'products': [p.to_dict() for p in parse_result.products if not p.is_valid][:error_limit],
            }, status=status.HTTP_400_BAD_REQUEST)

        diffs = compare_with_existing(parse_result.products, get_existing_products_map())
        result = import_products(
            parse_result.products,
            diffs,
            mode,
            request.user,
            filename or 'import.csv',
            request=request,
        )
    except Exception as e:
        logger.error(f"Error importing product CSV {filename}: {str(e)}", exc_info=True)
        return Response({'error': 'Error al importar archivo CSV'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({
        'success': result.success,
        'import_id': result.import_id,
        'created': result.created,
        'updated': result.updated,
        'skipped': result.skipped,
        'errors': result.errors[:error_limit],
        'has_more_errors': len(result.errors) > error_limit,
    })


@api_view(['GET'])
@permission_classes([IsSuperAdmin])
def product_csv_export(request):
    """Download the whole catalog in the import CSV layout"""
    try:
        content = export_products_csv()
    except Exception as e:
        logger.error(f"Error exporting product CSV: {str(e)}", exc_info=True)
        return Response({'error': 'Error al exportar productos'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if not content:
        return Response({'error': 'No hay productos para exportar'}, status=status.HTTP_404_NOT_FOUND)

    timestamp = timezone.now().strftime('%Y-%m-%dT%H-%M-%S')
    create_audit_log(
        request=request,
        action='csv_export',
        model_name='Product',
        object_id='all',
        changes={'rows': content.count('\n')},
    )
    return _csv_response(content, f'productos_export_{timestamp}.csv')


@api_view(['GET'])
@permission_classes([IsSuperAdminOrCanal])
def product_changelog(request):
    """Product change history, newest first"""
    queryset = ProductChangeLog.objects.select_related('product', 'changed_by').order_by('-changed_at')
    filterset = ProductChangeLogFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs

    try:
        limit = int(request.query_params.get('limit', 50))
        offset = int(request.query_params.get('offset', 0))
    except (ValueError, TypeError):
        return Response({'error': 'Invalid limit or offset'}, status=status.HTTP_400_BAD_REQUEST)
    limit = _clamp_limit(limit)
    offset = max(offset, 0)

    total = queryset.count()
    logs = queryset[offset:offset + limit]
    return Response({
        'logs': ProductChangeLogSerializer(logs, many=True).data,
        'total': total,
        'has_more': total > offset + limit,
    })


@api_view(['GET'])
@permission_classes([IsSuperAdmin])
def product_csv_imports(request):
    """History of product CSV imports"""
    imports = CsvImport.objects.select_related('imported_by').order_by('-started_at')[:100]
    return Response(CsvImportSerializer(imports, many=True).data)
