import logging

from django.conf import settings
from django.db.models import Q
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from storefront.core.csvtools import BOM, decode_upload
from storefront.core.permissions import IsSuperAdmin, IsSuperAdminOrCanal

from .distributor_csv.importer import IMPORT_MODES, get_existing_distributors_map, import_distributors
from .distributor_csv.parser import compare_with_existing, parse_csv
from .distributor_csv.template import generate_empty_template, generate_template_with_descriptions
from .models import Distributor
from .serializers import DistributorSerializer

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsSuperAdminOrCanal])
def distributor_list(request):
    """List distributors, optionally filtered by search and is_active"""
    queryset = Distributor.objects.select_related('user').order_by('company_name')

    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(company_name__icontains=search) |
            Q(company_rif__icontains=search) |
            Q(user__email__icontains=search)
        )

    is_active = request.query_params.get('is_active')
    if is_active in ('true', 'false'):
        queryset = queryset.filter(is_active=is_active == 'true')

    return Response(DistributorSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def distributor_csv_template(request):
    """Download the distributor CSV template"""
    if request.query_params.get('descriptions', '').lower() == 'true':
        content, filename = generate_template_with_descriptions(), 'distribuidores_template_con_instrucciones.csv'
    else:
        content, filename = generate_empty_template(), 'distribuidores_template.csv'
    response = HttpResponse(BOM + content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def _parse_upload(request):
    uploaded = request.FILES.get('file')
    if not uploaded:
        return None, None, None
    parse_result = parse_csv(decode_upload(uploaded.read()))
    diffs = compare_with_existing(parse_result.distributors, get_existing_distributors_map())
    return uploaded.name, parse_result, diffs


@api_view(['POST'])
@permission_classes([IsSuperAdmin])
def distributor_csv_validate(request):
    """Validate an uploaded distributor CSV and preview the changes"""
    try:
        filename, parse_result, diffs = _parse_upload(request)
    except Exception as e:
        logger.error(f"Error validating distributor CSV: {str(e)}", exc_info=True)
        return Response({'error': 'Error al validar archivo CSV'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if parse_result is None:
        return Response({'error': 'No se proporcionó archivo'}, status=status.HTTP_400_BAD_REQUEST)

    preview_limit = settings.CSV_PREVIEW_LIMIT
    error_rows = [d for d in parse_result.distributors if not d.is_valid]
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
        'distributors': [d.to_dict() for d in parse_result.distributors[:preview_limit]],
        'error_distributors': [d.to_dict() for d in error_rows[:preview_limit]],
        'diffs': [d.to_dict() for d in diffs[:preview_limit]],
        'has_more': parse_result.total_rows > preview_limit,
        'has_more_errors': len(error_rows) > preview_limit,
    })


@api_view(['POST'])
@permission_classes([IsSuperAdmin])
def distributor_csv_import(request):
    """Create and update distributors from an uploaded CSV"""
    mode = request.data.get('mode') or 'update'
    if mode not in IMPORT_MODES:
        return Response({'error': 'Modo de importación inválido'}, status=status.HTTP_400_BAD_REQUEST)

    error_limit = settings.CSV_ERROR_LIMIT
    try:
        filename, parse_result, diffs = _parse_upload(request)
        if parse_result is None:
            return Response({'error': 'No se proporcionó archivo'}, status=status.HTTP_400_BAD_REQUEST)

        if parse_result.invalid_rows > 0:
            return Response({
                'success': False,
                'error': 'El archivo contiene errores de validación',
                'invalid_rows': parse_result.invalid_rows,
                'distributors': [d.to_dict() for d in parse_result.distributors if not d.is_valid][:error_limit],
            }, status=status.HTTP_400_BAD_REQUEST)

        result = import_distributors(
            parse_result.distributors,
            diffs,
            mode,
            request.user,
            filename or 'distribuidores.csv',
            request=request,
        )
    except Exception as e:
        logger.error(f"Error importing distributor CSV: {str(e)}", exc_info=True)
        return Response({'error': 'Error al importar archivo CSV'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({
        'success': result.success,
        'import_id': result.import_id,
        'created': result.created,
        'updated': result.updated,
        'skipped': result.skipped,
        'invited': result.invited,
        'errors': result.errors[:error_limit],
        'has_more_errors': len(result.errors) > error_limit,
    })
