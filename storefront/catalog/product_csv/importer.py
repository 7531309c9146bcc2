"""
Apply parsed product CSV rows to the catalog and export the catalog back to
the same CSV layout.

Rows are applied one by one; each row runs in its own savepoint so a failing
row is rolled back and reported without stopping the import.
"""
import logging
import re
from dataclasses import asdict, dataclass, field
from decimal import Decimal

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from storefront.core.csvtools import build_line, strip_accents
from storefront.core.utils import create_audit_log
from storefront.pricing.utils import is_product_on_sale

from ..category_cache import get_category_lookup, resolve_all_categories
from ..models import CsvImport, Product, ProductCategory, ProductChangeLog, ProductMedia
from .exceptions import CsvImportError
from .template import (
    CATEGORY_FIELDS,
    CSV_HEADERS,
    IMAGE_ALT_FIELDS,
    IMAGE_FIELDS,
    normalize_boolean,
    normalize_estado,
    normalize_horeca,
    normalize_incoming,
    normalize_numeric,
    parse_launch_date,
    quantize_numeric,
)

logger = logging.getLogger(__name__)

IMPORT_MODES = ('update', 'add_only', 'replace_all')

# Silos that may hold HoReCa products
HORECA_ALLOWED_SILO_SLUGS = {'mesa', 'cocina', 'cafe-te-bar'}


def _text(value):
    value = (value or '').strip()
    return value or None


def _decimal_or_zero(value):
    return normalize_numeric(value) or Decimal('0')


def _rotation(value):
    value = (value or '').strip().lower()
    return value or None


def _tags(value):
    if not value or not value.strip():
        return []
    return [t.strip() for t in value.split(',') if t.strip()]


def _column_value(column, convert, data):
    return quantize_numeric(convert(data.get(column)), column)


def _format_decimal(value):
    if value is None:
        return ''
    if value == value.to_integral_value():
        return str(value.quantize(Decimal('1')))
    return format(value.normalize(), 'f')


def _format_date(value):
    return value.strftime('%d/%m/%Y') if value else ''


# CSV column -> (model attribute, import converter, export formatter)
COLUMN_FIELDS = {
    'SKU': ('public_ref', _text, None),
    'Producto': ('name', _text, None),
    'Estado': ('is_active', normalize_estado, lambda v: 'ACTIVO' if v else 'INACTIVO'),
    'Descripcion': ('short_description', _text, None),
    'Marca': ('brand', _text, None),
    'Precio_COP': ('price', normalize_numeric, _format_decimal),
    'Descuento': ('discount_percentage', _decimal_or_zero, _format_decimal),
    'Precio_Dist': ('distributor_price', normalize_numeric, _format_decimal),
    'Desc_Dist': ('distributor_discount', _decimal_or_zero, _format_decimal),
    'Existencia_inv': ('stock_quantity', _decimal_or_zero, _format_decimal),
    'Pedido_en_camino': ('incoming_quantity', normalize_incoming, _format_decimal),
    'Descontinuado': ('discontinued', normalize_boolean, lambda v: 'SI' if v else 'NO'),
    'Inner_pack': ('inner_pack', _text, None),
    'Outer_pack': ('outer_pack', normalize_numeric, _format_decimal),
    'Coleccion': ('collection', _text, None),
    'Material': ('material', _text, None),
    'Color': ('color', _text, None),
    'Dimensiones': ('dimensions', _text, None),
    'Peso_kg': ('weight_kg', normalize_numeric, _format_decimal),
    'Capacidad': ('capacity', _text, None),
    'Pais_origen': ('origin_country', _text, None),
    'Descrip_Cliente_Final': ('long_description', _text, None),
    'Momentos_Uso_Cliente': ('usage_moments', _text, None),
    'Productos_Afines_Cliente': ('related_refs', _text, None),
    'Descrip_Distribuidor': ('distributor_description', _text, None),
    'Argumentos_Venta_Distribuidor': ('sales_arguments', _text, None),
    'Ubicacion_Tienda_Distribuidor': ('store_placement', _text, None),
    'Margen_Sugerido': ('suggested_margin', normalize_numeric, _format_decimal),
    'Rotacion_Esperada': ('expected_rotation', _rotation, None),
    'SEO_Title': ('seo_title', _text, None),
    'SEO_Description': ('seo_description', _text, None),
    'Tags': ('tags', _tags, lambda v: ','.join(v or [])),
    'Video_URL': ('video_url', _text, None),
    'Ficha_Tecnica_URL': ('datasheet_url', _text, None),
    'Fecha_Lanzamiento': ('launch_date', parse_launch_date, _format_date),
    'HoReCa': ('horeca', normalize_horeca, None),
    'Image_1': ('main_image_url', _text, None),
}


@dataclass
class ImportResult:
    import_id: int
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list = field(default_factory=list)

    @property
    def success(self):
        return not self.errors

    def to_dict(self):
        data = asdict(self)
        data['success'] = self.success
        return data


def generate_slug(name):
    slug = strip_accents((name or '').lower())
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug.strip())
    slug = re.sub(r'-+', '-', slug).strip('-')
    return slug or 'producto'


def generate_unique_slug(name, exclude_pk=None):
    base = generate_slug(name)[:240]
    slug = base
    counter = 1
    queryset = Product.objects.all()
    if exclude_pk:
        queryset = queryset.exclude(pk=exclude_pk)
    while queryset.filter(slug=slug).exists():
        counter += 1
        slug = f"{base}-{counter}"
    return slug


def _assert_primary_category(category_infos):
    if not category_infos:
        raise CsvImportError(
            'No se pudo resolver una categoría válida (Categoria_1/Subcategoria_1) para el producto.'
        )


def _assert_horeca_consistency(data, category_infos):
    if normalize_horeca(data.get('HoReCa')) == 'NO':
        return
    if not category_infos:
        raise CsvImportError(
            'Los productos HoReCa (SI/EXCLUSIVO) deben tener una categoría válida: Mesa, Cocina o Café, té y bar.'
        )
    if any(info.silo_slug not in HORECA_ALLOWED_SILO_SLUGS for info in category_infos):
        raise CsvImportError(
            'Los productos HoReCa (SI/EXCLUSIVO) solo pueden pertenecer a Mesa, Cocina o Café, té y bar.'
        )


def _unique_categories(category_infos):
    seen = set()
    unique = []
    for info in category_infos:
        if info.subcategory_id in seen:
            continue
        seen.add(info.subcategory_id)
        unique.append(info)
    return unique


def _set_categories(product, category_infos):
    ProductCategory.objects.filter(product=product).delete()
    ProductCategory.objects.bulk_create([
        ProductCategory(
            product=product,
            subcategory_id=info.subcategory_id,
            product_type_id=info.product_type_id,
            is_primary=index == 0,
        )
        for index, info in enumerate(category_infos)
    ])


def sync_product_images(product, data):
    """Replace the product's images with Image_n / SEO_Alt_Text_n from the row"""
    ProductMedia.objects.filter(product=product, media_type='image').delete()
    images = []
    for order_index, (image_field, alt_field) in enumerate(zip(IMAGE_FIELDS, IMAGE_ALT_FIELDS), start=1):
        url = (data.get(image_field) or '').strip()
        if not url:
            continue
        images.append(ProductMedia(
            product=product,
            media_type='image',
            url=url,
            order_index=order_index,
            alt_text=(data.get(alt_field) or '').strip() or None,
        ))
    if images:
        ProductMedia.objects.bulk_create(images)


def _create_product(data, category_lookup, user, csv_import, row_number):
    category_infos = _unique_categories(resolve_all_categories(data, category_lookup))
    _assert_primary_category(category_infos)
    _assert_horeca_consistency(data, category_infos)

    product = Product(code=data['Ref'].strip())
    for column, (attribute, convert, _) in COLUMN_FIELDS.items():
        setattr(product, attribute, _column_value(column, convert, data))
    product.slug = generate_unique_slug(product.name)
    product.product_type_id = category_infos[0].product_type_id
    product.is_on_sale = is_product_on_sale(product)
    product.last_csv_update = timezone.now()
    product.created_by = user
    product.updated_by = user
    product.save()

    _set_categories(product, category_infos)
    sync_product_images(product, data)

    ProductChangeLog.objects.create(
        product=product,
        change_type='create',
        change_source='csv',
        fields_changed={'all': 'new product'},
        changed_by=user,
        csv_import=csv_import,
        csv_row_number=row_number,
    )
    return product


def _update_product(data, diff, category_lookup, user, csv_import, row_number):
    product = Product.objects.filter(code=data['Ref'].strip()).first()
    if product is None:
        raise CsvImportError('Producto no encontrado para actualizar')

    category_infos = _unique_categories(resolve_all_categories(data, category_lookup))
    _assert_horeca_consistency(data, category_infos)

    changed = set(diff.changed_fields())
    for column in changed:
        mapping = COLUMN_FIELDS.get(column)
        if mapping:
            attribute, convert, _ = mapping
            setattr(product, attribute, _column_value(column, convert, data))
    if 'Producto' in changed:
        product.slug = generate_unique_slug(product.name, exclude_pk=product.pk)
    product.is_on_sale = is_product_on_sale(product)
    product.last_csv_update = timezone.now()
    product.updated_by = user

    if changed & set(CATEGORY_FIELDS):
        _assert_primary_category(category_infos)
        product.product_type_id = category_infos[0].product_type_id
        product.save()
        _set_categories(product, category_infos)
    else:
        product.save()

    if changed & set(IMAGE_FIELDS + IMAGE_ALT_FIELDS):
        sync_product_images(product, data)

    ProductChangeLog.objects.create(
        product=product,
        change_type='update',
        change_source='csv',
        fields_changed={c.field: {'old': c.old_value, 'new': c.new_value} for c in diff.changes},
        changed_by=user,
        csv_import=csv_import,
        csv_row_number=row_number,
    )
    return product


def import_products(products, diffs, mode, user, filename, request=None):
    """
    Apply parsed products according to their diffs.

    Modes:
        update: create new products and update changed ones
        add_only: create new products, leave existing ones untouched
        replace_all: same as update
    """
    if mode not in IMPORT_MODES:
        raise ValueError(f"Invalid import mode: {mode}")

    csv_import = CsvImport.objects.create(
        filename=filename,
        total_rows=len(products),
        status='processing',
        import_mode=mode,
        imported_by=user,
    )
    result = ImportResult(import_id=csv_import.id)
    diffs_by_ref = {d.ref: d for d in diffs}
    category_lookup = get_category_lookup()

    for product in products:
        diff = diffs_by_ref.get(product.ref)
        if not product.is_valid or diff is None:
            result.skipped += 1
            continue

        try:
            with transaction.atomic():
                if diff.change_type == 'create':
                    _create_product(product.data, category_lookup, user, csv_import, product.row)
                    result.created += 1
                elif diff.change_type == 'update' and mode != 'add_only':
                    _update_product(product.data, diff, category_lookup, user, csv_import, product.row)
                    result.updated += 1
                else:
                    result.skipped += 1
        except Exception as e:
            logger.error(f"CSV import {csv_import.id}: row {product.row} ({product.ref}) failed: {str(e)}", exc_info=True)
            result.errors.append({
                'row': product.row,
                'ref': product.ref,
                'error': str(e) or 'Error desconocido',
            })

    csv_import.rows_created = result.created
    csv_import.rows_updated = result.updated
    csv_import.rows_skipped = result.skipped
    csv_import.rows_error = len(result.errors)
    csv_import.errors = result.errors or None
    csv_import.status = 'completed' if result.success else 'completed_with_errors'
    csv_import.completed_at = timezone.now()
    csv_import.save()

    logger.info(
        f"CSV import {csv_import.id} ({filename}, mode={mode}): created={result.created} "
        f"updated={result.updated} skipped={result.skipped} errors={len(result.errors)}"
    )
    create_audit_log(
        request=request,
        user=user,
        action='csv_import',
        model_name='CsvImport',
        object_id=csv_import.id,
        object_name=filename,
        changes={
            'mode': mode,
            'created': result.created,
            'updated': result.updated,
            'skipped': result.skipped,
            'errors': len(result.errors),
        },
    )
    return result


def _products_for_export():
    return (
        Product.objects
        .select_related('product_type')
        .prefetch_related(
            Prefetch(
                'product_categories',
                queryset=ProductCategory.objects.select_related('subcategory__silo', 'product_type'),
            ),
            'media',
        )
        .order_by('code')
    )


def product_to_row(product):
    """CSV-shaped representation of a stored product"""
    row = {header: '' for header in CSV_HEADERS}
    row['Ref'] = product.code
    for column, (attribute, _, formatter) in COLUMN_FIELDS.items():
        value = getattr(product, attribute)
        if formatter:
            row[column] = formatter(value)
        else:
            row[column] = '' if value is None else str(value)

    categories = sorted(product.product_categories.all(), key=lambda c: (not c.is_primary, c.id))
    for index, category in enumerate(categories[:2], start=1):
        subcategory = category.subcategory
        row[f'Categoria_{index}'] = subcategory.silo.name
        row[f'Subcategoria_{index}'] = subcategory.name
        if category.product_type:
            row[f'Tipo_producto_{index}'] = category.product_type.name
        elif index == 1 and product.product_type:
            row['Tipo_producto_1'] = product.product_type.name

    images = {}
    for media in sorted(product.media.all(), key=lambda m: m.order_index):
        if media.media_type == 'image' and media.order_index not in images:
            images[media.order_index] = media
    for order_index, (image_field, alt_field) in enumerate(zip(IMAGE_FIELDS, IMAGE_ALT_FIELDS), start=1):
        media = images.get(order_index)
        if media:
            row[image_field] = media.url
            row[alt_field] = media.alt_text or ''
    return row


def get_existing_products_map():
    return {product.code: product_to_row(product) for product in _products_for_export()}


def export_products_csv():
    """Return the whole catalog as CSV text, or '' when there are no products"""
    products = list(_products_for_export())
    if not products:
        return ''
    lines = [','.join(CSV_HEADERS)]
    for product in products:
        row = product_to_row(product)
        lines.append(build_line(row[h] for h in CSV_HEADERS))
    return '\n'.join(lines)
