"""
Product CSV schema: columns, field groups, value normalizers and the
downloadable template.

Column names are the spreadsheet contract with the commercial team and are
kept in Spanish.
"""
import re
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

from storefront.core.csvtools import (
    build_line, decimal_max_value, exceeds_decimal_field, quantize_decimal, strip_accents
)

IMAGE_COUNT = 10

IMAGE_FIELDS = [f'Image_{i}' for i in range(1, IMAGE_COUNT + 1)]
IMAGE_ALT_FIELDS = [f'SEO_Alt_Text_{i}' for i in range(1, IMAGE_COUNT + 1)]

CSV_HEADERS = [
    'Ref',
    'SKU',
    'Producto',
    'Estado',
    'Descripcion',
    'Marca',
    'Precio_COP',
    'Descuento',
    'Precio_Dist',
    'Desc_Dist',
    'Existencia_inv',
    'Pedido_en_camino',
    'Descontinuado',
    'Inner_pack',
    'Outer_pack',
    'Coleccion',
    'Categoria_1',
    'Subcategoria_1',
    'Tipo_producto_1',
    'Categoria_2',
    'Subcategoria_2',
    'Tipo_producto_2',
    'Material',
    'Color',
    'Dimensiones',
    'Peso_kg',
    'Capacidad',
    'Pais_origen',
    'Descrip_Cliente_Final',
    'Momentos_Uso_Cliente',
    'Productos_Afines_Cliente',
    'Descrip_Distribuidor',
    'Argumentos_Venta_Distribuidor',
    'Ubicacion_Tienda_Distribuidor',
    'Margen_Sugerido',
    'Rotacion_Esperada',
    'SEO_Title',
    'SEO_Description',
    'Tags',
    'Video_URL',
    'Ficha_Tecnica_URL',
    'Fecha_Lanzamiento',
    'HoReCa',
] + IMAGE_FIELDS + IMAGE_ALT_FIELDS

CSV_HEADER_DESCRIPTIONS = {
    'Ref': 'Código de referencia único del producto (obligatorio)',
    'SKU': 'Referencia pública / código de barras EAN/UPC',
    'Producto': 'Nombre comercial del producto (obligatorio)',
    'Estado': 'ACTIVO/INACTIVO (vacío = ACTIVO)',
    'Descripcion': 'Descripción corta o subtítulo',
    'Marca': 'Marca del producto',
    'Precio_COP': 'Precio base en pesos colombianos (obligatorio)',
    'Descuento': 'Porcentaje de descuento (0-100). Si > 0, aparece en ofertas',
    'Precio_Dist': 'Precio base para distribuidores',
    'Desc_Dist': 'Descuento adicional para distribuidores (0-100)',
    'Existencia_inv': 'Cantidad en inventario',
    'Pedido_en_camino': 'SI/NO o cantidad en tránsito',
    'Descontinuado': 'SI/NO - Producto que no se volverá a pedir',
    'Inner_pack': 'Empaque primario (unidades por empaque)',
    'Outer_pack': 'Empaque secundario (empaques primarios por caja)',
    'Coleccion': 'Nombre de la colección a la que pertenece',
    'Categoria_1': 'Categoría principal (obligatoria): Cocina, Mesa, Café-Té-Bar, Termos-Neveras, Profesional',
    'Subcategoria_1': 'Subcategoría dentro de la categoría principal (obligatoria)',
    'Tipo_producto_1': 'Tipo específico de producto (3er nivel)',
    'Categoria_2': 'Categoría secundaria (opcional)',
    'Subcategoria_2': 'Subcategoría secundaria',
    'Tipo_producto_2': 'Tipo de producto secundario',
    'Material': 'Material principal del producto',
    'Color': 'Color del producto',
    'Dimensiones': 'Dimensiones del producto (ej: 30x20x10 cm)',
    'Peso_kg': 'Peso en kilogramos',
    'Capacidad': 'Capacidad si aplica (ej: 500ml)',
    'Pais_origen': 'País de origen del producto',
    'Descrip_Cliente_Final': 'Descripción amplia para cliente final',
    'Momentos_Uso_Cliente': 'Momentos de uso sugeridos para cliente final',
    'Productos_Afines_Cliente': 'Referencias de productos afines separadas por coma',
    'Descrip_Distribuidor': 'Descripción visible solo para distribuidores y canal',
    'Argumentos_Venta_Distribuidor': 'Argumentos de venta para distribuidores',
    'Ubicacion_Tienda_Distribuidor': 'Sugerencia de ubicación en tienda del distribuidor',
    'Margen_Sugerido': 'Margen de ganancia sugerido para distribuidor (%)',
    'Rotacion_Esperada': 'Rotación esperada: alta, media o baja',
    'SEO_Title': 'Título SEO para buscadores',
    'SEO_Description': 'Descripción SEO para buscadores',
    'Tags': 'Etiquetas de búsqueda separadas por coma',
    'Video_URL': 'URL del video del producto',
    'Ficha_Tecnica_URL': 'URL del PDF de ficha técnica',
    'Fecha_Lanzamiento': 'Fecha de lanzamiento (DD/MM/YYYY)',
    'HoReCa': 'NO, SI o EXCLUSIVO (canal hoteles, restaurantes y cafeterías)',
}
for _i in range(1, IMAGE_COUNT + 1):
    CSV_HEADER_DESCRIPTIONS[f'Image_{_i}'] = 'URL de imagen principal' if _i == 1 else f'URL de imagen {_i}'
    CSV_HEADER_DESCRIPTIONS[f'SEO_Alt_Text_{_i}'] = f'Texto alternativo de la imagen {_i} (obligatorio si hay URL)'

REQUIRED_FIELDS = ['Ref', 'Producto', 'Precio_COP', 'Categoria_1', 'Subcategoria_1']

BOOLEAN_FIELDS = ['Descontinuado']

NUMERIC_FIELDS = [
    'Precio_COP',
    'Descuento',
    'Precio_Dist',
    'Desc_Dist',
    'Existencia_inv',
    'Pedido_en_camino',
    'Outer_pack',
    'Peso_kg',
    'Margen_Sugerido',
]

# Stored precision of numeric columns: (max_digits, decimal_places), matching Product
NUMERIC_PRECISION = {
    'Precio_COP': (12, 2),
    'Descuento': (5, 2),
    'Precio_Dist': (12, 2),
    'Desc_Dist': (5, 2),
    'Existencia_inv': (12, 2),
    'Pedido_en_camino': (12, 2),
    'Outer_pack': (10, 2),
    'Peso_kg': (10, 3),
    'Margen_Sugerido': (6, 2),
}

URL_FIELDS = ['Video_URL', 'Ficha_Tecnica_URL']

DATE_FIELDS = ['Fecha_Lanzamiento']

CATEGORY_FIELD_SETS = [
    # (category, subcategory, product type, required)
    ('Categoria_1', 'Subcategoria_1', 'Tipo_producto_1', True),
    ('Categoria_2', 'Subcategoria_2', 'Tipo_producto_2', False),
]
CATEGORY_FIELDS = [field for field_set in CATEGORY_FIELD_SETS for field in field_set[:3]]

VALID_CATEGORIES = ['Cocina', 'Mesa', 'Café-Té-Bar', 'Termos-Neveras', 'Profesional']
BASE_CATEGORY_SLUGS = ['cocina', 'mesa', 'cafe-te-bar', 'termos-neveras', 'profesional']

VALID_ROTACION = ['alta', 'media', 'baja']

HORECA_VALUES = ['NO', 'EXCLUSIVO', 'SI']

TRUE_VALUES = {'SI', 'SÍ', 'TRUE', '1', 'YES'}
BOOLEAN_VALUES = TRUE_VALUES | {'NO', 'FALSE', '0'}
ACTIVE_VALUES = TRUE_VALUES | {'ACTIVO', 'ACTIVE'}
ESTADO_VALUES = BOOLEAN_VALUES | {'ACTIVO', 'INACTIVO', 'ACTIVE', 'INACTIVE'}
INCOMING_FLAG_VALUES = ESTADO_VALUES
HORECA_INPUT_VALUES = {'NO', 'EXCLUSIVO', 'EXCLUSIVE', 'SI', 'SÍ', 'YES', 'TRUE', '1', '0', 'FALSE', 'AMBOS', 'BOTH'}

_CATEGORY_CONNECTORS = {'y', 'and', 'e'}

# Excel stores dates as days since 1899-12-30
_EXCEL_EPOCH = date(1899, 12, 30)
_EXCEL_MAX_SERIAL = 2958465


def normalize_numeric(value):
    """Parse a spreadsheet number ("$ 89.900,50", "1,234", "12.5") into a Decimal"""
    if value is None:
        return None
    cleaned = re.sub(r'[\s$]', '', str(value))
    if not cleaned:
        return None

    if ',' in cleaned and '.' in cleaned:
        if cleaned.rfind(',') > cleaned.rfind('.'):
            cleaned = cleaned.replace('.', '').replace(',', '.')
        else:
            cleaned = cleaned.replace(',', '')
    elif ',' in cleaned:
        if re.fullmatch(r'-?\d{1,3}(,\d{3})+', cleaned):
            cleaned = cleaned.replace(',', '')
        else:
            cleaned = cleaned.replace(',', '.')
    elif cleaned.count('.') > 1 and re.fullmatch(r'-?\d{1,3}(\.\d{3})+', cleaned):
        cleaned = cleaned.replace('.', '')

    if not re.fullmatch(r'-?\d+(\.\d+)?', cleaned):
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def quantize_numeric(number, column):
    """Round a parsed number to the decimals its column stores"""
    if number is None or column not in NUMERIC_PRECISION:
        return number
    return quantize_decimal(number, NUMERIC_PRECISION[column][1])


def numeric_max_value(column):
    return decimal_max_value(*NUMERIC_PRECISION[column])


def exceeds_precision(number, column):
    if number is None or column not in NUMERIC_PRECISION:
        return False
    return exceeds_decimal_field(number, *NUMERIC_PRECISION[column])


def normalize_boolean(value):
    if not value:
        return False
    return value.strip().upper() in TRUE_VALUES


def normalize_estado(value):
    """Empty means active"""
    if not value or not value.strip():
        return True
    return value.strip().upper() in ACTIVE_VALUES


def normalize_horeca(value):
    if not value:
        return 'NO'
    upper = value.strip().upper()
    if upper in ('EXCLUSIVO', 'EXCLUSIVE'):
        return 'EXCLUSIVO'
    if upper in ('SI', 'SÍ', 'YES', 'TRUE', '1', 'AMBOS', 'BOTH'):
        return 'SI'
    return 'NO'


def normalize_incoming(value):
    """Pedido_en_camino accepts a quantity or a SI/NO flag"""
    numeric = normalize_numeric(value)
    if numeric is not None:
        return numeric
    if not value or not value.strip():
        return None
    return Decimal('1') if value.strip().upper() in ACTIVE_VALUES else Decimal('0')


def category_slug(value):
    """Accent-free slug without connector words ("Café, té y bar" -> "cafe-te-bar")"""
    words = re.split(r'[^a-z0-9]+', strip_accents(value.lower()))
    return '-'.join(w for w in words if w and w not in _CATEGORY_CONNECTORS)


def parse_base_category_slug(value):
    """Return the base category slug for a category label, or None"""
    if not value or not value.strip():
        return None
    slug = category_slug(value)
    return slug if slug in BASE_CATEGORY_SLUGS else None


def _safe_date(year, month, day):
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_launch_date(value):
    """Accept DD/MM/YYYY, DD-MM-YYYY, DD/MM/YY, YYYY-MM-DD or an Excel serial"""
    if not value or not value.strip():
        return None
    raw = value.strip()

    match = re.fullmatch(r'(\d{1,2})[/-](\d{1,2})[/-](\d{2}|\d{4})', raw)
    if match:
        day, month, year = (int(p) for p in match.groups())
        if len(match.group(3)) == 2:
            year += 2000
        return _safe_date(year, month, day)

    match = re.fullmatch(r'(\d{4})-(\d{1,2})-(\d{1,2})', raw)
    if match:
        year, month, day = (int(p) for p in match.groups())
        return _safe_date(year, month, day)

    if re.fullmatch(r'\d+(\.0+)?', raw):
        serial = int(float(raw))
        if 1 <= serial <= _EXCEL_MAX_SERIAL:
            return _EXCEL_EPOCH + timedelta(days=serial)

    return None


def generate_empty_template():
    return ','.join(CSV_HEADERS)


def generate_template_with_descriptions():
    header_row = ','.join(CSV_HEADERS)
    description_row = ','.join(
        '"' + CSV_HEADER_DESCRIPTIONS[h].replace('"', '""') + '"' for h in CSV_HEADERS
    )
    return f"{header_row}\n{description_row}\n{_example_row()}"


def _example_row():
    example = {
        'Ref': 'ABC-001',
        'SKU': '7701234567890',
        'Producto': 'Tabla de Cortar Bambú Premium',
        'Estado': 'ACTIVO',
        'Descripcion': 'Tabla de cortar profesional en bambú ecológico',
        'Marca': 'Mesa Nova',
        'Precio_COP': '89900',
        'Descuento': '15',
        'Precio_Dist': '62000',
        'Desc_Dist': '5',
        'Existencia_inv': '150',
        'Pedido_en_camino': 'NO',
        'Descontinuado': 'NO',
        'Inner_pack': '1',
        'Outer_pack': '12',
        'Coleccion': 'Eco Kitchen',
        'Categoria_1': 'Cocina',
        'Subcategoria_1': 'Corte y Picado',
        'Tipo_producto_1': 'Tablas de Cortar',
        'Material': 'Bambú',
        'Color': 'Natural',
        'Dimensiones': '40x30x2 cm',
        'Peso_kg': '0.8',
        'Pais_origen': 'China',
        'Descrip_Cliente_Final': 'Tabla de cortar elaborada en bambú 100% natural...',
        'Momentos_Uso_Cliente': 'Ideal para preparar tus comidas diarias...',
        'Productos_Afines_Cliente': 'ABC-002,ABC-003',
        'Descrip_Distribuidor': 'Producto de alta rotación con excelente margen...',
        'Argumentos_Venta_Distribuidor': 'Material ecológico muy demandado...',
        'Ubicacion_Tienda_Distribuidor': 'Zona de cocina cerca de cuchillos',
        'Margen_Sugerido': '40',
        'Rotacion_Esperada': 'alta',
        'SEO_Title': 'Tabla de Cortar Bambú | Mesa Nova',
        'SEO_Description': 'Compra tabla de cortar en bambú ecológico...',
        'Tags': 'tabla,cortar,bambú,cocina,ecológico',
        'Video_URL': 'https://youtube.com/watch?v=xxx',
        'Ficha_Tecnica_URL': 'https://cdn.mesanova.com/fichas/abc-001.pdf',
        'Fecha_Lanzamiento': '15/01/2026',
        'HoReCa': 'NO',
        'Image_1': 'https://cdn.mesanova.com/products/abc-001-1.jpg',
        'Image_2': 'https://cdn.mesanova.com/products/abc-001-2.jpg',
        'SEO_Alt_Text_1': 'Tabla de cortar bambú vista frontal',
        'SEO_Alt_Text_2': 'Tabla de cortar bambú en uso',
    }
    return build_line(example.get(h, '') for h in CSV_HEADERS)
