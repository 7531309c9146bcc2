"""
Product CSV parsing, row validation and diffing against stored products.

Nothing in this module touches the database: ``compare_with_existing`` works on
CSV-shaped rows produced by the importer, so the same rules apply to previews
and to real imports.
"""
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from urllib.parse import urlparse

from storefront.core.csvtools import header_issues, is_description_row, normalize_key, parse_line, split_rows

from .template import (
    BOOLEAN_FIELDS,
    BOOLEAN_VALUES,
    CATEGORY_FIELD_SETS,
    CATEGORY_FIELDS,
    CSV_HEADERS,
    DATE_FIELDS,
    ESTADO_VALUES,
    HORECA_INPUT_VALUES,
    HORECA_VALUES,
    IMAGE_ALT_FIELDS,
    IMAGE_FIELDS,
    INCOMING_FLAG_VALUES,
    NUMERIC_FIELDS,
    REQUIRED_FIELDS,
    TRUE_VALUES,
    URL_FIELDS,
    VALID_CATEGORIES,
    VALID_ROTACION,
    category_slug,
    exceeds_precision,
    normalize_estado,
    normalize_horeca,
    normalize_numeric,
    numeric_max_value,
    parse_base_category_slug,
    parse_launch_date,
    quantize_numeric,
)

# Columns whose empty value is stored as zero/false
ZERO_DEFAULT_FIELDS = ['Descuento', 'Desc_Dist', 'Existencia_inv']

# Range-checked separately (0-100)
PERCENT_FIELDS = ('Descuento', 'Desc_Dist')


@dataclass
class ValidationIssue:
    field: str
    message: str
    value: str = ''


@dataclass
class ParsedProduct:
    row: int
    data: dict
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    @property
    def is_valid(self):
        return not self.errors

    @property
    def ref(self):
        return self.data.get('Ref', '').strip()

    def to_dict(self):
        return {
            'row': self.row,
            'data': self.data,
            'errors': [asdict(e) for e in self.errors],
            'warnings': [asdict(w) for w in self.warnings],
            'is_valid': self.is_valid,
        }


@dataclass
class CsvParseResult:
    products: list
    global_errors: list

    @property
    def total_rows(self):
        return len(self.products)

    @property
    def valid_rows(self):
        return sum(1 for p in self.products if p.is_valid)

    @property
    def invalid_rows(self):
        return self.total_rows - self.valid_rows

    @property
    def success(self):
        return self.total_rows > 0 and self.invalid_rows == 0 and not self.global_errors


@dataclass
class ProductChange:
    field: str
    old_value: str = None
    new_value: str = None


@dataclass
class ProductDiff:
    ref: str
    change_type: str
    changes: list = field(default_factory=list)

    def changed_fields(self):
        return [c.field for c in self.changes]

    def to_dict(self):
        return asdict(self)


def _is_url(value):
    parsed = urlparse(value.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def _blank(value):
    return not value or not value.strip()


def _precision_issue(name, value):
    limit = format(numeric_max_value(name), 'f')
    return ValidationIssue(name, f'El campo {name} excede el valor máximo permitido ({limit})', value)


def validate_row(row):
    """Validate one CSV row. Returns (errors, warnings)."""
    errors = []
    warnings = []
    horeca = normalize_horeca(row.get('HoReCa'))
    requires_base_category = horeca in ('SI', 'EXCLUSIVO')
    base_categories = []

    for name in REQUIRED_FIELDS:
        if _blank(row.get(name)):
            errors.append(ValidationIssue(name, f'El campo {name} es obligatorio', row.get(name) or ''))

    for name in NUMERIC_FIELDS:
        if name == 'Pedido_en_camino':
            continue
        value = row.get(name)
        if _blank(value):
            continue
        number = normalize_numeric(value)
        if number is None:
            errors.append(ValidationIssue(name, f'El campo {name} debe ser un número válido', value))
        elif number < 0:
            errors.append(ValidationIssue(name, f'El campo {name} no puede ser negativo', value))
        elif name not in PERCENT_FIELDS and exceeds_precision(number, name):
            errors.append(_precision_issue(name, value))

    incoming = row.get('Pedido_en_camino')
    if not _blank(incoming):
        number = normalize_numeric(incoming)
        if number is None and incoming.strip().upper() not in INCOMING_FLAG_VALUES:
            errors.append(ValidationIssue(
                'Pedido_en_camino',
                'El campo Pedido_en_camino debe ser SI/NO o una cantidad numérica',
                incoming,
            ))
        elif number is not None and number < 0:
            errors.append(ValidationIssue('Pedido_en_camino', 'El campo Pedido_en_camino no puede ser negativo', incoming))
        elif exceeds_precision(number, 'Pedido_en_camino'):
            errors.append(_precision_issue('Pedido_en_camino', incoming))

    for name in BOOLEAN_FIELDS:
        value = row.get(name)
        if not _blank(value) and value.strip().upper() not in BOOLEAN_VALUES:
            errors.append(ValidationIssue(name, f'El campo {name} debe ser SI/NO', value))

    estado = row.get('Estado')
    if not _blank(estado) and estado.strip().upper() not in ESTADO_VALUES:
        errors.append(ValidationIssue('Estado', 'El campo Estado debe ser ACTIVO o INACTIVO', estado))

    horeca_raw = row.get('HoReCa')
    if not _blank(horeca_raw) and horeca_raw.strip().upper() not in HORECA_INPUT_VALUES:
        errors.append(ValidationIssue('HoReCa', f"El campo HoReCa debe ser: {', '.join(HORECA_VALUES)}", horeca_raw))

    valid_categories = ', '.join(VALID_CATEGORIES)
    for cat_field, sub_field, type_field, required in CATEGORY_FIELD_SETS:
        category = (row.get(cat_field) or '').strip()
        subcategory = (row.get(sub_field) or '').strip()
        product_type = (row.get(type_field) or '').strip()

        if category:
            slug = parse_base_category_slug(category)
            if slug:
                base_categories.append(slug)
            elif requires_base_category:
                errors.append(ValidationIssue(
                    cat_field,
                    f'Para HoReCa (SI/EXCLUSIVO), {cat_field} debe ser una de: {valid_categories}',
                    category,
                ))
            else:
                warnings.append(ValidationIssue(
                    cat_field,
                    f'Categoría "{category}" no reconocida. Válidas: {valid_categories}',
                    category,
                ))

            if not subcategory and not required:
                warnings.append(ValidationIssue(sub_field, f'Se recomienda completar {sub_field} si se especifica {cat_field}'))
        elif product_type and not subcategory and not required:
            warnings.append(ValidationIssue(sub_field, f'Se recomienda completar {sub_field} si se especifica {type_field}'))

        if subcategory and not category:
            warnings.append(ValidationIssue(cat_field, f'Falta {cat_field} para {sub_field}'))

    if requires_base_category and not base_categories:
        errors.append(ValidationIssue(
            'Categoria_1',
            f'Los productos HoReCa (SI/EXCLUSIVO) deben pertenecer a: {valid_categories}',
            row.get('Categoria_1') or '',
        ))

    rotation = row.get('Rotacion_Esperada')
    if not _blank(rotation) and rotation.strip().lower() not in VALID_ROTACION:
        errors.append(ValidationIssue('Rotacion_Esperada', f"Rotación debe ser: {', '.join(VALID_ROTACION)}", rotation))

    for name, label in (('Descuento', 'El descuento'), ('Desc_Dist', 'El descuento distribuidor')):
        number = normalize_numeric(row.get(name))
        if number is not None and not (0 <= number <= 100):
            errors.append(ValidationIssue(name, f'{label} debe estar entre 0 y 100', row.get(name)))

    margin = normalize_numeric(row.get('Margen_Sugerido'))
    if margin is not None and not (0 <= margin <= 100):
        warnings.append(ValidationIssue(
            'Margen_Sugerido',
            'El margen sugerido parece fuera de rango normal (0-100%)',
            row.get('Margen_Sugerido'),
        ))

    for name in DATE_FIELDS:
        value = row.get(name)
        if not _blank(value) and parse_launch_date(value) is None:
            errors.append(ValidationIssue(
                name,
                'La fecha debe tener formato DD/MM/YYYY o DD/MM/AA (ej: 15/01/2026 o 15/01/26)',
                value,
            ))

    for image_field, alt_field in zip(IMAGE_FIELDS, IMAGE_ALT_FIELDS):
        url = row.get(image_field)
        alt = row.get(alt_field)
        if not _blank(url):
            if not _is_url(url):
                errors.append(ValidationIssue(image_field, 'URL de imagen inválida', url))
            if _blank(alt):
                errors.append(ValidationIssue(
                    alt_field,
                    f'El campo {alt_field} es obligatorio cuando {image_field} tiene URL',
                    alt or '',
                ))
        elif not _blank(alt):
            warnings.append(ValidationIssue(alt_field, f'El campo {alt_field} tiene valor pero {image_field} está vacío', alt))

    for name in URL_FIELDS:
        value = row.get(name)
        if not _blank(value) and not _is_url(value):
            label = 'video' if name == 'Video_URL' else 'ficha técnica'
            errors.append(ValidationIssue(name, f'URL de {label} inválida', value))

    if _blank(row.get('Image_1')):
        warnings.append(ValidationIssue('Image_1', 'Se recomienda incluir al menos una imagen'))

    return errors, warnings


def _row_data(values, header_index):
    data = {}
    for header in CSV_HEADERS:
        index = header_index.get(header)
        data[header] = values[index] if index is not None and index < len(values) else ''
    return data


def parse_csv(content):
    """Parse and validate a product CSV document"""
    lines = split_rows(content or '')
    if not lines:
        return CsvParseResult(products=[], global_errors=['El archivo está vacío'])

    headers = parse_line(lines[0])
    global_errors = header_issues(headers, CSV_HEADERS)
    header_index = {}
    for i, header in enumerate(headers):
        header_index.setdefault(header, i)

    start = 1
    if len(lines) > 1 and is_description_row(parse_line(lines[1])):
        start = 2

    products = []
    for i in range(start, len(lines)):
        values = parse_line(lines[i])
        row_number = i + 1
        data = _row_data(values, header_index)

        if len(values) != len(headers):
            products.append(ParsedProduct(
                row=row_number,
                data=data,
                errors=[ValidationIssue(
                    'Ref',
                    f'La fila tiene {len(values)} columnas pero se esperaban {len(headers)}. '
                    'Esto suele ocurrir cuando un campo de texto (por ejemplo Descrip_Cliente_Final) '
                    'contiene comas o saltos de línea sin estar entre comillas.',
                )],
            ))
            continue

        errors, warnings = validate_row(data)
        products.append(ParsedProduct(row=row_number, data=data, errors=errors, warnings=warnings))

    return CsvParseResult(products=products, global_errors=global_errors)


def _canonical_number(number):
    if number == 0:
        return '0'
    return format(number.normalize(), 'f')


def normalize_for_compare(value, name):
    """Canonical string used to decide whether a column changed"""
    value = (value or '').strip()

    if name == 'Estado':
        return 'true' if normalize_estado(value) else 'false'
    if name == 'HoReCa':
        return normalize_horeca(value)

    if name == 'Pedido_en_camino':
        if not value:
            return 'false'
        number = normalize_numeric(value)
        if number is not None:
            return 'true' if number > 0 else 'false'
        upper = value.upper()
        if upper in TRUE_VALUES or upper in ('ACTIVO', 'ACTIVE'):
            return 'true'
        if upper in ('NO', 'FALSE', '0', 'INACTIVO', 'INACTIVE'):
            return 'false'
        return value.lower()

    if name in BOOLEAN_FIELDS:
        if not value:
            return 'false'
        upper = value.upper()
        if upper in TRUE_VALUES:
            return 'true'
        if upper in ('NO', 'FALSE', '0'):
            return 'false'
        return value.lower()

    if name in NUMERIC_FIELDS:
        number = normalize_numeric(value)
        if number is None:
            number = Decimal('0') if name in ZERO_DEFAULT_FIELDS else None
        elif not exceeds_precision(number, name):
            number = quantize_numeric(number, name)
        return '' if number is None else _canonical_number(number)

    if name in DATE_FIELDS:
        parsed = parse_launch_date(value)
        return parsed.isoformat() if parsed else value.lower()

    if name == 'Tags':
        return ','.join(t.strip().lower() for t in value.split(',') if t.strip())

    if name in CATEGORY_FIELDS:
        if name.startswith('Categoria_'):
            return category_slug(value)
        return normalize_key(value)

    return value.lower()


def compare_with_existing(products, existing):
    """
    Diff parsed products against stored ones.

    ``existing`` maps Ref to a CSV-shaped row (see importer.product_to_row).
    Invalid products are left out of the result.
    """
    diffs = []
    for product in products:
        if not product.is_valid:
            continue

        ref = product.ref
        current = existing.get(ref)
        if current is None:
            diffs.append(ProductDiff(ref=ref, change_type='create'))
            continue

        changes = []
        for name in CSV_HEADERS:
            if name == 'Ref':
                continue
            new_value = product.data.get(name) or ''
            old_value = current.get(name) or ''
            if normalize_for_compare(new_value, name) != normalize_for_compare(old_value, name):
                changes.append(ProductChange(field=name, old_value=old_value or None, new_value=new_value or None))

        diffs.append(ProductDiff(ref=ref, change_type='update' if changes else 'unchanged', changes=changes))

    return diffs
