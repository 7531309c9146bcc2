"""
Distributor CSV schema. Rows are matched on company_rif.
"""
import re
from decimal import Decimal, InvalidOperation

from storefront.core.csvtools import build_line, exceeds_decimal_field, quantize_decimal

CSV_HEADERS = [
    'company_rif',
    'company_name',
    'business_type',
    'email',
    'full_name',
    'phone',
    'document_type',
    'document_number',
    'discount_percentage',
    'credit_limit',
    'is_active',
]

CSV_HEADER_DESCRIPTIONS = {
    'company_rif': 'NIT/RIF de la empresa (obligatorio, clave única para match)',
    'company_name': 'Nombre de la empresa (obligatorio)',
    'business_type': 'Tipo de negocio (Tienda, Restaurante, Hotel, etc.)',
    'email': 'Email del distribuidor (obligatorio para nuevos, se enviará invitación)',
    'full_name': 'Nombre completo del contacto',
    'phone': 'Teléfono de contacto',
    'document_type': 'Tipo de documento (CC, CE, Pasaporte, NIT)',
    'document_number': 'Número de documento',
    'discount_percentage': 'Porcentaje de descuento general (0-100)',
    'credit_limit': 'Límite de crédito en pesos',
    'is_active': 'Estado activo (SI/NO)',
}

REQUIRED_FIELDS = ['company_rif', 'company_name']
REQUIRED_FOR_NEW = ['email']
BOOLEAN_FIELDS = ['is_active']
NUMERIC_FIELDS = ['discount_percentage', 'credit_limit']
# (max_digits, decimal_places) of the Distributor columns
NUMERIC_PRECISION = {
    'discount_percentage': (5, 2),
    'credit_limit': (14, 2),
}

VALID_DOCUMENT_TYPES = ['CC', 'CE', 'Pasaporte', 'NIT']

TRUE_VALUES = {'SI', 'SÍ', 'TRUE', '1'}
BOOLEAN_VALUES = TRUE_VALUES | {'NO', 'FALSE', '0'}


def parse_numeric(value):
    """Numbers may carry thousands commas or a currency sign ("$5,000,000")"""
    if not value or not value.strip():
        return None
    cleaned = re.sub(r'[,$\s]', '', value)
    if not re.fullmatch(r'-?\d+(\.\d+)?', cleaned):
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def quantize_numeric(number, name):
    if number is None:
        return None
    return quantize_decimal(number, NUMERIC_PRECISION[name][1])


def exceeds_precision(number, name):
    return exceeds_decimal_field(number, *NUMERIC_PRECISION[name])


def parse_boolean(value):
    """Empty means active"""
    if not value or not value.strip():
        return True
    return value.strip().upper() in TRUE_VALUES


def generate_empty_template():
    return ','.join(CSV_HEADERS)


def generate_template_with_descriptions():
    header_row = ','.join(CSV_HEADERS)
    description_row = ','.join('"' + CSV_HEADER_DESCRIPTIONS[h] + '"' for h in CSV_HEADERS)
    example = {
        'company_rif': '900123456-7',
        'company_name': 'Distribuidora Ejemplo S.A.S',
        'business_type': 'Tienda',
        'email': 'contacto@distribuidora-ejemplo.com',
        'full_name': 'Juan Pérez García',
        'phone': '+57 300 123 4567',
        'document_type': 'CC',
        'document_number': '1234567890',
        'discount_percentage': '15',
        'credit_limit': '5000000',
        'is_active': 'SI',
    }
    example_row = build_line(example[h] for h in CSV_HEADERS)
    return f"{header_row}\n{description_row}\n{example_row}"
