"""
Distributor CSV parsing, validation and diffing.

Rows are first validated as updates (email optional); ``compare_with_existing``
revalidates rows whose company_rif is unknown with the rules for new
distributors.
"""
import re
from dataclasses import asdict, dataclass, field

from storefront.core.csvtools import header_issues, is_description_row, parse_line, split_rows

from .template import (
    BOOLEAN_FIELDS,
    BOOLEAN_VALUES,
    CSV_HEADERS,
    NUMERIC_FIELDS,
    REQUIRED_FIELDS,
    REQUIRED_FOR_NEW,
    TRUE_VALUES,
    VALID_DOCUMENT_TYPES,
    exceeds_precision,
    parse_numeric,
    quantize_numeric,
)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Columns compared against stored distributors; contact columns live on the user
COMPARED_FIELDS = ['company_rif', 'company_name', 'business_type', 'discount_percentage', 'credit_limit', 'is_active']


@dataclass
class ValidationIssue:
    field: str
    message: str
    value: str = ''


@dataclass
class ParsedDistributor:
    row: int
    data: dict
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    @property
    def is_valid(self):
        return not self.errors

    @property
    def company_rif(self):
        return self.data.get('company_rif', '').strip()

    def to_dict(self):
        return {
            'row': self.row,
            'data': self.data,
            'errors': [asdict(e) for e in self.errors],
            'warnings': [asdict(w) for w in self.warnings],
            'is_valid': self.is_valid,
        }


@dataclass
class DistributorParseResult:
    distributors: list
    global_errors: list

    @property
    def total_rows(self):
        return len(self.distributors)

    @property
    def valid_rows(self):
        return sum(1 for d in self.distributors if d.is_valid)

    @property
    def invalid_rows(self):
        return self.total_rows - self.valid_rows

    @property
    def success(self):
        return self.total_rows > 0 and self.invalid_rows == 0 and not self.global_errors


@dataclass
class DistributorChange:
    field: str
    old_value: str = None
    new_value: str = None


@dataclass
class DistributorDiff:
    company_rif: str
    change_type: str
    changes: list = field(default_factory=list)
    existing_id: int = None
    existing_user_id: int = None

    def to_dict(self):
        return asdict(self)


def _blank(value):
    return not value or not value.strip()


def validate_row(row, is_new):
    """Validate one distributor row. Returns (errors, warnings)."""
    errors = []
    warnings = []

    for name in REQUIRED_FIELDS:
        if _blank(row.get(name)):
            errors.append(ValidationIssue(name, f'El campo {name} es obligatorio', row.get(name) or ''))

    if is_new:
        for name in REQUIRED_FOR_NEW:
            if _blank(row.get(name)):
                errors.append(ValidationIssue(name, f'El campo {name} es obligatorio para nuevos distribuidores', row.get(name) or ''))

    email = row.get('email')
    if not _blank(email) and not EMAIL_RE.match(email.strip()):
        errors.append(ValidationIssue('email', 'Email inválido', email))

    for name in NUMERIC_FIELDS:
        value = row.get(name)
        if _blank(value):
            continue
        number = parse_numeric(value)
        if number is None:
            errors.append(ValidationIssue(name, f'El campo {name} debe ser un número válido', value))
        elif number < 0:
            errors.append(ValidationIssue(name, f'El campo {name} no puede ser negativo', value))
        elif name == 'discount_percentage' and number > 100:
            errors.append(ValidationIssue(name, 'El descuento debe estar entre 0 y 100', value))
        elif exceeds_precision(number, name):
            errors.append(ValidationIssue(name, f'El campo {name} excede el valor máximo permitido', value))

    for name in BOOLEAN_FIELDS:
        value = row.get(name)
        if not _blank(value) and value.strip().upper() not in BOOLEAN_VALUES:
            errors.append(ValidationIssue(name, f'El campo {name} debe ser SI/NO', value))

    document_type = row.get('document_type')
    if not _blank(document_type):
        if document_type.strip().lower() not in [t.lower() for t in VALID_DOCUMENT_TYPES]:
            warnings.append(ValidationIssue(
                'document_type',
                f'Tipo de documento "{document_type}" no reconocido. Válidos: {", ".join(VALID_DOCUMENT_TYPES)}',
                document_type,
            ))

    if _blank(row.get('phone')):
        warnings.append(ValidationIssue('phone', 'Se recomienda incluir teléfono de contacto'))

    return errors, warnings


def parse_csv(content):
    """Parse and validate a distributor CSV document"""
    lines = split_rows(content or '')
    if not lines:
        return DistributorParseResult(distributors=[], global_errors=['El archivo está vacío'])

    headers = parse_line(lines[0])
    global_errors = header_issues(headers, CSV_HEADERS)
    header_index = {}
    for i, header in enumerate(headers):
        header_index.setdefault(header, i)

    start = 1
    if len(lines) > 1 and is_description_row(parse_line(lines[1])):
        start = 2

    distributors = []
    for i in range(start, len(lines)):
        values = parse_line(lines[i])
        data = {}
        for header in CSV_HEADERS:
            index = header_index.get(header)
            data[header] = values[index] if index is not None and index < len(values) else ''
        errors, warnings = validate_row(data, is_new=False)
        distributors.append(ParsedDistributor(row=i + 1, data=data, errors=errors, warnings=warnings))

    return DistributorParseResult(distributors=distributors, global_errors=global_errors)


def normalize_for_compare(value, name):
    value = (value or '').strip()
    if name in BOOLEAN_FIELDS:
        # Empty means active
        if not value:
            return 'true'
        upper = value.upper()
        if upper in TRUE_VALUES:
            return 'true'
        if upper in ('NO', 'FALSE', '0'):
            return 'false'
        return value.lower()
    if name in NUMERIC_FIELDS:
        number = parse_numeric(value)
        if number is None:
            return '0' if not value else ''
        if not exceeds_precision(number, name):
            number = quantize_numeric(number, name)
        return '0' if number == 0 else format(number.normalize(), 'f')
    return value.lower()


def compare_with_existing(distributors, existing):
    """
    Diff parsed distributors against stored ones.

    ``existing`` maps company_rif to ``{'id', 'user_id', 'data'}`` where data
    is CSV-shaped. Unknown rows are revalidated as new distributors and marked
    invalid (without a diff) when that fails.
    """
    diffs = []
    for distributor in distributors:
        if not distributor.is_valid:
            continue

        rif = distributor.company_rif
        current = existing.get(rif)
        if current is None:
            errors, _ = validate_row(distributor.data, is_new=True)
            if errors:
                distributor.errors = errors
                continue
            diffs.append(DistributorDiff(company_rif=rif, change_type='create'))
            continue

        changes = []
        for name in COMPARED_FIELDS:
            new_value = distributor.data.get(name) or ''
            old_value = current['data'].get(name) or ''
            if normalize_for_compare(new_value, name) != normalize_for_compare(old_value, name):
                changes.append(DistributorChange(field=name, old_value=old_value or None, new_value=new_value or None))

        diffs.append(DistributorDiff(
            company_rif=rif,
            change_type='update' if changes else 'unchanged',
            changes=changes,
            existing_id=current['id'],
            existing_user_id=current['user_id'],
        ))

    return diffs
