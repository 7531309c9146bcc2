"""
Lenient CSV tokenizing shared by the catalog and distributor importers.

Spreadsheets exported by hand often contain stray quotes (inch marks such as
``12"``) and multi-line text cells. The helpers here accept those files:

- a quote opens a quoted field only at the start of the field
- inside quotes, ``""`` is an escaped quote
- a quote closes the field only when followed (ignoring blanks) by a
  delimiter, a line break or end of input; any other quote is literal
"""
import csv
import io
import re
import unicodedata
from decimal import ROUND_HALF_UP, Decimal

DELIMITER = ','
LINE_TERMINATOR = '\r\n'
BOM = '\ufeff'
DESCRIPTION_ROW_MIN_LENGTH = 50


def _next_significant_char(text, start):
    for j in range(start, len(text)):
        if text[j] not in (' ', '\t'):
            return text[j]
    return None


def split_rows(content):
    """Split raw CSV text into record strings, honouring quoted line breaks"""
    if content.startswith(BOM):
        content = content[1:]

    rows = []
    current = []
    current_field = []
    in_quotes = False
    i = 0
    length = len(content)

    while i < length:
        char = content[i]
        next_char = content[i + 1] if i + 1 < length else None

        if char == '"':
            if in_quotes and next_char == '"':
                current.append('""')
                current_field.append('""')
                i += 2
                continue

            if in_quotes:
                following = _next_significant_char(content, i + 1)
                if following in (DELIMITER, '\n', '\r', None):
                    in_quotes = False
            elif ''.join(current_field).strip() == '':
                in_quotes = True

            current.append(char)
            current_field.append(char)
            i += 1
            continue

        if not in_quotes and char == DELIMITER:
            current.append(char)
            current_field = []
            i += 1
            continue

        if not in_quotes and char in ('\n', '\r'):
            if char == '\r' and next_char == '\n':
                i += 1
            row = ''.join(current)
            if row.strip():
                rows.append(row)
            current = []
            current_field = []
            i += 1
            continue

        current.append(char)
        current_field.append(char)
        i += 1

    row = ''.join(current)
    if row.strip():
        rows.append(row)

    return rows


def parse_line(line):
    """Split a single record into trimmed values"""
    values = []
    current = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        next_char = line[i + 1] if i + 1 < length else None

        if char == '"':
            if in_quotes and next_char == '"':
                current.append('"')
                i += 2
                continue

            if in_quotes:
                following = _next_significant_char(line, i + 1)
                if following in (DELIMITER, None):
                    in_quotes = False
                else:
                    current.append(char)
            elif ''.join(current).strip() == '':
                in_quotes = True
            else:
                current.append(char)
        elif char == DELIMITER and not in_quotes:
            values.append(''.join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    values.append(''.join(current).strip())
    return values


def build_line(values):
    """Write one CSV record, quoting only values that need it"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=DELIMITER, lineterminator=LINE_TERMINATOR, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(values)
    return buffer.getvalue()[:-len(LINE_TERMINATOR)]


def escape_value(value):
    """Quote a single value for CSV output when needed"""
    if value is None or value == '':
        return ''
    return build_line([value])


def strip_accents(value):
    normalized = unicodedata.normalize('NFD', value)
    return ''.join(c for c in normalized if unicodedata.category(c) != 'Mn')


def normalize_key(value):
    """Normalize a lookup key: lower-case, no accents, single spaces"""
    if not value:
        return ''
    value = strip_accents(value.lower().strip())
    return re.sub(r'\s+', ' ', value)


def is_description_row(values):
    """Templates ship a human-readable description row after the header"""
    first_value = values[0] if values else ''
    return len(first_value) > DESCRIPTION_ROW_MIN_LENGTH or 'obligatorio' in first_value.lower()


def header_issues(headers, expected):
    """Return global errors for missing and unrecognised columns"""
    errors = []
    missing = [h for h in expected if h not in headers]
    extra = [h for h in headers if h not in expected]
    if missing:
        errors.append(f"Columnas faltantes: {', '.join(missing)}")
    if extra:
        errors.append(f"Columnas no reconocidas (serán ignoradas): {', '.join(extra)}")
    return errors


def decode_upload(data):
    """Decode uploaded CSV bytes, falling back to Latin-1 for legacy Excel exports"""
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError:
        return data.decode('latin-1')


def quantize_decimal(number, decimal_places):
    """Round half up to the scale a DecimalField stores"""
    return number.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


def decimal_max_value(max_digits, decimal_places):
    return Decimal(10) ** (max_digits - decimal_places) - Decimal(1).scaleb(-decimal_places)


def exceeds_decimal_field(number, max_digits, decimal_places):
    """True when the number does not fit a DecimalField once rounded"""
    if number and number.adjusted() + 1 > max_digits - decimal_places:
        return True
    return abs(quantize_decimal(number, decimal_places)) > decimal_max_value(max_digits, decimal_places)
