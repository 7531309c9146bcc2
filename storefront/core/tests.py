"""
Test suite for Core module
Tests: lenient CSV tokenizer, authentication, roles and audit logging
"""
from django.test import TestCase, SimpleTestCase
from rest_framework import status
from storefront.core.csvtools import (
    build_line, escape_value, header_issues, is_description_row,
    normalize_key, parse_line, split_rows, decode_upload
)
from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.utils import create_audit_log


class CsvTokenizerTests(SimpleTestCase):
    """Test the lenient CSV tokenizer"""

    def test_parse_line_quoted_delimiter(self):
        self.assertEqual(parse_line('a,"b,c",d'), ['a', 'b,c', 'd'])

    def test_parse_line_escaped_quotes(self):
        self.assertEqual(parse_line('x,"say ""hi""",y'), ['x', 'say "hi"', 'y'])

    def test_parse_line_trims_values(self):
        self.assertEqual(parse_line(' a , b ,'), ['a', 'b', ''])

    def test_stray_quote_mid_field_is_literal(self):
        """Inch marks inside an unquoted field are kept"""
        self.assertEqual(parse_line('R1,Tabla 12" x 8,5'), ['R1', 'Tabla 12" x 8', '5'])

    def test_quote_inside_quoted_field_not_before_delimiter(self):
        self.assertEqual(parse_line('"Tabla 12" grande",2'), ['Tabla 12" grande', '2'])

    def test_split_rows_keeps_quoted_line_breaks(self):
        rows = split_rows('Ref,Desc\nA,"line1\nline2"\nB,x')
        self.assertEqual(rows, ['Ref,Desc', 'A,"line1\nline2"', 'B,x'])
        self.assertEqual(parse_line(rows[1]), ['A', 'line1\nline2'])

    def test_split_rows_strips_bom_and_handles_crlf(self):
        self.assertEqual(split_rows('\ufeffRef\r\nA\r\nB'), ['Ref', 'A', 'B'])

    def test_split_rows_skips_blank_lines(self):
        self.assertEqual(split_rows('a\n\n   \nb\n'), ['a', 'b'])

    def test_split_rows_empty(self):
        self.assertEqual(split_rows(''), [])

    def test_escape_value(self):
        self.assertEqual(escape_value('plain'), 'plain')
        self.assertEqual(escape_value('a,b'), '"a,b"')
        self.assertEqual(escape_value('say "x"'), '"say ""x"""')
        self.assertEqual(escape_value('two\nlines'), '"two\nlines"')
        self.assertEqual(escape_value(''), '')
        self.assertEqual(escape_value(None), '')

    def test_build_line_quotes_only_when_needed(self):
        self.assertEqual(build_line(['plain', 'a,b', 'say "x"']), 'plain,"a,b","say ""x"""')
        self.assertEqual(build_line(['two\nlines', None, '']), '"two\nlines",,')

    def test_build_line_parses_back(self):
        values = ['A-1', 'Tabla, grande', 'Dice "hola"', '']
        self.assertEqual(parse_line(build_line(values)), values)

    def test_normalize_key(self):
        self.assertEqual(normalize_key('  Café   Té '), 'cafe te')
        self.assertEqual(normalize_key(None), '')

    def test_is_description_row(self):
        self.assertTrue(is_description_row(['Código de referencia único del producto (obligatorio)']))
        self.assertTrue(is_description_row(['Ref obligatorio']))
        self.assertFalse(is_description_row(['ABC-001']))
        self.assertFalse(is_description_row([]))

    def test_header_issues(self):
        self.assertEqual(
            header_issues(['a', 'x'], ['a', 'b']),
            ['Columnas faltantes: b', 'Columnas no reconocidas (serán ignoradas): x'],
        )
        self.assertEqual(header_issues(['a', 'b'], ['a', 'b']), [])

    def test_decode_upload_falls_back_to_latin1(self):
        self.assertEqual(decode_upload('Café'.encode('utf-8')), 'Café')
        self.assertEqual(decode_upload('Café'.encode('latin-1')), 'Café')


class AuthTests(TestCase):
    """Test JWT login and the current user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='admin1', password='testpass123', role='superadmin')

    def test_login_returns_tokens_and_role(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'admin1', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'superadmin')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'admin1', 'password': 'wrong'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_superadmin(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_superadmin'])
        self.assertTrue(response.data['can_manage_catalog'])
        self.assertIsNone(response.data['distributor'])

    def test_me_distributor(self):
        distributor = TestDataFactory.create_distributor(company_name='Tienda Uno')
        self.client.authenticate_user(distributor.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['can_manage_catalog'])
        self.assertEqual(response.data['distributor']['company_name'], 'Tienda Uno')


class RoleTests(TestCase):
    """Test role helpers and role-based permissions"""

    def test_is_superadmin(self):
        self.assertTrue(TestDataFactory.create_user(role='superadmin').is_superadmin)
        self.assertTrue(TestDataFactory.create_user(is_superuser=True).is_superadmin)
        self.assertFalse(TestDataFactory.create_user(role='canal').is_superadmin)

    def test_audit_logs_superadmin_only(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user(role='canal'))
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        client.authenticate_user(TestDataFactory.create_superadmin())
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class AuditLogTests(TestCase):
    """Test audit log creation"""

    def setUp(self):
        self.user = TestDataFactory.create_superadmin()

    def test_create_audit_log(self):
        log = create_audit_log(
            user=self.user,
            action='csv_import',
            model_name='CsvImport',
            object_id=1,
            object_name='productos.csv',
            changes={'created': 2},
        )
        self.assertIsNotNone(log)
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.object_id, '1')
        self.assertEqual(log.changes, {'created': 2})

    def test_missing_fields_skips_entry(self):
        log = create_audit_log(user=self.user, action='csv_import', model_name=None, object_id=1)
        self.assertIsNone(log)
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_audit_log_filter_by_action(self):
        create_audit_log(user=self.user, action='csv_import', model_name='CsvImport', object_id=1)
        create_audit_log(user=self.user, action='csv_export', model_name='Product', object_id='all')
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        response = client.get('/api/v1/audit-logs/?action=csv_export')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['model_name'], 'Product')
