"""
Comprehensive test suite for Distributors module
Tests: distributor CSV parsing and validation, diffing, import with invitations, API endpoints
"""
from decimal import Decimal

from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, SimpleTestCase
from rest_framework import status

from storefront.core.csvtools import build_line
from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .distributor_csv.importer import get_existing_distributors_map, import_distributors
from .distributor_csv.parser import ParsedDistributor, compare_with_existing, normalize_for_compare, parse_csv, validate_row
from .distributor_csv.template import CSV_HEADERS, generate_template_with_descriptions, parse_boolean, parse_numeric
from .models import Distributor, DistributorCsvImport


def distributor_row(rif='900123456-7', **overrides):
    row = {
        'company_rif': rif,
        'company_name': 'Tienda Uno',
        'business_type': 'Tienda',
        'email': 'compras@tiendauno.com',
        'full_name': 'Ana Gómez',
        'phone': '3001234567',
        'document_type': 'CC',
        'document_number': '1020304050',
        'discount_percentage': '15',
        'credit_limit': '5000000',
        'is_active': 'SI',
    }
    row.update(overrides)
    return row


def distributor_csv(rows):
    lines = [','.join(CSV_HEADERS)]
    for row in rows:
        lines.append(build_line(row.get(h, '') for h in CSV_HEADERS))
    return '\n'.join(lines)


def run_import(content, mode='update', user=None):
    parse_result = parse_csv(content)
    diffs = compare_with_existing(parse_result.distributors, get_existing_distributors_map())
    return import_distributors(parse_result.distributors, diffs, mode, user, 'distribuidores.csv')


class DistributorParserTests(SimpleTestCase):
    """Test distributor CSV parsing and validation"""

    def error_fields(self, row, is_new=False):
        errors, _ = validate_row(row, is_new)
        return [e.field for e in errors]

    def test_parse_numeric(self):
        self.assertEqual(parse_numeric('$5,000,000'), Decimal('5000000'))
        self.assertEqual(parse_numeric(' 12.5 '), Decimal('12.5'))
        self.assertIsNone(parse_numeric('mucho'))
        self.assertIsNone(parse_numeric(''))

    def test_parse_boolean(self):
        self.assertTrue(parse_boolean(''))
        self.assertTrue(parse_boolean('sí'))
        self.assertFalse(parse_boolean('NO'))

    def test_valid_row(self):
        self.assertEqual(self.error_fields(distributor_row(), is_new=True), [])

    def test_required_fields(self):
        fields = self.error_fields(distributor_row(company_rif='', company_name=''))
        self.assertEqual(fields, ['company_rif', 'company_name'])

    def test_email_required_only_for_new(self):
        row = distributor_row(email='')
        self.assertEqual(self.error_fields(row, is_new=False), [])
        self.assertEqual(self.error_fields(row, is_new=True), ['email'])

    def test_invalid_values(self):
        self.assertIn('email', self.error_fields(distributor_row(email='compras@')))
        self.assertIn('discount_percentage', self.error_fields(distributor_row(discount_percentage='150')))
        self.assertIn('credit_limit', self.error_fields(distributor_row(credit_limit='-1')))
        self.assertIn('is_active', self.error_fields(distributor_row(is_active='quizás')))

    def test_credit_limit_beyond_column_precision(self):
        self.assertIn('credit_limit', self.error_fields(distributor_row(credit_limit='1000000000000')))
        self.assertEqual(self.error_fields(distributor_row(credit_limit='999999999999.99')), [])
        self.assertEqual(normalize_for_compare('1500.555', 'credit_limit'), '1500.56')

    def test_unknown_document_type_is_warning(self):
        errors, warnings = validate_row(distributor_row(document_type='DNI'), is_new=True)
        self.assertEqual(errors, [])
        self.assertEqual([w.field for w in warnings], ['document_type'])

    def test_template_with_descriptions(self):
        result = parse_csv(generate_template_with_descriptions())
        self.assertTrue(result.success)
        self.assertEqual(result.distributors[0].row, 3)
        self.assertEqual(result.distributors[0].company_rif, '900123456-7')

    def test_empty_file(self):
        result = parse_csv('')
        self.assertEqual(result.global_errors, ['El archivo está vacío'])

    def test_normalize_for_compare(self):
        self.assertEqual(normalize_for_compare('', 'is_active'), 'true')
        self.assertEqual(normalize_for_compare('SI', 'is_active'), 'true')
        self.assertEqual(normalize_for_compare('', 'credit_limit'), '0')
        self.assertEqual(normalize_for_compare('5,000,000', 'credit_limit'), normalize_for_compare('5000000.00', 'credit_limit'))
        self.assertEqual(normalize_for_compare('Tienda UNO', 'company_name'), 'tienda uno')


class DistributorCompareTests(SimpleTestCase):
    """Test diffing distributor rows"""

    def existing(self, **overrides):
        data = distributor_row(discount_percentage='15.00', credit_limit='5000000.00')
        data.update(overrides)
        return {'900123456-7': {'id': 1, 'user_id': 7, 'data': data}}

    def test_unknown_rif_without_email_becomes_invalid(self):
        distributor = ParsedDistributor(row=2, data=distributor_row(email=''))
        diffs = compare_with_existing([distributor], {})
        self.assertEqual(diffs, [])
        self.assertFalse(distributor.is_valid)
        self.assertEqual(distributor.errors[0].field, 'email')

    def test_unknown_rif_is_create(self):
        diffs = compare_with_existing([ParsedDistributor(row=2, data=distributor_row())], {})
        self.assertEqual(diffs[0].change_type, 'create')

    def test_equivalent_values_are_unchanged(self):
        distributor = ParsedDistributor(row=2, data=distributor_row(is_active='', email=''))
        diffs = compare_with_existing([distributor], self.existing())
        self.assertEqual(diffs[0].change_type, 'unchanged')
        self.assertEqual(diffs[0].existing_id, 1)
        self.assertEqual(diffs[0].existing_user_id, 7)

    def test_changed_discount_is_update(self):
        distributor = ParsedDistributor(row=2, data=distributor_row(discount_percentage='20'))
        diffs = compare_with_existing([distributor], self.existing())
        self.assertEqual(diffs[0].change_type, 'update')
        self.assertEqual([c.field for c in diffs[0].changes], ['discount_percentage'])


class DistributorImportTests(TestCase):
    """Test applying distributor CSV rows"""

    def setUp(self):
        self.admin = TestDataFactory.create_superadmin()

    def test_create_invites_new_user(self):
        result = run_import(distributor_csv([distributor_row()]), user=self.admin)

        self.assertTrue(result.success)
        self.assertEqual(result.created, 1)
        self.assertEqual(result.invited, 1)

        distributor = Distributor.objects.select_related('user').get(company_rif='900123456-7')
        self.assertEqual(distributor.discount_percentage, Decimal('15'))
        self.assertEqual(distributor.credit_limit, Decimal('5000000'))
        user = distributor.user
        self.assertEqual(user.role, 'distributor')
        self.assertEqual(user.username, 'compras@tiendauno.com')
        self.assertEqual(user.full_name, 'Ana Gómez')
        self.assertFalse(user.has_usable_password())

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['compras@tiendauno.com'])
        self.assertIn('/auth/set-password/', mail.outbox[0].body)
        self.assertTrue(AuditLog.objects.filter(action='distributor_invite', object_reference='900123456-7').exists())

        csv_import = DistributorCsvImport.objects.get(pk=result.import_id)
        self.assertEqual(csv_import.rows_invited, 1)
        self.assertEqual(csv_import.status, 'completed')

    def test_existing_user_is_linked_without_invitation(self):
        user = TestDataFactory.create_user(username='ana', email='Compras@TiendaUno.com')
        result = run_import(distributor_csv([distributor_row()]), user=self.admin)

        self.assertEqual(result.created, 1)
        self.assertEqual(result.invited, 0)
        self.assertEqual(len(mail.outbox), 0)
        user.refresh_from_db()
        self.assertEqual(user.role, 'distributor')
        self.assertEqual(user.distributor.company_rif, '900123456-7')

    def test_user_already_linked_to_other_distributor(self):
        other = TestDataFactory.create_distributor(company_rif='800000000-1')
        row = distributor_row(email=other.user.email)
        result = run_import(distributor_csv([row, distributor_row('900999999-1', email='otra@tienda.com')]), user=self.admin)

        self.assertEqual(result.created, 1)
        self.assertEqual(result.errors[0]['row'], 2)
        self.assertEqual(result.errors[0]['company_rif'], '900123456-7')
        self.assertFalse(Distributor.objects.filter(company_rif='900123456-7').exists())
        self.assertEqual(DistributorCsvImport.objects.get(pk=result.import_id).status, 'completed_with_errors')

    def test_update_existing_distributor(self):
        run_import(distributor_csv([distributor_row()]), user=self.admin)
        row = distributor_row(discount_percentage='20', full_name='Ana María Gómez', phone='')
        result = run_import(distributor_csv([row]), user=self.admin)

        self.assertEqual(result.updated, 1)
        self.assertEqual(result.invited, 0)
        distributor = Distributor.objects.select_related('user').get(company_rif='900123456-7')
        self.assertEqual(distributor.discount_percentage, Decimal('20'))
        self.assertEqual(distributor.user.full_name, 'Ana María Gómez')
        # Empty contact columns keep the stored value
        self.assertEqual(distributor.user.phone, '3001234567')

    def test_unchanged_rows_are_skipped(self):
        content = distributor_csv([distributor_row()])
        run_import(content, user=self.admin)
        result = run_import(content, user=self.admin)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(len(mail.outbox), 1)

    def test_extra_decimals_reimport_unchanged(self):
        content = distributor_csv([distributor_row(discount_percentage='12.345', credit_limit='1500.555')])
        run_import(content, user=self.admin)
        distributor = Distributor.objects.get(company_rif='900123456-7')
        self.assertEqual(distributor.discount_percentage, Decimal('12.35'))
        self.assertEqual(distributor.credit_limit, Decimal('1500.56'))

        result = run_import(content, user=self.admin)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.updated, 0)

    def test_add_only(self):
        run_import(distributor_csv([distributor_row()]), user=self.admin)
        content = distributor_csv([
            distributor_row(discount_percentage='30'),
            distributor_row('900555555-5', email='nueva@tienda.com'),
        ])
        result = run_import(content, mode='add_only', user=self.admin)

        self.assertEqual(result.created, 1)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(Distributor.objects.get(company_rif='900123456-7').discount_percentage, Decimal('15'))

    def test_invalid_mode(self):
        with self.assertRaises(ValueError):
            import_distributors([], [], 'replace_all', self.admin, 'x.csv')


class DistributorAPITests(TestCase):
    """Test distributor endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_superadmin()
        self.canal = TestDataFactory.create_user(role='canal')

    def upload(self, content):
        return SimpleUploadedFile('distribuidores.csv', content.encode('utf-8'), content_type='text/csv')

    def test_template_is_public(self):
        response = self.client.get('/api/v1/distributors/csv/template/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('distribuidores_template.csv', response['Content-Disposition'])
        self.assertTrue(response.content.decode('utf-8').startswith('\ufeffcompany_rif,company_name'))

    def test_validate_requires_superadmin(self):
        self.client.authenticate_user(self.canal)
        response = self.client.post('/api/v1/distributors/csv/validate/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_validate(self):
        TestDataFactory.create_distributor(company_rif='900123456-7', company_name='Tienda Uno', discount_percentage=Decimal('10'))
        content = distributor_csv([
            distributor_row(),
            distributor_row('900222222-2', email='nueva@tienda.com'),
            distributor_row('900333333-3', email=''),
        ])
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/distributors/csv/validate/', {'file': self.upload(content)}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.data['stats']
        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['invalid'], 1)
        self.assertEqual(stats['to_create'], 1)
        self.assertEqual(stats['to_update'], 1)
        self.assertEqual(response.data['error_distributors'][0]['data']['company_rif'], '900333333-3')

    def test_import(self):
        self.client.authenticate_user(self.admin)
        content = distributor_csv([distributor_row()])
        response = self.client.post('/api/v1/distributors/csv/import/', {'file': self.upload(content)}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['invited'], 1)
        self.assertEqual(len(mail.outbox), 1)

    def test_import_rejects_new_rows_without_email(self):
        self.client.authenticate_user(self.admin)
        content = distributor_csv([distributor_row(email='')])
        response = self.client.post('/api/v1/distributors/csv/import/', {'file': self.upload(content)}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['invalid_rows'], 1)
        self.assertFalse(Distributor.objects.exists())

    def test_import_invalid_mode(self):
        self.client.authenticate_user(self.admin)
        content = distributor_csv([distributor_row()])
        response = self.client.post(
            '/api/v1/distributors/csv/import/', {'file': self.upload(content), 'mode': 'replace_all'}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_distributor_list(self):
        TestDataFactory.create_distributor(company_rif='900111111-1', company_name='Hotel Andino')
        TestDataFactory.create_distributor(company_rif='900222222-2', company_name='Café Central', is_active=False)

        self.client.authenticate_user(TestDataFactory.create_user(role='customer'))
        response = self.client.get('/api/v1/distributors/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.canal)
        response = self.client.get('/api/v1/distributors/', {'search': 'andino'})
        self.assertEqual([d['company_name'] for d in response.data], ['Hotel Andino'])

        response = self.client.get('/api/v1/distributors/', {'is_active': 'false'})
        self.assertEqual([d['company_rif'] for d in response.data], ['900222222-2'])
