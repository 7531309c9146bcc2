"""
Comprehensive test suite for Catalog module
Tests: CSV template and normalizers, parsing and validation, diffing,
category lookup, product import/export, API endpoints, management commands
"""
import os
import tempfile
from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, SimpleTestCase
from rest_framework import status

from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .category_cache import get_category_lookup, resolve_all_categories, resolve_category
from .models import CsvImport, Product, ProductCategory, ProductChangeLog, ProductMedia
from .product_csv.importer import (
    export_products_csv, generate_slug, get_existing_products_map, import_products, product_to_row
)
from .product_csv.parser import ParsedProduct, compare_with_existing, normalize_for_compare, parse_csv, validate_row
from .product_csv.template import (
    CSV_HEADERS, category_slug, generate_empty_template, generate_template_with_descriptions,
    normalize_estado, normalize_horeca, normalize_incoming, normalize_numeric,
    parse_base_category_slug, parse_launch_date
)


def run_import(content, mode='update', user=None, filename='productos.csv'):
    parse_result = parse_csv(content)
    diffs = compare_with_existing(parse_result.products, get_existing_products_map())
    return import_products(parse_result.products, diffs, mode, user, filename)


class NormalizerTests(SimpleTestCase):
    """Test spreadsheet value normalizers"""

    def test_normalize_numeric(self):
        self.assertEqual(normalize_numeric('$ 89.900,50'), Decimal('89900.50'))
        self.assertEqual(normalize_numeric('1,234'), Decimal('1234'))
        self.assertEqual(normalize_numeric('12,5'), Decimal('12.5'))
        self.assertEqual(normalize_numeric('1.234.567'), Decimal('1234567'))
        self.assertEqual(normalize_numeric('1,234.50'), Decimal('1234.50'))
        self.assertEqual(normalize_numeric('12.5'), Decimal('12.5'))
        self.assertIsNone(normalize_numeric('abc'))
        self.assertIsNone(normalize_numeric(''))
        self.assertIsNone(normalize_numeric(None))

    def test_parse_launch_date(self):
        self.assertEqual(parse_launch_date('15/01/2026'), date(2026, 1, 15))
        self.assertEqual(parse_launch_date('15-01-2026'), date(2026, 1, 15))
        self.assertEqual(parse_launch_date('15/01/26'), date(2026, 1, 15))
        self.assertEqual(parse_launch_date('2026-01-15'), date(2026, 1, 15))
        # Excel serial date
        self.assertEqual(parse_launch_date('46037'), date(2026, 1, 15))
        self.assertIsNone(parse_launch_date('31/02/2026'))
        self.assertIsNone(parse_launch_date('pronto'))
        self.assertIsNone(parse_launch_date(''))

    def test_normalize_horeca(self):
        self.assertEqual(normalize_horeca(''), 'NO')
        self.assertEqual(normalize_horeca('sí'), 'SI')
        self.assertEqual(normalize_horeca('ambos'), 'SI')
        self.assertEqual(normalize_horeca('Exclusive'), 'EXCLUSIVO')
        self.assertEqual(normalize_horeca('no'), 'NO')

    def test_normalize_estado(self):
        self.assertTrue(normalize_estado(''))
        self.assertTrue(normalize_estado('activo'))
        self.assertFalse(normalize_estado('INACTIVO'))

    def test_normalize_incoming(self):
        self.assertEqual(normalize_incoming('SI'), Decimal('1'))
        self.assertEqual(normalize_incoming('no'), Decimal('0'))
        self.assertEqual(normalize_incoming('25'), Decimal('25'))
        self.assertIsNone(normalize_incoming(''))

    def test_category_slug(self):
        self.assertEqual(category_slug('Café, té y bar'), 'cafe-te-bar')
        self.assertEqual(parse_base_category_slug('Termos y Neveras'), 'termos-neveras')
        self.assertEqual(parse_base_category_slug('COCINA'), 'cocina')
        self.assertIsNone(parse_base_category_slug('Jardín'))

    def test_generate_slug(self):
        self.assertEqual(generate_slug('Tabla de Cortar Bambú  Premium!'), 'tabla-de-cortar-bambu-premium')
        self.assertEqual(generate_slug('¡!'), 'producto')


class TemplateTests(SimpleTestCase):
    """Test the downloadable template"""

    def test_empty_template_is_header_only(self):
        self.assertEqual(generate_empty_template(), ','.join(CSV_HEADERS))

    def test_template_with_descriptions_parses_cleanly(self):
        result = parse_csv(generate_template_with_descriptions())
        self.assertEqual(result.global_errors, [])
        self.assertEqual(result.total_rows, 1)
        product = result.products[0]
        self.assertEqual(product.row, 3)
        self.assertEqual(product.ref, 'ABC-001')
        self.assertTrue(product.is_valid)


class ValidateRowTests(SimpleTestCase):
    """Test single row validation"""

    def error_fields(self, row):
        errors, _ = validate_row(row)
        return [e.field for e in errors]

    def test_minimal_row_is_valid(self):
        errors, warnings = validate_row(TestDataFactory.product_row())
        self.assertEqual(errors, [])
        self.assertIn('Image_1', [w.field for w in warnings])

    def test_required_fields(self):
        row = TestDataFactory.product_row(Producto='', Precio_COP='')
        fields = self.error_fields(row)
        self.assertIn('Producto', fields)
        self.assertIn('Precio_COP', fields)

    def test_invalid_and_negative_numbers(self):
        self.assertIn('Precio_COP', self.error_fields(TestDataFactory.product_row(Precio_COP='gratis')))
        self.assertIn('Existencia_inv', self.error_fields(TestDataFactory.product_row(Existencia_inv='-3')))

    def test_discount_range(self):
        self.assertIn('Descuento', self.error_fields(TestDataFactory.product_row(Descuento='150')))
        self.assertIn('Desc_Dist', self.error_fields(TestDataFactory.product_row(Desc_Dist='101')))
        self.assertEqual(self.error_fields(TestDataFactory.product_row(Descuento='15')), [])

    def test_enumerations(self):
        self.assertIn('Estado', self.error_fields(TestDataFactory.product_row(Estado='BORRADOR')))
        self.assertIn('HoReCa', self.error_fields(TestDataFactory.product_row(HoReCa='QUIZAS')))
        self.assertIn('Rotacion_Esperada', self.error_fields(TestDataFactory.product_row(Rotacion_Esperada='rapida')))
        self.assertIn('Descontinuado', self.error_fields(TestDataFactory.product_row(Descontinuado='tal vez')))

    def test_incoming_accepts_flag_or_quantity(self):
        self.assertEqual(self.error_fields(TestDataFactory.product_row(Pedido_en_camino='SI')), [])
        self.assertEqual(self.error_fields(TestDataFactory.product_row(Pedido_en_camino='40')), [])
        self.assertIn('Pedido_en_camino', self.error_fields(TestDataFactory.product_row(Pedido_en_camino='pronto')))

    def test_invalid_date(self):
        self.assertIn('Fecha_Lanzamiento', self.error_fields(TestDataFactory.product_row(Fecha_Lanzamiento='31/02/2026')))

    def test_image_requires_alt_text(self):
        row = TestDataFactory.product_row(Image_1='https://cdn.example.com/a.jpg')
        self.assertIn('SEO_Alt_Text_1', self.error_fields(row))
        row['SEO_Alt_Text_1'] = 'Vista frontal'
        self.assertEqual(self.error_fields(row), [])

    def test_invalid_urls(self):
        row = TestDataFactory.product_row(Image_2='not-a-url', SEO_Alt_Text_2='alt', Video_URL='ftp://x')
        fields = self.error_fields(row)
        self.assertIn('Image_2', fields)
        self.assertIn('Video_URL', fields)

    def test_unknown_category_is_warning(self):
        errors, warnings = validate_row(TestDataFactory.product_row(Categoria_1='Jardín'))
        self.assertEqual(errors, [])
        self.assertIn('Categoria_1', [w.field for w in warnings])

    def test_horeca_requires_base_category(self):
        fields = self.error_fields(TestDataFactory.product_row(Categoria_1='Jardín', HoReCa='SI'))
        self.assertEqual(fields.count('Categoria_1'), 2)

    def test_margin_out_of_range_is_warning(self):
        errors, warnings = validate_row(TestDataFactory.product_row(Margen_Sugerido='250'))
        self.assertEqual(errors, [])
        self.assertIn('Margen_Sugerido', [w.field for w in warnings])

    def test_values_beyond_column_precision(self):
        self.assertIn('Margen_Sugerido', self.error_fields(TestDataFactory.product_row(Margen_Sugerido='150000')))
        self.assertIn('Peso_kg', self.error_fields(TestDataFactory.product_row(Peso_kg='12345678')))
        self.assertIn('Precio_COP', self.error_fields(TestDataFactory.product_row(Precio_COP='10000000000')))
        self.assertIn('Pedido_en_camino', self.error_fields(TestDataFactory.product_row(Pedido_en_camino='99999999999')))
        # Rounds up past the column limit
        self.assertIn('Precio_COP', self.error_fields(TestDataFactory.product_row(Precio_COP='9999999999.995')))
        self.assertEqual(self.error_fields(TestDataFactory.product_row(Precio_COP='9999999999.99', Peso_kg='1.2345')), [])

    def test_discount_over_limit_reports_range_once(self):
        self.assertEqual(self.error_fields(TestDataFactory.product_row(Descuento='5000')), ['Descuento'])


class ParseCsvTests(SimpleTestCase):
    """Test document level parsing"""

    def test_empty_file(self):
        result = parse_csv('')
        self.assertEqual(result.global_errors, ['El archivo está vacío'])
        self.assertFalse(result.success)

    def test_valid_document(self):
        content = TestDataFactory.product_csv([
            TestDataFactory.product_row('ABC-001'),
            TestDataFactory.product_row('ABC-002'),
        ])
        result = parse_csv(content)
        self.assertTrue(result.success)
        self.assertEqual(result.total_rows, 2)
        self.assertEqual([p.row for p in result.products], [2, 3])

    def test_column_count_mismatch(self):
        content = TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')]) + '\nABC-002,Sin columnas'
        result = parse_csv(content)
        self.assertEqual(result.valid_rows, 1)
        self.assertEqual(result.invalid_rows, 1)
        bad = result.products[1]
        self.assertEqual(bad.errors[0].field, 'Ref')
        self.assertIn('columnas', bad.errors[0].message)

    def test_missing_and_extra_headers(self):
        result = parse_csv('Ref,Producto,Extra\nA,B,C')
        self.assertTrue(any(e.startswith('Columnas faltantes') for e in result.global_errors))
        self.assertTrue(any(e.startswith('Columnas no reconocidas') for e in result.global_errors))
        self.assertFalse(result.success)

    def test_multiline_description(self):
        row = TestDataFactory.product_row(Descrip_Cliente_Final='Primera línea\nSegunda, con coma')
        result = parse_csv(TestDataFactory.product_csv([row]))
        self.assertTrue(result.success)
        self.assertEqual(result.products[0].data['Descrip_Cliente_Final'], 'Primera línea\nSegunda, con coma')


class CompareTests(SimpleTestCase):
    """Test diffing parsed rows against stored rows"""

    def existing_row(self, **overrides):
        row = {h: '' for h in CSV_HEADERS}
        row.update(TestDataFactory.product_row('ABC-001'))
        row.update({'Estado': 'ACTIVO', 'Descuento': '0', 'HoReCa': 'NO', 'Descontinuado': 'NO'})
        row.update(overrides)
        return row

    def test_normalize_for_compare(self):
        self.assertEqual(normalize_for_compare('', 'Descuento'), '0')
        self.assertEqual(normalize_for_compare('0,00', 'Descuento'), '0')
        self.assertEqual(normalize_for_compare('', 'Precio_Dist'), '')
        self.assertEqual(normalize_for_compare('SI', 'Pedido_en_camino'), 'true')
        self.assertEqual(normalize_for_compare('5', 'Pedido_en_camino'), 'true')
        self.assertEqual(normalize_for_compare('', 'Estado'), 'true')
        self.assertEqual(normalize_for_compare(' A, b ,', 'Tags'), 'a,b')
        self.assertEqual(
            normalize_for_compare('15/01/2026', 'Fecha_Lanzamiento'),
            normalize_for_compare('2026-01-15', 'Fecha_Lanzamiento'),
        )
        self.assertEqual(normalize_for_compare('Café, té y bar', 'Categoria_1'), 'cafe-te-bar')

    def test_new_product_is_create(self):
        product = ParsedProduct(row=2, data=TestDataFactory.product_row('NEW-1'))
        diffs = compare_with_existing([product], {})
        self.assertEqual(diffs[0].change_type, 'create')

    def test_equivalent_values_are_unchanged(self):
        data = TestDataFactory.product_row('ABC-001', Precio_COP='89900,00', Categoria_1='COCINA')
        product = ParsedProduct(row=2, data=data)
        diffs = compare_with_existing([product], {'ABC-001': self.existing_row()})
        self.assertEqual(diffs[0].change_type, 'unchanged')
        self.assertEqual(diffs[0].changes, [])

    def test_changed_price_is_update(self):
        product = ParsedProduct(row=2, data=TestDataFactory.product_row('ABC-001', Precio_COP='99900'))
        diffs = compare_with_existing([product], {'ABC-001': self.existing_row()})
        self.assertEqual(diffs[0].change_type, 'update')
        self.assertEqual(diffs[0].changed_fields(), ['Precio_COP'])
        self.assertEqual(diffs[0].changes[0].old_value, '89900')
        self.assertEqual(diffs[0].changes[0].new_value, '99900')

    def test_invalid_products_are_left_out(self):
        product = ParsedProduct(row=2, data=TestDataFactory.product_row('BAD-1'), errors=['x'])
        self.assertEqual(compare_with_existing([product], {}), [])

    def test_numbers_compare_at_stored_scale(self):
        self.assertEqual(normalize_for_compare('89900.555', 'Precio_COP'), '89900.56')
        self.assertEqual(normalize_for_compare('1.23456', 'Peso_kg'), '1.235')
        product = ParsedProduct(row=2, data=TestDataFactory.product_row('ABC-001', Precio_COP='89899.999'))
        diffs = compare_with_existing([product], {'ABC-001': self.existing_row(Precio_COP='89900')})
        self.assertEqual(diffs[0].change_type, 'unchanged')


class CatalogTestCase(TestCase):
    """Shared taxonomy for database tests"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_superadmin()
        self.cocina = TestDataFactory.create_silo('Cocina', sort_order=1)
        self.corte = TestDataFactory.create_subcategory(self.cocina, 'Corte y Picado')
        self.tablas = TestDataFactory.create_product_type(self.corte, 'Tablas de Cortar')
        self.mesa = TestDataFactory.create_silo('Mesa', sort_order=2)
        self.vajilla = TestDataFactory.create_subcategory(self.mesa, 'Vajilla')
        self.termos = TestDataFactory.create_silo('Termos-Neveras', sort_order=3)
        self.termos_sub = TestDataFactory.create_subcategory(self.termos, 'Termos')


class CategoryLookupTests(CatalogTestCase):
    """Test the cached category lookup"""

    def test_resolve_with_product_type(self):
        info = resolve_category(
            {'Categoria_1': 'cocina', 'Subcategoria_1': 'corte y picado', 'Tipo_producto_1': 'Tablas de Cortar'},
            get_category_lookup(),
        )
        self.assertEqual(info.subcategory_id, self.corte.id)
        self.assertEqual(info.product_type_id, self.tablas.id)
        self.assertEqual(info.silo_slug, 'cocina')

    def test_unknown_subcategory_falls_back_to_silo(self):
        info = resolve_category({'Categoria_1': 'Mesa', 'Subcategoria_1': 'Inexistente'}, get_category_lookup())
        self.assertEqual(info.subcategory_id, self.vajilla.id)

    def test_unknown_category(self):
        self.assertIsNone(resolve_category({'Categoria_1': 'Baño'}, get_category_lookup()))
        self.assertIsNone(resolve_category({'Categoria_1': ''}, get_category_lookup()))

    def test_resolve_all_categories(self):
        data = {
            'Categoria_1': 'Cocina', 'Subcategoria_1': 'Corte y Picado',
            'Categoria_2': 'Mesa', 'Subcategoria_2': 'Vajilla',
        }
        infos = resolve_all_categories(data, get_category_lookup())
        self.assertEqual([i.subcategory_id for i in infos], [self.corte.id, self.vajilla.id])

    def test_lookup_invalidated_on_change(self):
        get_category_lookup()
        TestDataFactory.create_subcategory(self.mesa, 'Cristalería')
        info = resolve_category({'Categoria_1': 'Mesa', 'Subcategoria_1': 'Cristaleria'}, get_category_lookup())
        self.assertIsNotNone(info)
        self.assertNotEqual(info.subcategory_id, self.vajilla.id)


class ProductImportTests(CatalogTestCase):
    """Test applying product CSV rows"""

    def test_create_product(self):
        row = TestDataFactory.product_row(
            'ABC-001',
            Producto='Tabla de Cortar Bambú',
            Tipo_producto_1='Tablas de Cortar',
            Descuento='10',
            Tags='tabla, bambú',
            Fecha_Lanzamiento='15/01/2026',
            Image_1='https://cdn.example.com/abc-001-1.jpg',
            SEO_Alt_Text_1='Tabla vista frontal',
            Image_2='https://cdn.example.com/abc-001-2.jpg',
            SEO_Alt_Text_2='Tabla en uso',
        )
        result = run_import(TestDataFactory.product_csv([row]), user=self.user)

        self.assertTrue(result.success)
        self.assertEqual(result.created, 1)
        product = Product.objects.get(code='ABC-001')
        self.assertEqual(product.slug, 'tabla-de-cortar-bambu')
        self.assertEqual(product.price, Decimal('89900'))
        self.assertTrue(product.is_on_sale)
        self.assertTrue(product.is_active)
        self.assertEqual(product.tags, ['tabla', 'bambú'])
        self.assertEqual(product.launch_date, date(2026, 1, 15))
        self.assertEqual(product.product_type, self.tablas)
        self.assertEqual(product.main_image_url, 'https://cdn.example.com/abc-001-1.jpg')
        self.assertEqual(product.created_by, self.user)

        category = ProductCategory.objects.get(product=product)
        self.assertTrue(category.is_primary)
        self.assertEqual(category.subcategory, self.corte)
        self.assertEqual(list(product.media.values_list('order_index', flat=True)), [1, 2])

        log = ProductChangeLog.objects.get(product=product)
        self.assertEqual(log.change_type, 'create')
        self.assertEqual(log.csv_row_number, 2)

        csv_import = CsvImport.objects.get(pk=result.import_id)
        self.assertEqual(csv_import.status, 'completed')
        self.assertEqual(csv_import.rows_created, 1)
        self.assertTrue(AuditLog.objects.filter(action='csv_import', object_id=str(csv_import.id)).exists())

    def test_update_changed_fields_only(self):
        run_import(TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')]), user=self.user)
        product = Product.objects.get(code='ABC-001')
        product.material = 'Bambú'
        product.save()

        row = TestDataFactory.product_row('ABC-001', Precio_COP='99900', Material='Bambú')
        result = run_import(TestDataFactory.product_csv([row]), user=self.user)

        self.assertEqual(result.updated, 1)
        self.assertEqual(result.created, 0)
        product.refresh_from_db()
        self.assertEqual(product.price, Decimal('99900'))
        log = ProductChangeLog.objects.filter(product=product, change_type='update').get()
        self.assertEqual(log.fields_changed, {'Precio_COP': {'old': '89900', 'new': '99900'}})

    def test_unchanged_rows_are_skipped(self):
        content = TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')])
        run_import(content, user=self.user)
        result = run_import(content, user=self.user)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.updated, 0)
        self.assertEqual(ProductChangeLog.objects.count(), 1)

    def test_on_sale_follows_discount(self):
        run_import(TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001', Descuento='10')]), user=self.user)
        self.assertTrue(Product.objects.get(code='ABC-001').is_on_sale)
        run_import(TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001', Descuento='0')]), user=self.user)
        self.assertFalse(Product.objects.get(code='ABC-001').is_on_sale)

    def test_add_only_leaves_existing_products(self):
        run_import(TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')]), user=self.user)
        content = TestDataFactory.product_csv([
            TestDataFactory.product_row('ABC-001', Precio_COP='1'),
            TestDataFactory.product_row('ABC-002'),
        ])
        result = run_import(content, mode='add_only', user=self.user)

        self.assertEqual(result.created, 1)
        self.assertEqual(result.updated, 0)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(Product.objects.get(code='ABC-001').price, Decimal('89900'))

    def test_invalid_mode(self):
        with self.assertRaises(ValueError):
            import_products([], [], 'merge', self.user, 'x.csv')

    def test_failing_row_does_not_stop_import(self):
        content = TestDataFactory.product_csv([
            TestDataFactory.product_row('BAD-1', Categoria_1='Termos-Neveras', Subcategoria_1='Termos', HoReCa='SI'),
            TestDataFactory.product_row('ABC-002'),
        ])
        result = run_import(content, user=self.user)

        self.assertFalse(result.success)
        self.assertEqual(result.created, 1)
        self.assertEqual(result.errors[0]['row'], 2)
        self.assertEqual(result.errors[0]['ref'], 'BAD-1')
        self.assertIn('HoReCa', result.errors[0]['error'])
        self.assertFalse(Product.objects.filter(code='BAD-1').exists())
        self.assertEqual(CsvImport.objects.get(pk=result.import_id).status, 'completed_with_errors')

    def test_unresolvable_category(self):
        content = TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001', Categoria_1='Baño', Subcategoria_1='Toallas')])
        result = run_import(content, user=self.user)
        self.assertEqual(result.created, 0)
        self.assertIn('categoría', result.errors[0]['error'])

    def test_horeca_product_in_allowed_silo(self):
        content = TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001', HoReCa='EXCLUSIVO')])
        result = run_import(content, user=self.user)
        self.assertEqual(result.created, 1)
        self.assertEqual(Product.objects.get(code='ABC-001').horeca, 'EXCLUSIVO')

    def test_secondary_category_and_duplicates(self):
        row = TestDataFactory.product_row('ABC-001', Categoria_2='Mesa', Subcategoria_2='Vajilla')
        dup = TestDataFactory.product_row('ABC-002', Categoria_2='Cocina', Subcategoria_2='Corte y Picado')
        run_import(TestDataFactory.product_csv([row, dup]), user=self.user)

        categories = ProductCategory.objects.filter(product__code='ABC-001').order_by('-is_primary')
        self.assertEqual([c.subcategory_id for c in categories], [self.corte.id, self.vajilla.id])
        self.assertEqual(ProductCategory.objects.filter(product__code='ABC-002').count(), 1)

    def test_unique_slugs(self):
        content = TestDataFactory.product_csv([
            TestDataFactory.product_row('A-1', Producto='Tabla'),
            TestDataFactory.product_row('A-2', Producto='Tabla'),
        ])
        run_import(content, user=self.user)
        self.assertEqual(Product.objects.get(code='A-1').slug, 'tabla')
        self.assertEqual(Product.objects.get(code='A-2').slug, 'tabla-2')

    def test_images_replaced_on_update(self):
        row = TestDataFactory.product_row('ABC-001', Image_1='https://cdn.example.com/1.jpg', SEO_Alt_Text_1='uno')
        run_import(TestDataFactory.product_csv([row]), user=self.user)
        row = TestDataFactory.product_row('ABC-001', Image_1='https://cdn.example.com/new.jpg', SEO_Alt_Text_1='nueva')
        run_import(TestDataFactory.product_csv([row]), user=self.user)

        media = ProductMedia.objects.filter(product__code='ABC-001')
        self.assertEqual(media.count(), 1)
        self.assertEqual(media.get().url, 'https://cdn.example.com/new.jpg')

    def test_extra_decimals_reimport_unchanged(self):
        content = TestDataFactory.product_csv([
            TestDataFactory.product_row('ABC-001', Precio_COP='89900.555', Peso_kg='1.23456'),
        ])
        run_import(content, user=self.user)
        product = Product.objects.get(code='ABC-001')
        self.assertEqual(product.price, Decimal('89900.56'))
        self.assertEqual(product.weight_kg, Decimal('1.235'))

        result = run_import(content, user=self.user)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.updated, 0)
        self.assertEqual(ProductChangeLog.objects.filter(product=product).count(), 1)

    def test_oversized_margin_is_rejected_and_catalog_stays_readable(self):
        content = TestDataFactory.product_csv([
            TestDataFactory.product_row('ABC-001', Margen_Sugerido='150000'),
            TestDataFactory.product_row('ABC-002', Margen_Sugerido='35'),
        ])
        parse_result = parse_csv(content)
        self.assertEqual(parse_result.invalid_rows, 1)
        self.assertEqual(parse_result.products[0].errors[0].field, 'Margen_Sugerido')

        result = run_import(content, user=self.user)
        self.assertEqual(result.created, 1)
        self.assertFalse(Product.objects.filter(code='ABC-001').exists())

        exported = export_products_csv()
        self.assertIn('ABC-002', exported)
        self.assertNotIn('ABC-001', exported)
        self.assertEqual(get_existing_products_map()['ABC-002']['Margen_Sugerido'], '35')


class ProductExportTests(CatalogTestCase):
    """Test exporting the catalog"""

    def test_export_empty_catalog(self):
        self.assertEqual(export_products_csv(), '')

    def test_exported_catalog_reimports_unchanged(self):
        row = TestDataFactory.product_row(
            'ABC-001',
            Producto='Tabla, grande',
            Tipo_producto_1='Tablas de Cortar',
            Descuento='12.5',
            Pedido_en_camino='SI',
            Tags='tabla,cocina',
            Fecha_Lanzamiento='15/01/2026',
            Image_1='https://cdn.example.com/1.jpg',
            SEO_Alt_Text_1='Vista "frontal"',
            Categoria_2='Mesa',
            Subcategoria_2='Vajilla',
        )
        run_import(TestDataFactory.product_csv([row]), user=self.user)

        content = export_products_csv()
        self.assertTrue(content.startswith(','.join(CSV_HEADERS)))
        parse_result = parse_csv(content)
        self.assertTrue(parse_result.success)
        exported = parse_result.products[0].data
        self.assertEqual(exported['Producto'], 'Tabla, grande')
        self.assertEqual(exported['Fecha_Lanzamiento'], '15/01/2026')
        self.assertEqual(exported['Categoria_2'], 'Mesa')

        diffs = compare_with_existing(parse_result.products, get_existing_products_map())
        self.assertEqual(diffs[0].change_type, 'unchanged')

    def test_first_image_prefers_media_url(self):
        product = TestDataFactory.create_product(
            'ABC-001', subcategory=self.corte, main_image_url='https://cdn.example.com/old.jpg'
        )
        self.assertEqual(product_to_row(product)['Image_1'], 'https://cdn.example.com/old.jpg')

        ProductMedia.objects.create(product=product, url='https://cdn.example.com/new.jpg', alt_text='nueva', order_index=1)
        row = product_to_row(product)
        self.assertEqual(row['Image_1'], 'https://cdn.example.com/new.jpg')
        self.assertEqual(row['SEO_Alt_Text_1'], 'nueva')


class CatalogAPITests(CatalogTestCase):
    """Test catalog read endpoints"""

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.active = TestDataFactory.create_product('ABC-001', 'Tabla de cortar', subcategory=self.corte, brand='Mesa Nova')
        self.inactive = TestDataFactory.create_product('ABC-002', 'Tabla vieja', subcategory=self.corte, is_active=False)
        self.horeca = TestDataFactory.create_product('ABC-003', 'Plato hondo', subcategory=self.vajilla, horeca='EXCLUSIVO')

    def test_silo_list(self):
        response = self.client.get('/api/v1/silos/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['slug'] for s in response.data], ['cocina', 'mesa', 'termos-neveras'])
        self.assertEqual(response.data[0]['subcategories'][0]['product_types'][0]['name'], 'Tablas de Cortar')

    def test_product_list_hides_inactive_for_public(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data['count'], 3)

    def test_product_list_filters(self):
        response = self.client.get('/api/v1/products/', {'search': 'tabla nova'})
        self.assertEqual([p['code'] for p in response.data['results']], ['ABC-001'])

        response = self.client.get('/api/v1/products/', {'silo': 'mesa'})
        self.assertEqual([p['code'] for p in response.data['results']], ['ABC-003'])

        response = self.client.get('/api/v1/products/', {'horeca': 'SI'})
        self.assertEqual([p['code'] for p in response.data['results']], ['ABC-003'])

    def test_product_list_pagination(self):
        response = self.client.get('/api/v1/products/', {'limit': 1})
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['next'], 2)
        self.assertEqual(len(response.data['results']), 1)

    def test_product_list_clamps_limit(self):
        response = self.client.get('/api/v1/products/', {'limit': 0})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['page_size'], 1)
        self.assertEqual(len(response.data['results']), 1)

        response = self.client.get('/api/v1/products/', {'limit': 10000})
        self.assertEqual(response.data['page_size'], 200)

        response = self.client.get('/api/v1/products/', {'limit': 'muchos'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_product_detail(self):
        response = self.client.get(f'/api/v1/products/{self.active.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['categories'][0]['silo_slug'], 'cocina')

        response = self.client.get(f'/api/v1/products/{self.inactive.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ProductCsvAPITests(CatalogTestCase):
    """Test product CSV endpoints"""

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.customer = TestDataFactory.create_user(role='customer')
        self.canal = TestDataFactory.create_user(role='canal')

    def upload(self, content, name='productos.csv'):
        return SimpleUploadedFile(name, content.encode('utf-8'), content_type='text/csv')

    def test_template_is_public(self):
        response = self.client.get('/api/v1/products/csv/template/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('productos_template.csv', response['Content-Disposition'])
        self.assertTrue(response.content.decode('utf-8').startswith('\ufeffRef,SKU,Producto'))

        response = self.client.get('/api/v1/products/csv/template/', {'descriptions': 'true'})
        self.assertIn('productos_template_con_instrucciones.csv', response['Content-Disposition'])

    def test_validate_requires_superadmin(self):
        response = self.client.post('/api/v1/products/csv/validate/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.authenticate_user(self.customer)
        response = self.client.post('/api/v1/products/csv/validate/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_validate_without_file(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/products/csv/validate/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No se proporcionó archivo')

    def test_validate_reports_stats(self):
        TestDataFactory.create_product('ABC-001', 'Existente', subcategory=self.corte)
        content = TestDataFactory.product_csv([
            TestDataFactory.product_row('ABC-001'),
            TestDataFactory.product_row('ABC-002'),
            TestDataFactory.product_row('ABC-003', Precio_COP=''),
        ])
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/products/csv/validate/', {'file': self.upload(content)}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['success'])
        stats = response.data['stats']
        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['valid'], 2)
        self.assertEqual(stats['invalid'], 1)
        self.assertEqual(stats['to_create'], 1)
        self.assertEqual(stats['to_update'], 1)
        self.assertEqual(response.data['error_products'][0]['data']['Ref'], 'ABC-003')
        self.assertFalse(response.data['has_more'])
        self.assertEqual(Product.objects.count(), 1)

    def test_import_invalid_mode(self):
        self.client.authenticate_user(self.user)
        content = TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')])
        response = self.client.post(
            '/api/v1/products/csv/import/', {'file': self.upload(content), 'mode': 'merge'}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Modo de importación inválido')

    def test_import_rejects_invalid_rows(self):
        self.client.authenticate_user(self.user)
        content = TestDataFactory.product_csv([
            TestDataFactory.product_row('ABC-001'),
            TestDataFactory.product_row('ABC-002', Descuento='200'),
        ])
        response = self.client.post('/api/v1/products/csv/import/', {'file': self.upload(content)}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['invalid_rows'], 1)
        self.assertEqual(Product.objects.count(), 0)

    def test_import(self):
        self.client.authenticate_user(self.user)
        content = TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')])
        response = self.client.post(
            '/api/v1/products/csv/import/', {'file': self.upload(content), 'mode': 'add_only'}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['created'], 1)
        self.assertFalse(response.data['has_more_errors'])
        csv_import = CsvImport.objects.get(pk=response.data['import_id'])
        self.assertEqual(csv_import.import_mode, 'add_only')
        self.assertEqual(csv_import.imported_by, self.user)
        self.assertEqual(csv_import.filename, 'productos.csv')

    def test_import_latin1_file(self):
        self.client.authenticate_user(self.user)
        content = TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001', Producto='Tabla Bambú')])
        upload = SimpleUploadedFile('productos.csv', content.encode('latin-1'), content_type='text/csv')
        response = self.client.post('/api/v1/products/csv/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Product.objects.get(code='ABC-001').name, 'Tabla Bambú')

    def test_export(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/products/csv/export/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        TestDataFactory.create_product('ABC-001', 'Tabla', subcategory=self.corte)
        response = self.client.get('/api/v1/products/csv/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('productos_export_', response['Content-Disposition'])
        self.assertIn('ABC-001', response.content.decode('utf-8'))
        self.assertTrue(AuditLog.objects.filter(action='csv_export', user=self.user).exists())

    def test_changelog(self):
        run_import(TestDataFactory.product_csv([
            TestDataFactory.product_row('ABC-001'),
            TestDataFactory.product_row('ABC-002'),
        ]), user=self.user)

        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/products/csv/changelog/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.canal)
        response = self.client.get('/api/v1/products/csv/changelog/', {'limit': 1})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertTrue(response.data['has_more'])
        self.assertEqual(len(response.data['logs']), 1)

        response = self.client.get('/api/v1/products/csv/changelog/', {'change_type': 'update'})
        self.assertEqual(response.data['total'], 0)

    def test_changelog_clamps_paging(self):
        run_import(TestDataFactory.product_csv([
            TestDataFactory.product_row('ABC-001'),
            TestDataFactory.product_row('ABC-002'),
        ]), user=self.user)
        self.client.authenticate_user(self.canal)

        response = self.client.get('/api/v1/products/csv/changelog/', {'offset': -5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['logs']), 2)

        response = self.client.get('/api/v1/products/csv/changelog/', {'limit': -1})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['logs']), 1)
        self.assertTrue(response.data['has_more'])

    def test_import_history(self):
        run_import(TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')]), user=self.user)
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/products/csv/imports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['rows_created'], 1)
        self.assertEqual(response.data[0]['imported_by_username'], self.user.username)


class ProductCsvCommandTests(CatalogTestCase):
    """Test the import/export management commands"""

    def write_csv(self, content):
        handle, path = tempfile.mkstemp(suffix='.csv')
        with os.fdopen(handle, 'w', encoding='utf-8') as f:
            f.write(content)
        self.addCleanup(os.remove, path)
        return path

    def test_import_command(self):
        path = self.write_csv(TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')]))
        out = StringIO()
        call_command('import_products_csv', csv_file=path, user=self.user.username, stdout=out)
        self.assertIn('Products Created: 1', out.getvalue())
        self.assertEqual(Product.objects.get(code='ABC-001').created_by, self.user)

    def test_import_command_dry_run(self):
        path = self.write_csv(TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001')]))
        out = StringIO()
        call_command('import_products_csv', csv_file=path, dry_run=True, stdout=out)
        self.assertIn('+ ABC-001', out.getvalue())
        self.assertFalse(Product.objects.exists())

    def test_import_command_invalid_rows(self):
        path = self.write_csv(TestDataFactory.product_csv([TestDataFactory.product_row('ABC-001', Precio_COP='')]))
        with self.assertRaises(CommandError):
            call_command('import_products_csv', csv_file=path, stdout=StringIO())

    def test_import_command_missing_file(self):
        with self.assertRaises(CommandError):
            call_command('import_products_csv', csv_file='/nonexistent/productos.csv', stdout=StringIO())

    def test_export_command(self):
        TestDataFactory.create_product('ABC-001', 'Tabla', subcategory=self.corte)
        handle, path = tempfile.mkstemp(suffix='.csv')
        os.close(handle)
        self.addCleanup(os.remove, path)
        call_command('export_products_csv', output=path, stdout=StringIO())
        with open(path, encoding='utf-8-sig') as f:
            content = f.read()
        self.assertTrue(content.startswith('Ref,SKU'))
        self.assertIn('ABC-001', content)
