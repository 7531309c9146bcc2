"""
Management command to import products from a product CSV file
"""
import os
from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model
from django.conf import settings
from storefront.core.csvtools import decode_upload
from storefront.catalog.product_csv.importer import IMPORT_MODES, get_existing_products_map, import_products
from storefront.catalog.product_csv.parser import compare_with_existing, parse_csv


class Command(BaseCommand):
    help = "Imports products from a product CSV file (same format as the admin upload)"

    def add_arguments(self, parser):
        parser.add_argument(
            '--csv-file',
            type=str,
            required=True,
            help='Path to the CSV file',
        )
        parser.add_argument(
            '--mode',
            type=str,
            default='update',
            choices=IMPORT_MODES,
            help='Import mode (default: update)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Validate and show the changes without writing anything',
        )
        parser.add_argument(
            '--user',
            type=str,
            help='Username recorded as the importer',
        )

    def handle(self, *args, **options):
        csv_file = options['csv_file']
        if not os.path.isabs(csv_file):
            csv_file = os.path.normpath(os.path.join(settings.BASE_DIR, '..', csv_file))

        user = None
        if options['user']:
            User = get_user_model()
            user = User.objects.filter(username=options['user']).first()
            if user is None:
                raise CommandError(f"User not found: {options['user']}")

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("IMPORTING PRODUCTS FROM CSV"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"CSV File: {csv_file}")
        self.stdout.write(f"Mode: {options['mode']}")

        if not os.path.exists(csv_file):
            raise CommandError(f"CSV file not found at {csv_file}")

        with open(csv_file, 'rb') as f:
            content = decode_upload(f.read())

        parse_result = parse_csv(content)
        for error in parse_result.global_errors:
            self.stdout.write(self.style.WARNING(f"  ! {error}"))

        invalid = [p for p in parse_result.products if not p.is_valid]
        for product in invalid[:settings.CSV_ERROR_LIMIT]:
            messages = '; '.join(f"{e.field}: {e.message}" for e in product.errors)
            self.stdout.write(self.style.ERROR(f"  ✗ Row {product.row} ({product.ref or '-'}): {messages}"))
        if invalid:
            raise CommandError(f"{len(invalid)} invalid rows, nothing imported")

        diffs = compare_with_existing(parse_result.products, get_existing_products_map())
        to_create = sum(1 for d in diffs if d.change_type == 'create')
        to_update = sum(1 for d in diffs if d.change_type == 'update')
        self.stdout.write(f"Rows: {parse_result.total_rows} (create: {to_create}, update: {to_update})")

        if options['dry_run']:
            for diff in diffs:
                if diff.change_type == 'update':
                    self.stdout.write(f"  ~ {diff.ref}: {', '.join(diff.changed_fields())}")
                elif diff.change_type == 'create':
                    self.stdout.write(f"  + {diff.ref}")
            self.stdout.write(self.style.WARNING("Dry run, no changes written."))
            return

        result = import_products(
            parse_result.products,
            diffs,
            options['mode'],
            user,
            os.path.basename(csv_file),
        )

        for error in result.errors:
            self.stdout.write(self.style.ERROR(f"  ✗ Row {error['row']} ({error['ref']}): {error['error']}"))

        self.stdout.write(self.style.SUCCESS("\n" + "=" * 80))
        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"Import ID: {result.import_id}")
        self.stdout.write(f"Products Created: {result.created}")
        self.stdout.write(f"Products Updated: {result.updated}")
        self.stdout.write(f"Rows Skipped: {result.skipped}")
        if result.errors:
            self.stdout.write(self.style.ERROR(f"Rows with Errors: {len(result.errors)}"))
