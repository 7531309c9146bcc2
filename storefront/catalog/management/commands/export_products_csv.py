"""
Management command to export the catalog in the product CSV format
"""
from django.core.management.base import BaseCommand
from django.utils import timezone
from storefront.core.csvtools import BOM
from storefront.catalog.product_csv.importer import export_products_csv


class Command(BaseCommand):
    help = "Exports all products to a CSV file that can be re-imported"

    def add_arguments(self, parser):
        parser.add_argument(
            '--output',
            type=str,
            help='Output path (default: productos_export_<timestamp>.csv)',
        )

    def handle(self, *args, **options):
        content = export_products_csv()
        if not content:
            self.stdout.write(self.style.WARNING("No products to export."))
            return

        output = options['output'] or f"productos_export_{timezone.now().strftime('%Y-%m-%dT%H-%M-%S')}.csv"
        with open(output, 'w', encoding='utf-8', newline='') as f:
            f.write(BOM + content)

        self.stdout.write(self.style.SUCCESS(f"Exported {content.count(chr(10))} products to {output}"))
