"""
Django management command to verify every batch quantity against its movement ledger
"""
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Sum

from backend.inventory.models import InventoryBatch


class Command(BaseCommand):
    help = 'Check that each batch quantity equals the sum of its stock movements'

    def add_arguments(self, parser):
        parser.add_argument(
            '--product-id',
            type=int,
            help='Check batches of a specific product ID only',
        )
        parser.add_argument(
            '--warehouse-id',
            type=int,
            help='Check batches of a specific warehouse ID only',
        )
        parser.add_argument(
            '--show-all',
            action='store_true',
            help='Show all batches, not just discrepancies',
        )
        parser.add_argument(
            '--fail',
            action='store_true',
            help='Exit with an error when discrepancies are found',
        )

    def handle(self, *args, **options):
        batches = InventoryBatch.objects.select_related('product', 'warehouse').annotate(
            ledger_total=Sum('movements__quantity')
        ).order_by('id')
        if options.get('product_id'):
            batches = batches.filter(product_id=options['product_id'])
        if options.get('warehouse_id'):
            batches = batches.filter(warehouse_id=options['warehouse_id'])

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("BATCH vs MOVEMENT LEDGER CHECK"))
        self.stdout.write("=" * 80)

        checked = 0
        discrepancies = []
        for batch in batches:
            checked += 1
            ledger_total = (batch.ledger_total or Decimal('0')).quantize(Decimal('0.0001'))
            difference = batch.quantity - ledger_total
            if difference != 0:
                discrepancies.append((batch, ledger_total, difference))
            elif options.get('show_all'):
                self.stdout.write(f"  OK   {batch.batch_number} {batch.product.name} @ {batch.warehouse.code}: {batch.quantity}")

        for batch, ledger_total, difference in discrepancies:
            self.stdout.write(self.style.ERROR(
                f"  DIFF {batch.batch_number} {batch.product.name} @ {batch.warehouse.code}: "
                f"batch={batch.quantity} ledger={ledger_total} difference={difference}"
            ))

        self.stdout.write("")
        self.stdout.write(f"Batches checked: {checked}")
        if discrepancies:
            message = f"Discrepancies found: {len(discrepancies)}"
            if options.get('fail'):
                raise CommandError(message)
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS("All batch quantities match their movement ledger"))
