import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('inventory', '0001_initial'),
        ('locations', '0001_initial'),
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PurchaseOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('po_number', models.CharField(max_length=50, unique=True)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending', 'Pending'), ('ordered', 'Ordered'), ('received', 'Received'), ('cancelled', 'Cancelled')], default='draft', max_length=20)),
                ('receiving_status', models.CharField(choices=[('pending', 'Pending'), ('partially_received', 'Partially Received'), ('fully_received', 'Fully Received')], default='pending', max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('expected_delivery_date', models.DateField(blank=True, null=True)),
                ('actual_delivery_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='locations.branch')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_orders', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='parties.supplier')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='locations.warehouse')),
            ],
            options={
                'db_table': 'purchase_orders',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['status'], name='idx_po_status'), models.Index(fields=['supplier', 'status'], name='idx_po_supplier_status'), models.Index(fields=['branch', 'status'], name='idx_po_branch_status')],
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=4, max_digits=14)),
                ('uom', models.CharField(max_length=50)),
                ('unit_price', models.DecimalField(decimal_places=4, max_digits=14)),
                ('received_quantity', models.DecimalField(decimal_places=4, default=Decimal('0.0000'), max_digits=14)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchase_order_items', to='catalog.product')),
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='purchasing.purchaseorder')),
            ],
            options={
                'db_table': 'purchase_order_items',
                'ordering': ['id'],
                'constraints': [models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='po_item_quantity_positive'), models.CheckConstraint(condition=models.Q(('unit_price__gt', 0)), name='po_item_unit_price_positive'), models.CheckConstraint(condition=models.Q(('received_quantity__gte', 0)), name='po_item_received_non_negative')],
            },
        ),
        migrations.CreateModel(
            name='ReceivingVoucher',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rv_number', models.CharField(max_length=50, unique=True)),
                ('receiver_name', models.CharField(blank=True, max_length=200)),
                ('delivery_notes', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('complete', 'Complete')], default='complete', max_length=20)),
                ('total_ordered_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('total_received_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('variance_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('idempotency_key', models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receiving_vouchers', to='locations.branch')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='receiving_vouchers', to=settings.AUTH_USER_MODEL)),
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receiving_vouchers', to='purchasing.purchaseorder')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receiving_vouchers', to='locations.warehouse')),
            ],
            options={
                'db_table': 'receiving_vouchers',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ReceivingVoucherItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uom', models.CharField(max_length=50)),
                ('ordered_quantity', models.DecimalField(decimal_places=4, max_digits=14)),
                ('received_quantity', models.DecimalField(decimal_places=4, max_digits=14)),
                ('variance_quantity', models.DecimalField(decimal_places=4, max_digits=14)),
                ('variance_percentage', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('variance_reason', models.TextField(blank=True)),
                ('unit_price', models.DecimalField(decimal_places=4, max_digits=14)),
                ('line_total', models.DecimalField(decimal_places=2, max_digits=14)),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='receiving_items', to='inventory.inventorybatch')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receiving_items', to='catalog.product')),
                ('purchase_order_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receipts', to='purchasing.purchaseorderitem')),
                ('receiving_voucher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='purchasing.receivingvoucher')),
            ],
            options={
                'db_table': 'receiving_voucher_items',
                'ordering': ['id'],
                'constraints': [models.CheckConstraint(condition=models.Q(('received_quantity__gte', 0)), name='rv_item_received_non_negative')],
            },
        ),
    ]
