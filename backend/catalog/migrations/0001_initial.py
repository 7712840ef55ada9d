import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True)),
                ('sku', models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ('category', models.CharField(blank=True, db_index=True, max_length=100)),
                ('description', models.TextField(blank=True)),
                ('base_uom', models.CharField(default='piece', help_text='Smallest unit stock is counted in (e.g., bottle)', max_length=50)),
                ('shelf_life_days', models.PositiveIntegerField(default=365)),
                ('average_cost_price', models.DecimalField(decimal_places=4, default=Decimal('0.0000'), max_digits=14)),
                ('low_stock_threshold', models.IntegerField(default=0)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'products',
            },
        ),
        migrations.CreateModel(
            name='ProductUOM',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50)),
                ('conversion_factor', models.DecimalField(decimal_places=4, help_text='Number of base units in one of this unit', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.0001'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='alternate_uoms', to='catalog.product')),
            ],
            options={
                'db_table': 'product_uoms',
                'constraints': [models.UniqueConstraint(fields=('product', 'name'), name='unique_product_uom_name'), models.CheckConstraint(condition=models.Q(('conversion_factor__gt', 0)), name='product_uom_factor_positive')],
            },
        ),
    ]
