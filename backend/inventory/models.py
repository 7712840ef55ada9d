from django.db import models
from decimal import Decimal
from backend.catalog.models import Product
from backend.locations.models import Warehouse


class InventoryBatch(models.Model):
    """A lot of stock received into a warehouse with its own cost and expiry"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('expired', 'Expired'),
        ('depleted', 'Depleted'),
    ]

    batch_number = models.CharField(max_length=50, unique=True)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='batches')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='batches')
    # Base UOM units
    quantity = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0.0000'))
    # Cost per base UOM unit
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4)
    received_date = models.DateField()
    expiry_date = models.DateField(null=True, blank=True, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.batch_number} - {self.product.name} ({self.quantity})"

    @property
    def total_value(self):
        return self.quantity * self.unit_cost

    class Meta:
        db_table = 'inventory_batches'
        ordering = ['expiry_date', 'received_date', 'id']
        indexes = [
            models.Index(fields=['product', 'warehouse', 'status'], name='idx_batch_product_wh_status'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=0), name='batch_quantity_non_negative'),
            models.CheckConstraint(condition=models.Q(unit_cost__gte=0), name='batch_unit_cost_non_negative'),
        ]


class StockMovement(models.Model):
    """Ledger of every quantity change applied to a batch (signed, in base UOM)"""
    MOVEMENT_TYPE_CHOICES = [
        ('IN', 'Stock In'),
        ('OUT', 'Stock Out'),
        ('TRANSFER', 'Transfer'),
        ('ADJUSTMENT', 'Adjustment'),
    ]

    REFERENCE_TYPE_CHOICES = [
        ('PO', 'Purchase Order'),
        ('RV', 'Receiving Voucher'),
        ('SO', 'Sales Order'),
        ('POS', 'Point of Sale'),
        ('TRANSFER', 'Transfer'),
        ('ADJUSTMENT', 'Adjustment'),
    ]

    batch = models.ForeignKey(InventoryBatch, on_delete=models.PROTECT, related_name='movements')
    movement_type = models.CharField(max_length=20, choices=MOVEMENT_TYPE_CHOICES, db_index=True)
    quantity = models.DecimalField(max_digits=14, decimal_places=4)
    reason = models.CharField(max_length=255, blank=True)
    reference_type = models.CharField(max_length=20, choices=REFERENCE_TYPE_CHOICES, blank=True, null=True)
    reference_id = models.CharField(max_length=100, blank=True, null=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_movements')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.movement_type} {self.quantity} on {self.batch.batch_number}"

    class Meta:
        db_table = 'stock_movements'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['reference_type', 'reference_id'], name='idx_movement_reference'),
        ]
