from django.db import models
from decimal import Decimal
from backend.catalog.models import Product
from backend.parties.models import Supplier
from backend.locations.models import Branch, Warehouse
from backend.core.models import User


class PurchaseOrder(models.Model):
    """Order placed with a supplier for delivery into a branch warehouse"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('pending', 'Pending'),
        ('ordered', 'Ordered'),
        ('received', 'Received'),
        ('cancelled', 'Cancelled'),
    ]

    RECEIVING_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('partially_received', 'Partially Received'),
        ('fully_received', 'Fully Received'),
    ]

    po_number = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='purchase_orders')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='purchase_orders')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name='purchase_orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    receiving_status = models.CharField(max_length=20, choices=RECEIVING_STATUS_CHOICES, default='pending')
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    expected_delivery_date = models.DateField(null=True, blank=True)
    actual_delivery_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='purchase_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.po_number

    def get_total(self):
        """Calculate total from all items"""
        return sum((item.line_total for item in self.items.all()), Decimal('0'))

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status'], name='idx_po_status'),
            models.Index(fields=['supplier', 'status'], name='idx_po_supplier_status'),
            models.Index(fields=['branch', 'status'], name='idx_po_branch_status'),
        ]


class PurchaseOrderItem(models.Model):
    """Purchase order line; quantities and prices are per ``uom``"""
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='purchase_order_items')
    quantity = models.DecimalField(max_digits=14, decimal_places=4)
    uom = models.CharField(max_length=50)
    unit_price = models.DecimalField(max_digits=14, decimal_places=4)
    received_quantity = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0.0000'))

    def __str__(self):
        return f"{self.purchase_order.po_number} - {self.product.name} x {self.quantity} {self.uom}"

    @property
    def line_total(self):
        return self.quantity * self.unit_price

    @property
    def outstanding_quantity(self):
        return max(self.quantity - self.received_quantity, Decimal('0'))

    @property
    def is_fully_received(self):
        return self.received_quantity >= self.quantity

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name='po_item_quantity_positive'),
            models.CheckConstraint(condition=models.Q(unit_price__gt=0), name='po_item_unit_price_positive'),
            models.CheckConstraint(condition=models.Q(received_quantity__gte=0), name='po_item_received_non_negative'),
        ]


class ReceivingVoucher(models.Model):
    """Goods actually received against a purchase order"""
    STATUS_CHOICES = [
        ('complete', 'Complete'),
    ]

    rv_number = models.CharField(max_length=50, unique=True)
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.PROTECT, related_name='receiving_vouchers')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='receiving_vouchers')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name='receiving_vouchers')
    receiver_name = models.CharField(max_length=200, blank=True)
    delivery_notes = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='complete')
    total_ordered_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_received_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    variance_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    idempotency_key = models.CharField(max_length=100, unique=True, null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='receiving_vouchers')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.rv_number

    class Meta:
        db_table = 'receiving_vouchers'
        ordering = ['-created_at', '-id']


class ReceivingVoucherItem(models.Model):
    """Received line with its variance against the outstanding ordered quantity"""
    receiving_voucher = models.ForeignKey(ReceivingVoucher, on_delete=models.CASCADE, related_name='items')
    purchase_order_item = models.ForeignKey(PurchaseOrderItem, on_delete=models.PROTECT, related_name='receipts')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='receiving_items')
    batch = models.ForeignKey('inventory.InventoryBatch', on_delete=models.SET_NULL, null=True, blank=True, related_name='receiving_items')
    uom = models.CharField(max_length=50)
    ordered_quantity = models.DecimalField(max_digits=14, decimal_places=4)
    received_quantity = models.DecimalField(max_digits=14, decimal_places=4)
    variance_quantity = models.DecimalField(max_digits=14, decimal_places=4)
    variance_percentage = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    variance_reason = models.TextField(blank=True)
    unit_price = models.DecimalField(max_digits=14, decimal_places=4)
    line_total = models.DecimalField(max_digits=14, decimal_places=2)

    def __str__(self):
        return f"{self.receiving_voucher.rv_number} - {self.product.name}"

    class Meta:
        db_table = 'receiving_voucher_items'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(condition=models.Q(received_quantity__gte=0), name='rv_item_received_non_negative'),
        ]
