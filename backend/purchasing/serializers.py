from decimal import Decimal
from rest_framework import serializers
from backend.catalog.models import Product
from backend.locations.models import Branch, Warehouse
from backend.parties.models import Supplier
from .models import PurchaseOrder, PurchaseOrderItem, ReceivingVoucher, ReceivingVoucherItem


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True, default=None)
    line_total = serializers.DecimalField(max_digits=18, decimal_places=4, read_only=True)
    outstanding_quantity = serializers.DecimalField(max_digits=14, decimal_places=4, read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = ['id', 'product', 'product_name', 'product_sku', 'quantity', 'uom', 'unit_price',
                  'line_total', 'received_quantity', 'outstanding_quantity']
        read_only_fields = fields


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.company_name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    branch_name = serializers.CharField(source='branch.name', read_only=True)
    items_count = serializers.IntegerField(source='items.count', read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = ['id', 'po_number', 'supplier', 'supplier_name', 'warehouse', 'warehouse_name', 'branch',
                  'branch_name', 'status', 'receiving_status', 'total_amount', 'expected_delivery_date',
                  'actual_delivery_date', 'items_count', 'created_at']
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.company_name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    branch_name = serializers.CharField(source='branch.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    payable = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrder
        fields = ['id', 'po_number', 'supplier', 'supplier_name', 'warehouse', 'warehouse_name', 'branch',
                  'branch_name', 'status', 'receiving_status', 'total_amount', 'expected_delivery_date',
                  'actual_delivery_date', 'notes', 'items', 'payable', 'created_by', 'created_by_username',
                  'created_at', 'updated_at']
        read_only_fields = fields

    def get_payable(self, obj):
        payable = getattr(obj, 'payable', None)
        if payable is None:
            return None
        return {'id': payable.id, 'status': payable.status, 'balance': str(payable.balance), 'due_date': payable.due_date}


class PurchaseOrderItemWriteSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=Decimal('0.0001'))
    uom = serializers.CharField(max_length=50, required=False, allow_blank=True)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=Decimal('0.0001'))


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all())
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all())
    branch = serializers.PrimaryKeyRelatedField(queryset=Branch.objects.all(), required=False)
    status = serializers.ChoiceField(choices=['draft', 'pending'], default='draft')
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = PurchaseOrderItemWriteSerializer(many=True, allow_empty=False)


class PurchaseOrderUpdateSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all(), required=False)
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all(), required=False)
    branch = serializers.PrimaryKeyRelatedField(queryset=Branch.objects.all(), required=False)
    status = serializers.ChoiceField(choices=PurchaseOrder.STATUS_CHOICES, required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = PurchaseOrderItemWriteSerializer(many=True, required=False, allow_empty=False)


class PurchaseOrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class ReceivePurchaseOrderSerializer(serializers.Serializer):
    receiver_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    delivery_notes = serializers.CharField(required=False, allow_blank=True, default='')
    idempotency_key = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)


class ReceivingVoucherItemWriteSerializer(serializers.Serializer):
    purchase_order_item = serializers.IntegerField()
    received_quantity = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=Decimal('0'))
    variance_reason = serializers.CharField(required=False, allow_blank=True, default='')


class ReceivingVoucherCreateSerializer(ReceivePurchaseOrderSerializer):
    items = ReceivingVoucherItemWriteSerializer(many=True, allow_empty=False)


class ReceivingVoucherItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True, default=None)

    class Meta:
        model = ReceivingVoucherItem
        fields = ['id', 'purchase_order_item', 'product', 'product_name', 'batch', 'batch_number', 'uom',
                  'ordered_quantity', 'received_quantity', 'variance_quantity', 'variance_percentage',
                  'variance_reason', 'unit_price', 'line_total']
        read_only_fields = fields


class ReceivingVoucherSerializer(serializers.ModelSerializer):
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    supplier_name = serializers.CharField(source='purchase_order.supplier.company_name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    branch_name = serializers.CharField(source='branch.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    items = ReceivingVoucherItemSerializer(many=True, read_only=True)

    class Meta:
        model = ReceivingVoucher
        fields = ['id', 'rv_number', 'purchase_order', 'po_number', 'supplier_name', 'warehouse', 'warehouse_name',
                  'branch', 'branch_name', 'receiver_name', 'delivery_notes', 'status', 'total_ordered_amount',
                  'total_received_amount', 'variance_amount', 'idempotency_key', 'items', 'created_by',
                  'created_by_username', 'created_at']
        read_only_fields = fields
