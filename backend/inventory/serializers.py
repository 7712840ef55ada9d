from decimal import Decimal
from rest_framework import serializers
from django.utils import timezone
from backend.catalog.models import Product
from backend.core.exceptions import BusinessRuleViolation
from backend.locations.models import Warehouse
from .models import InventoryBatch, StockMovement


class InventoryBatchSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    base_uom = serializers.CharField(source='product.base_uom', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    total_value = serializers.DecimalField(max_digits=20, decimal_places=4, read_only=True)
    days_to_expiry = serializers.SerializerMethodField()

    class Meta:
        model = InventoryBatch
        fields = ['id', 'batch_number', 'product', 'product_name', 'base_uom', 'warehouse', 'warehouse_name',
                  'quantity', 'unit_cost', 'total_value', 'received_date', 'expiry_date', 'days_to_expiry',
                  'status', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_days_to_expiry(self, obj):
        if not obj.expiry_date:
            return None
        return (obj.expiry_date - timezone.localdate()).days


class StockMovementSerializer(serializers.ModelSerializer):
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True)
    product = serializers.IntegerField(source='batch.product_id', read_only=True)
    product_name = serializers.CharField(source='batch.product.name', read_only=True)
    warehouse = serializers.IntegerField(source='batch.warehouse_id', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = StockMovement
        fields = ['id', 'batch', 'batch_number', 'product', 'product_name', 'warehouse', 'movement_type',
                  'quantity', 'reason', 'reference_type', 'reference_id', 'created_by', 'created_by_username', 'created_at']
        read_only_fields = fields


class InventoryBatchDetailSerializer(InventoryBatchSerializer):
    movements = StockMovementSerializer(many=True, read_only=True)

    class Meta(InventoryBatchSerializer.Meta):
        fields = InventoryBatchSerializer.Meta.fields + ['movements']
        read_only_fields = fields


class StockLevelSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    product_name = serializers.CharField()
    sku = serializers.CharField(allow_null=True)
    base_uom = serializers.CharField()
    warehouse_id = serializers.IntegerField()
    warehouse_name = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=20, decimal_places=4)
    average_cost = serializers.DecimalField(max_digits=20, decimal_places=4)
    total_value = serializers.DecimalField(max_digits=20, decimal_places=4)
    batch_count = serializers.IntegerField()
    low_stock_threshold = serializers.IntegerField()
    is_low_stock = serializers.BooleanField()


class _StockRequestSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=Decimal('0.0001'))
    uom = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate(self, attrs):
        product = attrs['product']
        if not (attrs.get('uom') or '').strip():
            attrs['uom'] = product.base_uom
        try:
            product.get_conversion_factor(attrs['uom'])
        except BusinessRuleViolation as exc:
            raise serializers.ValidationError(exc.fields)
        return attrs


class AddStockSerializer(_StockRequestSerializer):
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all())
    unit_cost = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=Decimal('0.0001'))
    received_date = serializers.DateField(required=False)
    expiry_date = serializers.DateField(required=False)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        received_date = attrs.get('received_date') or timezone.localdate()
        expiry_date = attrs.get('expiry_date')
        if expiry_date and expiry_date < received_date:
            raise serializers.ValidationError({'expiry_date': 'Expiry date cannot be before the received date'})
        return attrs


class DeductStockSerializer(_StockRequestSerializer):
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all())
    reason = serializers.CharField(max_length=255)
    reference_type = serializers.ChoiceField(choices=StockMovement.REFERENCE_TYPE_CHOICES, required=False, allow_null=True)
    reference_id = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)


class TransferStockSerializer(_StockRequestSerializer):
    source_warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all())
    destination_warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all())
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if attrs['source_warehouse'].pk == attrs['destination_warehouse'].pk:
            raise serializers.ValidationError({'destination_warehouse': 'Source and destination warehouses must be different'})
        return attrs


class AdjustStockSerializer(serializers.Serializer):
    batch = serializers.PrimaryKeyRelatedField(queryset=InventoryBatch.objects.all())
    new_quantity = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=Decimal('0'))
    reason = serializers.CharField(max_length=255)
