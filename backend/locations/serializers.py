from rest_framework import serializers
from .models import Branch, Warehouse


class BranchSerializer(serializers.ModelSerializer):
    warehouse_count = serializers.IntegerField(source='warehouses.count', read_only=True)

    class Meta:
        model = Branch
        fields = ['id', 'name', 'code', 'address', 'phone', 'is_active', 'warehouse_count', 'created_at', 'updated_at']


class WarehouseSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.name', read_only=True)

    class Meta:
        model = Warehouse
        fields = ['id', 'name', 'code', 'branch', 'branch_name', 'location', 'capacity', 'is_active', 'created_at', 'updated_at']
