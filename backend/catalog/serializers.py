from rest_framework import serializers
from django.db import transaction
from .models import Product, ProductUOM, normalize_uom


class ProductUOMSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductUOM
        fields = ['id', 'name', 'conversion_factor']
        read_only_fields = ['id']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("UOM name is required")
        return value

    def validate_conversion_factor(self, value):
        if value <= 0:
            raise serializers.ValidationError("Conversion factor must be greater than zero")
        return value


class ProductSerializer(serializers.ModelSerializer):
    alternate_uoms = ProductUOMSerializer(many=True, required=False)
    available_uoms = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'sku', 'category', 'description', 'base_uom', 'shelf_life_days',
            'average_cost_price', 'low_stock_threshold', 'is_active',
            'alternate_uoms', 'available_uoms', 'created_at', 'updated_at'
        ]
        read_only_fields = ['average_cost_price', 'created_at', 'updated_at']

    def get_available_uoms(self, obj):
        return [obj.base_uom] + [uom.name for uom in obj.alternate_uoms.all()]

    def validate_sku(self, value):
        # Blank SKUs are stored as NULL so the unique index ignores them
        value = (value or '').strip()
        return value or None

    def validate_base_uom(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Base UOM is required")
        return value

    def validate(self, attrs):
        base_uom = attrs.get('base_uom', getattr(self.instance, 'base_uom', None))
        alternate_uoms = attrs.get('alternate_uoms')
        if alternate_uoms is not None:
            seen = set()
            for uom in alternate_uoms:
                key = normalize_uom(uom['name'])
                if key == normalize_uom(base_uom):
                    raise serializers.ValidationError({'alternate_uoms': f"'{uom['name']}' is already the base UOM"})
                if key in seen:
                    raise serializers.ValidationError({'alternate_uoms': f"Duplicate UOM '{uom['name']}'"})
                seen.add(key)
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        alternate_uoms = validated_data.pop('alternate_uoms', [])
        product = Product.objects.create(**validated_data)
        for uom in alternate_uoms:
            ProductUOM.objects.create(product=product, **uom)
        return product

    @transaction.atomic
    def update(self, instance, validated_data):
        alternate_uoms = validated_data.pop('alternate_uoms', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if alternate_uoms is not None:
            # Replace the UOM set; purchase lines keep the unit name they were ordered in
            instance.alternate_uoms.all().delete()
            for uom in alternate_uoms:
                ProductUOM.objects.create(product=instance, **uom)
        return instance


class ProductListSerializer(serializers.ModelSerializer):
    alternate_uoms = ProductUOMSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'sku', 'category', 'base_uom', 'shelf_life_days',
                  'average_cost_price', 'low_stock_threshold', 'is_active', 'alternate_uoms']
