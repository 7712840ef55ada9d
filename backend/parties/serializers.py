from decimal import Decimal
from rest_framework import serializers
from .models import Supplier, AccountsPayable, APPayment


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ['id', 'company_name', 'contact_person', 'phone', 'email', 'address', 'payment_terms', 'is_active', 'created_at', 'updated_at']


class APPaymentSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = APPayment
        fields = ['id', 'accounts_payable', 'amount', 'payment_method', 'reference_number', 'payment_date',
                  'notes', 'created_by', 'created_by_username', 'created_at']
        read_only_fields = fields


class APPaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))
    payment_method = serializers.ChoiceField(choices=APPayment.PAYMENT_METHOD_CHOICES)
    payment_date = serializers.DateField(required=False)
    reference_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class AccountsPayableSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.company_name', read_only=True)
    branch_name = serializers.CharField(source='branch.name', read_only=True)
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True, default=None)

    class Meta:
        model = AccountsPayable
        fields = ['id', 'branch', 'branch_name', 'supplier', 'supplier_name', 'purchase_order', 'po_number',
                  'total_amount', 'paid_amount', 'balance', 'due_date', 'status', 'notes', 'created_at', 'updated_at']
        read_only_fields = fields


class AccountsPayableDetailSerializer(AccountsPayableSerializer):
    payments = APPaymentSerializer(many=True, read_only=True)

    class Meta(AccountsPayableSerializer.Meta):
        fields = AccountsPayableSerializer.Meta.fields + ['payments']
        read_only_fields = fields
