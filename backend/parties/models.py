from django.db import models
from decimal import Decimal
from backend.core.models import User


class Supplier(models.Model):
    """Suppliers"""
    PAYMENT_TERMS_CHOICES = [
        ('Net 15', 'Net 15'),
        ('Net 30', 'Net 30'),
        ('Net 60', 'Net 60'),
        ('COD', 'Cash on Delivery'),
    ]

    company_name = models.CharField(max_length=200, unique=True)
    contact_person = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    payment_terms = models.CharField(max_length=20, choices=PAYMENT_TERMS_CHOICES, default='Net 30')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.company_name

    class Meta:
        db_table = 'suppliers'


class AccountsPayable(models.Model):
    """Amount owed to a supplier for a fully received purchase order"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
        ('overdue', 'Overdue'),
    ]

    branch = models.ForeignKey('locations.Branch', on_delete=models.PROTECT, related_name='payables')
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='payables')
    purchase_order = models.OneToOneField(
        'purchasing.PurchaseOrder', on_delete=models.PROTECT, null=True, blank=True, related_name='payable'
    )
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    balance = models.DecimalField(max_digits=14, decimal_places=2)
    due_date = models.DateField(db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"AP-{self.id} {self.supplier.company_name} ({self.balance})"

    class Meta:
        db_table = 'accounts_payable'
        ordering = ['due_date', 'id']
        constraints = [
            models.CheckConstraint(condition=models.Q(paid_amount__gte=0), name='ap_paid_amount_non_negative'),
            models.CheckConstraint(condition=models.Q(paid_amount__lte=models.F('total_amount')), name='ap_paid_not_above_total'),
        ]

    def resolve_status(self, today):
        if self.balance <= 0:
            return 'paid'
        if self.due_date < today:
            return 'overdue'
        if self.paid_amount > 0:
            return 'partial'
        return 'pending'


class APPayment(models.Model):
    """Payment made against an accounts payable record"""
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('check', 'Check'),
        ('bank_transfer', 'Bank Transfer'),
        ('online_transfer', 'Online Transfer'),
    ]

    accounts_payable = models.ForeignKey(AccountsPayable, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    reference_number = models.CharField(max_length=100, blank=True, null=True)
    payment_date = models.DateField()
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='ap_payments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.accounts_payable_id} - {self.payment_method} - {self.amount}"

    class Meta:
        db_table = 'ap_payments'
        ordering = ['-payment_date', '-id']
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name='ap_payment_amount_positive'),
        ]
