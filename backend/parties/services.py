"""
Accounts payable operations: due dates, payments, overdue sweeps and aging.

All amounts are ``Decimal``. Functions that write lock the payable row so
concurrent payments cannot overdraw the balance.
"""
import logging
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from backend.core.exceptions import BusinessRuleViolation
from backend.core.utils import create_audit_log
from .models import AccountsPayable, APPayment

logger = logging.getLogger(__name__)

PAYMENT_TERM_DAYS = {
    'Net 15': 15,
    'Net 30': 30,
    'Net 60': 60,
    'COD': 0,
}

AGING_BUCKETS = ['0-30', '31-60', '61-90', '90+']

OPEN_STATUSES = ['pending', 'partial', 'overdue']

ZERO = Decimal('0.00')


def calculate_due_date(payment_terms, from_date):
    """Due date for ``payment_terms`` counted from ``from_date``; unknown terms use the default"""
    days = PAYMENT_TERM_DAYS.get(payment_terms)
    if days is None:
        days = PAYMENT_TERM_DAYS.get(getattr(settings, 'AP_DEFAULT_PAYMENT_TERMS', 'Net 30'), 30)
    return from_date + timedelta(days=days)


def create_payable(branch, supplier, total_amount, due_date, purchase_order=None, user=None, notes=''):
    total_amount = Decimal(str(total_amount)).quantize(Decimal('0.01'))
    payable = AccountsPayable(
        branch=branch,
        supplier=supplier,
        purchase_order=purchase_order,
        total_amount=total_amount,
        paid_amount=ZERO,
        balance=total_amount,
        due_date=due_date,
        notes=notes,
    )
    payable.status = payable.resolve_status(timezone.localdate())
    payable.save()

    create_audit_log(
        action='ap_create',
        model_name='AccountsPayable',
        object_id=str(payable.id),
        object_name=supplier.company_name,
        object_reference=purchase_order.po_number if purchase_order else None,
        changes={'total_amount': str(total_amount), 'due_date': due_date.isoformat()},
        user=user,
    )
    logger.info(f"Accounts payable {payable.id} created for {supplier.company_name}: {total_amount} due {due_date}")
    return payable


def record_payment(payable, amount, payment_method, payment_date=None, reference_number=None, notes='', user=None):
    """
    Apply a supplier payment to ``payable``.

    Rejects non-positive amounts and amounts above the outstanding balance.
    Returns the created ``APPayment``; the payable is refreshed in place.
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        raise BusinessRuleViolation('Payment amount must be greater than zero', fields={'amount': 'Must be greater than zero'})

    payment_date = payment_date or timezone.localdate()

    with transaction.atomic():
        locked = AccountsPayable.objects.select_for_update().select_related('supplier').get(pk=payable.pk)

        if locked.status == 'paid' or locked.balance <= 0:
            raise BusinessRuleViolation('Accounts payable is already paid')
        if amount > locked.balance:
            raise BusinessRuleViolation(
                f"Payment amount {amount} exceeds outstanding balance {locked.balance}",
                fields={'amount': f"Cannot exceed balance of {locked.balance}"}
            )

        payment = APPayment.objects.create(
            accounts_payable=locked,
            amount=amount,
            payment_method=payment_method,
            reference_number=reference_number or None,
            payment_date=payment_date,
            notes=notes or '',
            created_by=user,
        )

        locked.paid_amount = locked.paid_amount + amount
        locked.balance = locked.total_amount - locked.paid_amount
        locked.status = locked.resolve_status(timezone.localdate())
        locked.save(update_fields=['paid_amount', 'balance', 'status', 'updated_at'])

    create_audit_log(
        action='ap_payment',
        model_name='AccountsPayable',
        object_id=str(locked.id),
        object_name=locked.supplier.company_name,
        object_reference=reference_number,
        changes={
            'amount': str(amount),
            'payment_method': payment_method,
            'balance': str(locked.balance),
            'status': locked.status,
        },
        user=user,
    )
    logger.info(f"Payment of {amount} recorded on AP {locked.id}; balance now {locked.balance} ({locked.status})")

    payable.refresh_from_db()
    return payment


def refresh_overdue_status(today=None):
    """Flip open payables past their due date to overdue; returns the number updated"""
    today = today or timezone.localdate()
    updated = AccountsPayable.objects.filter(
        status__in=['pending', 'partial'],
        balance__gt=0,
        due_date__lt=today,
    ).update(status='overdue', updated_at=timezone.now())
    if updated:
        logger.info(f"Marked {updated} accounts payable as overdue as of {today}")
    return updated


def bucket_for(days_past_due):
    if days_past_due > 90:
        return '90+'
    if days_past_due > 60:
        return '61-90'
    if days_past_due > 30:
        return '31-60'
    return '0-30'


def aging_report(branch=None, today=None):
    """Outstanding balances bucketed by days past due, overall and per supplier"""
    today = today or timezone.localdate()
    queryset = AccountsPayable.objects.filter(
        status__in=OPEN_STATUSES, balance__gt=0
    ).select_related('supplier').order_by('supplier__company_name', 'due_date')
    if branch is not None:
        queryset = queryset.filter(branch=branch)

    totals = OrderedDict((bucket, ZERO) for bucket in AGING_BUCKETS)
    suppliers = OrderedDict()

    for payable in queryset:
        bucket = bucket_for((today - payable.due_date).days)
        totals[bucket] += payable.balance

        row = suppliers.get(payable.supplier_id)
        if row is None:
            row = {
                'supplier_id': payable.supplier_id,
                'supplier_name': payable.supplier.company_name,
                'buckets': OrderedDict((b, ZERO) for b in AGING_BUCKETS),
                'total': ZERO,
                'count': 0,
            }
            suppliers[payable.supplier_id] = row
        row['buckets'][bucket] += payable.balance
        row['total'] += payable.balance
        row['count'] += 1

    return {
        'as_of': today,
        'buckets': totals,
        'total_outstanding': sum(totals.values(), ZERO),
        'suppliers': list(suppliers.values()),
    }


def payables_summary(branch=None, today=None):
    today = today or timezone.localdate()
    queryset = AccountsPayable.objects.all()
    if branch is not None:
        queryset = queryset.filter(branch=branch)

    open_qs = queryset.filter(status__in=OPEN_STATUSES)
    overdue_filter = Q(status='overdue') | Q(status__in=['pending', 'partial'], due_date__lt=today)

    totals = queryset.aggregate(
        total_amount=Sum('total_amount'),
        total_paid=Sum('paid_amount'),
    )
    counts = {row['status']: row['count'] for row in queryset.values('status').annotate(count=Count('id'))}

    return {
        'total_amount': totals['total_amount'] or ZERO,
        'total_paid': totals['total_paid'] or ZERO,
        'total_outstanding': open_qs.aggregate(total=Sum('balance'))['total'] or ZERO,
        'total_overdue': open_qs.filter(overdue_filter).aggregate(total=Sum('balance'))['total'] or ZERO,
        'counts': {status: counts.get(status, 0) for status, _ in AccountsPayable.STATUS_CHOICES},
    }
