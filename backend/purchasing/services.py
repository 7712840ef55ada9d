"""
Purchase order lifecycle and receiving.

A purchase order moves ``draft -> pending -> ordered -> received``; ``received``
is only reached by receiving every ordered quantity, and ``cancelled`` only
while nothing has been received. Receiving writes a voucher, adds one stock
batch per received line and, once the order is complete, opens the accounts
payable record for it.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.utils import timezone

from backend.core.exceptions import BusinessRuleViolation, InvalidStatusTransition
from backend.core.utils import create_audit_log, generate_document_number
from backend.catalog.models import normalize_uom
from backend.inventory.services import add_stock
from backend.parties.models import AccountsPayable
from backend.parties.services import calculate_due_date, create_payable
from .models import PurchaseOrder, PurchaseOrderItem, ReceivingVoucher, ReceivingVoucherItem

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal('0.01')
ZERO = Decimal('0')

# Transitions allowed through a status-only update
MANUAL_TRANSITIONS = {
    'draft': ['pending', 'ordered'],
    'pending': ['ordered'],
}

EDITABLE_STATUSES = ['draft', 'pending']

PO_FIELDS = ['supplier', 'warehouse', 'branch', 'expected_delivery_date', 'notes']


def to_money(value):
    return Decimal(str(value)).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _validate_header(supplier, warehouse, branch):
    if not supplier.is_active:
        raise BusinessRuleViolation(f"Supplier {supplier.company_name} is inactive", fields={'supplier': 'Supplier is inactive'})
    if not warehouse.is_active:
        raise BusinessRuleViolation(f"Warehouse {warehouse.name} is inactive", fields={'warehouse': 'Warehouse is inactive'})
    if warehouse.branch_id != branch.id:
        raise BusinessRuleViolation(
            f"Warehouse {warehouse.name} does not belong to branch {branch.name}",
            fields={'warehouse': 'Warehouse must belong to the purchase order branch'}
        )


def _validate_items(items):
    if not items:
        raise BusinessRuleViolation("Purchase order must have at least one item", fields={'items': 'At least one item is required'})

    seen = set()
    for item in items:
        product = item['product']
        if not product.is_active:
            raise BusinessRuleViolation(f"Product {product.name} is inactive", fields={'items': f'Product {product.name} is inactive'})

        uom = (item.get('uom') or product.base_uom).strip()
        product.get_conversion_factor(uom)
        item['uom'] = uom

        for field, label in (('quantity', 'Quantity'), ('unit_price', 'Unit price')):
            if item.get(field) is None or Decimal(str(item[field])) <= 0:
                raise BusinessRuleViolation(
                    f"{label} for {product.name} must be greater than zero",
                    fields={'items': f'{label} must be greater than zero'}
                )

        key = (product.id, normalize_uom(uom))
        if key in seen:
            raise BusinessRuleViolation(
                f"Duplicate line for {product.name} in {uom}",
                fields={'items': 'Each product and UOM may appear only once'}
            )
        seen.add(key)


def _replace_items(purchase_order, items):
    purchase_order.items.all().delete()
    PurchaseOrderItem.objects.bulk_create([
        PurchaseOrderItem(
            purchase_order=purchase_order,
            product=item['product'],
            quantity=item['quantity'],
            uom=item['uom'],
            unit_price=item['unit_price'],
        )
        for item in items
    ])
    purchase_order.total_amount = to_money(sum(
        (Decimal(str(item['quantity'])) * Decimal(str(item['unit_price'])) for item in items), ZERO
    ))


@transaction.atomic
def create_purchase_order(data, user=None):
    """
    Create a purchase order with its items.

    ``data`` holds model instances for ``supplier``, ``warehouse`` and each
    item's ``product``. ``branch`` defaults to the warehouse's branch.
    """
    supplier = data['supplier']
    warehouse = data['warehouse']
    branch = data.get('branch') or warehouse.branch
    items = [dict(item) for item in data.get('items') or []]
    status = data.get('status') or 'draft'
    if status not in EDITABLE_STATUSES:
        raise InvalidStatusTransition('new', status, detail="New purchase orders must be draft or pending")

    _validate_header(supplier, warehouse, branch)
    _validate_items(items)

    purchase_order = PurchaseOrder.objects.create(
        po_number=generate_document_number(PurchaseOrder, 'po_number', 'PO'),
        supplier=supplier,
        warehouse=warehouse,
        branch=branch,
        status=status,
        expected_delivery_date=data.get('expected_delivery_date'),
        notes=data.get('notes', ''),
        created_by=user,
    )
    _replace_items(purchase_order, items)
    purchase_order.save(update_fields=['total_amount'])

    create_audit_log(
        action='create',
        model_name='PurchaseOrder',
        object_id=str(purchase_order.id),
        object_name=supplier.company_name,
        object_reference=purchase_order.po_number,
        changes={
            'status': purchase_order.status,
            'total_amount': str(purchase_order.total_amount),
            'items_count': len(items),
        },
        user=user,
    )
    logger.info(f"Purchase order {purchase_order.po_number} created for {supplier.company_name} ({purchase_order.total_amount})")
    return purchase_order


def _change_status(purchase_order, new_status):
    current = purchase_order.status
    if new_status == current:
        return False
    if new_status == 'received':
        raise InvalidStatusTransition(current, new_status, detail="Purchase orders become received only through receiving")
    if new_status == 'cancelled':
        raise InvalidStatusTransition(current, new_status, detail="Use the cancel action to cancel a purchase order")
    if new_status not in MANUAL_TRANSITIONS.get(current, []):
        raise InvalidStatusTransition(current, new_status)
    purchase_order.status = new_status
    return True


@transaction.atomic
def update_purchase_order(purchase_order, data, user=None):
    """
    Apply a status change or a field/item edit.

    A payload carrying only ``status`` is a transition and follows the state
    machine. Anything else is an edit, allowed in draft and pending only.
    """
    locked = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    old_status = locked.status

    if set(data.keys()) == {'status'}:
        if _change_status(locked, data['status']):
            locked.save(update_fields=['status', 'updated_at'])
            create_audit_log(
                action='status_change',
                model_name='PurchaseOrder',
                object_id=str(locked.id),
                object_name=locked.supplier.company_name,
                object_reference=locked.po_number,
                changes={'status': {'old': old_status, 'new': locked.status}},
                user=user,
            )
            logger.info(f"Purchase order {locked.po_number} status {old_status} -> {locked.status}")
        return locked

    if locked.status not in EDITABLE_STATUSES:
        raise BusinessRuleViolation(
            f"Cannot edit a purchase order in {locked.status} status",
            fields={'status': 'Only draft or pending purchase orders can be edited'}
        )

    changes = {}
    for field in PO_FIELDS:
        if field in data:
            old_value = getattr(locked, field)
            if old_value != data[field]:
                changes[field] = {'old': str(old_value), 'new': str(data[field])}
            setattr(locked, field, data[field])

    if 'warehouse' in data and 'branch' not in data:
        locked.branch = locked.warehouse.branch
    _validate_header(locked.supplier, locked.warehouse, locked.branch)

    if 'status' in data and _change_status(locked, data['status']):
        changes['status'] = {'old': old_status, 'new': locked.status}

    if 'items' in data:
        items = [dict(item) for item in data['items'] or []]
        _validate_items(items)
        old_total = locked.total_amount
        _replace_items(locked, items)
        changes['items_count'] = len(items)
        changes['total_amount'] = {'old': str(old_total), 'new': str(locked.total_amount)}

    locked.save()

    if changes:
        create_audit_log(
            action='update',
            model_name='PurchaseOrder',
            object_id=str(locked.id),
            object_name=locked.supplier.company_name,
            object_reference=locked.po_number,
            changes=changes,
            user=user,
        )
    return locked


@transaction.atomic
def cancel_purchase_order(purchase_order, reason, user=None):
    locked = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    reason = (reason or '').strip()
    if not reason:
        raise BusinessRuleViolation("Cancellation reason is required", fields={'reason': 'This field is required.'})
    if locked.status == 'received':
        raise InvalidStatusTransition(locked.status, 'cancelled', detail="Cannot cancel a received purchase order")
    if locked.status == 'cancelled':
        raise InvalidStatusTransition(locked.status, 'cancelled', detail="Purchase order is already cancelled")
    if locked.items.filter(received_quantity__gt=0).exists():
        raise BusinessRuleViolation(
            "Cannot cancel a purchase order with received items",
            fields={'status': 'Items have already been received'}
        )

    old_status = locked.status
    notes = f"CANCELLED: {reason}"
    if locked.notes:
        notes += f"\n\nOriginal Notes: {locked.notes}"
    locked.notes = notes
    locked.status = 'cancelled'
    locked.save(update_fields=['status', 'notes', 'updated_at'])

    create_audit_log(
        action='cancel',
        model_name='PurchaseOrder',
        object_id=str(locked.id),
        object_name=locked.supplier.company_name,
        object_reference=locked.po_number,
        changes={'status': {'old': old_status, 'new': 'cancelled'}, 'reason': reason},
        user=user,
    )
    logger.info(f"Purchase order {locked.po_number} cancelled: {reason}")
    return locked


@transaction.atomic
def delete_purchase_order(purchase_order, user=None):
    locked = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if locked.status != 'draft':
        raise BusinessRuleViolation(
            f"Cannot delete a purchase order in {locked.status} status",
            fields={'status': 'Only draft purchase orders can be deleted'}
        )
    po_id, po_number = locked.id, locked.po_number
    locked.delete()
    create_audit_log(
        action='delete',
        model_name='PurchaseOrder',
        object_id=str(po_id),
        object_reference=po_number,
        user=user,
    )
    logger.info(f"Purchase order {po_number} deleted")


def _check_receivable(purchase_order):
    if purchase_order.status == 'received':
        raise InvalidStatusTransition(purchase_order.status, 'received', detail="Purchase order already received")
    if purchase_order.status == 'cancelled':
        raise InvalidStatusTransition(purchase_order.status, 'received', detail="Cannot receive cancelled purchase order")
    if purchase_order.status != 'ordered':
        raise InvalidStatusTransition(
            purchase_order.status, 'received',
            detail=f"Purchase order must be ordered before receiving (current status: {purchase_order.status})"
        )


def _variance_percentage(variance, ordered):
    if ordered <= 0:
        return Decimal('0.00')
    return (variance / ordered * 100).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _requested_lines(purchase_order, po_items, items):
    """Validate requested lines against the locked items of the order"""
    lines = []
    seen = set()
    for line in items:
        item_ref = line.get('purchase_order_item')
        item_id = getattr(item_ref, 'id', item_ref)
        try:
            item_id = int(item_id)
        except (TypeError, ValueError):
            item_id = None
        item = po_items.get(item_id)
        if item is None:
            raise BusinessRuleViolation(
                f"Item {item_ref} does not belong to purchase order {purchase_order.po_number}",
                fields={'items': 'Item does not belong to this purchase order'}
            )
        if item_id in seen:
            raise BusinessRuleViolation(
                f"Item {item_id} appears more than once",
                fields={'items': 'Each purchase order item may appear only once'}
            )
        seen.add(item_id)

        received = Decimal(str(line.get('received_quantity') or 0))
        if received < 0:
            raise BusinessRuleViolation(
                "Received quantity cannot be negative",
                fields={'items': 'Received quantity cannot be negative'}
            )
        lines.append((item, received, line.get('variance_reason') or ''))
    return lines


def create_receiving_voucher(purchase_order, data, user=None):
    """
    Receive goods against an ordered purchase order.

    ``data['items']`` lists ``{'purchase_order_item', 'received_quantity',
    'variance_reason'}`` where ``purchase_order_item`` is an id or instance.
    With ``data['receive_all']`` the lines are every outstanding quantity of
    the locked order instead. Returns ``(voucher, created)``; a repeated ``idempotency_key`` for the same
    order returns the voucher it created the first time.
    """
    idempotency_key = (data.get('idempotency_key') or '').strip() or None

    with transaction.atomic():
        locked = PurchaseOrder.objects.select_for_update().select_related(
            'supplier', 'warehouse', 'branch'
        ).get(pk=purchase_order.pk)

        if idempotency_key:
            existing = ReceivingVoucher.objects.filter(idempotency_key=idempotency_key).first()
            if existing is not None:
                if existing.purchase_order_id != locked.id:
                    raise BusinessRuleViolation(
                        "Idempotency key already used for another purchase order",
                        fields={'idempotency_key': 'Key already used'}
                    )
                logger.info(f"Replayed receiving voucher {existing.rv_number} for key {idempotency_key}")
                return existing, False

        _check_receivable(locked)

        po_items = {item.id: item for item in locked.items.select_for_update().order_by('id')}
        if data.get('receive_all'):
            lines = [
                (item, item.outstanding_quantity, '')
                for item in po_items.values()
                if item.outstanding_quantity > 0
            ]
        else:
            lines = _requested_lines(locked, po_items, data.get('items') or [])

        if not any(received > 0 for _, received, _ in lines):
            raise BusinessRuleViolation(
                "At least one item must have a received quantity greater than zero",
                fields={'items': 'Nothing received'}
            )

        voucher = ReceivingVoucher.objects.create(
            rv_number=generate_document_number(ReceivingVoucher, 'rv_number', 'RV'),
            purchase_order=locked,
            warehouse=locked.warehouse,
            branch=locked.branch,
            receiver_name=data.get('receiver_name') or '',
            delivery_notes=data.get('delivery_notes') or '',
            status='complete',
            idempotency_key=idempotency_key,
            created_by=user,
        )

        total_ordered = ZERO
        total_received = ZERO
        for item, received, variance_reason in lines:
            ordered = item.outstanding_quantity
            variance = received - ordered
            ordered_amount = to_money(ordered * item.unit_price)
            line_total = to_money(received * item.unit_price)
            total_ordered += ordered_amount
            total_received += line_total

            batch = None
            if received > 0:
                batch = add_stock(
                    item.product, locked.warehouse, received, item.uom, item.unit_price,
                    reason=f"Received from RV {voucher.rv_number} (PO {locked.po_number})",
                    reference_type='RV',
                    reference_id=voucher.id,
                    user=user,
                )
                item.received_quantity += received
                item.save(update_fields=['received_quantity'])

            ReceivingVoucherItem.objects.create(
                receiving_voucher=voucher,
                purchase_order_item=item,
                product=item.product,
                batch=batch,
                uom=item.uom,
                ordered_quantity=ordered,
                received_quantity=received,
                variance_quantity=variance,
                variance_percentage=_variance_percentage(variance, ordered),
                variance_reason=variance_reason,
                unit_price=item.unit_price,
                line_total=line_total,
            )

        voucher.total_ordered_amount = total_ordered
        voucher.total_received_amount = total_received
        voucher.variance_amount = total_received - total_ordered
        voucher.save(update_fields=['total_ordered_amount', 'total_received_amount', 'variance_amount'])

        _refresh_receiving_status(locked, user=user)

        create_audit_log(
            action='receive',
            model_name='ReceivingVoucher',
            object_id=str(voucher.id),
            object_name=locked.supplier.company_name,
            object_reference=voucher.rv_number,
            changes={
                'purchase_order': locked.po_number,
                'total_received_amount': str(voucher.total_received_amount),
                'variance_amount': str(voucher.variance_amount),
                'receiving_status': locked.receiving_status,
            },
            user=user,
        )

    logger.info(
        f"Receiving voucher {voucher.rv_number} created for {locked.po_number}: "
        f"received {voucher.total_received_amount}, variance {voucher.variance_amount}"
    )
    return voucher, True


def _refresh_receiving_status(purchase_order, user=None):
    """Recompute receiving status; a fully received order is closed and billed"""
    items = list(purchase_order.items.all())
    if items and all(item.is_fully_received for item in items):
        purchase_order.receiving_status = 'fully_received'
    elif any(item.received_quantity > 0 for item in items):
        purchase_order.receiving_status = 'partially_received'
    else:
        purchase_order.receiving_status = 'pending'

    update_fields = ['receiving_status', 'updated_at']
    if purchase_order.receiving_status == 'fully_received':
        purchase_order.status = 'received'
        purchase_order.actual_delivery_date = timezone.localdate()
        update_fields += ['status', 'actual_delivery_date']
    purchase_order.save(update_fields=update_fields)

    if purchase_order.status == 'received':
        _create_payable_for(purchase_order, user=user)


def _create_payable_for(purchase_order, user=None):
    if AccountsPayable.objects.filter(purchase_order=purchase_order).exists():
        logger.warning(f"Accounts payable already exists for {purchase_order.po_number}")
        return None

    total = sum(
        purchase_order.receiving_vouchers.values_list('total_received_amount', flat=True),
        ZERO
    )
    today = timezone.localdate()
    return create_payable(
        branch=purchase_order.branch,
        supplier=purchase_order.supplier,
        total_amount=total,
        due_date=calculate_due_date(purchase_order.supplier.payment_terms, today),
        purchase_order=purchase_order,
        user=user,
        notes=f"Purchase order {purchase_order.po_number}",
    )


def receive_purchase_order(purchase_order, user=None, receiver_name='', delivery_notes='', idempotency_key=None):
    """
    Receive every outstanding quantity of an ordered purchase order.

    Outstanding quantities are read under the purchase order lock, so a
    receipt committed in between is never received twice.
    """
    return create_receiving_voucher(purchase_order, {
        'receive_all': True,
        'receiver_name': receiver_name,
        'delivery_notes': delivery_notes,
        'idempotency_key': idempotency_key,
    }, user=user)


def _line_kind(variance):
    if variance > 0:
        return 'over'
    if variance < 0:
        return 'under'
    return 'exact'


def generate_variance_report(branch=None, start_date=None, end_date=None, supplier=None):
    """
    Receiving variance per supplier.

    For each supplier: voucher count, over/under/exact line counts, the share
    of lines with a variance and per-product ordered/received/variance totals.
    """
    vouchers = ReceivingVoucher.objects.select_related('purchase_order__supplier').prefetch_related('items__product')
    if branch is not None:
        vouchers = vouchers.filter(branch=branch)
    if supplier is not None:
        vouchers = vouchers.filter(purchase_order__supplier=supplier)
    if start_date:
        vouchers = vouchers.filter(created_at__date__gte=start_date)
    if end_date:
        vouchers = vouchers.filter(created_at__date__lte=end_date)

    suppliers = {}
    for voucher in vouchers.order_by('created_at', 'id'):
        po_supplier = voucher.purchase_order.supplier
        entry = suppliers.setdefault(po_supplier.id, {
            'supplier_id': po_supplier.id,
            'supplier_name': po_supplier.company_name,
            'receiving_voucher_count': 0,
            'total_lines': 0,
            'over_lines': 0,
            'under_lines': 0,
            'exact_lines': 0,
            'variance_amount': ZERO,
            'products': {},
        })
        entry['receiving_voucher_count'] += 1
        entry['variance_amount'] += voucher.variance_amount

        for line in voucher.items.all():
            kind = _line_kind(line.variance_quantity)
            entry['total_lines'] += 1
            entry[f'{kind}_lines'] += 1

            product = entry['products'].setdefault(line.product_id, {
                'product_id': line.product_id,
                'product_name': line.product.name,
                'lines': 0,
                'variance_count': 0,
                'ordered_quantity': ZERO,
                'received_quantity': ZERO,
                'variance_quantity': ZERO,
            })
            product['lines'] += 1
            product['ordered_quantity'] += line.ordered_quantity
            product['received_quantity'] += line.received_quantity
            product['variance_quantity'] += line.variance_quantity
            if kind != 'exact':
                product['variance_count'] += 1

    results = []
    for entry in suppliers.values():
        lines_with_variance = entry['over_lines'] + entry['under_lines']
        entry['variance_line_percentage'] = _variance_percentage(Decimal(lines_with_variance), Decimal(entry['total_lines']))
        entry['products'] = sorted(entry['products'].values(), key=lambda p: p['product_name'])
        results.append(entry)
    results.sort(key=lambda e: e['supplier_name'])

    total_lines = sum(entry['total_lines'] for entry in results)
    variance_lines = sum(entry['over_lines'] + entry['under_lines'] for entry in results)
    return {
        'start_date': start_date,
        'end_date': end_date,
        'receiving_voucher_count': sum(entry['receiving_voucher_count'] for entry in results),
        'total_lines': total_lines,
        'variance_lines': variance_lines,
        'variance_line_percentage': _variance_percentage(Decimal(variance_lines), Decimal(total_lines)),
        'suppliers': results,
    }
