"""
Batch inventory operations.

Quantities handed to the public functions are expressed in a unit of measure
of the product and converted to base units before anything is stored. Every
change to a batch quantity is written together with a ``StockMovement`` whose
signed quantity equals the change, so a batch quantity always equals the sum
of its movements.

Writes run in ``transaction.atomic()`` and lock the touched batch rows with
``select_for_update``.
"""
import logging
import uuid
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from backend.catalog.models import Product
from backend.core.cache_utils import get_cached_stock_levels, cache_stock_levels, invalidate_stock_cache
from backend.core.exceptions import BusinessRuleViolation, InsufficientStock
from backend.core.utils import create_audit_log, generate_document_number
from .models import InventoryBatch, StockMovement

logger = logging.getLogger(__name__)

QUANTITY_PLACES = Decimal('0.0001')
COST_PLACES = Decimal('0.0001')
ZERO = Decimal('0')


def to_quantity(value):
    return Decimal(str(value)).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def to_cost(value):
    return Decimal(str(value)).quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def active_batches(product, warehouse):
    """Active batches of ``product`` in ``warehouse`` that still hold stock"""
    return InventoryBatch.objects.filter(
        product=product, warehouse=warehouse, status='active', quantity__gt=0
    )


def fefo(queryset):
    """Order batches first-expiry-first-out; batches without expiry go last"""
    return queryset.order_by(F('expiry_date').asc(nulls_last=True), 'received_date', 'id')


# Read side

def get_weighted_average_cost_details(product, warehouse):
    total_quantity = ZERO
    total_value = ZERO
    for quantity, unit_cost in active_batches(product, warehouse).values_list('quantity', 'unit_cost'):
        total_quantity += quantity
        total_value += quantity * unit_cost

    if total_quantity > 0:
        average_cost = to_cost(total_value / total_quantity)
    else:
        average_cost = to_cost(ZERO)

    return {
        'average_cost': average_cost,
        'total_quantity': to_quantity(total_quantity),
        'total_value': to_cost(total_value),
    }


def calculate_weighted_average_cost(product, warehouse):
    """Σ(quantity × unit_cost) / Σ quantity over active batches; 0 without stock"""
    return get_weighted_average_cost_details(product, warehouse)['average_cost']


def get_average_cost_by_uom(product, warehouse, uom):
    factor = product.get_conversion_factor(uom)
    return to_cost(calculate_weighted_average_cost(product, warehouse) * factor)


def get_current_stock_level(product, warehouse):
    total = active_batches(product, warehouse).aggregate(total=Sum('quantity'))['total']
    return to_quantity(total or ZERO)


def get_total_stock(product, warehouse=None):
    queryset = InventoryBatch.objects.filter(product=product, status='active', quantity__gt=0)
    if warehouse is not None:
        queryset = queryset.filter(warehouse=warehouse)
    total = queryset.aggregate(total=Sum('quantity'))['total']
    return to_quantity(total or ZERO)


def has_sufficient_stock(product, warehouse, quantity, uom):
    required = product.convert_to_base(quantity, uom)
    return get_current_stock_level(product, warehouse) >= required


def get_stock_level(product, warehouse):
    details = get_weighted_average_cost_details(product, warehouse)
    batches = list(fefo(active_batches(product, warehouse)))
    return {
        'product_id': product.id,
        'product_name': product.name,
        'warehouse_id': warehouse.id,
        'warehouse_name': warehouse.name,
        'base_uom': product.base_uom,
        'quantity': details['total_quantity'],
        'average_cost': details['average_cost'],
        'total_value': details['total_value'],
        'batches': batches,
    }


def get_stock_levels(warehouse=None, product=None):
    """
    One row per (product, warehouse) holding active stock.

    Rows are cached until the next stock write.
    """
    filters = {
        'warehouse': warehouse.id if warehouse is not None else None,
        'product': product.id if product is not None else None,
    }
    cached, cache_key = get_cached_stock_levels(**filters)
    if cached is not None:
        return cached

    queryset = InventoryBatch.objects.filter(status='active', quantity__gt=0).select_related('product', 'warehouse')
    if warehouse is not None:
        queryset = queryset.filter(warehouse=warehouse)
    if product is not None:
        queryset = queryset.filter(product=product)

    rows = {}
    for batch in queryset.order_by('product__name', 'warehouse__name', 'id'):
        key = (batch.product_id, batch.warehouse_id)
        row = rows.get(key)
        if row is None:
            row = {
                'product_id': batch.product_id,
                'product_name': batch.product.name,
                'sku': batch.product.sku,
                'base_uom': batch.product.base_uom,
                'warehouse_id': batch.warehouse_id,
                'warehouse_name': batch.warehouse.name,
                'quantity': ZERO,
                'total_value': ZERO,
                'batch_count': 0,
                'low_stock_threshold': batch.product.low_stock_threshold,
            }
            rows[key] = row
        row['quantity'] += batch.quantity
        row['total_value'] += batch.quantity * batch.unit_cost
        row['batch_count'] += 1

    levels = []
    for row in rows.values():
        row['average_cost'] = to_cost(row['total_value'] / row['quantity'])
        row['quantity'] = to_quantity(row['quantity'])
        row['total_value'] = to_cost(row['total_value'])
        row['is_low_stock'] = row['low_stock_threshold'] > 0 and row['quantity'] <= row['low_stock_threshold']
        levels.append(row)

    cache_stock_levels(cache_key, levels)
    return levels


def get_expiring_batches(days=None, warehouse=None, today=None):
    """Active batches with stock that expire within ``days`` from today"""
    today = today or timezone.localdate()
    if days is None:
        days = getattr(settings, 'EXPIRING_BATCH_DAYS', 30)
    queryset = InventoryBatch.objects.filter(
        status='active',
        quantity__gt=0,
        expiry_date__isnull=False,
        expiry_date__gte=today,
        expiry_date__lte=today + timedelta(days=days),
    ).select_related('product', 'warehouse')
    if warehouse is not None:
        queryset = queryset.filter(warehouse=warehouse)
    return queryset.order_by('expiry_date', 'id')


def get_expired_batches(warehouse=None):
    queryset = InventoryBatch.objects.filter(status='expired', quantity__gt=0).select_related('product', 'warehouse')
    if warehouse is not None:
        queryset = queryset.filter(warehouse=warehouse)
    return queryset.order_by('expiry_date', 'id')


# Write side

def _require_positive(value, field, label):
    if value is None or Decimal(str(value)) <= 0:
        raise BusinessRuleViolation(f"{label} must be greater than zero", fields={field: 'Must be greater than zero'})


def _base_quantity(product, quantity, uom):
    """Convert to base units; a quantity that rounds to nothing is rejected"""
    base_quantity = to_quantity(product.convert_to_base(Decimal(str(quantity)), uom))
    if base_quantity <= 0:
        raise BusinessRuleViolation(
            f"Quantity {quantity} {uom} is less than 0.0001 {product.base_uom}",
            fields={'quantity': 'Quantity is too small for the base unit'}
        )
    return base_quantity


def _update_product_average_cost(product, quantity, unit_cost):
    """
    Fold a receipt into the product-wide moving average cost.

    Must run before the receipt's batch exists so on-hand stock excludes it.
    """
    locked = Product.objects.select_for_update().get(pk=product.pk)
    on_hand = get_total_stock(locked)
    current = locked.average_cost_price or ZERO

    new_total = on_hand + quantity
    if new_total > 0:
        new_average = ((current * on_hand) + (unit_cost * quantity)) / new_total
    else:
        new_average = unit_cost

    locked.average_cost_price = to_cost(new_average)
    locked.save(update_fields=['average_cost_price', 'updated_at'])
    product.average_cost_price = locked.average_cost_price
    return locked.average_cost_price


def _create_batch(product, warehouse, base_quantity, base_unit_cost, received_date, expiry_date):
    return InventoryBatch.objects.create(
        batch_number=generate_document_number(InventoryBatch, 'batch_number', 'BATCH'),
        product=product,
        warehouse=warehouse,
        quantity=base_quantity,
        unit_cost=base_unit_cost,
        received_date=received_date,
        expiry_date=expiry_date,
        status='active',
    )


def add_stock(product, warehouse, quantity, uom, unit_cost, received_date=None, expiry_date=None,
              reason='', reference_type=None, reference_id=None, user=None):
    """
    Receive stock into a new batch.

    ``quantity`` and ``unit_cost`` are expressed per ``uom``; both are
    converted to base units. Expiry defaults to the received date plus the
    product's shelf life.
    """
    _require_positive(quantity, 'quantity', 'Quantity')
    _require_positive(unit_cost, 'unit_cost', 'Unit cost')
    if not warehouse.is_active:
        raise BusinessRuleViolation(f"Warehouse {warehouse.name} is inactive", fields={'warehouse': 'Warehouse is inactive'})

    factor = product.get_conversion_factor(uom)
    base_quantity = _base_quantity(product, quantity, uom)
    base_unit_cost = to_cost(Decimal(str(unit_cost)) / factor)
    if base_unit_cost <= 0:
        raise BusinessRuleViolation(
            f"Unit cost {unit_cost} per {uom} is less than 0.0001 per {product.base_uom}",
            fields={'unit_cost': 'Unit cost is too small for the base unit'}
        )
    received_date = received_date or timezone.localdate()
    if expiry_date is None:
        expiry_date = received_date + timedelta(days=product.shelf_life_days)

    with transaction.atomic():
        _update_product_average_cost(product, base_quantity, base_unit_cost)
        batch = _create_batch(product, warehouse, base_quantity, base_unit_cost, received_date, expiry_date)
        StockMovement.objects.create(
            batch=batch,
            movement_type='IN',
            quantity=base_quantity,
            reason=reason or 'Stock received',
            reference_type=reference_type,
            reference_id=str(reference_id) if reference_id is not None else None,
            created_by=user,
        )
        invalidate_stock_cache()

    create_audit_log(
        action='stock_add',
        model_name='InventoryBatch',
        object_id=str(batch.id),
        object_name=product.name,
        object_reference=batch.batch_number,
        changes={
            'warehouse': warehouse.code,
            'quantity': str(base_quantity),
            'unit_cost': str(base_unit_cost),
            'uom': uom,
            'reference_type': reference_type,
            'reference_id': str(reference_id) if reference_id is not None else None,
        },
        user=user,
    )
    logger.info(f"Added {base_quantity} {product.base_uom} of {product.name} to {warehouse.code} as {batch.batch_number}")
    return batch


def _lock_available_batches(product, warehouse, base_quantity):
    batches = list(fefo(active_batches(product, warehouse)).select_for_update())
    available = sum((batch.quantity for batch in batches), ZERO)
    if available < base_quantity:
        raise InsufficientStock(product.name, to_quantity(available), base_quantity)
    return batches


def _consume_batches(batches, base_quantity, movement_type, reason, reference_type, reference_id, user):
    """Take ``base_quantity`` from locked batches in order; returns (batch, taken, movement) slices"""
    remaining = base_quantity
    slices = []
    for batch in batches:
        if remaining <= 0:
            break
        taken = min(batch.quantity, remaining)
        batch.quantity = batch.quantity - taken
        if batch.quantity == 0:
            batch.status = 'depleted'
        batch.save(update_fields=['quantity', 'status', 'updated_at'])
        movement = StockMovement.objects.create(
            batch=batch,
            movement_type=movement_type,
            quantity=-taken,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=user,
        )
        slices.append((batch, taken, movement))
        remaining -= taken
    return slices


def deduct_stock(product, warehouse, quantity, uom, reason, reference_type=None, reference_id=None, user=None):
    """
    Remove stock first-expiry-first-out.

    Raises ``InsufficientStock`` without touching anything when the active
    total is short. Returns the created movements.
    """
    _require_positive(quantity, 'quantity', 'Quantity')
    base_quantity = _base_quantity(product, quantity, uom)
    reference_id = str(reference_id) if reference_id is not None else None

    with transaction.atomic():
        batches = _lock_available_batches(product, warehouse, base_quantity)
        slices = _consume_batches(batches, base_quantity, 'OUT', reason, reference_type, reference_id, user)
        invalidate_stock_cache()

    cost_of_goods = to_cost(sum((batch.unit_cost * taken for batch, taken, _ in slices), ZERO))
    create_audit_log(
        action='stock_deduct',
        model_name='Product',
        object_id=str(product.id),
        object_name=product.name,
        object_reference=reference_id,
        changes={
            'warehouse': warehouse.code,
            'quantity': str(base_quantity),
            'uom': uom,
            'reason': reason,
            'batches': {batch.batch_number: str(taken) for batch, taken, _ in slices},
            'cost_of_goods': str(cost_of_goods),
        },
        user=user,
    )
    logger.info(f"Deducted {base_quantity} {product.base_uom} of {product.name} from {warehouse.code} across {len(slices)} batch(es)")
    return [movement for _, _, movement in slices]


def transfer_stock(product, source, destination, quantity, uom, reason='', user=None):
    """
    Move stock between warehouses.

    Source batches are consumed first-expiry-first-out; each consumed slice
    becomes a destination batch with the same unit cost and expiry date.
    """
    if source.pk == destination.pk:
        raise BusinessRuleViolation(
            'Source and destination warehouses must be different',
            fields={'destination_warehouse': 'Must differ from source warehouse'}
        )
    if not destination.is_active:
        raise BusinessRuleViolation(
            f"Warehouse {destination.name} is inactive",
            fields={'destination_warehouse': 'Warehouse is inactive'}
        )
    _require_positive(quantity, 'quantity', 'Quantity')
    base_quantity = _base_quantity(product, quantity, uom)
    reference = f"TRF-{uuid.uuid4().hex[:12].upper()}"
    reason = reason or f"Transfer {source.code} -> {destination.code}"
    today = timezone.localdate()

    with transaction.atomic():
        batches = _lock_available_batches(product, source, base_quantity)
        slices = _consume_batches(batches, base_quantity, 'TRANSFER', reason, 'TRANSFER', reference, user)

        destination_batches = []
        for source_batch, taken, _ in slices:
            new_batch = _create_batch(product, destination, taken, source_batch.unit_cost, today, source_batch.expiry_date)
            StockMovement.objects.create(
                batch=new_batch,
                movement_type='TRANSFER',
                quantity=taken,
                reason=reason,
                reference_type='TRANSFER',
                reference_id=reference,
                created_by=user,
            )
            destination_batches.append(new_batch)
        invalidate_stock_cache()

    create_audit_log(
        action='stock_transfer',
        model_name='Product',
        object_id=str(product.id),
        object_name=product.name,
        object_reference=reference,
        changes={
            'source': source.code,
            'destination': destination.code,
            'quantity': str(base_quantity),
            'uom': uom,
            'batches': [b.batch_number for b in destination_batches],
        },
        user=user,
    )
    logger.info(f"Transferred {base_quantity} {product.base_uom} of {product.name} from {source.code} to {destination.code} ({reference})")
    return {
        'reference': reference,
        'quantity': base_quantity,
        'source_movements': [movement for _, _, movement in slices],
        'destination_batches': destination_batches,
    }


def adjust_stock(batch, new_quantity, reason, user=None):
    """Set a batch to ``new_quantity`` base units, recording the delta as an adjustment"""
    if new_quantity is None or Decimal(str(new_quantity)) < 0:
        raise BusinessRuleViolation('New quantity cannot be negative', fields={'new_quantity': 'Must be zero or greater'})
    if not (reason or '').strip():
        raise BusinessRuleViolation('A reason is required for stock adjustments', fields={'reason': 'This field is required'})
    new_quantity = to_quantity(new_quantity)

    with transaction.atomic():
        locked = InventoryBatch.objects.select_for_update().select_related('product', 'warehouse').get(pk=batch.pk)
        old_quantity = locked.quantity
        delta = new_quantity - old_quantity
        if delta == 0:
            raise BusinessRuleViolation(
                f"Batch {locked.batch_number} already holds {old_quantity}",
                fields={'new_quantity': 'Quantity is unchanged'}
            )

        locked.quantity = new_quantity
        if new_quantity == 0 and locked.status == 'active':
            locked.status = 'depleted'
        elif new_quantity > 0 and locked.status == 'depleted':
            locked.status = 'active'
        locked.save(update_fields=['quantity', 'status', 'updated_at'])

        movement = StockMovement.objects.create(
            batch=locked,
            movement_type='ADJUSTMENT',
            quantity=delta,
            reason=reason.strip(),
            reference_type='ADJUSTMENT',
            reference_id=str(locked.id),
            created_by=user,
        )
        invalidate_stock_cache()

    create_audit_log(
        action='stock_adjust',
        model_name='InventoryBatch',
        object_id=str(locked.id),
        object_name=locked.product.name,
        object_reference=locked.batch_number,
        changes={
            'quantity': {'old': str(old_quantity), 'new': str(new_quantity)},
            'reason': reason.strip(),
            'status': locked.status,
        },
        user=user,
    )
    logger.info(f"Adjusted {locked.batch_number} from {old_quantity} to {new_quantity}: {reason.strip()}")

    batch.quantity = locked.quantity
    batch.status = locked.status
    return movement


def mark_expired_batches(today=None, user=None):
    """Flag active batches whose expiry date has passed; returns the count"""
    today = today or timezone.localdate()
    with transaction.atomic():
        expired = InventoryBatch.objects.filter(
            status='active', expiry_date__isnull=False, expiry_date__lt=today
        )
        batch_numbers = list(expired.values_list('batch_number', flat=True))
        count = expired.update(status='expired', updated_at=timezone.now())
        if count:
            invalidate_stock_cache()

    if count:
        create_audit_log(
            action='batch_expire',
            model_name='InventoryBatch',
            object_id=today.isoformat(),
            object_name=f"{count} batch(es)",
            changes={'batches': batch_numbers},
            user=user,
        )
        logger.info(f"Marked {count} batch(es) expired as of {today}")
    return count
