import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from django.shortcuts import get_object_or_404
from backend.catalog.models import Product
from backend.core.utils import paginated_response
from backend.locations.models import Warehouse
from .filters import BatchFilter, MovementFilter
from .models import InventoryBatch, StockMovement
from .serializers import (
    InventoryBatchSerializer, InventoryBatchDetailSerializer, StockMovementSerializer, StockLevelSerializer,
    AddStockSerializer, DeductStockSerializer, TransferStockSerializer, AdjustStockSerializer,
)
from . import services

logger = logging.getLogger(__name__)


def _object_from_params(request, model, param, required=True):
    """Resolve ``?param=<id>`` to an instance; 400 on a malformed id, 404 when missing"""
    value = request.query_params.get(param)
    if not value:
        if required:
            raise ValidationError({param: 'This query parameter is required.'})
        return None
    if not value.isdigit():
        raise ValidationError({param: 'A valid integer is required.'})
    return get_object_or_404(model, pk=value)


def _int_param(request, param, default):
    value = request.query_params.get(param)
    if value is None or value == '':
        return default
    try:
        value = int(value)
    except ValueError:
        raise ValidationError({param: 'A valid integer is required.'})
    if value < 0:
        raise ValidationError({param: 'Must be zero or greater.'})
    return value


# Batch views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def batch_list(request):
    """List inventory batches with filtering"""
    queryset = InventoryBatch.objects.select_related('product', 'warehouse').order_by('expiry_date', 'received_date', 'id')
    filterset = BatchFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs, InventoryBatchSerializer, default_limit=50)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def batch_detail(request, pk):
    """Retrieve a batch with its movement ledger"""
    batch = get_object_or_404(
        InventoryBatch.objects.select_related('product', 'warehouse').prefetch_related('movements', 'movements__created_by'),
        pk=pk
    )
    return Response(InventoryBatchDetailSerializer(batch).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def expiring_batches(request):
    """Active batches expiring within ``days`` (default from settings)"""
    days = _int_param(request, 'days', None)
    warehouse = _object_from_params(request, Warehouse, 'warehouse', required=False)
    batches = services.get_expiring_batches(days=days, warehouse=warehouse)
    serializer = InventoryBatchSerializer(batches, many=True)
    return Response(serializer.data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def expire_batches(request):
    """Run the expiry sweep now"""
    count = services.mark_expired_batches(user=request.user)
    return Response({'expired': count})


# Movement ledger
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movement_list(request):
    """List stock movements with filtering"""
    queryset = StockMovement.objects.select_related('batch', 'batch__product', 'created_by').order_by('-created_at', '-id')
    filterset = MovementFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs, StockMovementSerializer, default_limit=50)


# Stock queries
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_levels(request):
    """Quantity, weighted-average cost and value per product and warehouse"""
    warehouse = _object_from_params(request, Warehouse, 'warehouse', required=False)
    product = _object_from_params(request, Product, 'product', required=False)
    levels = services.get_stock_levels(warehouse=warehouse, product=product)
    if request.query_params.get('low_stock', '').lower() == 'true':
        levels = [row for row in levels if row['is_low_stock']]
    return Response(StockLevelSerializer(levels, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_level(request):
    """Stock level of one product in one warehouse, with its active batches"""
    product = _object_from_params(request, Product, 'product')
    warehouse = _object_from_params(request, Warehouse, 'warehouse')
    level = services.get_stock_level(product, warehouse)
    return Response({
        'product_id': level['product_id'],
        'product_name': level['product_name'],
        'warehouse_id': level['warehouse_id'],
        'warehouse_name': level['warehouse_name'],
        'base_uom': level['base_uom'],
        'quantity': str(level['quantity']),
        'average_cost': str(level['average_cost']),
        'total_value': str(level['total_value']),
        'batches': InventoryBatchSerializer(level['batches'], many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def average_cost(request):
    """Weighted-average cost per base unit, and per ``uom`` when given"""
    product = _object_from_params(request, Product, 'product')
    warehouse = _object_from_params(request, Warehouse, 'warehouse')
    uom = (request.query_params.get('uom') or product.base_uom).strip()

    details = services.get_weighted_average_cost_details(product, warehouse)
    return Response({
        'product_id': product.id,
        'warehouse_id': warehouse.id,
        'base_uom': product.base_uom,
        'average_cost': str(details['average_cost']),
        'total_quantity': str(details['total_quantity']),
        'total_value': str(details['total_value']),
        'uom': uom,
        'conversion_factor': str(product.get_conversion_factor(uom)),
        'average_cost_per_uom': str(services.get_average_cost_by_uom(product, warehouse, uom)),
    })


# Stock operations
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def add_stock(request):
    """Receive stock into a new batch"""
    serializer = AddStockSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    batch = services.add_stock(
        data['product'], data['warehouse'], data['quantity'], data['uom'], data['unit_cost'],
        received_date=data.get('received_date'),
        expiry_date=data.get('expiry_date'),
        reason=data.get('reason', ''),
        user=request.user,
    )
    return Response(InventoryBatchSerializer(batch).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def deduct_stock(request):
    """Remove stock first-expiry-first-out"""
    serializer = DeductStockSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    movements = services.deduct_stock(
        data['product'], data['warehouse'], data['quantity'], data['uom'], data['reason'],
        reference_type=data.get('reference_type'),
        reference_id=data.get('reference_id') or None,
        user=request.user,
    )
    deducted = sum(-movement.quantity for movement in movements)
    return Response({
        'quantity': str(deducted),
        'remaining': str(services.get_current_stock_level(data['product'], data['warehouse'])),
        'movements': StockMovementSerializer(movements, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def transfer_stock(request):
    """Move stock between two warehouses"""
    serializer = TransferStockSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    result = services.transfer_stock(
        data['product'], data['source_warehouse'], data['destination_warehouse'],
        data['quantity'], data['uom'],
        reason=data.get('reason', ''),
        user=request.user,
    )
    return Response({
        'reference': result['reference'],
        'quantity': str(result['quantity']),
        'source_movements': StockMovementSerializer(result['source_movements'], many=True).data,
        'destination_batches': InventoryBatchSerializer(result['destination_batches'], many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def adjust_stock(request):
    """Set a batch to a counted quantity"""
    serializer = AdjustStockSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    batch = data['batch']
    movement = services.adjust_stock(batch, data['new_quantity'], data['reason'], user=request.user)
    return Response({
        'batch': InventoryBatchSerializer(batch).data,
        'movement': StockMovementSerializer(movement).data,
    })
