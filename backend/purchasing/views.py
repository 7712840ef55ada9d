import logging
from decimal import Decimal
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from backend.core.utils import paginated_response
from backend.locations.models import Branch
from backend.parties.models import Supplier
from .filters import PurchaseOrderFilter, ReceivingVoucherFilter
from .models import PurchaseOrder, ReceivingVoucher
from .serializers import (
    PurchaseOrderSerializer, PurchaseOrderListSerializer, PurchaseOrderCreateSerializer,
    PurchaseOrderUpdateSerializer, PurchaseOrderCancelSerializer, ReceivePurchaseOrderSerializer,
    ReceivingVoucherCreateSerializer, ReceivingVoucherSerializer,
)
from . import services

logger = logging.getLogger(__name__)


def _purchase_order_queryset():
    return PurchaseOrder.objects.select_related(
        'supplier', 'warehouse', 'branch', 'created_by', 'payable'
    ).prefetch_related('items', 'items__product')


def _receiving_voucher_queryset():
    return ReceivingVoucher.objects.select_related(
        'purchase_order', 'purchase_order__supplier', 'warehouse', 'branch', 'created_by'
    ).prefetch_related('items', 'items__product', 'items__batch')


def _idempotency_key(request, data):
    return data.get('idempotency_key') or request.headers.get('Idempotency-Key')


def _stringify(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {key: _stringify(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_stringify(item) for item in value]
    return value


# Purchase order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_list_create(request):
    """List purchase orders or create a new purchase order"""
    if request.method == 'GET':
        queryset = PurchaseOrder.objects.select_related('supplier', 'warehouse', 'branch').order_by('-created_at', '-id')
        filterset = PurchaseOrderFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return paginated_response(request, filterset.qs, PurchaseOrderListSerializer)

    serializer = PurchaseOrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    purchase_order = services.create_purchase_order(serializer.validated_data, user=request.user)
    purchase_order = _purchase_order_queryset().get(pk=purchase_order.pk)
    return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_order_detail(request, pk):
    """Retrieve, update or delete a purchase order"""
    purchase_order = get_object_or_404(_purchase_order_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(purchase_order).data)

    if request.method == 'DELETE':
        services.delete_purchase_order(purchase_order, user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = PurchaseOrderUpdateSerializer(data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if not serializer.validated_data:
        return Response({'error': 'No changes supplied'}, status=status.HTTP_400_BAD_REQUEST)

    services.update_purchase_order(purchase_order, dict(serializer.validated_data), user=request.user)
    purchase_order = _purchase_order_queryset().get(pk=pk)
    return Response(PurchaseOrderSerializer(purchase_order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_cancel(request, pk):
    """Cancel a purchase order that has not received anything"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)
    serializer = PurchaseOrderCancelSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    services.cancel_purchase_order(purchase_order, serializer.validated_data['reason'], user=request.user)
    purchase_order = _purchase_order_queryset().get(pk=pk)
    return Response(PurchaseOrderSerializer(purchase_order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_receive(request, pk):
    """Receive every outstanding quantity of a purchase order"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)
    serializer = ReceivePurchaseOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    voucher, created = services.receive_purchase_order(
        purchase_order,
        user=request.user,
        receiver_name=data.get('receiver_name', ''),
        delivery_notes=data.get('delivery_notes', ''),
        idempotency_key=_idempotency_key(request, data),
    )
    voucher = _receiving_voucher_queryset().get(pk=voucher.pk)
    return Response({
        'receiving_voucher': ReceivingVoucherSerializer(voucher).data,
        'purchase_order': PurchaseOrderSerializer(_purchase_order_queryset().get(pk=pk)).data,
    }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_receiving_vouchers(request, pk):
    """List a purchase order's receiving vouchers or receive goods against it"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)

    if request.method == 'GET':
        vouchers = _receiving_voucher_queryset().filter(purchase_order=purchase_order).order_by('created_at', 'id')
        return Response(ReceivingVoucherSerializer(vouchers, many=True).data)

    serializer = ReceivingVoucherCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    data['idempotency_key'] = _idempotency_key(request, data)
    voucher, created = services.create_receiving_voucher(purchase_order, data, user=request.user)
    voucher = _receiving_voucher_queryset().get(pk=voucher.pk)
    return Response(
        ReceivingVoucherSerializer(voucher).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
    )


# Receiving voucher views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def receiving_voucher_list(request):
    """List receiving vouchers with filtering"""
    queryset = ReceivingVoucher.objects.select_related(
        'purchase_order', 'purchase_order__supplier', 'warehouse', 'branch', 'created_by'
    ).prefetch_related('items', 'items__product', 'items__batch').order_by('-created_at', '-id')
    filterset = ReceivingVoucherFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs, ReceivingVoucherSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def receiving_voucher_detail(request, pk):
    """Retrieve a receiving voucher with its lines"""
    voucher = get_object_or_404(_receiving_voucher_queryset(), pk=pk)
    return Response(ReceivingVoucherSerializer(voucher).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def receiving_variance_report(request):
    """Receiving variance per supplier for an optional branch, supplier and date range"""
    errors = {}
    dates = {}
    for param in ('start_date', 'end_date'):
        value = request.query_params.get(param)
        try:
            dates[param] = parse_date(value) if value else None
        except ValueError:
            dates[param] = None
        if value and dates[param] is None:
            errors[param] = 'Date has wrong format. Use YYYY-MM-DD.'

    lookups = {}
    for param in ('branch', 'supplier'):
        value = request.query_params.get(param)
        if value and not value.isdigit():
            errors[param] = 'A valid integer is required.'
        lookups[param] = value
    if errors:
        return Response(errors, status=status.HTTP_400_BAD_REQUEST)

    branch = get_object_or_404(Branch, pk=lookups['branch']) if lookups['branch'] else None
    supplier = get_object_or_404(Supplier, pk=lookups['supplier']) if lookups['supplier'] else None

    report = services.generate_variance_report(
        branch=branch, supplier=supplier, start_date=dates['start_date'], end_date=dates['end_date']
    )
    return Response(_stringify(report))
