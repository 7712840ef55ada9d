import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import Q, ProtectedError
from backend.core.utils import paginated_response
from backend.locations.models import Branch
from .filters import PayableFilter
from .models import Supplier, AccountsPayable
from .serializers import (
    SupplierSerializer, AccountsPayableSerializer, AccountsPayableDetailSerializer,
    APPaymentSerializer, APPaymentCreateSerializer,
)
from . import services

logger = logging.getLogger(__name__)


def _branch_from_params(request):
    branch_id = request.query_params.get('branch')
    if not branch_id:
        return None
    return get_object_or_404(Branch, pk=branch_id)


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = Supplier.objects.all().order_by('company_name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(company_name__icontains=search) |
                Q(contact_person__icontains=search) |
                Q(phone__icontains=search) |
                Q(email__icontains=search)
            )
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')
        serializer = SupplierSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = SupplierSerializer(data=request.data)
        if serializer.is_valid():
            supplier = serializer.save()
            logger.info(f"Supplier '{supplier.company_name}' created by {request.user.username}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)

    if request.method == 'GET':
        serializer = SupplierSerializer(supplier)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            supplier.delete()
        except ProtectedError:
            return Response(
                {'error': 'Supplier has purchase orders or payables and cannot be deleted. Deactivate it instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Accounts payable views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payable_list(request):
    """List accounts payable with filtering"""
    queryset = AccountsPayable.objects.select_related('supplier', 'branch', 'purchase_order').order_by('due_date', 'id')
    filterset = PayableFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs, AccountsPayableSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payable_detail(request, pk):
    """Retrieve an accounts payable record with its payments"""
    payable = get_object_or_404(
        AccountsPayable.objects.select_related('supplier', 'branch', 'purchase_order').prefetch_related('payments'),
        pk=pk
    )
    return Response(AccountsPayableDetailSerializer(payable).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def payable_payments(request, pk):
    """List payments for a payable or record a new payment"""
    payable = get_object_or_404(AccountsPayable, pk=pk)

    if request.method == 'GET':
        serializer = APPaymentSerializer(payable.payments.select_related('created_by'), many=True)
        return Response(serializer.data)

    serializer = APPaymentCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    payment = services.record_payment(
        payable,
        user=request.user,
        **serializer.validated_data
    )
    return Response({
        'payment': APPaymentSerializer(payment).data,
        'payable': AccountsPayableSerializer(payable).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payable_aging(request):
    """Outstanding payables bucketed by days past due"""
    report = services.aging_report(branch=_branch_from_params(request))
    return Response({
        'as_of': report['as_of'].isoformat(),
        'buckets': {bucket: str(amount) for bucket, amount in report['buckets'].items()},
        'total_outstanding': str(report['total_outstanding']),
        'suppliers': [
            {
                'supplier_id': row['supplier_id'],
                'supplier_name': row['supplier_name'],
                'buckets': {bucket: str(amount) for bucket, amount in row['buckets'].items()},
                'total': str(row['total']),
                'count': row['count'],
            }
            for row in report['suppliers']
        ],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payable_summary(request):
    """Totals outstanding, paid and overdue with counts by status"""
    summary = services.payables_summary(branch=_branch_from_params(request))
    return Response({
        'total_amount': str(summary['total_amount']),
        'total_paid': str(summary['total_paid']),
        'total_outstanding': str(summary['total_outstanding']),
        'total_overdue': str(summary['total_overdue']),
        'counts': summary['counts'],
    })
