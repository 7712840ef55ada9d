import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import ProtectedError
from .models import Branch, Warehouse
from .serializers import BranchSerializer, WarehouseSerializer

logger = logging.getLogger(__name__)


def is_admin_user(user):
    return user.is_superuser or user.is_staff or user.groups.filter(name='Admin').exists()


# Branch views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def branch_list_create(request):
    """List all branches or create a new branch (create requires admin)"""
    if request.method == 'GET':
        branches = Branch.objects.all().order_by('name')
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            branches = branches.filter(is_active=is_active.lower() == 'true')
        serializer = BranchSerializer(branches, many=True)
        return Response(serializer.data)

    if not is_admin_user(request.user):
        logger.warning(f"User {request.user.username} attempted to create branch without admin privileges")
        return Response({'error': 'Only administrators can create branches'}, status=status.HTTP_403_FORBIDDEN)

    serializer = BranchSerializer(data=request.data)
    if serializer.is_valid():
        branch = serializer.save()
        logger.info(f"Branch '{branch.name}' created by {request.user.username}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    logger.warning(f"Branch creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def branch_detail(request, pk):
    """Retrieve, update or delete a branch (update/delete requires admin)"""
    branch = get_object_or_404(Branch, pk=pk)

    if request.method == 'GET':
        serializer = BranchSerializer(branch)
        return Response(serializer.data)

    if not is_admin_user(request.user):
        logger.warning(f"User {request.user.username} attempted to modify branch {pk} without admin privileges")
        return Response({'error': 'Only administrators can modify branches'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = BranchSerializer(branch, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            logger.info(f"Branch {pk} updated by {request.user.username}")
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        branch.delete()
    except ProtectedError:
        return Response(
            {'error': 'Branch has warehouses or transactions and cannot be deleted. Deactivate it instead.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    logger.info(f"Branch {pk} deleted by {request.user.username}")
    return Response(status=status.HTTP_204_NO_CONTENT)


# Warehouse views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def warehouse_list_create(request):
    """List all warehouses or create a new warehouse"""
    if request.method == 'GET':
        warehouses = Warehouse.objects.select_related('branch').order_by('name')
        branch = request.query_params.get('branch')
        if branch:
            warehouses = warehouses.filter(branch_id=branch)
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            warehouses = warehouses.filter(is_active=is_active.lower() == 'true')
        serializer = WarehouseSerializer(warehouses, many=True)
        return Response(serializer.data)

    serializer = WarehouseSerializer(data=request.data)
    if serializer.is_valid():
        warehouse = serializer.save()
        logger.info(f"Warehouse '{warehouse.name}' created for branch {warehouse.branch_id}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def warehouse_detail(request, pk):
    """Retrieve, update or delete a warehouse"""
    warehouse = get_object_or_404(Warehouse.objects.select_related('branch'), pk=pk)

    if request.method == 'GET':
        serializer = WarehouseSerializer(warehouse)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = WarehouseSerializer(warehouse, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            warehouse.delete()
        except ProtectedError:
            return Response(
                {'error': 'Warehouse holds inventory or purchase orders and cannot be deleted. Deactivate it instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        return Response(status=status.HTTP_204_NO_CONTENT)
