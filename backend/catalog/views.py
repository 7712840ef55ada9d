import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import ProtectedError
from backend.core.utils import create_audit_log, paginated_response
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer, ProductListSerializer

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ['name', 'sku', 'base_uom', 'shelf_life_days', 'is_active']


def _snapshot(product):
    return {field: getattr(product, field) for field in TRACKED_FIELDS}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List all products or create a new product"""
    if request.method == 'GET':
        queryset = Product.objects.prefetch_related('alternate_uoms').order_by('name')

        # Use django-filter for filtering
        filterset = ProductFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs

        return paginated_response(request, queryset, ProductListSerializer, default_limit=50)

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Product',
            object_id=str(product.id),
            object_name=product.name,
            object_reference=product.sku,
            changes={'base_uom': product.base_uom, 'alternate_uoms': [u.name for u in product.alternate_uoms.all()]}
        )
        logger.info(f"Product '{product.name}' created by {request.user.username}")
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.prefetch_related('alternate_uoms'), pk=pk)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            old_data = _snapshot(product)
            product = serializer.save()
            new_data = _snapshot(product)
            changes = {k: {'old': old_data[k], 'new': new_data[k]} for k in old_data if old_data[k] != new_data[k]}
            if changes:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='Product',
                    object_id=str(product.id),
                    object_name=product.name,
                    object_reference=product.sku,
                    changes=changes
                )
            product = Product.objects.prefetch_related('alternate_uoms').get(pk=product.pk)
            return Response(ProductSerializer(product).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            product.delete()
        except ProtectedError:
            return Response(
                {'error': 'Product has inventory or purchase history and cannot be deleted. Deactivate it instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=str(pk),
            object_name=product.name,
            object_reference=product.sku
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
