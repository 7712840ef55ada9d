from django.urls import path
from .views import (
    batch_list, batch_detail, expiring_batches, expire_batches,
    movement_list,
    stock_levels, stock_level, average_cost,
    add_stock, deduct_stock, transfer_stock, adjust_stock,
)

urlpatterns = [
    # Batch endpoints
    path('inventory/batches/', batch_list, name='batch-list'),
    path('inventory/batches/expiring/', expiring_batches, name='batch-expiring'),
    path('inventory/batches/mark-expired/', expire_batches, name='batch-mark-expired'),
    path('inventory/batches/<int:pk>/', batch_detail, name='batch-detail'),

    # Movement ledger
    path('inventory/movements/', movement_list, name='movement-list'),

    # Stock queries
    path('inventory/stock-levels/', stock_levels, name='stock-levels'),
    path('inventory/stock-level/', stock_level, name='stock-level'),
    path('inventory/average-cost/', average_cost, name='average-cost'),

    # Stock operations
    path('inventory/add-stock/', add_stock, name='add-stock'),
    path('inventory/deduct-stock/', deduct_stock, name='deduct-stock'),
    path('inventory/transfer/', transfer_stock, name='transfer-stock'),
    path('inventory/adjust/', adjust_stock, name='adjust-stock'),
]
