from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_detail, purchase_order_cancel, purchase_order_receive,
    purchase_order_receiving_vouchers, receiving_voucher_list, receiving_voucher_detail, receiving_variance_report,
)

urlpatterns = [
    # Purchase order endpoints
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/cancel/', purchase_order_cancel, name='purchase-order-cancel'),
    path('purchase-orders/<int:pk>/receive/', purchase_order_receive, name='purchase-order-receive'),
    path('purchase-orders/<int:pk>/receiving-vouchers/', purchase_order_receiving_vouchers, name='purchase-order-receiving-vouchers'),

    # Receiving voucher endpoints
    path('receiving-vouchers/', receiving_voucher_list, name='receiving-voucher-list'),
    path('receiving-vouchers/<int:pk>/', receiving_voucher_detail, name='receiving-voucher-detail'),

    # Reports
    path('reports/receiving-variance/', receiving_variance_report, name='receiving-variance-report'),
]
