from django.urls import path
from .views import (
    supplier_list_create, supplier_detail,
    payable_list, payable_detail, payable_payments,
    payable_aging, payable_summary,
)

urlpatterns = [
    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),

    # Accounts payable endpoints
    path('payables/', payable_list, name='payable-list'),
    path('payables/aging/', payable_aging, name='payable-aging'),
    path('payables/summary/', payable_summary, name='payable-summary'),
    path('payables/<int:pk>/', payable_detail, name='payable-detail'),
    path('payables/<int:pk>/payments/', payable_payments, name='payable-payments'),
]
