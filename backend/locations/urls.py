from django.urls import path
from .views import (
    branch_list_create, branch_detail,
    warehouse_list_create, warehouse_detail
)

urlpatterns = [
    path('branches/', branch_list_create, name='branch-list-create'),
    path('branches/<int:pk>/', branch_detail, name='branch-detail'),
    path('warehouses/', warehouse_list_create, name='warehouse-list-create'),
    path('warehouses/<int:pk>/', warehouse_detail, name='warehouse-detail'),
]
