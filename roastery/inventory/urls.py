from django.urls import path
from .views import lot_list_create, lot_detail, lot_adjustments

urlpatterns = [
    path('inventory/lots/', lot_list_create, name='lot-list-create'),
    path('inventory/lots/<int:pk>/', lot_detail, name='lot-detail'),
    path('inventory/lots/<int:pk>/adjustments/', lot_adjustments, name='lot-adjustments'),
]
