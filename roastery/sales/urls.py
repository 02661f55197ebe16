from django.urls import path
from .views import (
    order_list_create, order_detail, order_confirm, order_prepare, order_ship,
    order_deliver, order_cancel, order_reservations, order_history, client_stats,
)

urlpatterns = [
    path('sales/orders/', order_list_create, name='so-list-create'),
    path('sales/orders/<int:pk>/', order_detail, name='so-detail'),
    path('sales/orders/<int:pk>/confirm/', order_confirm, name='so-confirm'),
    path('sales/orders/<int:pk>/prepare/', order_prepare, name='so-prepare'),
    path('sales/orders/<int:pk>/ship/', order_ship, name='so-ship'),
    path('sales/orders/<int:pk>/deliver/', order_deliver, name='so-deliver'),
    path('sales/orders/<int:pk>/cancel/', order_cancel, name='so-cancel'),
    path('sales/orders/<int:pk>/reservations/', order_reservations, name='so-reservations'),
    path('sales/orders/<int:pk>/history/', order_history, name='so-history'),
    path('sales/clients/<int:pk>/stats/', client_stats, name='client-stats'),
]
