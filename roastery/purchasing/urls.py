from django.urls import path
from .views import order_list_create, order_detail, order_status, order_receive, order_history

urlpatterns = [
    path('purchasing/orders/', order_list_create, name='po-list-create'),
    path('purchasing/orders/<int:pk>/', order_detail, name='po-detail'),
    path('purchasing/orders/<int:pk>/status/', order_status, name='po-status'),
    path('purchasing/orders/<int:pk>/receive/', order_receive, name='po-receive'),
    path('purchasing/orders/<int:pk>/history/', order_history, name='po-history'),
]
