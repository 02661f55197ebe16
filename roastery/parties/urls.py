from django.urls import path
from .views import supplier_list_create, supplier_detail, client_list_create, client_detail

urlpatterns = [
    path('purchasing/suppliers/', supplier_list_create, name='supplier-list-create'),
    path('purchasing/suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),
    path('sales/clients/', client_list_create, name='client-list-create'),
    path('sales/clients/<int:pk>/', client_detail, name='client-detail'),
]
