from django.urls import path
from .views import (
    sales_invoice_list_create, sales_invoice_detail, sales_invoice_payment, sales_order_invoice,
    purchase_invoice_list_create, purchase_invoice_detail, purchase_invoice_payment, purchase_order_invoice,
)

urlpatterns = [
    path('sales/invoices/', sales_invoice_list_create, name='sales-invoice-list-create'),
    path('sales/invoices/<int:pk>/', sales_invoice_detail, name='sales-invoice-detail'),
    path('sales/invoices/<int:pk>/payment/', sales_invoice_payment, name='sales-invoice-payment'),
    path('sales/orders/<int:pk>/invoice/', sales_order_invoice, name='so-invoice'),

    path('purchasing/invoices/', purchase_invoice_list_create, name='purchase-invoice-list-create'),
    path('purchasing/invoices/<int:pk>/', purchase_invoice_detail, name='purchase-invoice-detail'),
    path('purchasing/invoices/<int:pk>/payment/', purchase_invoice_payment, name='purchase-invoice-payment'),
    path('purchasing/orders/<int:pk>/invoice/', purchase_order_invoice, name='po-invoice'),
]
