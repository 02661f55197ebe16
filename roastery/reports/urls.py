from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='reports-dashboard'),
    path('inventory/stock/', views.stock, name='inventory-stock'),
]
