from django.urls import path
from .views import (
    cost_list_create, cost_detail, cost_close, cost_entry_list_create, cost_entry_detail,
    hpp_report, variance_report,
)

urlpatterns = [
    path('finance/costs/', cost_list_create, name='cost-list-create'),
    path('finance/costs/<int:pk>/', cost_detail, name='cost-detail'),
    path('finance/costs/<int:pk>/close/', cost_close, name='cost-close'),
    path('finance/cost-entries/', cost_entry_list_create, name='cost-entry-list-create'),
    path('finance/cost-entries/<int:pk>/', cost_entry_detail, name='cost-entry-detail'),
    path('finance/reports/hpp/', hpp_report, name='finance-hpp'),
    path('finance/reports/variance/', variance_report, name='finance-variance'),
]
