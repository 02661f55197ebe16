"""
URL configuration for the roastery project.

Every app contributes its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Roastery Admin Panel"
admin.site.site_title = "Roastery Admin Portal"
admin.site.index_title = "Roastery operations"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('roastery.core.urls')),
    path('api/v1/', include('roastery.parties.urls')),
    path('api/v1/', include('roastery.inventory.urls')),
    path('api/v1/', include('roastery.production.urls')),
    path('api/v1/', include('roastery.purchasing.urls')),
    path('api/v1/', include('roastery.sales.urls')),
    path('api/v1/', include('roastery.invoicing.urls')),
    path('api/v1/', include('roastery.finance.urls')),
    path('api/v1/', include('roastery.reports.urls')),
]
