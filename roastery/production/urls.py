from django.urls import path
from .views import batch_list_create, batch_detail, batch_qc

urlpatterns = [
    path('production/batches/', batch_list_create, name='batch-list-create'),
    path('production/batches/<int:pk>/', batch_detail, name='batch-detail'),
    path('production/batches/<int:pk>/qc/', batch_qc, name='batch-qc'),

    # Legacy dashboard paths
    path('roast-batches/', batch_list_create),
    path('roast-batches/<int:pk>/', batch_detail),
    path('roast-batches/<int:pk>/qc/', batch_qc),
]
