from django.urls import path
from . import views

urlpatterns = [
    path('', views.VehicleListCreateView.as_view(), name='vehicle-list'),
    path('<int:vehicle_id>/', views.VehicleDetailView.as_view(), name='vehicle-detail'),
    path('<int:vehicle_id>/status/', views.VehicleStatusView.as_view(), name='vehicle-status'),
    path('<int:vehicle_id>/documents/', views.VehicleDocumentsView.as_view(), name='vehicle-documents'),
    path('<int:vehicle_id>/readiness/', views.VehicleReadinessView.as_view(), name='vehicle-readiness'),
    path('<int:vehicle_id>/maintenance/', views.VehicleMaintenanceView.as_view(), name='vehicle-maintenance'),
    path('<int:vehicle_id>/costs/', views.VehicleCostsView.as_view(), name='vehicle-costs'),
    path('documents/<int:document_id>/review/', views.VehicleDocumentReviewView.as_view(),
         name='vehicle-document-review'),
    path('maintenance/<int:maintenance_id>/', views.MaintenanceDetailView.as_view(), name='maintenance-detail'),
]
