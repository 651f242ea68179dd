from django.urls import path
from . import views

urlpatterns = [
    # Driver self-service
    path('me/', views.MyProfileView.as_view(), name='driver-me'),
    path('me/documents/', views.MyDocumentsView.as_view(), name='driver-me-documents'),
    path('me/location/', views.MyLocationView.as_view(), name='driver-me-location'),
    path('me/submit/', views.MySubmitForReviewView.as_view(), name='driver-me-submit'),

    # Admin verification
    path('', views.DriverListView.as_view(), name='driver-list'),
    path('<int:driver_id>/', views.DriverDetailView.as_view(), name='driver-detail'),
    path('<int:driver_id>/finalize/', views.FinalizeVerificationView.as_view(), name='driver-finalize'),
    path('documents/<int:document_id>/review/', views.DocumentReviewView.as_view(), name='document-review'),
]
