from django.urls import path
from . import views

urlpatterns = [
    path('', views.ContractListCreateView.as_view(), name='contract-list'),
    path('<int:contract_id>/', views.ContractDetailView.as_view(), name='contract-detail'),
    path('<int:contract_id>/sign/', views.ContractSignView.as_view(), name='contract-sign'),
    path('<int:contract_id>/reject/', views.ContractRejectView.as_view(), name='contract-reject'),
    path('<int:contract_id>/end/', views.ContractEndView.as_view(), name='contract-end'),
    path('<int:contract_id>/<str:action>/', views.ContractTransitionView.as_view(), name='contract-transition'),
]
