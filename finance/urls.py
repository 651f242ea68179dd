from django.urls import path
from . import views

urlpatterns = [
    path('', views.PaymentListView.as_view(), name='payment-list'),
    path('<int:payment_id>/', views.PaymentDetailView.as_view(), name='payment-detail'),
    path('<int:payment_id>/mark-paid/', views.MarkPaymentPaidView.as_view(), name='payment-mark-paid'),
    path('<int:payment_id>/mark-failed/', views.MarkPaymentFailedView.as_view(), name='payment-mark-failed'),
    path('contracts/<int:contract_id>/extend/', views.ExtendHorizonView.as_view(), name='payment-extend-horizon'),
    path('overdue/update/', views.UpdateOverdueView.as_view(), name='payment-update-overdue'),
    path('overdue/summary/', views.OverdueSummaryView.as_view(), name='payment-overdue-summary'),
]
