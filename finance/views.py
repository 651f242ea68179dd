# ============================================================
# Standard Library Imports
# ============================================================
import logging

# ============================================================
# Third-Party Imports
# ============================================================
from django.db.models import Sum
from django.utils import timezone
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework.pagination import PageNumberPagination
from rest_framework.views import APIView

# ============================================================
# Local Application Imports
# ============================================================
from home import config
from home.exceptions import NotFoundError
from home.permissions import IsAdminUser, IsAdminOrReadOnlyDriver
from home.utils import success_response
from . import services
from .models import Payment, PaymentStatus
from .overdue import mark_overdue_payments
from .serializers import (
    PaymentSerializer,
    MarkPaidSerializer,
    MarkFailedSerializer,
    ExtendHorizonSerializer,
    OverdueSummarySerializer,
)

logger = logging.getLogger(__name__)


# ============================================================
# Pagination
# ============================================================
class PaymentPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


# ============================================================
# Payment listings
# ============================================================
class PaymentListView(APIView):
    """
    Admins see every payment; drivers see the payments of their own contracts.

    ``?overdue=true`` applies the resolver predicate, so PENDING rows past the
    grace period are included before the batch job has persisted OVERDUE.
    """
    permission_classes = [IsAdminOrReadOnlyDriver]

    @swagger_auto_schema(
        operation_summary="List Payments",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=PaymentStatus.values),
            openapi.Parameter('contract_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('overdue', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN),
            openapi.Parameter('due_from', openapi.IN_QUERY, type=openapi.TYPE_STRING, format='date'),
            openapi.Parameter('due_to', openapi.IN_QUERY, type=openapi.TYPE_STRING, format='date'),
        ],
        responses={200: PaymentSerializer(many=True)},
        tags=["Payments"]
    )
    def get(self, request):
        today = timezone.localdate()
        grace = config.grace_period_days()

        payments = Payment.objects.select_related('contract', 'marked_paid_by')
        if not request.user.is_admin_user():
            payments = payments.filter(contract__driver__user=request.user)

        params = request.query_params
        if params.get('overdue') == 'true':
            payments = payments.effectively_overdue(today, grace)
        elif params.get('status'):
            payments = payments.filter(status=params['status'])
        if params.get('contract_id'):
            payments = payments.filter(contract_id=params['contract_id'])
        if params.get('due_from'):
            payments = payments.filter(due_date__gte=params['due_from'])
        if params.get('due_to'):
            payments = payments.filter(due_date__lte=params['due_to'])

        paginator = PaymentPagination()
        page = paginator.paginate_queryset(payments.order_by('due_date', 'id'), request)
        serializer = PaymentSerializer(page, many=True, context={'today': today, 'grace_period_days': grace})
        return paginator.get_paginated_response(serializer.data)


class PaymentDetailView(APIView):
    permission_classes = [IsAdminOrReadOnlyDriver]

    @swagger_auto_schema(
        operation_summary="Get Payment",
        responses={200: PaymentSerializer, 404: "Not found"},
        tags=["Payments"]
    )
    def get(self, request, payment_id):
        payment = services.get_payment(payment_id)
        if not request.user.is_admin_user() and payment.contract.driver.user_id != request.user.pk:
            raise NotFoundError('Payment', payment_id)
        return success_response("Payment fetched successfully.", PaymentSerializer(payment).data)


# ============================================================
# Payment operations (admin)
# ============================================================
class MarkPaymentPaidView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Mark Payment Paid",
        operation_description=(
            "Records an externally settled payment. When payments.autoGenerateNext is on "
            "the next due payment of an ACTIVE contract is appended."
        ),
        request_body=MarkPaidSerializer,
        responses={200: PaymentSerializer, 404: "Not found", 409: "Payment is not payable"},
        tags=["Payments"]
    )
    def post(self, request, payment_id):
        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = services.mark_payment_paid(
            payment_id,
            user=request.user,
            paid_at=serializer.validated_data.get('paid_at'),
            reference=serializer.validated_data['reference'],
        )
        data = PaymentSerializer(payment).data
        data['next_due_dates'] = [str(d) for d in payment.next_due_dates]
        return success_response("Payment marked as paid.", data, warnings=payment.warnings)


class MarkPaymentFailedView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Mark Payment Failed",
        request_body=MarkFailedSerializer,
        responses={200: PaymentSerializer, 404: "Not found", 409: "Payment cannot fail"},
        tags=["Payments"]
    )
    def post(self, request, payment_id):
        serializer = MarkFailedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = services.mark_payment_failed(
            payment_id,
            reason=serializer.validated_data['reason'],
            user=request.user,
        )
        return success_response("Payment marked as failed.", PaymentSerializer(payment).data)


class ExtendHorizonView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Extend Payment Horizon",
        operation_description="Materializes the next periods of an ACTIVE contract from today. Safe to repeat.",
        request_body=ExtendHorizonSerializer,
        responses={200: "Created due dates", 404: "Contract not found", 409: "Contract not ACTIVE"},
        tags=["Payments"]
    )
    def post(self, request, contract_id):
        serializer = ExtendHorizonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contract = services.extend_payment_horizon(
            contract_id,
            horizon=serializer.validated_data.get('horizon'),
            user=request.user,
        )
        return success_response(
            f"{len(contract.created_due_dates)} payment(s) created.",
            {
                'contract_id': contract.pk,
                'created_due_dates': [str(d) for d in contract.created_due_dates],
            },
        )


class UpdateOverdueView(APIView):
    """
    Runs the overdue job on demand (the same work as update_overdue_payments).
    """
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Update Overdue Payments",
        responses={200: "Payments marked overdue"},
        tags=["Payments"]
    )
    def post(self, request):
        payments, warnings = mark_overdue_payments()
        return success_response(
            f"{len(payments)} payment(s) marked overdue.",
            {'payment_ids': [p.pk for p in payments]},
            warnings=warnings,
        )


class OverdueSummaryView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Get Overdue Payment Summary",
        responses={200: OverdueSummarySerializer},
        tags=["Payments"]
    )
    def get(self, request):
        today = timezone.localdate()
        grace = config.grace_period_days()
        overdue = Payment.objects.effectively_overdue(today, grace)

        data = {
            "total_overdue_payments": overdue.count(),
            "total_overdue_amount_cents": overdue.aggregate(total=Sum('amount_cents'))['total'] or 0,
            "contracts_with_overdue": overdue.values('contract').distinct().count(),
            "drivers_with_overdue": overdue.values('contract__driver').distinct().count(),
            "grace_period_days": grace,
            "as_of": today,
        }
        return success_response("Overdue summary generated.", OverdueSummarySerializer(data).data)
