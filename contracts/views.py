import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.views import APIView

from home.exceptions import NotFoundError
from home.permissions import IsAdminUser, IsAuthenticatedUser, IsAdminOrReadOnlyDriver
from home.utils import success_response
from . import lifecycle
from .models import RentalContract, ContractStatus
from .serializers import (
    RentalContractSerializer,
    ContractCreateSerializer,
    DriverSignSerializer,
    RejectContractSerializer,
    EndContractSerializer,
)

logger = logging.getLogger(__name__)


def contract_for_user(request, contract_id):
    """Admins see every contract; a driver only their own (others look missing)."""
    contract = lifecycle.get_contract(contract_id)
    if not request.user.is_admin_user() and contract.driver.user_id != request.user.pk:
        raise NotFoundError('RentalContract', contract_id)
    return contract


class ContractPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class ContractListCreateView(APIView):
    """
    Admins list every contract and admit new ones; drivers list their own.
    """
    permission_classes = [IsAdminOrReadOnlyDriver]

    @swagger_auto_schema(
        operation_summary="List Contracts",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=ContractStatus.values),
            openapi.Parameter('vehicle_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('driver_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: RentalContractSerializer(many=True)},
        tags=["Contracts"]
    )
    def get(self, request):
        contracts = RentalContract.objects.select_related('driver__user', 'vehicle')
        if not request.user.is_admin_user():
            contracts = contracts.filter(driver__user=request.user)

        params = request.query_params
        if params.get('status'):
            contracts = contracts.filter(status=params['status'])
        if params.get('vehicle_id'):
            contracts = contracts.filter(vehicle_id=params['vehicle_id'])
        if params.get('driver_id'):
            contracts = contracts.filter(driver_id=params['driver_id'])

        paginator = ContractPagination()
        page = paginator.paginate_queryset(contracts, request)
        return paginator.get_paginated_response(RentalContractSerializer(page, many=True).data)

    @swagger_auto_schema(
        operation_summary="Create Contract",
        operation_description=(
            "Admits a DRAFT contract. The driver must be VERIFIED, the vehicle AVAILABLE, "
            "and neither may already have an open contract."
        ),
        request_body=ContractCreateSerializer,
        responses={
            201: RentalContractSerializer,
            400: "Validation error",
            409: "Conflict with a concurrent admission",
            422: "Precondition failed",
        },
        tags=["Contracts"]
    )
    def post(self, request):
        serializer = ContractCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        contract = lifecycle.create_contract(
            data['driver_id'],
            data['vehicle_id'],
            data['fee_amount_cents'],
            data['frequency'],
            data['start_date'],
            due_weekday=data.get('due_weekday'),
            due_day_of_month=data.get('due_day_of_month'),
            end_date=data.get('end_date'),
            user=request.user,
        )
        return success_response(
            "Contract created successfully.",
            RentalContractSerializer(contract).data,
            status=status.HTTP_201_CREATED,
        )


class ContractDetailView(APIView):
    permission_classes = [IsAdminOrReadOnlyDriver]

    @swagger_auto_schema(
        operation_summary="Get Contract",
        responses={200: RentalContractSerializer, 404: "Not found"},
        tags=["Contracts"]
    )
    def get(self, request, contract_id):
        contract = contract_for_user(request, contract_id)
        return success_response("Contract fetched successfully.", RentalContractSerializer(contract).data)

    @swagger_auto_schema(
        operation_summary="Delete Draft Contract",
        responses={200: "Deleted", 404: "Not found", 409: "Contract is not a draft"},
        tags=["Contracts"]
    )
    def delete(self, request, contract_id):
        lifecycle.delete_draft_contract(contract_id, user=request.user)
        return success_response("Draft contract deleted successfully.", {'id': contract_id})


class ContractTransitionView(APIView):
    """
    Admin transitions that take no input: send, activate, suspend, resume.
    """
    permission_classes = [IsAdminUser]

    actions = {
        'send': (lifecycle.send_contract, "Contract sent to driver."),
        'activate': (lifecycle.activate_contract, "Contract activated."),
        'suspend': (lifecycle.suspend_contract, "Contract suspended."),
        'resume': (lifecycle.resume_contract, "Contract resumed."),
    }

    @swagger_auto_schema(
        operation_summary="Apply Contract Transition",
        operation_description="`action` is one of send, activate, suspend, resume.",
        responses={
            200: RentalContractSerializer,
            404: "Not found",
            409: "Invalid transition",
            422: "Precondition failed",
        },
        tags=["Contracts"]
    )
    def post(self, request, contract_id, action):
        if action not in self.actions:
            raise NotFoundError('ContractAction', action)
        operation, message = self.actions[action]
        contract = operation(contract_id, user=request.user)
        return success_response(message, RentalContractSerializer(contract).data, warnings=contract.warnings)


class ContractEndView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="End Contract",
        operation_description="Ends an ACTIVE or PAUSED contract, voids later pending payments and frees the vehicle.",
        request_body=EndContractSerializer,
        responses={200: RentalContractSerializer, 409: "Invalid transition"},
        tags=["Contracts"]
    )
    def post(self, request, contract_id):
        serializer = EndContractSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contract = lifecycle.end_contract(
            contract_id,
            end_date=serializer.validated_data.get('end_date'),
            user=request.user,
        )
        return success_response("Contract ended.", RentalContractSerializer(contract).data)


class ContractRejectView(APIView):
    """
    Either party may reject before activation: the admin withdrawing the offer
    or the driver declining it.
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Reject Contract",
        request_body=RejectContractSerializer,
        responses={200: RentalContractSerializer, 404: "Not found", 409: "Invalid transition"},
        tags=["Contracts"]
    )
    def post(self, request, contract_id):
        contract_for_user(request, contract_id)
        serializer = RejectContractSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contract = lifecycle.reject_contract(
            contract_id,
            reason=serializer.validated_data['reason'],
            user=request.user,
        )
        return success_response("Contract rejected.", RentalContractSerializer(contract).data)


class ContractSignView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Sign Contract",
        operation_description="The contracted driver signs; the terms are hashed and locked.",
        request_body=DriverSignSerializer,
        responses={200: RentalContractSerializer, 404: "Not found", 409: "Invalid transition"},
        tags=["Contracts"]
    )
    def post(self, request, contract_id):
        contract = contract_for_user(request, contract_id)
        if contract.driver.user_id != request.user.pk:
            # Only the contracted driver can sign, not an admin on their behalf.
            raise NotFoundError('RentalContract', contract_id)

        serializer = DriverSignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        contract = lifecycle.driver_sign(
            contract_id,
            data['signature_reference'],
            {'agreeTerms': data['agree_terms'], 'agreePayments': data['agree_payments']},
            user=request.user,
        )
        return success_response("Contract signed successfully.", RentalContractSerializer(contract).data)
