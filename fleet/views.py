import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from home.exceptions import PreconditionError
from home.permissions import IsAdminUser
from home.utils import success_response
from . import compliance
from . import maintenance as maintenance_service
from .availability import get_vehicle, set_vehicle_status
from .models import Vehicle, VehicleCost, VehicleStatus, VehicleType
from .serializers import (
    CostCreateSerializer,
    MaintenanceCreateSerializer,
    MaintenanceUpdateSerializer,
    VehicleCostSerializer,
    VehicleDocumentReviewSerializer,
    VehicleDocumentSerializer,
    VehicleDocumentUploadSerializer,
    VehicleMaintenanceSerializer,
    VehicleSerializer,
    VehicleStatusSerializer,
)

logger = logging.getLogger(__name__)


class VehiclePagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class VehicleListCreateView(APIView):
    """
    List vehicles or register a new one.
    """
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="List Vehicles",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=VehicleStatus.values),
            openapi.Parameter('vehicle_type', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=VehicleType.values),
        ],
        responses={200: VehicleSerializer(many=True)},
        tags=["Fleet"]
    )
    def get(self, request):
        vehicles = Vehicle.objects.all()
        if request.query_params.get('status'):
            vehicles = vehicles.filter(status=request.query_params['status'])
        if request.query_params.get('vehicle_type'):
            vehicles = vehicles.filter(vehicle_type=request.query_params['vehicle_type'])
        paginator = VehiclePagination()
        page = paginator.paginate_queryset(vehicles, request)
        return paginator.get_paginated_response(VehicleSerializer(page, many=True).data)

    @swagger_auto_schema(
        operation_summary="Create Vehicle",
        request_body=VehicleSerializer,
        responses={201: VehicleSerializer, 400: "Validation error"},
        tags=["Fleet"]
    )
    def post(self, request):
        serializer = VehicleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vehicle = serializer.save()
        logger.info(f"[Fleet] Vehicle {vehicle.registration_number} created")
        return success_response("Vehicle created successfully.", VehicleSerializer(vehicle).data,
                                status=status.HTTP_201_CREATED)


class VehicleDetailView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(operation_summary="Get Vehicle", responses={200: VehicleSerializer}, tags=["Fleet"])
    def get(self, request, vehicle_id):
        return success_response("Vehicle fetched successfully.", VehicleSerializer(get_vehicle(vehicle_id)).data)

    @swagger_auto_schema(
        operation_summary="Update Vehicle",
        operation_description="Updates descriptive and compliance fields. Status is not editable here.",
        request_body=VehicleSerializer,
        responses={200: VehicleSerializer, 400: "Validation error"},
        tags=["Fleet"]
    )
    def patch(self, request, vehicle_id):
        vehicle = get_vehicle(vehicle_id)
        serializer = VehicleSerializer(vehicle, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        vehicle = serializer.save()
        return success_response("Vehicle updated successfully.", VehicleSerializer(vehicle).data)

    @swagger_auto_schema(
        operation_summary="Delete Vehicle",
        responses={204: "Deleted", 422: "Vehicle has contracts"},
        tags=["Fleet"]
    )
    def delete(self, request, vehicle_id):
        vehicle = get_vehicle(vehicle_id)
        if vehicle.contracts.exists():
            raise PreconditionError(
                'vehicle_has_contracts',
                f"Vehicle {vehicle.registration_number} is referenced by contracts",
                vehicle_id=vehicle.pk,
            )
        vehicle.delete()
        logger.info(f"[Fleet] Vehicle {vehicle_id} deleted")
        return Response(status=status.HTTP_204_NO_CONTENT)


class VehicleStatusView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Set Vehicle Status",
        operation_description="AVAILABLE, MAINTENANCE or INACTIVE. Refused while the vehicle is assigned.",
        request_body=VehicleStatusSerializer,
        responses={200: VehicleSerializer, 400: "Validation error", 422: "Vehicle is assigned"},
        tags=["Fleet"]
    )
    def post(self, request, vehicle_id):
        serializer = VehicleStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vehicle = set_vehicle_status(vehicle_id, serializer.validated_data['status'], user=request.user)
        return success_response("Vehicle status updated successfully.", VehicleSerializer(vehicle).data)


# ============================================================
# Compliance documents and readiness
# ============================================================
class VehicleDocumentsView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="List Vehicle Documents",
        manual_parameters=[
            openapi.Parameter('current', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN,
                              description="Only documents not superseded by a newer upload"),
        ],
        responses={200: VehicleDocumentSerializer(many=True)},
        tags=["Fleet Compliance"]
    )
    def get(self, request, vehicle_id):
        vehicle = get_vehicle(vehicle_id)
        documents = vehicle.documents.select_related('reviewed_by')
        if request.query_params.get('current') == 'true':
            documents = documents.filter(superseded_at__isnull=True)
        return success_response("Documents fetched successfully.", VehicleDocumentSerializer(documents, many=True).data)

    @swagger_auto_schema(
        operation_summary="Upload Vehicle Document",
        operation_description=(
            "Registers a compliance document by its storage reference. A previous document "
            "of the same type is superseded and the new one starts PENDING."
        ),
        request_body=VehicleDocumentUploadSerializer,
        responses={201: VehicleDocumentSerializer, 400: "Validation error", 404: "Vehicle not found"},
        tags=["Fleet Compliance"]
    )
    def post(self, request, vehicle_id):
        serializer = VehicleDocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        document = compliance.upload_vehicle_document(
            vehicle_id,
            data['type'],
            data['file_reference'],
            title=data['title'],
            original_name=data['original_name'],
            issued_on=data['issued_on'],
            expires_on=data['expires_on'],
            user=request.user,
        )
        return success_response(
            "Document uploaded successfully.",
            VehicleDocumentSerializer(document).data,
            warnings=document.warnings,
            status=status.HTTP_201_CREATED,
        )


class VehicleDocumentReviewView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Review Vehicle Document",
        request_body=VehicleDocumentReviewSerializer,
        responses={200: VehicleDocumentSerializer, 404: "Document not found", 409: "Document is not pending"},
        tags=["Fleet Compliance"]
    )
    def post(self, request, document_id):
        serializer = VehicleDocumentReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = compliance.review_vehicle_document(
            document_id,
            serializer.validated_data['decision'],
            serializer.validated_data['note'],
            user=request.user,
        )
        return success_response("Document reviewed successfully.", VehicleDocumentSerializer(document).data)


class VehicleReadinessView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Vehicle Readiness Checklist",
        operation_description=(
            "Steps from vehicle registration to an assigned rental. Each step is DONE, ACTION, "
            "WAITING or LOCKED."
        ),
        responses={200: "Checklist", 404: "Vehicle not found"},
        tags=["Fleet Compliance"]
    )
    def get(self, request, vehicle_id):
        return success_response("Readiness fetched successfully.", compliance.vehicle_readiness(vehicle_id))


# ============================================================
# Maintenance and costs
# ============================================================
class VehicleMaintenanceView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="List Vehicle Maintenance",
        responses={200: VehicleMaintenanceSerializer(many=True)},
        tags=["Fleet Maintenance"]
    )
    def get(self, request, vehicle_id):
        records = get_vehicle(vehicle_id).maintenance_records.all()
        return success_response("Maintenance fetched successfully.",
                                VehicleMaintenanceSerializer(records, many=True).data)

    @swagger_auto_schema(
        operation_summary="Schedule Maintenance",
        request_body=MaintenanceCreateSerializer,
        responses={201: VehicleMaintenanceSerializer, 400: "Validation error", 404: "Vehicle not found"},
        tags=["Fleet Maintenance"]
    )
    def post(self, request, vehicle_id):
        serializer = MaintenanceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        maintenance = maintenance_service.schedule_maintenance(vehicle_id, user=request.user,
                                                              **serializer.validated_data)
        return success_response(
            "Maintenance scheduled successfully.",
            VehicleMaintenanceSerializer(maintenance).data,
            status=status.HTTP_201_CREATED,
        )


class MaintenanceDetailView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Update Maintenance",
        operation_description=(
            "Edits details and/or moves the record PLANNED -> IN_PROGRESS -> COMPLETED or CANCELLED. "
            "Completing with an actual cost books a SERVICE cost for the vehicle."
        ),
        request_body=MaintenanceUpdateSerializer,
        responses={200: VehicleMaintenanceSerializer, 404: "Not found", 409: "Invalid status change"},
        tags=["Fleet Maintenance"]
    )
    def patch(self, request, maintenance_id):
        serializer = MaintenanceUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        maintenance = maintenance_service.update_maintenance(maintenance_id, user=request.user,
                                                            **serializer.validated_data)
        return success_response("Maintenance updated successfully.", VehicleMaintenanceSerializer(maintenance).data)


class VehicleCostsView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="List Vehicle Costs",
        operation_description="Cost entries plus totals per cost type.",
        responses={200: VehicleCostSerializer(many=True)},
        tags=["Fleet Maintenance"]
    )
    def get(self, request, vehicle_id):
        summary = maintenance_service.cost_summary(vehicle_id)
        costs = VehicleCost.objects.filter(vehicle_id=vehicle_id)
        if request.query_params.get('type'):
            costs = costs.filter(type=request.query_params['type'])
        return success_response("Costs fetched successfully.", {
            'summary': summary,
            'costs': VehicleCostSerializer(costs, many=True).data,
        })

    @swagger_auto_schema(
        operation_summary="Record Vehicle Cost",
        request_body=CostCreateSerializer,
        responses={201: VehicleCostSerializer, 400: "Validation error", 404: "Vehicle not found"},
        tags=["Fleet Maintenance"]
    )
    def post(self, request, vehicle_id):
        serializer = CostCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        cost = maintenance_service.record_cost(vehicle_id, data.pop('type'), data.pop('amount_cents'),
                                               user=request.user, **data)
        return success_response("Cost recorded successfully.", VehicleCostSerializer(cost).data,
                                status=status.HTTP_201_CREATED)
