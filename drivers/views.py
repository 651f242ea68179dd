# ============================================================
# Standard Library Imports
# ============================================================
import logging

# ============================================================
# Third-Party Imports
# ============================================================
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.views import APIView

# ============================================================
# Local Application Imports
# ============================================================
from home.exceptions import NotFoundError
from home.permissions import IsAdminUser, IsDriver
from home.utils import success_response
from . import verification
from .models import DriverProfile, VerificationStatus
from .serializers import (
    DriverProfileSerializer,
    DriverProfileDetailSerializer,
    DriverProfileListSerializer,
    DriverDocumentSerializer,
    ProfileUpdateSerializer,
    DocumentUploadSerializer,
    LocationSerializer,
    DocumentReviewSerializer,
    FinalizeVerificationSerializer,
)

logger = logging.getLogger(__name__)


def own_profile(request):
    try:
        return request.user.driver_profile
    except DriverProfile.DoesNotExist:
        raise NotFoundError('DriverProfile', f"user:{request.user.pk}")


# ============================================================
# Driver self-service
# ============================================================
class MyProfileView(APIView):
    """
    The logged-in driver's KYC profile.
    """
    permission_classes = [IsDriver]

    @swagger_auto_schema(
        operation_summary="Get My Driver Profile",
        responses={200: DriverProfileDetailSerializer, 404: "Profile not found"},
        tags=["Drivers"]
    )
    def get(self, request):
        profile = own_profile(request)
        return success_response("Profile fetched successfully.", DriverProfileDetailSerializer(profile).data)

    @swagger_auto_schema(
        operation_summary="Update My Driver Profile",
        operation_description="Updates KYC fields and recomputes the completion percentage.",
        request_body=ProfileUpdateSerializer,
        responses={200: DriverProfileSerializer, 400: "Validation error"},
        tags=["Drivers"]
    )
    def patch(self, request):
        profile = own_profile(request)
        serializer = ProfileUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        profile = verification.update_profile(profile.pk, serializer.validated_data, user=request.user)
        return success_response(
            "Profile updated successfully.",
            DriverProfileSerializer(profile).data,
            warnings=profile.warnings,
        )


class MyDocumentsView(APIView):
    permission_classes = [IsDriver]

    @swagger_auto_schema(
        operation_summary="List My Documents",
        responses={200: DriverDocumentSerializer(many=True)},
        tags=["Drivers"]
    )
    def get(self, request):
        profile = own_profile(request)
        documents = profile.documents.all()
        if request.query_params.get('current') == 'true':
            documents = profile.current_documents()
        return success_response("Documents fetched successfully.", DriverDocumentSerializer(documents, many=True).data)

    @swagger_auto_schema(
        operation_summary="Upload Document",
        operation_description=(
            "Registers an uploaded document by its storage reference. A previous document "
            "of the same type is superseded and the new one starts PENDING."
        ),
        request_body=DocumentUploadSerializer,
        responses={201: DriverDocumentSerializer, 400: "Validation error"},
        tags=["Drivers"]
    )
    def post(self, request):
        profile = own_profile(request)
        serializer = DocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        document = verification.upload_document(
            profile.pk,
            data['type'],
            data['file_reference'],
            original_name=data.get('original_name', ''),
            user=request.user,
        )
        return success_response(
            "Document uploaded successfully.",
            DriverDocumentSerializer(document).data,
            warnings=document.warnings,
            status=status.HTTP_201_CREATED,
        )


class MyLocationView(APIView):
    permission_classes = [IsDriver]

    @swagger_auto_schema(
        operation_summary="Record Location Check-in",
        request_body=LocationSerializer,
        responses={200: DriverProfileSerializer, 400: "Validation error"},
        tags=["Drivers"]
    )
    def post(self, request):
        profile = own_profile(request)
        serializer = LocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        profile = verification.record_location(
            profile.pk,
            data['latitude'],
            data['longitude'],
            accuracy=data.get('accuracy'),
            user=request.user,
        )
        return success_response("Location recorded successfully.", DriverProfileSerializer(profile).data)


class MySubmitForReviewView(APIView):
    permission_classes = [IsDriver]

    @swagger_auto_schema(
        operation_summary="Submit Profile For Review",
        operation_description="Moves an UNVERIFIED or REJECTED profile to IN_REVIEW once the submission threshold is met.",
        responses={200: DriverProfileSerializer, 409: "Invalid transition", 422: "Below submission threshold"},
        tags=["Drivers"]
    )
    def post(self, request):
        profile = verification.submit_for_review(own_profile(request).pk, user=request.user)
        return success_response("Profile submitted for review.", DriverProfileSerializer(profile).data)


# ============================================================
# Admin review
# ============================================================
class DriverListView(ListAPIView):
    """
    All driver profiles, filterable by ?verification_status=.
    """
    permission_classes = [IsAdminUser]
    serializer_class = DriverProfileListSerializer

    def get_queryset(self):
        queryset = DriverProfile.objects.select_related('user')
        verification_status = self.request.query_params.get('verification_status')
        if verification_status:
            queryset = queryset.filter(verification_status=verification_status)
        return queryset

    @swagger_auto_schema(
        operation_summary="List Drivers",
        manual_parameters=[
            openapi.Parameter(
                'verification_status', openapi.IN_QUERY,
                type=openapi.TYPE_STRING, enum=VerificationStatus.values
            )
        ],
        tags=["Verification"]
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class DriverDetailView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Get Driver Profile",
        responses={200: DriverProfileDetailSerializer, 404: "Not found"},
        tags=["Verification"]
    )
    def get(self, request, driver_id):
        profile = verification.get_profile(driver_id)
        return success_response("Profile fetched successfully.", DriverProfileDetailSerializer(profile).data)


class DocumentReviewView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Review Document",
        operation_description="Approves or rejects a PENDING document and returns the recomputed driver profile.",
        request_body=DocumentReviewSerializer,
        responses={
            200: DriverProfileSerializer,
            404: "Document not found",
            409: "Document is not pending",
        },
        tags=["Verification"]
    )
    def post(self, request, document_id):
        serializer = DocumentReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = verification.record_document_review(
            document_id,
            serializer.validated_data['decision'],
            serializer.validated_data['note'],
            user=request.user,
        )
        return success_response(
            "Document reviewed successfully.",
            DriverProfileSerializer(profile).data,
            warnings=profile.warnings,
        )


class FinalizeVerificationView(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Finalize Driver Verification",
        request_body=FinalizeVerificationSerializer,
        responses={
            200: DriverProfileSerializer,
            404: "Driver not found",
            409: "Invalid transition",
            422: "Precondition failed (names the failed guard)",
        },
        tags=["Verification"]
    )
    def post(self, request, driver_id):
        serializer = FinalizeVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = verification.finalize_verification(
            driver_id,
            serializer.validated_data['status'],
            serializer.validated_data['note'],
            user=request.user,
        )
        return success_response(
            f"Driver {profile.verification_status.lower()}.",
            DriverProfileSerializer(profile).data,
            warnings=profile.warnings,
        )
