# Django imports
from django.shortcuts import get_object_or_404

# Third-party imports
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.views import TokenObtainPairView

from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from . import config
from .models import CustomUser as User, AuditLog
from .serializers import (
    UserSerializer,
    UserCreateSerializer,
    ChangePasswordSerializer,
    UserProfileUpdateSerializer,
    SettingsUpdateSerializer,
    AuditLogSerializer,
)
from .permissions import IsAdminUser

import logging
logger = logging.getLogger(__name__)


# ==================== AUTHENTICATION ====================
class MyTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['id'] = user.id
        token['first_name'] = user.first_name
        token['role'] = user.role
        return token


class MyTokenObtainPairView(TokenObtainPairView):
    serializer_class = MyTokenObtainPairSerializer


# ==================== USER PROFILE ====================
class UserProfileView(APIView):
    """
    Get or update the logged-in user's account.
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Get Current User",
        responses={200: UserSerializer},
        tags=['User Management']
    )
    def get(self, request):
        serializer = UserSerializer(request.user)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_summary="Update Current User",
        request_body=UserProfileUpdateSerializer,
        responses={200: UserSerializer, 400: "Validation error"},
        tags=['User Management']
    )
    def patch(self, request):
        serializer = UserProfileUpdateSerializer(request.user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(UserSerializer(request.user).data, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@swagger_auto_schema(
    method='post',
    operation_summary="Change Password",
    request_body=ChangePasswordSerializer,
    responses={200: "Password changed", 400: "Validation error"},
    tags=['User Management']
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    serializer = ChangePasswordSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        request.user.set_password(serializer.validated_data['new_password'])
        request.user.save()
        return Response({'message': 'Password changed successfully.'}, status=status.HTTP_200_OK)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# ==================== ADMIN USER MANAGEMENT ====================
class AdminCreateUserView(APIView):
    """
    Admins create driver and admin accounts. A driver account gets its
    DriverProfile from the drivers app signal.
    """
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Create User (Admin Only)",
        request_body=UserCreateSerializer,
        responses={201: UserSerializer, 400: "Validation error"},
        tags=['User Management']
    )
    def post(self, request):
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            logger.info(f"[Users] {request.user.email} created {user.role} account {user.email}")
            return Response(
                {
                    'message': 'User created successfully.',
                    'user': UserSerializer(user).data
                },
                status=status.HTTP_201_CREATED
            )
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class ListAllUsers(ListAPIView):
    """
    List all users, optionally filtered by ?role=driver|admin.
    """
    permission_classes = [IsAdminUser]
    serializer_class = UserSerializer

    def get_queryset(self):
        queryset = User.objects.all()
        role = self.request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)
        return queryset

    @swagger_auto_schema(
        operation_summary="List Users (Admin Only)",
        manual_parameters=[
            openapi.Parameter('role', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=[User.ADMIN, User.DRIVER])
        ],
        tags=['User Management']
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class ToggleUserActiveStatus(APIView):
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Toggle User Active Status",
        responses={200: UserSerializer, 400: "Cannot deactivate yourself", 404: "User not found"},
        tags=['User Management']
    )
    def post(self, request, user_id):
        user = get_object_or_404(User, id=user_id)
        if user == request.user:
            return Response(
                {'error': 'You cannot deactivate your own account.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        user.is_active = not user.is_active
        user.save(update_fields=['is_active', 'updated_at'])
        return Response(
            {
                'message': f"User {'activated' if user.is_active else 'deactivated'} successfully.",
                'user': UserSerializer(user).data
            },
            status=status.HTTP_200_OK
        )


# ==================== OPERATOR CONFIGURATION ====================
class SettingsView(APIView):
    """
    Read and update operator configuration (grace period, weights, required documents...).
    """
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Get Operator Settings",
        responses={200: "Effective settings and configuration warnings"},
        tags=['Settings']
    )
    def get(self, request):
        return Response(
            {
                "status": "success",
                "data": config.all_settings(),
                "warnings": config.readiness_warnings(),
            },
            status=status.HTTP_200_OK
        )

    @swagger_auto_schema(
        operation_summary="Update Operator Settings",
        request_body=SettingsUpdateSerializer,
        responses={200: "Updated settings", 400: "Validation error"},
        tags=['Settings']
    )
    def patch(self, request):
        serializer = SettingsUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = config.update_settings(serializer.validated_data['settings'], user=request.user)
        return Response(
            {
                "status": "success",
                "message": "Settings updated successfully.",
                "data": data,
                "warnings": config.readiness_warnings(),
            },
            status=status.HTTP_200_OK
        )


class ReadinessView(APIView):
    """
    Configuration health for the operator UI, including inconsistent progress weights.
    """
    permission_classes = [IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Configuration Readiness",
        responses={200: "Readiness flag and warnings"},
        tags=['Settings']
    )
    def get(self, request):
        warnings = config.readiness_warnings()
        weights = config.progress_weights()
        return Response(
            {
                "status": "success",
                "data": {
                    "ready": not warnings,
                    "progress_weights": weights,
                    "progress_weights_total": sum(weights.values()),
                    "weights_consistent": config.progress_weights_warning(weights) is None,
                },
                "warnings": warnings,
            },
            status=status.HTTP_200_OK
        )


class AuditLogListView(ListAPIView):
    """
    Audit trail, filterable by ?entity_type= and ?entity_id=.
    """
    permission_classes = [IsAdminUser]
    serializer_class = AuditLogSerializer

    def get_queryset(self):
        queryset = AuditLog.objects.select_related('user')
        entity_type = self.request.query_params.get('entity_type')
        entity_id = self.request.query_params.get('entity_id')
        if entity_type:
            queryset = queryset.filter(entity_type=entity_type)
        if entity_id:
            queryset = queryset.filter(entity_id=entity_id)
        return queryset

    @swagger_auto_schema(operation_summary="List Audit Log (Admin Only)", tags=['Settings'])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
