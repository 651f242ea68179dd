import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from home.permissions import IsAuthenticatedUser
from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger(__name__)


class NotificationListView(ListAPIView):
    """
    The logged-in user's notifications, newest first. ?unread=true limits to unread.
    """
    permission_classes = [IsAuthenticatedUser]
    serializer_class = NotificationSerializer

    def get_queryset(self):
        queryset = Notification.objects.filter(recipient=self.request.user)
        if self.request.query_params.get('unread') == 'true':
            queryset = queryset.filter(is_read=False)
        return queryset

    @swagger_auto_schema(
        operation_summary="List My Notifications",
        manual_parameters=[openapi.Parameter('unread', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN)],
        tags=["Notifications"]
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class NotificationMarkReadView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Mark Notification Read",
        responses={200: NotificationSerializer, 404: "Not found"},
        tags=["Notifications"]
    )
    def post(self, request, notification_id):
        notification = get_object_or_404(Notification, id=notification_id, recipient=request.user)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=['is_read', 'read_at'])
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)


class NotificationMarkAllReadView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Mark All Notifications Read",
        responses={200: "Number of notifications updated"},
        tags=["Notifications"]
    )
    def post(self, request):
        updated = Notification.objects.filter(recipient=request.user, is_read=False).update(
            is_read=True, read_at=timezone.now()
        )
        return Response({"status": "success", "updated": updated}, status=status.HTTP_200_OK)
