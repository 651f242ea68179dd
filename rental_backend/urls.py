from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import TokenRefreshView
from django.conf import settings
from django.conf.urls.static import static

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi


# Swagger Configuration
schema_view = get_schema_view(
    openapi.Info(
        title="Vehicle Rental Platform API",
        default_version='v1',
        description="""
        # Vehicle Rental Platform API

        Driver onboarding, rental contracts and payment tracking.

        ## Features
        - Driver verification (KYC documents, location check-in, review)
        - Fleet management and vehicle availability
        - Rental contract lifecycle (draft, send, sign, activate, suspend, resume, end)
        - Payment schedules, overdue tracking and reminders
        - In-app and webhook notifications

        ## Authentication
        This API uses JWT (JSON Web Tokens) for authentication.

        ### Login Flow:
        1. Call /api/v1/users/auth/token/ with email and password
        2. Receive access and refresh tokens
        3. Use access token in Authorization header: Bearer <token>
        4. Refresh with /api/token/refresh/

        ## User Roles
        - *Admin*: Fleet, verification, contracts, payments, settings
        - *Driver*: Own profile, documents, contracts, payments and notifications
        """,
        contact=openapi.Contact(email="support@example.com"),
        license=openapi.License(name="Proprietary"),
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API Documentation
    path('', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
    path('swagger.json', schema_view.without_ui(cache_timeout=0), name='schema-json'),

    # API v1
    path('api/v1/users/', include('home.urls')),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/v1/drivers/', include('drivers.urls')),
    path('api/v1/fleet/vehicles/', include('fleet.urls')),
    path('api/v1/contracts/', include('contracts.urls')),
    path('api/v1/payments/', include('finance.urls')),
    path('api/v1/notifications/', include('notifications.urls')),
]


if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
