from django.urls import path
from . import views

urlpatterns = [
    # Authentication
    path('auth/token/', views.MyTokenObtainPairView.as_view(), name='token_obtain_pair'),

    # User Profile
    path('profile/', views.UserProfileView.as_view(), name='profile'),
    path('profile/change-password/', views.change_password, name='change-password'),

    # Admin User Management
    path('admin/create-user/', views.AdminCreateUserView.as_view(), name='admin-create-user'),
    path('admin/users/', views.ListAllUsers.as_view(), name='list-users'),
    path('admin/users/<int:user_id>/toggle-active/',
         views.ToggleUserActiveStatus.as_view(), name='toggle-user-active'),

    # Operator configuration
    path('settings/', views.SettingsView.as_view(), name='settings'),
    path('settings/readiness/', views.ReadinessView.as_view(), name='settings-readiness'),
    path('audit-log/', views.AuditLogListView.as_view(), name='audit-log'),
]
