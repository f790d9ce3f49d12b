from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView
from .views import (
    RegisterView,
    LoginView,
    LogoutView,
    ProfileView,
    PasswordChangeView,
    DeactivateAccountView,
    PasswordResetRequestView,
    PasswordResetConfirmView,
    LawyerDirectoryView,
    AdminUserListView,
    AdminPendingLawyersView,
    AdminLawyerVerificationView,
    AdminUserStatusView,
    AdminStatsView,
)

urlpatterns = [
    path('register/', RegisterView.as_view(), name='register'),
    path('login/', LoginView.as_view(), name='login'),
    path("logout/", LogoutView.as_view(), name="logout"),
    path("profile/", ProfileView.as_view(), name="profile"),
    path("profile/password/", PasswordChangeView.as_view(), name="password-change"),
    path("profile/deactivate/", DeactivateAccountView.as_view(), name="profile-deactivate"),
    path("password/reset/", PasswordResetRequestView.as_view(), name="password-reset"),
    path("password/reset/confirm/", PasswordResetConfirmView.as_view(), name="password-reset-confirm"),

    # Lawyer directory
    path("lawyers/", LawyerDirectoryView.as_view(), name="lawyer-directory"),

    # Admin
    path("admin/users/", AdminUserListView.as_view(), name="admin-users"),
    path("admin/users/<int:pk>/status/", AdminUserStatusView.as_view(), name="admin-user-status"),
    path("admin/lawyers/pending/", AdminPendingLawyersView.as_view(), name="admin-pending-lawyers"),
    path("admin/lawyers/<int:pk>/verification/", AdminLawyerVerificationView.as_view(), name="admin-lawyer-verification"),
    path("admin/stats/", AdminStatsView.as_view(), name="admin-stats"),

    # JWT Refresh Token Endpoint
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
]
