# users/views.py
import logging

from django.conf import settings
from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.tokens import PasswordResetTokenGenerator
from django.core.mail import send_mail
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from cases.models import Case
from core.cache import get_cache_client
from core.exceptions import AccountDeactivated
from notifications.utils import create_notification, log_activity

from .models import LawyerProfile
from .permissions import IsAdmin
from .serializers import (
    LawyerListSerializer,
    LawyerVerificationSerializer,
    LoginSerializer,
    PasswordChangeSerializer,
    PasswordResetConfirmSerializer,
    PasswordResetRequestSerializer,
    ProfileSerializer,
    RegisterSerializer,
    UserSerializer,
    UserStatusSerializer,
)
from .services import LAWYER_DIRECTORY_CACHE_PREFIX, set_account_active, set_lawyer_verification

logger = logging.getLogger(__name__)

User = get_user_model()


def _token_pair(user):
    refresh = RefreshToken.for_user(user)
    return {"access": str(refresh.access_token), "refresh": str(refresh)}


class RegisterView(generics.CreateAPIView):
    queryset = User.objects.all()
    permission_classes = [AllowAny]
    throttle_scope = "auth"
    serializer_class = RegisterSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.save()
        logger.info("Registered %s user %s", user.role, user.pk)
        log_activity(user, "User registered", {"role": user.role})
        if user.is_lawyer:
            create_notification(
                user,
                "Welcome! Your lawyer account is pending verification by an administrator.",
                kind="verification",
            )

        return Response(
            {"success": True, "user": UserSerializer(user).data, **_token_pair(user)},
            status=status.HTTP_201_CREATED,
        )


class LoginView(generics.GenericAPIView):
    serializer_class = LoginSerializer
    permission_classes = [AllowAny]
    throttle_scope = "auth"

    def post(self, request):
        identifier = request.data.get("email") or request.data.get("username")
        password = request.data.get("password")

        if not identifier or not password:
            return Response({"success": False, "message": "Email/Username and password required"}, status=400)

        # Try login by email, then fall back to username
        user_obj = User.objects.filter(email__iexact=identifier).first()
        username = user_obj.username if user_obj else identifier

        user = authenticate(request, username=username, password=password)

        if not user:
            # authenticate() hides inactive accounts; report them explicitly
            candidate = user_obj or User.objects.filter(username=username).first()
            if candidate and not candidate.is_active and candidate.check_password(password):
                raise AccountDeactivated()
            return Response({"success": False, "message": "Invalid credentials"}, status=401)

        # Superusers are always admins
        if user.is_superuser and user.role != User.ROLE_ADMIN:
            user.role = User.ROLE_ADMIN
            user.save(update_fields=["role"])

        log_activity(user, "User logged in", {"email": user.email})

        return Response({"success": True, "user": UserSerializer(user).data, **_token_pair(user)}, status=200)


class LogoutView(generics.GenericAPIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        log_activity(request.user, "User logged out", None)
        return Response({"success": True, "message": "Logged out successfully"}, status=200)


class ProfileView(generics.RetrieveUpdateAPIView):
    serializer_class = ProfileSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ["get", "patch", "head", "options"]

    def get_object(self):
        return self.request.user


class PasswordChangeView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PasswordChangeSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)

        if not request.user.check_password(serializer.validated_data["current_password"]):
            return Response({"success": False, "message": "Current password is incorrect"}, status=400)

        request.user.set_password(serializer.validated_data["new_password"])
        request.user.save()
        log_activity(request.user, "Password changed")

        return Response({"success": True, "message": "Password updated", **_token_pair(request.user)}, status=200)


class DeactivateAccountView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        set_account_active(request.user, request.user, False)
        return Response({"success": True, "message": "Account deactivated"}, status=200)


class PasswordResetRequestView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "password_reset"

    def post(self, request):
        serializer = PasswordResetRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data["email"]

        user = User.objects.filter(email__iexact=email, is_active=True).first()
        if user is None:
            # Don't reveal whether the email exists
            return Response({"message": "If user exists, a reset link has been sent."}, status=200)

        token = PasswordResetTokenGenerator().make_token(user)
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        reset_link = f"{settings.FRONTEND_URL}/reset-password/{uid}/{token}"

        send_mail(
            subject="Reset Your Password",
            message=f"Click the link to reset your password: {reset_link}",
            from_email=None,  # uses DEFAULT_FROM_EMAIL from settings
            recipient_list=[user.email],
            fail_silently=False,
        )

        return Response({"message": "If user exists, a reset link has been sent."}, status=200)


class PasswordResetConfirmView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = PasswordResetConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        uidb64 = serializer.validated_data["uidb64"]
        token = serializer.validated_data["token"]
        password = serializer.validated_data["password"]

        try:
            uid = force_str(urlsafe_base64_decode(uidb64))
            user = User.objects.get(pk=uid)
        except (TypeError, ValueError, OverflowError, User.DoesNotExist):
            return Response({"success": False, "message": "Invalid link"}, status=400)

        if not PasswordResetTokenGenerator().check_token(user, token):
            return Response({"success": False, "message": "Token invalid or expired"}, status=400)

        user.set_password(password)
        user.save()

        return Response({"success": True, "message": "Password reset successful"}, status=200)


class LawyerDirectoryView(generics.ListAPIView):
    """
    GET /api/users/lawyers/?specialization=family
    Verified, active lawyers. Responses are cached in Redis per URL and
    dropped whenever an admin changes a lawyer's verification.
    """
    serializer_class = LawyerListSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = User.objects.filter(
            role=User.ROLE_LAWYER,
            is_active=True,
            is_verified=True,
        ).select_related("lawyer_details").order_by("name", "id")

        specialization = self.request.query_params.get("specialization")
        if specialization:
            qs = qs.filter(lawyer_details__specialization__icontains=specialization)
        return qs

    def list(self, request, *args, **kwargs):
        cache = get_cache_client()
        key = f"{LAWYER_DIRECTORY_CACHE_PREFIX}{request.get_full_path()}"

        cached = cache.get(key)
        if cached is not None:
            return Response(cached)

        response = super().list(request, *args, **kwargs)
        cache.set(key, response.data)
        return response


# ============================================================
#   ADMIN
# ============================================================
class AdminUserListView(generics.ListAPIView):
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    def get_queryset(self):
        qs = User.objects.select_related("lawyer_details").order_by("-date_joined")
        role = self.request.query_params.get("role")
        if role:
            qs = qs.filter(role=role)
        return qs


class AdminPendingLawyersView(generics.ListAPIView):
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    def get_queryset(self):
        return User.objects.filter(
            role=User.ROLE_LAWYER,
            lawyer_details__verification_status=LawyerProfile.STATUS_PENDING,
        ).select_related("lawyer_details").order_by("date_joined")


class AdminLawyerVerificationView(APIView):
    """
    POST /api/users/admin/lawyers/<id>/verification/
    payload: { status: 'verified' | 'rejected' } or { action: 'approve' | 'reject' }, notes?: string
    """
    permission_classes = [IsAuthenticated, IsAdmin]

    def post(self, request, pk):
        serializer = LawyerVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lawyer = get_object_or_404(User, pk=pk, role=User.ROLE_LAWYER)
        set_lawyer_verification(
            lawyer,
            request.user,
            serializer.validated_data["status"],
            serializer.validated_data.get("notes", ""),
        )
        lawyer.refresh_from_db()

        return Response({
            "success": True,
            "message": f"Lawyer {serializer.validated_data['status']} successfully",
            "user": UserSerializer(lawyer).data,
        }, status=200)


class AdminUserStatusView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    def post(self, request, pk):
        serializer = UserStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = get_object_or_404(User, pk=pk)
        if user.pk == request.user.pk:
            return Response({"success": False, "message": "Cannot deactivate your own account"}, status=400)

        is_active = serializer.validated_data["is_active"]
        set_account_active(user, request.user, is_active)

        return Response({
            "success": True,
            "message": f"User account {'activated' if is_active else 'deactivated'} successfully",
            "user": UserSerializer(user).data,
        }, status=200)


class AdminStatsView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request):
        users_by_role = dict(User.objects.order_by().values_list("role").annotate(total=Count("id")))
        cases_by_status = dict(Case.objects.order_by().values_list("status").annotate(total=Count("id")))

        return Response({
            "users": {
                "total": sum(users_by_role.values()),
                "by_role": users_by_role,
                "pending_lawyers": LawyerProfile.objects.filter(
                    verification_status=LawyerProfile.STATUS_PENDING
                ).count(),
            },
            "cases": {
                "total": sum(cases_by_status.values()),
                "by_status": cases_by_status,
                "unassigned": Case.objects.filter(assigned_lawyer__isnull=True).count(),
            },
        })
