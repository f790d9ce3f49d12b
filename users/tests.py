from unittest import mock

from django.contrib.auth.models import AnonymousUser
from django.core.cache import cache
from django.test import RequestFactory, TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework.throttling import SimpleRateThrottle

from core.exceptions import LawyerNotVerified
from notifications.models import Notification

from .gate import Capability, attach_verification_info, evaluate
from .models import LawyerProfile, User

PASSWORD = "StrongPass123!"


def make_user(username, role=User.ROLE_CITIZEN, verified=None, **extra):
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password=PASSWORD,
        role=role,
        name=username.title(),
        **extra,
    )
    if role == User.ROLE_LAWYER:
        status = LawyerProfile.STATUS_VERIFIED if verified else LawyerProfile.STATUS_PENDING
        LawyerProfile.objects.create(user=user, bar_registration_number=f"BAR-{user.pk}", verification_status=status)
        if verified:
            user.is_verified = True
            user.save(update_fields=["is_verified"])
    return user


class RoleGateTests(TestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        self.pending = make_user("pending", User.ROLE_LAWYER, verified=False)

    def test_missing_principal_is_unauthenticated(self):
        self.assertEqual(evaluate(None, Capability.LAWYER_ROLE).reason, "UNAUTHENTICATED")
        self.assertEqual(evaluate(AnonymousUser(), Capability.CITIZEN_ROLE).reason, "UNAUTHENTICATED")

    def test_wrong_role(self):
        decision = evaluate(self.citizen, Capability.LAWYER_ROLE)
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.reason, "ROLE_REQUIRED")

        self.assertEqual(evaluate(self.lawyer, Capability.CITIZEN_ROLE).reason, "ROLE_REQUIRED")

    def test_unverified_lawyer_is_blocked_with_status(self):
        decision = evaluate(self.pending, Capability.LAWYER_VERIFIED)
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.reason, "LAWYER_NOT_VERIFIED")
        self.assertEqual(
            decision.data,
            {"verificationStatus": "pending", "isVerified": False, "role": "lawyer"},
        )
        with self.assertRaises(LawyerNotVerified):
            decision.raise_for_denial()

    def test_non_lawyers_pass_the_verification_capability(self):
        self.assertTrue(evaluate(self.citizen, Capability.LAWYER_VERIFIED).allowed)
        self.assertTrue(evaluate(self.lawyer, Capability.LAWYER_VERIFIED).allowed)

    def test_verification_checked_before_deactivation(self):
        self.pending.is_active = False
        self.pending.save()
        self.assertEqual(evaluate(self.pending, Capability.LAWYER_ROLE).reason, "LAWYER_NOT_VERIFIED")

        self.lawyer.is_active = False
        self.lawyer.save()
        self.assertEqual(evaluate(self.lawyer, Capability.LAWYER_ROLE).reason, "ACCOUNT_DEACTIVATED")

    def test_verification_info_only_attached_for_lawyers(self):
        request = RequestFactory().get("/")
        request.user = self.citizen
        attach_verification_info(request)
        self.assertFalse(hasattr(request, "verification_info"))

        request.user = self.pending
        attach_verification_info(request)
        self.assertEqual(
            request.verification_info,
            {"isVerified": False, "verificationStatus": "pending", "canAccessFeatures": False},
        )

    def test_citizens_are_verified_on_creation(self):
        self.assertTrue(self.citizen.is_verified)
        self.assertFalse(self.pending.is_verified)


class AccountApiTests(APITestCase):
    def test_register_citizen_returns_tokens(self):
        resp = self.client.post(reverse("register"), {
            "username": "asha",
            "email": "Asha@Example.com",
            "name": "Asha",
            "password": PASSWORD,
        }, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertIn("access", resp.data)
        self.assertEqual(resp.data["user"]["role"], "citizen")
        self.assertTrue(User.objects.get(username="asha").is_verified)

    def test_register_lawyer_requires_bar_number(self):
        resp = self.client.post(reverse("register"), {
            "username": "lex",
            "email": "lex@example.com",
            "password": PASSWORD,
            "role": "lawyer",
        }, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "VALIDATION_FAILED")

    def test_register_lawyer_starts_pending(self):
        resp = self.client.post(reverse("register"), {
            "username": "lex",
            "email": "lex@example.com",
            "password": PASSWORD,
            "role": "lawyer",
            "lawyer_details": {"bar_registration_number": "BAR/123", "specialization": ["Family"]},
        }, format="json")
        self.assertEqual(resp.status_code, 201)

        lawyer = User.objects.get(username="lex")
        self.assertFalse(lawyer.is_verified)
        self.assertEqual(lawyer.verification_status, "pending")
        self.assertTrue(Notification.objects.filter(user=lawyer, kind="verification").exists())

    def test_login_by_email(self):
        make_user("citizen")
        resp = self.client.post(reverse("login"), {"email": "citizen@example.com", "password": PASSWORD}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("refresh", resp.data)

    def test_login_with_bad_password(self):
        make_user("citizen")
        resp = self.client.post(reverse("login"), {"email": "citizen@example.com", "password": "nope"}, format="json")
        self.assertEqual(resp.status_code, 401)

    def test_login_reports_deactivated_account(self):
        make_user("citizen", is_active=False)
        resp = self.client.post(reverse("login"), {"email": "citizen@example.com", "password": PASSWORD}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "ACCOUNT_DEACTIVATED")

    def test_profile_requires_authentication(self):
        resp = self.client.get(reverse("profile"))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.data["code"], "UNAUTHENTICATED")

    def test_lawyer_profile_includes_verification(self):
        lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=False)
        self.client.force_authenticate(lawyer)
        resp = self.client.get(reverse("profile"))
        self.assertEqual(resp.data["verification"]["verificationStatus"], "pending")


class AdminApiTests(APITestCase):
    def setUp(self):
        self.admin = make_user("admin", User.ROLE_ADMIN)
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=False)
        self.client.force_authenticate(self.admin)

    def test_approve_lawyer(self):
        url = reverse("admin-lawyer-verification", args=[self.lawyer.pk])
        resp = self.client.post(url, {"action": "approve", "notes": "Bar council confirmed"}, format="json")
        self.assertEqual(resp.status_code, 200)

        self.lawyer.refresh_from_db()
        self.assertTrue(self.lawyer.is_verified)
        self.assertEqual(self.lawyer.lawyer_details.verification_status, "verified")
        self.assertEqual(self.lawyer.lawyer_details.verification_notes, "Bar council confirmed")
        self.assertTrue(Notification.objects.filter(user=self.lawyer, kind="verification").exists())

    def test_reject_lawyer_keeps_unverified(self):
        url = reverse("admin-lawyer-verification", args=[self.lawyer.pk])
        resp = self.client.post(url, {"status": "rejected"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.lawyer.refresh_from_db()
        self.assertFalse(self.lawyer.is_verified)
        self.assertEqual(self.lawyer.verification_status, "rejected")

    def test_verification_payload_required(self):
        url = reverse("admin-lawyer-verification", args=[self.lawyer.pk])
        resp = self.client.post(url, {"notes": "?"}, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_admin_cannot_deactivate_self(self):
        resp = self.client.post(reverse("admin-user-status", args=[self.admin.pk]), {"is_active": False}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.is_active)

    def test_deactivate_user(self):
        resp = self.client.post(reverse("admin-user-status", args=[self.lawyer.pk]), {"is_active": False}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.lawyer.refresh_from_db()
        self.assertFalse(self.lawyer.is_active)

    def test_non_admin_forbidden(self):
        self.client.force_authenticate(self.lawyer)
        resp = self.client.get(reverse("admin-users"))
        self.assertEqual(resp.status_code, 403)

    def test_pending_lawyers_listing(self):
        resp = self.client.get(reverse("admin-pending-lawyers"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([u["id"] for u in resp.data["results"]], [self.lawyer.pk])


class LawyerDirectoryTests(APITestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.family = make_user("family", User.ROLE_LAWYER, verified=True)
        LawyerProfile.objects.filter(user=self.family).update(specialization=["Family Law"])
        make_user("pending", User.ROLE_LAWYER, verified=False)
        self.client.force_authenticate(self.citizen)

    def test_lists_verified_lawyers_only(self):
        resp = self.client.get(reverse("lawyer-directory"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([u["id"] for u in resp.data["results"]], [self.family.pk])

    def test_specialization_filter(self):
        resp = self.client.get(reverse("lawyer-directory"), {"specialization": "family"})
        self.assertEqual(resp.data["count"], 1)
        resp = self.client.get(reverse("lawyer-directory"), {"specialization": "tax"})
        self.assertEqual(resp.data["count"], 0)

    def test_served_from_cache_when_available(self):
        cached = {"count": 0, "next": None, "previous": None, "results": []}
        with mock.patch("core.cache.CacheClient.get", return_value=cached) as cache_get:
            resp = self.client.get(reverse("lawyer-directory"))
        cache_get.assert_called_once()
        self.assertEqual(resp.data, cached)


class AuthThrottleTests(APITestCase):
    def setUp(self):
        cache.clear()
        make_user("asha")

    def test_repeated_logins_are_throttled(self):
        with mock.patch.dict(SimpleRateThrottle.THROTTLE_RATES, {"auth": "2/min"}):
            for _ in range(2):
                resp = self.client.post(reverse("login"), {"username": "asha", "password": "wrong"}, format="json")
                self.assertEqual(resp.status_code, 401)

            resp = self.client.post(reverse("login"), {"username": "asha", "password": PASSWORD}, format="json")
        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp.data["code"], "THROTTLED")
        self.assertFalse(resp.data["success"])

    def test_auth_budget_does_not_touch_other_views(self):
        with mock.patch.dict(SimpleRateThrottle.THROTTLE_RATES, {"auth": "1/min"}):
            self.client.post(reverse("login"), {"username": "asha", "password": PASSWORD}, format="json")
            self.client.force_authenticate(User.objects.get(username="asha"))
            self.assertEqual(self.client.get(reverse("profile")).status_code, 200)
