from unittest import mock

import redis
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework.exceptions import NotFound, ValidationError

from .cache import CacheClient
from .exceptions import AlreadyAssigned, LawyerNotVerified, api_exception_handler


class ExceptionHandlerTests(SimpleTestCase):
    def test_domain_error_body(self):
        exc = LawyerNotVerified(data={"verificationStatus": "pending", "isVerified": False, "role": "lawyer"})
        response = api_exception_handler(exc, {})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "LAWYER_NOT_VERIFIED")
        self.assertFalse(response.data["success"])
        self.assertEqual(response.data["data"]["verificationStatus"], "pending")

    def test_conflict_status(self):
        response = api_exception_handler(AlreadyAssigned(), {})
        self.assertEqual(response.status_code, 409)
        self.assertNotIn("data", response.data)

    def test_validation_errors_are_wrapped(self):
        response = api_exception_handler(ValidationError({"title": ["required"]}), {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "VALIDATION_FAILED")
        self.assertEqual(response.data["errors"], {"title": ["required"]})

    def test_drf_codes_are_upper_cased(self):
        response = api_exception_handler(NotFound(), {})
        self.assertEqual(response.data["code"], "NOT_FOUND")

    def test_unhandled_exception_becomes_internal(self):
        with self.assertLogs("core.exceptions", level="ERROR"):
            response = api_exception_handler(RuntimeError("boom"), {"view": None})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data["code"], "INTERNAL")
        self.assertNotIn("boom", response.data["message"])


class CacheClientTests(SimpleTestCase):
    def test_disabled_without_url(self):
        cache = CacheClient(url="")
        self.assertFalse(cache.connect())
        self.assertIsNone(cache.get("x"))
        self.assertFalse(cache.set("x", 1))
        self.assertEqual(cache.health(), {"status": "disabled"})

    def test_unreachable_redis_degrades_to_misses(self):
        broken = mock.Mock()
        broken.ping.side_effect = redis.ConnectionError("refused")
        broken.get.side_effect = redis.ConnectionError("refused")
        broken.setex.side_effect = redis.ConnectionError("refused")
        broken.scan_iter.side_effect = redis.ConnectionError("refused")

        with mock.patch("redis.Redis.from_url", return_value=broken):
            cache = CacheClient(url="redis://localhost:6390/0")
            with self.assertLogs("core.cache", level="WARNING"):
                self.assertFalse(cache.connect())

        with self.assertLogs("core.cache", level="WARNING"):
            self.assertIsNone(cache.get("lawyers:/api/users/lawyers/"))
            self.assertFalse(cache.set("k", {"a": 1}))
            self.assertEqual(cache.delete_prefix("lawyers:"), 0)
        self.assertEqual(cache.health()["status"], "unhealthy")

    def test_round_trips_json_with_prefix(self):
        client = mock.Mock()
        client.get.return_value = '{"a": 1}'

        with mock.patch("redis.Redis.from_url", return_value=client):
            cache = CacheClient(url="redis://localhost:6379/0", default_timeout=60)
            self.assertTrue(cache.connect())

        self.assertTrue(cache.set("k", {"a": 1}))
        client.setex.assert_called_once_with("cache:k", 60, '{"a": 1}')
        self.assertEqual(cache.get("k"), {"a": 1})
        client.get.assert_called_with("cache:k")

        cache.close()
        client.close.assert_called_once()
        self.assertIsNone(cache.get("k"))


class HealthViewTests(TestCase):
    def test_healthy_without_cache(self):
        resp = self.client.get(reverse("health"))
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["database"]["status"], "healthy")
        self.assertEqual(body["cache"]["status"], "disabled")
        self.assertIn("X-Request-ID", resp)

    def test_request_id_is_echoed(self):
        resp = self.client.get(reverse("health"), HTTP_X_REQUEST_ID="abc123")
        self.assertEqual(resp["X-Request-ID"], "abc123")

    def test_degraded_when_cache_is_down(self):
        with mock.patch("core.cache.CacheClient.health", return_value={"status": "unhealthy", "error": "refused"}):
            resp = self.client.get(reverse("health"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "degraded")

    def test_unhealthy_when_database_is_down(self):
        with mock.patch("core.views.check_database", return_value={"status": "unhealthy", "error": "gone"}):
            resp = self.client.get(reverse("health"))
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["status"], "unhealthy")
