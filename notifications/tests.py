from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework.test import APITestCase

from users.models import User
from users.tests import make_user

from .models import ActivityLog, Notification
from .serializers import activity_type
from .utils import create_notification, log_activity


class ActivityTypeTests(SimpleTestCase):
    def test_keywords(self):
        self.assertEqual(activity_type("User logged in"), "auth")
        self.assertEqual(activity_type("Sent offer"), "match")
        self.assertEqual(activity_type("Accepted request"), "match")
        self.assertEqual(activity_type("Uploaded document"), "document")
        self.assertEqual(activity_type("Opened direct chat"), "chat")
        self.assertEqual(activity_type("Updated case status"), "case")
        self.assertEqual(activity_type("Something else"), "other")


class NotificationApiTests(APITestCase):
    def setUp(self):
        self.user = make_user("citizen")
        self.other = make_user("other")
        self.first = create_notification(self.user, "First", kind="case_offer", data={"caseId": 1})
        self.second = create_notification(self.user, "Second")
        create_notification(self.other, "Not yours")
        self.client.force_authenticate(self.user)

    def test_list_own_notifications(self):
        resp = self.client.get(reverse("notifications"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["count"], 2)
        self.assertEqual(resp.data["unread_count"], 2)

    def test_mark_read_and_unread_filter(self):
        resp = self.client.patch(reverse("notification-read", args=[self.first.pk]))
        self.assertEqual(resp.status_code, 200)

        resp = self.client.get(reverse("notifications"), {"unread": "1"})
        self.assertEqual([n["id"] for n in resp.data["results"]], [self.second.pk])
        self.assertEqual(resp.data["unread_count"], 1)

    def test_cannot_touch_other_users_notifications(self):
        theirs = Notification.objects.get(user=self.other)
        self.assertEqual(self.client.patch(reverse("notification-read", args=[theirs.pk])).status_code, 404)
        self.assertEqual(self.client.delete(reverse("notification-delete", args=[theirs.pk])).status_code, 404)

    def test_mark_all(self):
        resp = self.client.patch(reverse("notification-read-all"))
        self.assertEqual(resp.data["updated"], 2)
        self.assertFalse(Notification.objects.filter(user=self.user, is_read=False).exists())

    def test_delete(self):
        resp = self.client.delete(reverse("notification-delete", args=[self.first.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Notification.objects.filter(pk=self.first.pk).exists())


class ActivityLogApiTests(APITestCase):
    def setUp(self):
        self.user = make_user("citizen")
        self.admin = make_user("admin", User.ROLE_ADMIN)
        log_activity(self.user, "User logged in")
        log_activity(self.user, "Sent lawyer request", {"case_id": 1})
        log_activity(self.admin, "Updated lawyer verification")

    def test_users_see_their_own_logs_filtered_by_type(self):
        self.client.force_authenticate(self.user)
        resp = self.client.get(reverse("activity-logs"))
        self.assertEqual(resp.data["count"], 2)

        resp = self.client.get(reverse("activity-logs"), {"type": "match"})
        self.assertEqual([log["action"] for log in resp.data["results"]], ["Sent lawyer request"])
        self.assertEqual(resp.data["results"][0]["type"], "match")

    def test_unknown_type(self):
        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.get(reverse("activity-logs"), {"type": "billing"}).data["count"], 0)

    def test_admin_sees_everything(self):
        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.get(reverse("activity-logs")).data["count"], ActivityLog.objects.count())
