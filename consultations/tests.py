from datetime import timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from cases.tests import make_case
from notifications.models import ActivityLog, Notification
from users.models import User
from users.tests import make_user

from .models import Consultation


def _in(hours):
    return (timezone.now() + timedelta(hours=hours)).isoformat()


class ConsultationApiTests(APITestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        self.other_citizen = make_user("other")

    def _request(self, user=None, **overrides):
        body = {"lawyer_id": self.lawyer.pk, "scheduled_at": _in(24), "description": "Tenancy deposit"}
        body.update(overrides)
        self.client.force_authenticate(user or self.citizen)
        return self.client.post(reverse("consultation-request"), body, format="json")

    def _status(self, pk, new_status, user=None, **extra):
        self.client.force_authenticate(user or self.lawyer)
        return self.client.patch(
            reverse("consultation-status", args=[pk]), {"status": new_status, **extra}, format="json"
        )

    def test_request_notifies_the_lawyer(self):
        resp = self._request()
        self.assertEqual(resp.status_code, 201)
        consultation = resp.data["consultation"]
        self.assertEqual(consultation["status"], Consultation.STATUS_REQUESTED)
        self.assertEqual(consultation["duration_minutes"], 30)
        self.assertEqual(consultation["title"], "Consultation with Lawyer")
        self.assertTrue(Notification.objects.filter(user=self.lawyer, kind="consultation").exists())
        self.assertTrue(ActivityLog.objects.filter(user=self.citizen, action="Booked consultation").exists())

    def test_past_time_is_rejected(self):
        resp = self._request(scheduled_at=_in(-1))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("scheduled_at", resp.data["errors"])

    def test_unverified_lawyer_cannot_be_booked(self):
        pending = make_user("pending", User.ROLE_LAWYER)
        resp = self._request(lawyer_id=pending.pk)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], "LAWYER_NOT_FOUND")

    def test_lawyers_cannot_request(self):
        resp = self._request(user=self.lawyer)
        self.assertEqual(resp.status_code, 403)

    def test_case_must_belong_to_the_citizen(self):
        case = make_case(self.other_citizen)
        resp = self._request(case_id=case.pk)
        self.assertEqual(resp.status_code, 403)

        own = make_case(self.citizen)
        resp = self._request(case_id=own.pk)
        self.assertEqual(resp.data["consultation"]["case_id"], own.pk)

    def test_overlapping_slot_conflicts_once_scheduled(self):
        first = self._request(scheduled_at=_in(24)).data["consultation"]["id"]
        # plain requests do not block the calendar
        self.assertEqual(self._request(user=self.other_citizen).status_code, 201)

        self._status(first, Consultation.STATUS_SCHEDULED)
        when = timezone.now() + timedelta(hours=24, minutes=15)
        resp = self._request(user=self.other_citizen, scheduled_at=when.isoformat())
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["code"], "SCHEDULE_CONFLICT")

        later = timezone.now() + timedelta(hours=25)
        self.assertEqual(self._request(user=self.other_citizen, scheduled_at=later.isoformat()).status_code, 201)

    def test_confirm_generates_meeting_link(self):
        pk = self._request().data["consultation"]["id"]
        resp = self._status(pk, Consultation.STATUS_CONFIRMED, notes="Bring the lease")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.data["consultation"]["meeting_link"].endswith(f"/consultations/{pk}/room"))
        self.assertEqual(resp.data["consultation"]["lawyer_notes"], "Bring the lease")
        self.assertTrue(Notification.objects.filter(user=self.citizen, kind="consultation").exists())

    def test_only_the_consulting_lawyer_updates_status(self):
        pk = self._request().data["consultation"]["id"]
        other_lawyer = make_user("lawyer2", User.ROLE_LAWYER, verified=True)
        self.assertEqual(self._status(pk, Consultation.STATUS_CONFIRMED, user=other_lawyer).status_code, 403)
        self.assertEqual(self._status(pk, Consultation.STATUS_CONFIRMED, user=self.citizen).status_code, 403)

    def test_final_consultation_cannot_change(self):
        pk = self._request().data["consultation"]["id"]
        self._status(pk, Consultation.STATUS_COMPLETED)
        resp = self._status(pk, Consultation.STATUS_CONFIRMED)
        self.assertEqual(resp.status_code, 400)

    def test_either_party_can_cancel_with_notice(self):
        pk = self._request().data["consultation"]["id"]
        Notification.objects.all().delete()

        self.client.force_authenticate(self.lawyer)
        resp = self.client.patch(reverse("consultation-cancel", args=[pk]), {"reason": "Court hearing"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["consultation"]["status"], Consultation.STATUS_CANCELLED)
        self.assertEqual(resp.data["consultation"]["cancellation_reason"], "Court hearing")
        self.assertEqual(Notification.objects.get(kind="consultation").user, self.citizen)

    def test_cancel_inside_the_notice_window(self):
        pk = self._request(scheduled_at=_in(1)).data["consultation"]["id"]
        self.client.force_authenticate(self.citizen)
        resp = self.client.patch(reverse("consultation-cancel", args=[pk]), {}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "CANCELLATION_WINDOW_CLOSED")

    def test_list_and_detail_are_party_scoped(self):
        pk = self._request().data["consultation"]["id"]
        self._request(user=self.other_citizen, scheduled_at=_in(48))

        self.client.force_authenticate(self.citizen)
        self.assertEqual(self.client.get(reverse("consultation-list")).data["count"], 1)
        self.client.force_authenticate(self.lawyer)
        self.assertEqual(self.client.get(reverse("consultation-list")).data["count"], 2)
        resp = self.client.get(reverse("consultation-list"), {"status": Consultation.STATUS_CONFIRMED})
        self.assertEqual(resp.data["count"], 0)

        self.client.force_authenticate(self.other_citizen)
        self.assertEqual(self.client.get(reverse("consultation-detail", args=[pk])).status_code, 403)
        resp = self.client.get(reverse("consultation-detail", args=[9999]))
        self.assertEqual(resp.data["code"], "CONSULTATION_NOT_FOUND")

    def test_law_students_have_no_consultations(self):
        student = make_user("student", User.ROLE_LAW_STUDENT)
        self.client.force_authenticate(student)
        resp = self.client.get(reverse("consultation-list"))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "ROLE_REQUIRED")
