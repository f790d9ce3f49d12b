from datetime import timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from cases import ledger
from cases.tests import make_case
from notifications.models import Notification
from users.models import User
from users.tests import make_user

from . import services
from .models import Call


class CallApiTests(APITestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        self.outsider = make_user("outsider")
        offer = ledger.create_offer(make_case(self.citizen).pk, self.lawyer)
        self.chat_id = ledger.respond(offer.pk, self.citizen, ledger.ACCEPT).chat_id

    def _initiate(self, caller=None, target=None, call_type="video"):
        self.client.force_authenticate(caller or self.citizen)
        return self.client.post(
            reverse("call-initiate"),
            {"target_user_id": (target or self.lawyer).pk, "call_type": call_type, "chat_id": self.chat_id},
            format="json",
        )

    def _patch(self, user, call_id, op, **body):
        self.client.force_authenticate(user)
        return self.client.patch(reverse(f"call-{op}", args=[call_id]), body, format="json")

    def test_initiate_notifies_the_callee(self):
        resp = self._initiate()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["call"]["status"], Call.STATUS_INITIATED)
        self.assertEqual(len(resp.data["call"]["participants"]), 2)
        self.assertTrue(Notification.objects.filter(user=self.lawyer, kind="call").exists())

    def test_target_must_be_in_the_chat(self):
        resp = self._initiate(target=self.outsider)
        self.assertEqual(resp.status_code, 404)

    def test_answer_then_end_records_duration(self):
        call_id = self._initiate().data["call"]["callId"]

        resp = self._patch(self.lawyer, call_id, "answer")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["call"]["status"], Call.STATUS_ANSWERED)

        Call.objects.filter(call_id=call_id).update(answered_at=timezone.now() - timedelta(seconds=90))
        resp = self._patch(self.citizen, call_id, "end")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["call"]["status"], Call.STATUS_ENDED)
        self.assertEqual(resp.data["call"]["end_reason"], "completed")
        self.assertGreaterEqual(resp.data["call"]["duration"], 90)

        resp = self._patch(self.citizen, call_id, "end")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "INVALID_CALL_STATE")

    def test_caller_cannot_answer_own_call(self):
        call_id = self._initiate().data["call"]["callId"]
        resp = self._patch(self.citizen, call_id, "answer")
        self.assertEqual(resp.data["code"], "INVALID_CALL_STATE")

    def test_second_call_while_busy(self):
        self._initiate()
        resp = self._initiate(caller=self.lawyer, target=self.citizen, call_type="voice")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["code"], "CALL_BUSY")

    def test_reject(self):
        call_id = self._initiate().data["call"]["callId"]
        resp = self._patch(self.lawyer, call_id, "reject")
        self.assertEqual(resp.data["call"]["status"], Call.STATUS_REJECTED)
        self.assertEqual(resp.data["call"]["duration"], 0)

        resp = self._patch(self.lawyer, call_id, "answer")
        self.assertEqual(resp.status_code, 400)

    def test_hanging_up_before_answer_is_a_missed_call(self):
        call_id = self._initiate().data["call"]["callId"]
        Notification.objects.all().delete()

        resp = self._patch(self.citizen, call_id, "end")
        self.assertEqual(resp.data["call"]["status"], Call.STATUS_MISSED)
        self.assertEqual(resp.data["call"]["end_reason"], "missed")
        self.assertEqual(Notification.objects.get(kind="call").user, self.lawyer)

    def test_outsider_cannot_see_or_touch_the_call(self):
        call_id = self._initiate().data["call"]["callId"]

        self.client.force_authenticate(self.outsider)
        resp = self.client.get(reverse("call-detail", args=[call_id]))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self._patch(self.outsider, call_id, "end").status_code, 403)

    def test_unknown_call(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.get(reverse("call-detail", args=["00000000-0000-0000-0000-000000000000"]))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], "CALL_NOT_FOUND")

    def test_history_active_and_stats(self):
        first = self._initiate().data["call"]["callId"]
        self._patch(self.lawyer, first, "answer")
        Call.objects.filter(call_id=first).update(answered_at=timezone.now() - timedelta(seconds=60))
        self._patch(self.lawyer, first, "end")
        self._initiate(call_type="voice")

        self.client.force_authenticate(self.lawyer)
        resp = self.client.get(reverse("call-history"))
        self.assertEqual(resp.data["count"], 2)
        resp = self.client.get(reverse("call-history"), {"call_type": "voice"})
        self.assertEqual(resp.data["count"], 1)

        resp = self.client.get(reverse("call-active"))
        self.assertEqual([c["call_type"] for c in resp.data], ["voice"])

        stats = self.client.get(reverse("call-stats"), {"timeframe": "day"}).data["stats"]
        self.assertEqual(stats["totalCalls"], 2)
        self.assertEqual(stats["successfulCalls"], 1)
        self.assertEqual(stats["voiceCalls"], 1)
        self.assertEqual(stats["videoCalls"], 1)
        self.assertGreaterEqual(stats["totalDuration"], 60)
        self.assertEqual(stats["timeframe"], "day")

        self.client.force_authenticate(self.outsider)
        self.assertEqual(self.client.get(reverse("call-history")).data["count"], 0)


class RingTimeoutTests(APITestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        offer = ledger.create_offer(make_case(self.citizen).pk, self.lawyer)
        self.chat_id = ledger.respond(offer.pk, self.citizen, ledger.ACCEPT).chat_id

    def test_unanswered_call_expires_and_frees_both_users(self):
        call = services.initiate(self.citizen, self.lawyer.pk, Call.TYPE_VOICE, self.chat_id)
        Call.objects.filter(pk=call.pk).update(started_at=timezone.now() - timedelta(minutes=5))

        self.assertEqual(services.expire_unanswered(), 1)
        call.refresh_from_db()
        self.assertEqual(call.status, Call.STATUS_MISSED)
        self.assertEqual(call.end_reason, "timeout")

        again = services.initiate(self.lawyer, self.citizen.pk, Call.TYPE_VIDEO, self.chat_id)
        self.assertEqual(again.status, Call.STATUS_INITIATED)

    def test_recent_call_keeps_ringing(self):
        services.initiate(self.citizen, self.lawyer.pk, Call.TYPE_VOICE, self.chat_id)
        self.assertEqual(services.expire_unanswered(), 0)
