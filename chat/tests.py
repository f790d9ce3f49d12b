from unittest import mock

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework.throttling import SimpleRateThrottle

from cases import ledger
from cases.tests import make_case
from core.exceptions import ChatAlreadyProvisioned
from notifications.models import Notification
from users.models import LawyerProfile, User
from users.tests import make_user

from .models import ChatRoom, DirectConnection, Message
from .provisioning import channel_id, direct_channel_id, open_case_room, provision


class ProvisioningTests(SimpleTestCase):
    def test_channel_id_is_derived_from_case(self):
        self.assertEqual(channel_id("query", 42), "query_42")
        self.assertEqual(provision("dispute", 7), "dispute_7")

    def test_provision_is_idempotent(self):
        self.assertEqual(provision("query", 42, existing="query_42"), "query_42")

    def test_provision_refuses_a_different_existing_id(self):
        with self.assertRaises(ChatAlreadyProvisioned):
            provision("query", 42, existing="query_41")

    def test_direct_channel_id_is_order_independent(self):
        self.assertEqual(direct_channel_id(9, 3), "direct_3_9")
        self.assertEqual(direct_channel_id(3, 9), "direct_3_9")


class CaseRoomTests(TestCase):
    def test_open_case_room_twice_keeps_one_room(self):
        citizen = make_user("citizen")
        lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        offer = ledger.create_offer(make_case(citizen).pk, lawyer)
        outcome = ledger.respond(offer.pk, citizen, ledger.ACCEPT)

        again = open_case_room(outcome.case)
        self.assertEqual(ChatRoom.objects.count(), 1)
        self.assertEqual(again.memberships.count(), 2)


class ChatApiTests(APITestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        self.outsider = make_user("outsider")
        self.case = make_case(self.citizen)
        offer = ledger.create_offer(self.case.pk, self.lawyer)
        self.chat_id = ledger.respond(offer.pk, self.citizen, ledger.ACCEPT).chat_id

    def test_my_rooms(self):
        self.client.force_authenticate(self.lawyer)
        resp = self.client.get(reverse("chat-rooms"))
        self.assertEqual([r["chatId"] for r in resp.data["results"]], [self.chat_id])

        self.client.force_authenticate(self.outsider)
        self.assertEqual(self.client.get(reverse("chat-rooms")).data["count"], 0)

    def test_post_and_list_messages(self):
        url = reverse("chat-messages", args=[self.chat_id])

        self.client.force_authenticate(self.citizen)
        resp = self.client.post(url, {"content": "  Hello, when can we talk?  "}, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["content"], "Hello, when can we talk?")

        self.client.force_authenticate(self.lawyer)
        resp = self.client.get(url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["results"][0]["sender_id"], self.citizen.pk)

        room = ChatRoom.objects.get(chat_id=self.chat_id)
        self.assertIsNotNone(room.last_message_at)
        self.assertIsNotNone(room.memberships.get(user=self.lawyer).last_read_at)

    def test_empty_message(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.post(reverse("chat-messages", args=[self.chat_id]), {"content": "   "}, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_outsider_cannot_read(self):
        self.client.force_authenticate(self.outsider)
        resp = self.client.get(reverse("chat-messages", args=[self.chat_id]))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "NOT_AUTHORIZED")

    def test_closed_room_is_read_only(self):
        ChatRoom.objects.filter(chat_id=self.chat_id).update(status=ChatRoom.STATUS_CLOSED)
        self.client.force_authenticate(self.citizen)
        resp = self.client.post(reverse("chat-messages", args=[self.chat_id]), {"content": "hi"}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(Message.objects.exists())

    def test_case_chat_lookup(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.get(reverse("case-chat", args=["query", self.case.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["chatId"], self.chat_id)

        unassigned = make_case(self.citizen)
        resp = self.client.get(reverse("case-chat", args=["query", unassigned.pk]))
        self.assertEqual(resp.status_code, 404)


class DirectConnectionTests(APITestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        self.pending_lawyer = make_user("pending", User.ROLE_LAWYER, verified=False)

    def _connect(self, lawyer):
        self.client.force_authenticate(self.citizen)
        return self.client.post(reverse("connection-create"), {"lawyer_id": lawyer.pk, "message": "Hi"}, format="json")

    def test_request_opens_pending_direct_room(self):
        resp = self._connect(self.lawyer)
        self.assertEqual(resp.status_code, 201)

        low, high = sorted([self.citizen.pk, self.lawyer.pk])
        self.assertEqual(resp.data["connection"]["chatId"], f"direct_{low}_{high}")
        room = ChatRoom.objects.get(chat_id=f"direct_{low}_{high}")
        self.assertEqual(room.status, ChatRoom.STATUS_PENDING)
        self.assertTrue(Notification.objects.filter(user=self.lawyer, kind="direct_connection").exists())

    def test_duplicate_pending_request(self):
        self._connect(self.lawyer)
        resp = self._connect(self.lawyer)
        self.assertEqual(resp.status_code, 409)

    def test_unverified_lawyer_not_found(self):
        resp = self._connect(self.pending_lawyer)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], "LAWYER_NOT_FOUND")

    def test_lawyer_accepts(self):
        connection_id = self._connect(self.lawyer).data["connection"]["id"]

        self.client.force_authenticate(self.lawyer)
        pending = self.client.get(reverse("connection-pending")).data["results"]
        self.assertEqual([c["id"] for c in pending], [connection_id])

        resp = self.client.post(reverse("connection-accept", args=[connection_id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["connection"]["status"], "accepted")

        connection = DirectConnection.objects.get(pk=connection_id)
        self.assertEqual(connection.room.status, ChatRoom.STATUS_ACTIVE)

        resp = self.client.post(reverse("connection-reject", args=[connection_id]))
        self.assertEqual(resp.status_code, 409)

        resp = self._connect(self.lawyer)
        self.assertEqual(resp.status_code, 409)

    def test_rejected_citizen_may_ask_again(self):
        connection_id = self._connect(self.lawyer).data["connection"]["id"]
        self.client.force_authenticate(self.lawyer)
        self.client.post(reverse("connection-reject", args=[connection_id]))

        resp = self._connect(self.lawyer)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(DirectConnection.objects.filter(status="pending").count(), 1)
        self.assertEqual(ChatRoom.objects.get().status, ChatRoom.STATUS_PENDING)

    def test_other_lawyer_cannot_answer(self):
        connection_id = self._connect(self.lawyer).data["connection"]["id"]
        other = make_user("other", User.ROLE_LAWYER, verified=True)
        self.client.force_authenticate(other)
        resp = self.client.post(reverse("connection-accept", args=[connection_id]))
        self.assertEqual(resp.status_code, 403)

    def test_unverified_lawyer_can_still_list_pending_connections(self):
        connection_id = self._connect(self.lawyer).data["connection"]["id"]
        User.objects.filter(pk=self.lawyer.pk).update(is_verified=False)
        LawyerProfile.objects.filter(user=self.lawyer).update(verification_status=LawyerProfile.STATUS_PENDING)

        self.client.force_authenticate(User.objects.get(pk=self.lawyer.pk))
        resp = self.client.get(reverse("connection-pending"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([c["id"] for c in resp.data["results"]], [connection_id])

        resp = self.client.post(reverse("connection-accept", args=[connection_id]))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "LAWYER_NOT_VERIFIED")

    def test_citizen_has_no_pending_connection_listing(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.get(reverse("connection-pending"))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "ROLE_REQUIRED")


class MessageThrottleTests(APITestCase):
    def setUp(self):
        cache.clear()
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        offer = ledger.create_offer(make_case(self.citizen).pk, self.lawyer)
        self.url = reverse("chat-messages", args=[ledger.respond(offer.pk, self.citizen, ledger.ACCEPT).chat_id])

    def test_posting_is_throttled_but_reading_is_not(self):
        self.client.force_authenticate(self.citizen)
        with mock.patch.dict(SimpleRateThrottle.THROTTLE_RATES, {"messages": "2/min"}):
            for n in range(2):
                self.assertEqual(self.client.post(self.url, {"content": f"msg {n}"}, format="json").status_code, 201)

            resp = self.client.post(self.url, {"content": "one too many"}, format="json")
            self.assertEqual(resp.status_code, 429)
            self.assertEqual(resp.data["code"], "THROTTLED")

            for _ in range(3):
                self.assertEqual(self.client.get(self.url).status_code, 200)

            # budgets are per user
            self.client.force_authenticate(self.lawyer)
            self.assertEqual(self.client.post(self.url, {"content": "reply"}, format="json").status_code, 201)

        self.assertEqual(Message.objects.count(), 3)

    def test_connection_requests_are_throttled(self):
        other = make_user("lawyer2", User.ROLE_LAWYER, verified=True)
        self.client.force_authenticate(self.citizen)
        with mock.patch.dict(SimpleRateThrottle.THROTTLE_RATES, {"connections": "1/min"}):
            resp = self.client.post(reverse("connection-create"), {"lawyer_id": other.pk}, format="json")
            self.assertEqual(resp.status_code, 201)
            resp = self.client.post(reverse("connection-create"), {"lawyer_id": self.lawyer.pk}, format="json")
        self.assertEqual(resp.status_code, 429)
