import threading
import uuid
from unittest import mock

from django.db import OperationalError, connection
from django.test import TestCase, TransactionTestCase, override_settings
from django.urls import reverse
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient, APITestCase

from chat.models import ChatRoom
from core.exceptions import (
    AlreadyAssigned,
    AlreadyResponded,
    CaseNotFound,
    CaseNotOpen,
    ChatAlreadyProvisioned,
    DuplicateRequest,
    InternalError,
    LawyerNotFound,
    NotAuthorized,
    RequestNotFound,
)
from notifications.models import Notification
from users.models import User
from users.tests import make_user

from . import ledger, resolver, services
from .models import Case, CaseEvent, MatchEntry


def make_case(owner, case_type=Case.TYPE_QUERY, **extra):
    fields = {
        "title": "Unpaid wages",
        "description": "Employer has not paid salary for three months.",
        "category": "employment",
    }
    fields.update(extra)
    return Case.objects.create(case_type=case_type, created_by=owner, **fields)


class LedgerTests(TestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.other_citizen = make_user("other")
        self.l1 = make_user("lawyer1", User.ROLE_LAWYER, verified=True)
        self.l2 = make_user("lawyer2", User.ROLE_LAWYER, verified=True)
        self.pending_lawyer = make_user("pending", User.ROLE_LAWYER, verified=False)
        self.case = make_case(self.citizen)

    def test_offer_appends_pending_entry_and_notifies_citizen(self):
        entry = ledger.create_offer(self.case.pk, self.l1, proposed_fee="1500.00", estimated_duration="2 weeks")

        self.assertEqual(entry.kind, MatchEntry.KIND_OFFER)
        self.assertEqual(entry.status, MatchEntry.STATUS_PENDING)
        self.assertEqual(entry.message, "I would like to help you with this query")
        self.assertTrue(Notification.objects.filter(user=self.citizen, kind="case_offer").exists())
        self.assertTrue(CaseEvent.objects.filter(case=self.case, action="offer_sent").exists())

    def test_request_appends_pending_entry_and_notifies_lawyer(self):
        entry = ledger.create_request(self.case.pk, self.citizen, self.l1.pk, message="Please help")

        self.assertEqual(entry.kind, MatchEntry.KIND_REQUEST)
        self.assertEqual(entry.lawyer, self.l1)
        self.assertTrue(Notification.objects.filter(user=self.l1, kind="case_request").exists())

    def test_unknown_case(self):
        with self.assertRaises(CaseNotFound):
            ledger.create_offer(999999, self.l1)

    def test_request_only_for_own_case(self):
        with self.assertRaises(NotAuthorized):
            ledger.create_request(self.case.pk, self.other_citizen, self.l1.pk)

    def test_request_needs_verified_lawyer(self):
        with self.assertRaises(LawyerNotFound):
            ledger.create_request(self.case.pk, self.citizen, self.pending_lawyer.pk)
        with self.assertRaises(LawyerNotFound):
            ledger.create_request(self.case.pk, self.citizen, self.other_citizen.pk)

    def test_duplicate_active_entry(self):
        ledger.create_offer(self.case.pk, self.l1)
        with self.assertRaises(DuplicateRequest):
            ledger.create_offer(self.case.pk, self.l1)
        self.assertEqual(self.case.entries.count(), 1)

    def test_lawyer_may_offer_again_after_rejection(self):
        first = ledger.create_offer(self.case.pk, self.l1)
        ledger.respond(first.pk, self.citizen, ledger.REJECT)

        second = ledger.create_offer(self.case.pk, self.l1)
        self.assertNotEqual(first.pk, second.pk)

    def test_closed_case_rejects_append_without_side_effects(self):
        Case.objects.filter(pk=self.case.pk).update(status=Case.STATUS_CLOSED)

        with self.assertRaises(CaseNotOpen) as ctx:
            ledger.create_offer(self.case.pk, self.l1)
        self.assertEqual(ctx.exception.data, {"status": "closed"})
        self.assertFalse(self.case.entries.exists())
        self.assertFalse(Notification.objects.exists())

    def test_assigned_case_is_not_open(self):
        Case.objects.filter(pk=self.case.pk).update(assigned_lawyer=self.l2)
        with self.assertRaises(CaseNotOpen):
            ledger.create_request(self.case.pk, self.citizen, self.l1.pk)

    def test_respond_checks(self):
        offer = ledger.create_offer(self.case.pk, self.l1)

        with self.assertRaises(ValidationError):
            ledger.respond(offer.pk, self.citizen, "maybe")
        with self.assertRaises(RequestNotFound):
            ledger.respond(uuid.uuid4(), self.citizen, ledger.ACCEPT)
        # offers are answered by the case's citizen, not by lawyers
        with self.assertRaises(NotAuthorized):
            ledger.respond(offer.pk, self.l1, ledger.ACCEPT)
        with self.assertRaises(NotAuthorized):
            ledger.respond(offer.pk, self.other_citizen, ledger.ACCEPT)

    def test_reject_then_respond_again(self):
        offer = ledger.create_offer(self.case.pk, self.l1)
        outcome = ledger.respond(offer.pk, self.citizen, ledger.REJECT, "Found someone closer")

        self.assertEqual(outcome.entry.status, MatchEntry.STATUS_REJECTED)
        self.assertEqual(outcome.entry.response, "Found someone closer")
        self.assertIsNotNone(outcome.entry.responded_at)
        self.assertTrue(Notification.objects.filter(user=self.l1, kind="request_rejected").exists())

        with self.assertRaises(AlreadyResponded):
            ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)

        self.case.refresh_from_db()
        self.assertIsNone(self.case.assigned_lawyer)

    def test_lawyer_accepts_request(self):
        request = ledger.create_request(self.case.pk, self.citizen, self.l1.pk)
        outcome = ledger.respond(request.pk, self.l1, ledger.ACCEPT)

        self.assertEqual(outcome.case.assigned_lawyer, self.l1)
        self.assertEqual(outcome.chat_id, f"query_{self.case.pk}")
        self.assertTrue(
            Notification.objects.filter(user=self.citizen, kind="assignment", data__chatId=outcome.chat_id).exists()
        )


class AssignmentTests(TestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.l1 = make_user("lawyer1", User.ROLE_LAWYER, verified=True)
        self.l2 = make_user("lawyer2", User.ROLE_LAWYER, verified=True)
        self.l3 = make_user("lawyer3", User.ROLE_LAWYER, verified=True)
        self.case = make_case(self.citizen)

    def test_accepting_one_offer_assigns_case_and_rejects_the_rest(self):
        o1 = ledger.create_offer(self.case.pk, self.l1)
        o2 = ledger.create_offer(self.case.pk, self.l2)
        r3 = ledger.create_request(self.case.pk, self.citizen, self.l3.pk)

        outcome = ledger.respond(o1.pk, self.citizen, ledger.ACCEPT)

        self.case.refresh_from_db()
        self.assertEqual(self.case.status, Case.STATUS_ASSIGNED)
        self.assertEqual(self.case.assigned_lawyer, self.l1)
        self.assertEqual(self.case.chat_id, f"query_{self.case.pk}")
        self.assertEqual(self.case.chat_room, {"chatId": f"query_{self.case.pk}"})

        o1.refresh_from_db()
        o2.refresh_from_db()
        r3.refresh_from_db()
        self.assertEqual(o1.status, MatchEntry.STATUS_ACCEPTED)
        self.assertEqual(o2.status, MatchEntry.STATUS_REJECTED)
        self.assertEqual(r3.status, MatchEntry.STATUS_REJECTED)
        self.assertEqual(o2.response, resolver.AUTO_REJECT_RESPONSE)
        self.assertEqual({pk for pk, _, _ in outcome.rejected}, {o2.pk, r3.pk})

        self.assertEqual(self.case.entries.filter(status=MatchEntry.STATUS_ACCEPTED).count(), 1)
        self.assertTrue(Notification.objects.filter(user=self.l1, kind="assignment").exists())
        self.assertTrue(Notification.objects.filter(user=self.l2, kind="request_rejected").exists())

    def test_dispute_chat_id(self):
        dispute = make_case(self.citizen, Case.TYPE_DISPUTE, dispute_value="50000.00")
        offer = ledger.create_offer(dispute.pk, self.l1)
        outcome = ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)
        self.assertEqual(outcome.chat_id, f"dispute_{dispute.pk}")

    def test_case_room_opened_with_both_parties(self):
        offer = ledger.create_offer(self.case.pk, self.l1)
        ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)

        room = ChatRoom.objects.get(chat_id=f"query_{self.case.pk}")
        self.assertEqual(room.status, ChatRoom.STATUS_ACTIVE)
        self.assertEqual(room.case, self.case)
        self.assertEqual(set(room.participants.values_list("pk", flat=True)), {self.citizen.pk, self.l1.pk})

    def test_losing_accept_gets_already_assigned(self):
        o1 = ledger.create_offer(self.case.pk, self.l1)
        o2 = ledger.create_offer(self.case.pk, self.l2)

        resolver.finalize(self.case.pk, o1.pk, actor=self.citizen)
        # a concurrent accept that read o2 before the first one committed
        with self.assertRaises(AlreadyAssigned):
            resolver.finalize(self.case.pk, o2.pk, actor=self.citizen)

        self.case.refresh_from_db()
        self.assertEqual(self.case.assigned_lawyer, self.l1)

    def test_claim_is_conditional_on_unassigned_case(self):
        offer = ledger.create_offer(self.case.pk, self.l1)

        # another transaction assigns the case between our lock and our update
        real_filter = Case.objects.filter

        def racing_filter(*args, **kwargs):
            if kwargs.get("assigned_lawyer__isnull"):
                Case.objects.filter(pk=self.case.pk).update(assigned_lawyer=self.l2)
            return real_filter(*args, **kwargs)

        with mock.patch.object(Case.objects, "filter", side_effect=racing_filter):
            with self.assertRaises(AlreadyAssigned):
                resolver.finalize(self.case.pk, offer.pk, actor=self.citizen)

        offer.refresh_from_db()
        self.assertEqual(offer.status, MatchEntry.STATUS_PENDING)

    def test_failed_provisioning_leaves_entry_pending(self):
        offer = ledger.create_offer(self.case.pk, self.l1)
        Case.objects.filter(pk=self.case.pk).update(chat_id="legacy_chat")

        with self.assertRaises(ChatAlreadyProvisioned):
            ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)

        offer.refresh_from_db()
        self.case.refresh_from_db()
        self.assertEqual(offer.status, MatchEntry.STATUS_PENDING)
        self.assertIsNone(self.case.assigned_lawyer)
        self.assertFalse(ChatRoom.objects.exists())

    @override_settings(ASSIGNMENT_MAX_RETRIES=3, ASSIGNMENT_RETRY_DELAYS=[0, 0, 0])
    def test_transient_errors_are_retried(self):
        offer = ledger.create_offer(self.case.pk, self.l1)
        real = resolver._finalize_once
        calls = []

        def flaky(*args):
            calls.append(args)
            if len(calls) == 1:
                raise OperationalError("database is locked")
            return real(*args)

        with mock.patch("cases.resolver._finalize_once", side_effect=flaky):
            assignment = resolver.finalize(self.case.pk, offer.pk, actor=self.citizen)

        self.assertEqual(len(calls), 2)
        self.assertEqual(assignment.case.assigned_lawyer, self.l1)

    @override_settings(ASSIGNMENT_MAX_RETRIES=2, ASSIGNMENT_RETRY_DELAYS=[0])
    def test_exhausted_retries_raise_internal(self):
        offer = ledger.create_offer(self.case.pk, self.l1)

        with mock.patch("cases.resolver._finalize_once", side_effect=OperationalError("database is locked")):
            with self.assertLogs("cases.resolver", level="ERROR"):
                with self.assertRaises(InternalError):
                    resolver.finalize(self.case.pk, offer.pk, actor=self.citizen)

        offer.refresh_from_db()
        self.assertEqual(offer.status, MatchEntry.STATUS_PENDING)

    def test_cancelling_closes_out_pending_entries(self):
        offer = ledger.create_offer(self.case.pk, self.l1)
        request = ledger.create_request(self.case.pk, self.citizen, self.l2.pk)

        services.change_status(self.case.pk, self.citizen, Case.STATUS_CANCELLED)

        for entry in (offer, request):
            entry.refresh_from_db()
            self.assertEqual(entry.status, MatchEntry.STATUS_REJECTED)
            self.assertIsNotNone(entry.responded_at)
        self.assertTrue(Notification.objects.filter(user=self.l2, kind="request_rejected").exists())

        with self.assertRaises(AlreadyResponded):
            ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)

        self.case.refresh_from_db()
        self.assertEqual(self.case.status, Case.STATUS_CANCELLED)
        self.assertIsNone(self.case.assigned_lawyer)
        self.assertFalse(ChatRoom.objects.exists())

    def test_closing_from_pending_closes_out_entries(self):
        offer = ledger.create_offer(self.case.pk, self.l1)
        services.change_status(self.case.pk, self.citizen, Case.STATUS_CLOSED)

        offer.refresh_from_db()
        self.assertEqual(offer.status, MatchEntry.STATUS_REJECTED)
        self.assertIn("closed", offer.response)

    def test_resolver_refuses_a_case_that_is_no_longer_open(self):
        offer = ledger.create_offer(self.case.pk, self.l1)
        Case.objects.filter(pk=self.case.pk).update(status=Case.STATUS_CANCELLED)

        with self.assertRaises(CaseNotOpen):
            resolver.finalize(self.case.pk, offer.pk, actor=self.citizen)

        self.case.refresh_from_db()
        offer.refresh_from_db()
        self.assertEqual(self.case.status, Case.STATUS_CANCELLED)
        self.assertIsNone(self.case.chat_id)
        self.assertEqual(offer.status, MatchEntry.STATUS_PENDING)
        self.assertFalse(ChatRoom.objects.exists())

    def test_failed_announcement_rolls_back_the_assignment(self):
        offer = ledger.create_offer(self.case.pk, self.l1)
        ledger.create_offer(self.case.pk, self.l2)

        with mock.patch("cases.ledger.create_notification", side_effect=RuntimeError("mail queue down")):
            with self.assertRaises(RuntimeError):
                ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)

        self.case.refresh_from_db()
        self.assertIsNone(self.case.assigned_lawyer)
        self.assertEqual(self.case.status, Case.STATUS_PENDING)
        self.assertEqual(self.case.entries.filter(status=MatchEntry.STATUS_PENDING).count(), 2)
        self.assertFalse(ChatRoom.objects.exists())
        self.assertFalse(CaseEvent.objects.filter(case=self.case, action="assigned").exists())
        self.assertFalse(Notification.objects.filter(kind="assignment").exists())

        outcome = ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)
        self.assertEqual(outcome.case.assigned_lawyer, self.l1)


class ConcurrentAcceptTests(TransactionTestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.l1 = make_user("lawyer1", User.ROLE_LAWYER, verified=True)
        self.l2 = make_user("lawyer2", User.ROLE_LAWYER, verified=True)
        self.case = make_case(self.citizen)
        self.offer = ledger.create_offer(self.case.pk, self.l1)
        self.request = ledger.create_request(self.case.pk, self.citizen, self.l2.pk)

    @override_settings(ASSIGNMENT_MAX_RETRIES=10, ASSIGNMENT_RETRY_DELAYS=[0.05, 0.1, 0.2, 0.4])
    def test_simultaneous_accepts_have_exactly_one_winner(self):
        # both accepts pass the ledger checks before either reaches the resolver
        both_in = threading.Barrier(2)
        entered = set()
        real = resolver._finalize_once

        def gated(*args):
            if threading.get_ident() not in entered:
                entered.add(threading.get_ident())
                both_in.wait(timeout=10)
            return real(*args)

        responses = {}

        def accept(user, entry):
            client = APIClient()
            client.force_authenticate(user)
            try:
                responses[user.username] = client.post(reverse("request-accept", args=[entry.pk]), format="json")
            finally:
                connection.close()

        threads = [
            threading.Thread(target=accept, args=(self.citizen, self.offer)),
            threading.Thread(target=accept, args=(self.l2, self.request)),
        ]
        with mock.patch("cases.resolver._finalize_once", side_effect=gated):
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=30)

        self.assertEqual(sorted(r.status_code for r in responses.values()), [200, 409])
        loser = next(r for r in responses.values() if r.status_code == 409)
        self.assertEqual(loser.data["code"], "ALREADY_ASSIGNED")

        winner_lawyer = self.l1 if responses["citizen"].status_code == 200 else self.l2
        self.case.refresh_from_db()
        self.assertEqual(self.case.assigned_lawyer, winner_lawyer)
        self.assertEqual(self.case.entries.filter(status=MatchEntry.STATUS_ACCEPTED).count(), 1)
        self.assertEqual(self.case.entries.filter(status=MatchEntry.STATUS_PENDING).count(), 0)
        self.assertEqual(ChatRoom.objects.filter(chat_id=f"query_{self.case.pk}").count(), 1)

class CaseApiTests(APITestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.other_citizen = make_user("other")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        self.lawyer2 = make_user("lawyer2", User.ROLE_LAWYER, verified=True)
        self.pending_lawyer = make_user("pending", User.ROLE_LAWYER, verified=False)
        self.case = make_case(self.citizen)

    def test_citizen_creates_case(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.post(reverse("case-list"), {
            "case_type": "dispute",
            "title": "Deposit not returned",
            "description": "Landlord kept the deposit.",
            "category": "landlord-tenant",
            "dispute_value": "20000.00",
        }, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["case"]["status"], "pending")
        self.assertIsNone(resp.data["case"]["chatRoom"])
        self.assertTrue(CaseEvent.objects.filter(case_id=resp.data["case"]["id"], action="created").exists())

    def test_lawyer_cannot_create_case(self):
        self.client.force_authenticate(self.lawyer)
        resp = self.client.post(reverse("case-list"), {}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "ROLE_REQUIRED")

    def test_unauthenticated_offer(self):
        resp = self.client.post(reverse("case-offer-create", args=[self.case.pk]), {}, format="json")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.data["code"], "UNAUTHENTICATED")

    def test_unverified_lawyer_offer_is_rejected(self):
        self.client.force_authenticate(self.pending_lawyer)
        resp = self.client.post(reverse("case-offer-create", args=[self.case.pk]), {}, format="json")

        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "LAWYER_NOT_VERIFIED")
        self.assertEqual(resp.data["data"]["verificationStatus"], "pending")
        self.assertFalse(self.case.entries.exists())

    def test_deactivated_lawyer_offer_is_rejected(self):
        self.lawyer.is_active = False
        self.lawyer.save()
        self.client.force_authenticate(self.lawyer)
        resp = self.client.post(reverse("case-offer-create", args=[self.case.pk]), {}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "ACCOUNT_DEACTIVATED")

    def test_citizen_cannot_offer(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.post(reverse("case-offer-create", args=[self.case.pk]), {}, format="json")
        self.assertEqual(resp.data["code"], "ROLE_REQUIRED")

    def test_offer_status_codes(self):
        self.client.force_authenticate(self.lawyer)
        url = reverse("case-offer-create", args=[self.case.pk])

        resp = self.client.post(url, {"message": "Happy to help", "proposed_fee": "2000"}, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["request"]["status"], "pending")

        resp = self.client.post(url, {}, format="json")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["code"], "DUPLICATE_REQUEST")

        resp = self.client.post(reverse("case-offer-create", args=[999999]), {}, format="json")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], "CASE_NOT_FOUND")

    def test_offer_on_closed_case(self):
        Case.objects.filter(pk=self.case.pk).update(status=Case.STATUS_CANCELLED)
        self.client.force_authenticate(self.lawyer)
        resp = self.client.post(reverse("case-offer-create", args=[self.case.pk]), {}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "CASE_NOT_OPEN")

    def test_request_flow(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.post(
            reverse("case-request-create", args=[self.case.pk]), {"lawyer_id": self.lawyer.pk}, format="json"
        )
        self.assertEqual(resp.status_code, 201)
        request_id = resp.data["request"]["requestId"]

        # a citizen cannot answer a request; only the requested lawyer can
        self.client.force_authenticate(self.other_citizen)
        resp = self.client.post(reverse("request-accept", args=[request_id]), format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "NOT_AUTHORIZED")

        self.client.force_authenticate(self.lawyer)
        resp = self.client.post(reverse("request-accept", args=[request_id]), {"response": "On it"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["chatId"], f"query_{self.case.pk}")
        self.assertEqual(resp.data["case"]["chatRoom"], {"chatId": f"query_{self.case.pk}"})

        resp = self.client.post(reverse("request-reject", args=[request_id]), format="json")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["code"], "ALREADY_RESPONDED")

    def test_request_for_someone_elses_case(self):
        self.client.force_authenticate(self.other_citizen)
        resp = self.client.post(
            reverse("case-request-create", args=[self.case.pk]), {"lawyer_id": self.lawyer.pk}, format="json"
        )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "NOT_AUTHORIZED")

    def test_unknown_request(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.post(reverse("request-accept", args=[uuid.uuid4()]), format="json")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], "REQUEST_NOT_FOUND")

    def test_accept_offer_over_api(self):
        o1 = ledger.create_offer(self.case.pk, self.lawyer)
        o2 = ledger.create_offer(self.case.pk, self.lawyer2)

        self.client.force_authenticate(self.citizen)
        resp = self.client.post(reverse("request-accept", args=[o1.pk]), format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["request"]["status"], "accepted")

        resp = self.client.post(reverse("request-accept", args=[o2.pk]), format="json")
        self.assertEqual(resp.status_code, 409)

    def test_reject_offer_over_api(self):
        offer = ledger.create_offer(self.case.pk, self.lawyer)
        self.client.force_authenticate(self.citizen)
        resp = self.client.post(reverse("request-reject", args=[offer.pk]), {"response": "No thanks"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["request"]["status"], "rejected")
        self.assertNotIn("chatId", resp.data)

    def test_inbox_and_outbox(self):
        offer = ledger.create_offer(self.case.pk, self.lawyer)
        request = ledger.create_request(self.case.pk, self.citizen, self.lawyer2.pk)

        self.client.force_authenticate(self.citizen)
        inbox = self.client.get(reverse("request-inbox")).data["results"]
        outbox = self.client.get(reverse("request-outbox")).data["results"]
        self.assertEqual([e["requestId"] for e in inbox], [str(offer.pk)])
        self.assertEqual([e["requestId"] for e in outbox], [str(request.pk)])

        self.client.force_authenticate(self.lawyer2)
        inbox = self.client.get(reverse("request-inbox")).data["results"]
        self.assertEqual([e["requestId"] for e in inbox], [str(request.pk)])

    def test_case_entries_visibility(self):
        ledger.create_offer(self.case.pk, self.lawyer)
        ledger.create_offer(self.case.pk, self.lawyer2)

        self.client.force_authenticate(self.citizen)
        self.assertEqual(len(self.client.get(reverse("case-entries", args=[self.case.pk])).data), 2)

        self.client.force_authenticate(self.lawyer)
        self.assertEqual(len(self.client.get(reverse("case-entries", args=[self.case.pk])).data), 1)

        self.client.force_authenticate(self.other_citizen)
        resp = self.client.get(reverse("case-entries", args=[self.case.pk]))
        self.assertEqual(resp.status_code, 403)

    def test_case_list_by_role(self):
        make_case(self.other_citizen)

        self.client.force_authenticate(self.citizen)
        resp = self.client.get(reverse("case-list"))
        self.assertEqual([c["id"] for c in resp.data["results"]], [self.case.pk])

        self.client.force_authenticate(self.lawyer)
        self.assertEqual(self.client.get(reverse("case-list")).data["count"], 0)
        self.assertEqual(self.client.get(reverse("case-list"), {"available": "1"}).data["count"], 2)

        self.client.force_authenticate(self.pending_lawyer)
        resp = self.client.get(reverse("case-list"), {"available": "1"})
        self.assertEqual(resp.data["code"], "LAWYER_NOT_VERIFIED")

    def test_case_detail_access(self):
        self.client.force_authenticate(self.lawyer)
        resp = self.client.get(reverse("case-detail", args=[self.case.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["timeline"], [])

        self.client.force_authenticate(self.other_citizen)
        resp = self.client.get(reverse("case-detail", args=[self.case.pk]))
        self.assertEqual(resp.status_code, 403)


class CaseStatusTests(APITestCase):
    def setUp(self):
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        self.case = make_case(self.citizen)

    def _patch(self, user, new_status, **extra):
        self.client.force_authenticate(user)
        return self.client.patch(
            reverse("case-status", args=[self.case.pk]), {"status": new_status, **extra}, format="json"
        )

    def _assign(self):
        offer = ledger.create_offer(self.case.pk, self.lawyer)
        ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)

    def test_cannot_set_assigned_by_hand(self):
        resp = self._patch(self.citizen, "assigned")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "VALIDATION_FAILED")

    def test_progress_requires_lawyer(self):
        resp = self._patch(self.citizen, "in-progress")
        self.assertEqual(resp.status_code, 400)

    def test_cancel_open_case(self):
        resp = self._patch(self.citizen, "cancelled")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["case"]["status"], "cancelled")

        resp = self._patch(self.citizen, "closed")
        self.assertEqual(resp.status_code, 400)

    def test_mediation_is_dispute_only(self):
        self._assign()
        resp = self._patch(self.lawyer, "mediation")
        self.assertEqual(resp.status_code, 400)

    def test_assigned_lawyer_resolves(self):
        self._assign()
        resp = self._patch(self.lawyer, "in-progress")
        self.assertEqual(resp.status_code, 200)

        resp = self._patch(self.lawyer, "resolved", resolution_summary="Settled with employer")
        self.assertEqual(resp.status_code, 200)

        self.case.refresh_from_db()
        self.assertEqual(self.case.resolved_by, self.lawyer)
        self.assertIsNotNone(self.case.resolved_at)
        self.assertEqual(self.case.resolution_summary, "Settled with employer")
        self.assertTrue(Notification.objects.filter(user=self.citizen, kind="case_status").exists())
        self.assertEqual(
            list(self.case.timeline.values_list("action", flat=True)),
            ["offer_sent", "assigned", "status_changed", "status_changed"],
        )

    def test_assigned_case_cannot_be_cancelled(self):
        self._assign()
        resp = self._patch(self.citizen, "cancelled")
        self.assertEqual(resp.status_code, 400)

    def test_outsider_cannot_change_status(self):
        outsider = make_user("outsider")
        resp = self._patch(outsider, "cancelled")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "NOT_AUTHORIZED")
