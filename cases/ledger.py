"""
Request/offer ledger.

Citizens request lawyers for their cases, lawyers offer to take open
cases, and the counterparty accepts or rejects. Entries only ever move
from pending to accepted or rejected; accepting hands over to the
assignment resolver.
"""

import logging
from dataclasses import dataclass, field

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.exceptions import (
    AlreadyResponded,
    CaseNotFound,
    CaseNotOpen,
    DuplicateRequest,
    LawyerNotFound,
    NotAuthorized,
    RequestNotFound,
)
from notifications.utils import create_notification, log_activity

from . import resolver
from .models import Case, CaseEvent, MatchEntry

logger = logging.getLogger(__name__)

User = get_user_model()

ACCEPT = "accept"
REJECT = "reject"


@dataclass
class Outcome:
    entry: MatchEntry
    case: Case
    chat_id: str = None
    rejected: list = field(default_factory=list)


def _lock_case(case_id):
    try:
        return Case.objects.select_for_update().get(pk=case_id)
    except Case.DoesNotExist:
        raise CaseNotFound()


def _ensure_open(case):
    if not case.is_open:
        raise CaseNotOpen(data={"status": case.status})


def _has_active_entry(case, lawyer_id, kind):
    return case.entries.filter(lawyer_id=lawyer_id, kind=kind).exclude(status=MatchEntry.STATUS_REJECTED).exists()


def _append(case, kind, lawyer_id, **fields):
    if _has_active_entry(case, lawyer_id, kind):
        raise DuplicateRequest(data={"lawyerId": lawyer_id})
    try:
        with transaction.atomic():
            return MatchEntry.objects.create(case=case, kind=kind, lawyer_id=lawyer_id, **fields)
    except IntegrityError:
        # lost a race with an identical insert
        raise DuplicateRequest(data={"lawyerId": lawyer_id})


def create_request(case_id, citizen, lawyer_id, message="", proposed_fee=None):
    """Citizen asks ``lawyer_id`` to take one of their open cases."""
    with transaction.atomic():
        case = _lock_case(case_id)
        if case.created_by_id != citizen.pk:
            raise NotAuthorized("You can only request lawyers for your own cases.")
        _ensure_open(case)

        lawyer = User.objects.filter(
            pk=lawyer_id,
            role=User.ROLE_LAWYER,
            is_active=True,
            is_verified=True,
        ).first()
        if lawyer is None:
            raise LawyerNotFound()

        entry = _append(
            case,
            MatchEntry.KIND_REQUEST,
            lawyer.pk,
            message=message or f"I would like to request your assistance with this {case.case_type}",
            proposed_fee=proposed_fee,
        )
        CaseEvent.objects.create(
            case=case,
            action="request_sent",
            description=f"Citizen requested lawyer {lawyer.pk}",
            performed_by=citizen,
        )
        create_notification(
            lawyer,
            f"New request to handle {case.case_type} '{case.title}'.",
            kind="case_request",
            data={"caseId": case.pk, "caseType": case.case_type, "requestId": str(entry.pk)},
        )
        log_activity(citizen, "Sent lawyer request", {"case_id": case.pk, "request_id": str(entry.pk)})

    logger.info("Citizen %s requested lawyer %s on case %s", citizen.pk, lawyer.pk, case.pk)
    return entry


def create_offer(case_id, lawyer, message="", proposed_fee=None, estimated_duration=""):
    """Verified lawyer offers to take an open case."""
    with transaction.atomic():
        case = _lock_case(case_id)
        _ensure_open(case)

        entry = _append(
            case,
            MatchEntry.KIND_OFFER,
            lawyer.pk,
            message=message or f"I would like to help you with this {case.case_type}",
            proposed_fee=proposed_fee,
            estimated_duration=estimated_duration or "",
        )
        CaseEvent.objects.create(
            case=case,
            action="offer_sent",
            description=f"Lawyer {lawyer.pk} offered help",
            performed_by=lawyer,
        )
        create_notification(
            case.created_by,
            f"{lawyer.name or lawyer.username} offered to help with '{case.title}'.",
            kind="case_offer",
            data={"caseId": case.pk, "caseType": case.case_type, "requestId": str(entry.pk)},
        )
        log_activity(lawyer, "Sent offer", {"case_id": case.pk, "request_id": str(entry.pk)})

    logger.info("Lawyer %s offered on case %s", lawyer.pk, case.pk)
    return entry


def respond(entry_id, actor, decision, response=""):
    """
    Accept or reject a pending entry.

    Offers are answered by the case's citizen, requests by the lawyer they
    were sent to. An accept that fails in the resolver leaves the entry
    pending.
    """
    if decision not in (ACCEPT, REJECT):
        raise ValidationError({"decision": "Must be 'accept' or 'reject'"})

    try:
        entry = MatchEntry.objects.select_related("case").get(pk=entry_id)
    except (MatchEntry.DoesNotExist, ValueError):
        raise RequestNotFound()

    if actor.pk != entry.responder_id:
        raise NotAuthorized()

    if entry.status != MatchEntry.STATUS_PENDING:
        raise AlreadyResponded(data={"status": entry.status})

    if decision == REJECT:
        return _reject(entry, actor, response)
    return _accept(entry, actor, response)


def _reject(entry, actor, response):
    with transaction.atomic():
        updated = MatchEntry.objects.filter(pk=entry.pk, status=MatchEntry.STATUS_PENDING).update(
            status=MatchEntry.STATUS_REJECTED,
            responded_at=timezone.now(),
            response=response or "",
        )
        if not updated:
            raise AlreadyResponded()

        entry.refresh_from_db()
        case = entry.case
        CaseEvent.objects.create(
            case=case,
            action="entry_rejected",
            description=f"{entry.get_kind_display()} from lawyer {entry.lawyer_id} rejected",
            performed_by=actor,
        )
        create_notification(
            User.objects.get(pk=entry.sender_id),
            f"Your {entry.kind} for '{case.title}' was declined.",
            kind="request_rejected",
            data={"caseId": case.pk, "requestId": str(entry.pk)},
        )
        log_activity(actor, f"Rejected {entry.kind}", {"case_id": case.pk, "request_id": str(entry.pk)})

    logger.info("%s %s on case %s rejected by %s", entry.kind, entry.pk, case.pk, actor.pk)
    return Outcome(entry=entry, case=case)


def _accept(entry, actor, response):
    def announce(assignment):
        case = assignment.case
        counterpart_id = case.assigned_lawyer_id if actor.pk == case.created_by_id else case.created_by_id
        create_notification(
            User.objects.get(pk=counterpart_id),
            f"'{case.title}' is now assigned. You can start chatting.",
            kind="assignment",
            data={"caseId": case.pk, "caseType": case.case_type, "chatId": assignment.chat_id},
        )
        for _, lawyer_id, kind in assignment.rejected:
            if kind == MatchEntry.KIND_OFFER:
                create_notification(
                    User.objects.get(pk=lawyer_id),
                    f"Your offer for '{case.title}' was declined: the case has been assigned.",
                    kind="request_rejected",
                    data={"caseId": case.pk},
                )
        log_activity(actor, f"Accepted {entry.kind}", {"case_id": case.pk, "request_id": str(entry.pk)})

    assignment = resolver.finalize(entry.case_id, entry.pk, response=response, actor=actor, on_assigned=announce)
    return Outcome(
        entry=assignment.entry,
        case=assignment.case,
        chat_id=assignment.chat_id,
        rejected=assignment.rejected,
    )
