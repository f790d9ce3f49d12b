"""
Assignment resolver: the only code that sets ``Case.assigned_lawyer``.

Finalizing runs in one transaction that locks the case row and claims it
with ``UPDATE ... WHERE assigned_lawyer IS NULL`` on a case that is still
open. When two accepts race on the same case exactly one claim updates a
row; the other gets ``AlreadyAssigned`` and nothing it did is kept.
"""

import logging
import time
from dataclasses import dataclass, field

from django.conf import settings
from django.db import OperationalError, transaction
from django.utils import timezone

from chat.provisioning import open_case_room, provision
from core.exceptions import (
    AlreadyAssigned,
    AlreadyResponded,
    CaseNotFound,
    CaseNotOpen,
    InternalError,
    RequestNotFound,
)

from .models import Case, CaseEvent, MatchEntry

logger = logging.getLogger(__name__)

AUTO_REJECT_RESPONSE = "Sorry, I have already signed with another lawyer for this case."


@dataclass
class Assignment:
    case: Case
    entry: MatchEntry
    chat_id: str
    # (entry id, lawyer id, kind) of every proposal closed out by this assignment
    rejected: list = field(default_factory=list)


def finalize(case_id, entry_id, response="", actor=None, on_assigned=None):
    """
    Accept ``entry_id`` and assign its lawyer to the case.

    ``on_assigned(assignment)`` runs inside the assigning transaction, so
    anything it writes commits or rolls back together with the assignment.

    Transient database errors are retried with backoff; if every attempt
    fails, ``InternalError`` is raised and no change is visible.
    """
    attempts = max(1, settings.ASSIGNMENT_MAX_RETRIES)
    delays = settings.ASSIGNMENT_RETRY_DELAYS
    last_error = None

    for attempt in range(attempts):
        try:
            return _finalize_once(case_id, entry_id, response, actor, on_assigned)
        except OperationalError as e:
            last_error = e
            if attempt < attempts - 1:
                delay = delays[min(attempt, len(delays) - 1)]
                logger.warning("Retry %s/%s assigning case %s: %s", attempt + 1, attempts, case_id, e)
                time.sleep(delay)

    logger.error("All %s attempts to assign case %s failed: %s", attempts, case_id, last_error)
    raise InternalError()


def _finalize_once(case_id, entry_id, response, actor, on_assigned=None):
    with transaction.atomic():
        try:
            case = Case.objects.select_for_update().get(pk=case_id)
        except Case.DoesNotExist:
            raise CaseNotFound()

        if case.assigned_lawyer_id is not None:
            raise AlreadyAssigned(data={"caseId": case.pk})
        if case.status not in Case.OPEN_STATUSES:
            raise CaseNotOpen(data={"status": case.status})

        try:
            entry = MatchEntry.objects.select_for_update().get(pk=entry_id, case=case)
        except MatchEntry.DoesNotExist:
            raise RequestNotFound()

        if entry.status != MatchEntry.STATUS_PENDING:
            raise AlreadyResponded()

        now = timezone.now()
        chat_id = provision(case.case_type, case.pk, existing=case.chat_id)

        claimed = Case.objects.filter(
            pk=case.pk,
            assigned_lawyer__isnull=True,
            status__in=Case.OPEN_STATUSES,
        ).update(
            assigned_lawyer=entry.lawyer_id,
            status=Case.STATUS_ASSIGNED,
            chat_id=chat_id,
            updated_at=now,
        )
        if claimed != 1:
            raise AlreadyAssigned(data={"caseId": case.pk})

        competitors = MatchEntry.objects.filter(case=case, status=MatchEntry.STATUS_PENDING).exclude(pk=entry.pk)
        rejected = list(competitors.values_list("pk", "lawyer_id", "kind"))
        competitors.update(
            status=MatchEntry.STATUS_REJECTED,
            responded_at=now,
            response=AUTO_REJECT_RESPONSE,
        )

        MatchEntry.objects.filter(pk=entry.pk).update(
            status=MatchEntry.STATUS_ACCEPTED,
            responded_at=now,
            response=response or "",
        )

        case.refresh_from_db()
        entry.refresh_from_db()

        open_case_room(case)
        CaseEvent.objects.create(
            case=case,
            action="assigned",
            description=f"Assigned to lawyer {entry.lawyer_id} via {entry.kind}",
            performed_by=actor,
        )

        assignment = Assignment(case=case, entry=entry, chat_id=chat_id, rejected=rejected)
        if on_assigned is not None:
            on_assigned(assignment)

    logger.info(
        "Case %s assigned to lawyer %s (%s %s), %s competing proposals rejected",
        case.pk, entry.lawyer_id, entry.kind, entry.pk, len(rejected),
    )
    return assignment
