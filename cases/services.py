import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.exceptions import CaseNotFound, NotAuthorized
from notifications.utils import create_notification, log_activity

from .models import Case, CaseEvent, MatchEntry

logger = logging.getLogger(__name__)

User = get_user_model()

NEEDS_LAWYER = {
    Case.STATUS_IN_PROGRESS,
    Case.STATUS_MEDIATION,
    Case.STATUS_ARBITRATION,
    Case.STATUS_RESOLVED,
}
DISPUTE_ONLY = {Case.STATUS_MEDIATION, Case.STATUS_ARBITRATION}
FINAL = {Case.STATUS_CLOSED, Case.STATUS_CANCELLED}

CLOSED_OUT_RESPONSE = "This case was {status} before the proposal was answered."


@transaction.atomic
def open_case(citizen, **fields):
    case = Case.objects.create(created_by=citizen, **fields)
    CaseEvent.objects.create(
        case=case,
        action="created",
        description=f"{case.get_case_type_display()} created",
        performed_by=citizen,
    )
    log_activity(citizen, "Created case", {"case_id": case.pk, "case_type": case.case_type})
    logger.info("Citizen %s created %s %s", citizen.pk, case.case_type, case.pk)
    return case


def _is_admin(user):
    return user.role == "admin" or user.is_superuser


def change_status(case_id, actor, new_status, resolution_summary=""):
    """
    Move a case along its lifecycle.

    ``assigned`` is never set here; only the assignment resolver writes it.
    """
    with transaction.atomic():
        try:
            case = Case.objects.select_for_update().get(pk=case_id)
        except Case.DoesNotExist:
            raise CaseNotFound()

        if not (case.is_participant(actor) or _is_admin(actor)):
            raise NotAuthorized()

        if case.status in FINAL:
            raise ValidationError({"status": f"Case is already {case.status}"})
        if new_status in NEEDS_LAWYER and case.assigned_lawyer_id is None:
            raise ValidationError({"status": "Case has no assigned lawyer"})
        if new_status in DISPUTE_ONLY and case.case_type != Case.TYPE_DISPUTE:
            raise ValidationError({"status": f"{new_status} applies to disputes only"})
        if new_status == Case.STATUS_CANCELLED and case.status not in Case.OPEN_STATUSES:
            raise ValidationError({"status": "Only unassigned cases can be cancelled"})

        previous = case.status
        case.status = new_status
        if new_status == Case.STATUS_RESOLVED:
            case.resolved_by = actor
            case.resolved_at = timezone.now()
            case.resolution_summary = resolution_summary or case.resolution_summary
        case.save()

        closed_out = []
        if new_status in FINAL:
            closed_out = _close_out_entries(case, new_status)

        CaseEvent.objects.create(
            case=case,
            action="status_changed",
            description=f"Status changed from {previous} to {new_status}",
            performed_by=actor,
        )
        for user_id, user in ((case.created_by_id, case.created_by), (case.assigned_lawyer_id, case.assigned_lawyer)):
            if user_id and user_id != actor.pk:
                create_notification(
                    user,
                    f"'{case.title}' is now {new_status}.",
                    kind="case_status",
                    data={"caseId": case.pk, "status": new_status},
                )
        for lawyer_id in closed_out:
            create_notification(
                User.objects.get(pk=lawyer_id),
                f"'{case.title}' was {new_status}; your pending proposal is closed.",
                kind="request_rejected",
                data={"caseId": case.pk},
            )
        log_activity(actor, "Updated case status", {"case_id": case.pk, "from": previous, "to": new_status})

    logger.info("Case %s: %s -> %s by %s", case.pk, previous, new_status, actor.pk)
    return case


def _close_out_entries(case, new_status):
    """Reject every pending request and offer on a case that reached a final status."""
    pending = MatchEntry.objects.filter(case=case, status=MatchEntry.STATUS_PENDING)
    lawyer_ids = sorted(set(pending.values_list("lawyer_id", flat=True)))
    pending.update(
        status=MatchEntry.STATUS_REJECTED,
        responded_at=timezone.now(),
        response=CLOSED_OUT_RESPONSE.format(status=new_status),
    )
    return lawyer_ids
