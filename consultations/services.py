"""
Consultation bookings between citizens and verified lawyers.

A booking starts as ``requested``; the lawyer schedules, confirms,
completes or cancels it. Either party may cancel while the booking is still
far enough away.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from cases.models import Case
from core.exceptions import (
    CancellationWindowClosed,
    CaseNotFound,
    ConsultationNotFound,
    LawyerNotFound,
    NotAuthorized,
    RoleRequired,
    ScheduleConflict,
)
from notifications.utils import create_notification, log_activity

from .models import Consultation

logger = logging.getLogger(__name__)

User = get_user_model()


def _display(user):
    return user.name or user.username


def _has_conflict(lawyer, scheduled_at, exclude=None):
    window = timedelta(minutes=settings.CONSULTATION_SLOT_MINUTES)
    qs = Consultation.objects.filter(
        lawyer=lawyer,
        status__in=Consultation.BLOCKING_STATUSES,
        scheduled_at__gt=scheduled_at - window,
        scheduled_at__lt=scheduled_at + window,
    )
    if exclude is not None:
        qs = qs.exclude(pk=exclude.pk)
    return qs.exists()


def request_consultation(citizen, lawyer_id, scheduled_at, consultation_type="video",
                         duration_minutes=30, description="", case_id=None):
    if scheduled_at <= timezone.now():
        raise ValidationError({"scheduled_at": "Consultation time must be in the future"})

    lawyer = User.objects.filter(
        pk=lawyer_id,
        role=User.ROLE_LAWYER,
        is_active=True,
        is_verified=True,
    ).first()
    if lawyer is None:
        raise LawyerNotFound()

    case = None
    if case_id is not None:
        case = Case.objects.filter(pk=case_id).first()
        if case is None:
            raise CaseNotFound()
        if case.created_by_id != citizen.pk:
            raise NotAuthorized("You can only book consultations about your own cases.")

    with transaction.atomic():
        # serialize bookings for one lawyer so two overlapping requests cannot both pass
        User.objects.select_for_update().filter(pk=lawyer.pk).first()
        if _has_conflict(lawyer, scheduled_at):
            raise ScheduleConflict()

        consultation = Consultation.objects.create(
            title=f"Consultation with {_display(lawyer)}",
            description=description or "",
            citizen=citizen,
            lawyer=lawyer,
            case=case,
            consultation_type=consultation_type,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
        )
        create_notification(
            lawyer,
            f"{_display(citizen)} asked for a {consultation_type} consultation on "
            f"{timezone.localtime(scheduled_at):%d %b %Y %H:%M}.",
            kind="consultation",
            data={"consultationId": consultation.pk},
        )
        log_activity(citizen, "Booked consultation", {"consultation_id": consultation.pk, "lawyer_id": lawyer.pk})

    logger.info("Citizen %s booked consultation %s with lawyer %s", citizen.pk, consultation.pk, lawyer.pk)
    return consultation


def consultations_for(user, status=None):
    qs = Consultation.objects.select_related("citizen", "lawyer", "case")
    if user.role == "citizen":
        qs = qs.filter(citizen=user)
    elif user.role == "lawyer":
        qs = qs.filter(lawyer=user)
    elif not (user.role == "admin" or user.is_superuser):
        raise RoleRequired()
    if status:
        qs = qs.filter(status=status)
    return qs


def get_consultation(pk, user, for_update=False):
    qs = Consultation.objects.select_related("citizen", "lawyer", "case")
    if for_update:
        qs = qs.select_for_update(of=("self",))
    try:
        consultation = qs.get(pk=pk)
    except Consultation.DoesNotExist:
        raise ConsultationNotFound()
    if not (consultation.is_party(user) or user.role == "admin" or user.is_superuser):
        raise NotAuthorized()
    return consultation


def update_status(pk, lawyer, new_status, meeting_link="", notes=""):
    """Lawyer moves their own consultation to ``new_status``."""
    with transaction.atomic():
        consultation = get_consultation(pk, lawyer, for_update=True)
        if consultation.lawyer_id != lawyer.pk:
            raise NotAuthorized("Only the consulting lawyer can update this consultation.")
        if consultation.status in Consultation.FINAL_STATUSES:
            raise ValidationError({"status": f"Consultation is already {consultation.status}"})

        consultation.status = new_status
        if meeting_link:
            consultation.meeting_link = meeting_link
        if notes:
            consultation.lawyer_notes = notes
        if new_status == Consultation.STATUS_CONFIRMED:
            consultation.generate_meeting_link()
        if new_status == Consultation.STATUS_CANCELLED:
            consultation.cancelled_by = lawyer
            consultation.cancelled_at = timezone.now()
        consultation.save()

        create_notification(
            consultation.citizen,
            f"Your consultation with {_display(lawyer)} is now {new_status}.",
            kind="consultation",
            data={"consultationId": consultation.pk, "meetingLink": consultation.meeting_link},
        )
        log_activity(lawyer, "Updated consultation", {"consultation_id": consultation.pk, "status": new_status})

    logger.info("Consultation %s moved to %s by lawyer %s", consultation.pk, new_status, lawyer.pk)
    return consultation


def cancel(pk, user, reason=""):
    with transaction.atomic():
        consultation = get_consultation(pk, user, for_update=True)
        if not consultation.is_party(user):
            raise NotAuthorized()
        if not consultation.can_be_cancelled(timezone.now()):
            raise CancellationWindowClosed(data={"status": consultation.status})

        consultation.status = Consultation.STATUS_CANCELLED
        consultation.cancelled_by = user
        consultation.cancellation_reason = reason or ""
        consultation.cancelled_at = timezone.now()
        consultation.save()

        other = consultation.lawyer if user.pk == consultation.citizen_id else consultation.citizen
        create_notification(
            other,
            f"{_display(user)} cancelled the consultation on "
            f"{timezone.localtime(consultation.scheduled_at):%d %b %Y %H:%M}.",
            kind="consultation",
            data={"consultationId": consultation.pk, "reason": consultation.cancellation_reason},
        )
        log_activity(user, "Cancelled consultation", {"consultation_id": consultation.pk})

    logger.info("Consultation %s cancelled by user %s", consultation.pk, user.pk)
    return consultation
