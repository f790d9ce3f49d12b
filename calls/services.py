"""
Call lifecycle: initiate -> answer -> end, or initiate -> reject / missed.

A user takes part in at most one active call at a time. Calls that ring
longer than ``CALL_RING_TIMEOUT`` seconds are closed as missed the next time
anyone looks at them.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound

from chat.models import ChatRoom
from core.exceptions import CallBusy, CallNotFound, InvalidCallState, NotAuthorized
from notifications.utils import create_notification, log_activity

from .models import Call, CallParticipant

logger = logging.getLogger(__name__)

TIMEFRAMES = ("day", "week", "month")


def expire_unanswered(now=None):
    """Close calls nobody picked up within the ring timeout."""
    now = now or timezone.now()
    cutoff = now - timedelta(seconds=settings.CALL_RING_TIMEOUT)
    stale = Call.objects.filter(status__in=Call.RINGING_STATUSES, started_at__lt=cutoff)
    count = stale.update(status=Call.STATUS_MISSED, end_reason="timeout", ended_at=now)
    if count:
        logger.info("Marked %s unanswered calls as missed", count)
    return count


def get_call(call_id, user, for_update=False):
    qs = Call.objects.select_related("room", "initiator")
    if for_update:
        qs = qs.select_for_update(of=("self",))
    try:
        call = qs.get(call_id=call_id)
    except (Call.DoesNotExist, ValueError):
        raise CallNotFound()
    if not call.has_participant(user):
        raise NotAuthorized("You are not a participant in this call.")
    return call


def initiate(initiator, target_id, call_type, chat_id, user_agent="", ip_address=None):
    room = ChatRoom.objects.filter(chat_id=chat_id, status=ChatRoom.STATUS_ACTIVE).first()
    if room is None or not room.has_participant(initiator):
        raise NotFound("Chat not found or access denied.")

    target = room.participants.filter(pk=target_id).exclude(pk=initiator.pk).first()
    if target is None:
        raise NotFound("Target user is not part of this chat.")

    expire_unanswered()

    with transaction.atomic():
        busy = Call.objects.filter(
            status__in=Call.ACTIVE_STATUSES,
            memberships__user__in=[initiator, target],
        ).exists()
        if busy:
            raise CallBusy()

        call = Call.objects.create(
            room=room,
            initiator=initiator,
            call_type=call_type,
            user_agent=(user_agent or "")[:255],
            ip_address=ip_address,
        )
        CallParticipant.objects.create(call=call, user=initiator, role=initiator.role, joined_at=call.started_at)
        CallParticipant.objects.create(call=call, user=target, role=target.role)

        create_notification(
            target,
            f"Incoming {call_type} call from {initiator.name or initiator.username}.",
            kind="call",
            data={"callId": str(call.call_id), "chatId": room.chat_id, "callType": call_type},
        )
        log_activity(initiator, f"Started {call_type} call", {"call_id": str(call.call_id), "chat_id": room.chat_id})

    logger.info("User %s called user %s (%s, %s)", initiator.pk, target.pk, call_type, call.call_id)
    return call


def answer(call_id, user):
    with transaction.atomic():
        call = get_call(call_id, user, for_update=True)
        if call.status not in Call.RINGING_STATUSES:
            raise InvalidCallState("Call cannot be answered in its current state.", data={"status": call.status})
        if call.initiator_id == user.pk:
            raise InvalidCallState("You cannot answer your own call.")

        now = timezone.now()
        call.status = Call.STATUS_ANSWERED
        call.answered_at = now
        call.save(update_fields=["status", "answered_at"])
        CallParticipant.objects.filter(call=call, user=user, joined_at__isnull=True).update(joined_at=now)
        log_activity(user, "Answered call", {"call_id": str(call.call_id)})

    logger.info("Call %s answered by user %s", call.call_id, user.pk)
    return call


def end(call_id, user, reason="completed"):
    """
    Hang up. A call that was never answered is recorded as missed and the
    other party is told about it.
    """
    with transaction.atomic():
        call = get_call(call_id, user, for_update=True)
        if not call.is_active:
            raise InvalidCallState("Call has already finished.", data={"status": call.status})

        if call.answered_at is None:
            call.finish(Call.STATUS_MISSED, "missed" if reason == "completed" else reason)
            for member in call.memberships.exclude(user=user).select_related("user"):
                create_notification(
                    member.user,
                    f"Missed {call.call_type} call from {call.initiator.name or call.initiator.username}.",
                    kind="call",
                    data={"callId": str(call.call_id), "chatId": call.room.chat_id},
                )
        else:
            call.finish(Call.STATUS_ENDED, reason)
        call.save(update_fields=["status", "end_reason", "ended_at", "duration"])
        CallParticipant.objects.filter(call=call, left_at__isnull=True).update(left_at=call.ended_at)
        log_activity(user, "Ended call", {"call_id": str(call.call_id), "duration": call.duration})

    logger.info("Call %s ended by user %s after %ss (%s)", call.call_id, user.pk, call.duration, call.end_reason)
    return call


def reject(call_id, user, reason="rejected"):
    with transaction.atomic():
        call = get_call(call_id, user, for_update=True)
        if call.status not in Call.RINGING_STATUSES:
            raise InvalidCallState("Call cannot be rejected in its current state.", data={"status": call.status})

        call.finish(Call.STATUS_REJECTED, reason)
        call.save(update_fields=["status", "end_reason", "ended_at", "duration"])
        log_activity(user, "Rejected call", {"call_id": str(call.call_id)})

    logger.info("Call %s rejected by user %s", call.call_id, user.pk)
    return call


def history(user, call_type=None, call_status=None):
    qs = Call.objects.filter(memberships__user=user).select_related("room", "initiator")
    if call_type:
        qs = qs.filter(call_type=call_type)
    if call_status:
        qs = qs.filter(status=call_status)
    return qs.prefetch_related("memberships__user").order_by("-started_at")


def active_calls(user):
    expire_unanswered()
    return history(user).filter(status__in=Call.ACTIVE_STATUSES)


def _timeframe_start(timeframe, now):
    local = timezone.localtime(now)
    if timeframe == "day":
        return local.replace(hour=0, minute=0, second=0, microsecond=0)
    if timeframe == "week":
        return now - timedelta(days=7)
    return local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def stats(user, timeframe="month"):
    if timeframe not in TIMEFRAMES:
        timeframe = "month"
    since = _timeframe_start(timeframe, timezone.now())

    completed = Q(status=Call.STATUS_ENDED, end_reason="completed", duration__gt=0)
    totals = Call.objects.filter(memberships__user=user, started_at__gte=since).aggregate(
        totalCalls=Count("id"),
        successfulCalls=Count("id", filter=completed),
        totalDuration=Sum("duration"),
        avgDuration=Avg("duration"),
        voiceCalls=Count("id", filter=Q(call_type=Call.TYPE_VOICE)),
        videoCalls=Count("id", filter=Q(call_type=Call.TYPE_VIDEO)),
    )
    totals["totalDuration"] = totals["totalDuration"] or 0
    totals["avgDuration"] = round(totals["avgDuration"] or 0, 1)
    totals["timeframe"] = timeframe
    return totals
