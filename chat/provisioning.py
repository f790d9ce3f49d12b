"""
Chat channel provisioning.

A case's chat id is derived from the case alone, so provisioning is pure
computation: the same (case_type, case_id) always yields the same id.
"""

import logging

from core.exceptions import ChatAlreadyProvisioned

from .models import ChatParticipant, ChatRoom

logger = logging.getLogger(__name__)


def channel_id(case_type, case_id):
    return f"{case_type}_{case_id}"


def direct_channel_id(user_a_id, user_b_id):
    low, high = sorted([int(user_a_id), int(user_b_id)])
    return f"direct_{low}_{high}"


def provision(case_type, case_id, existing=None):
    """
    Return the chat id for a case.

    ``existing`` is the id already stored on the case, if any; it must match
    the derived id.
    """
    chat_id = channel_id(case_type, case_id)
    if existing and existing != chat_id:
        raise ChatAlreadyProvisioned(data={"chatId": existing, "expected": chat_id})
    return chat_id


def open_case_room(case):
    """
    Register the case room for the messaging side (idempotent).

    Expects ``case.chat_id`` and ``case.assigned_lawyer_id`` to be set.
    """
    room, created = ChatRoom.objects.get_or_create(
        chat_id=case.chat_id,
        defaults={
            "chat_type": case.case_type,
            "status": ChatRoom.STATUS_ACTIVE,
            "case": case,
        },
    )
    ChatParticipant.objects.get_or_create(room=room, user_id=case.created_by_id, defaults={"role": "citizen"})
    ChatParticipant.objects.get_or_create(room=room, user_id=case.assigned_lawyer_id, defaults={"role": "lawyer"})

    if created:
        logger.info("Opened chat room %s", room.chat_id)
    return room


def open_direct_room(citizen, lawyer, status=ChatRoom.STATUS_PENDING):
    room, _ = ChatRoom.objects.get_or_create(
        chat_id=direct_channel_id(citizen.pk, lawyer.pk),
        defaults={"chat_type": ChatRoom.TYPE_DIRECT, "status": status},
    )
    ChatParticipant.objects.get_or_create(room=room, user=citizen, defaults={"role": "citizen"})
    ChatParticipant.objects.get_or_create(room=room, user=lawyer, defaults={"role": "lawyer"})
    return room
