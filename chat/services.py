import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.exceptions import AlreadyResponded, DuplicateRequest, LawyerNotFound, NotAuthorized, RequestNotFound
from notifications.utils import create_notification, log_activity

from .models import ChatParticipant, ChatRoom, DirectConnection, Message
from .provisioning import open_direct_room

logger = logging.getLogger(__name__)

User = get_user_model()


def post_message(room, sender, content):
    """Append a message and mark the room read for its sender."""
    now = timezone.now()
    with transaction.atomic():
        message = Message.objects.create(room=room, sender=sender, content=content)
        ChatRoom.objects.filter(pk=room.pk).update(last_message_at=now)
        ChatParticipant.objects.filter(room=room, user=sender).update(last_read_at=now)
    return message


def mark_read(room, user):
    ChatParticipant.objects.filter(room=room, user=user).update(last_read_at=timezone.now())


def request_connection(citizen, lawyer_id, message=""):
    lawyer = User.objects.filter(
        pk=lawyer_id, role=User.ROLE_LAWYER, is_active=True, is_verified=True
    ).first()
    if lawyer is None:
        raise LawyerNotFound()

    with transaction.atomic():
        room = open_direct_room(citizen, lawyer)
        if room.status == ChatRoom.STATUS_ACTIVE:
            raise DuplicateRequest("You are already connected with this lawyer.", data={"chatId": room.chat_id})
        if room.status == ChatRoom.STATUS_CLOSED:
            room.status = ChatRoom.STATUS_PENDING
            room.save(update_fields=["status"])

        try:
            with transaction.atomic():
                connection = DirectConnection.objects.create(
                    citizen=citizen, lawyer=lawyer, message=message or "", room=None
                )
        except IntegrityError:
            raise DuplicateRequest("A connection request to this lawyer is already pending.")

        # a rejected request may still hold the room
        DirectConnection.objects.filter(room=room).exclude(pk=connection.pk).update(room=None)
        connection.room = room
        connection.save(update_fields=["room"])

        create_notification(
            lawyer,
            f"{citizen.name or citizen.username} wants to connect with you.",
            kind="direct_connection",
            data={"connectionId": connection.pk, "chatId": room.chat_id},
        )
        log_activity(citizen, "Opened direct chat", {"lawyer_id": lawyer.pk})

    logger.info("Citizen %s requested direct chat with lawyer %s", citizen.pk, lawyer.pk)
    return connection


def respond_connection(connection_id, lawyer, accept):
    with transaction.atomic():
        try:
            connection = DirectConnection.objects.select_for_update(of=("self",)).select_related("room", "citizen").get(
                pk=connection_id
            )
        except DirectConnection.DoesNotExist:
            raise RequestNotFound()

        if connection.lawyer_id != lawyer.pk:
            raise NotAuthorized()
        if connection.status != "pending":
            raise AlreadyResponded(data={"status": connection.status})

        connection.status = "accepted" if accept else "rejected"
        connection.responded_at = timezone.now()
        connection.save(update_fields=["status", "responded_at"])

        room = connection.room
        if room is not None:
            room.status = ChatRoom.STATUS_ACTIVE if accept else ChatRoom.STATUS_CLOSED
            room.save(update_fields=["status"])

        create_notification(
            connection.citizen,
            f"{lawyer.name or lawyer.username} {connection.status} your connection request.",
            kind="direct_connection",
            data={"connectionId": connection.pk, "chatId": room.chat_id if room else None},
        )
        log_activity(lawyer, f"{connection.status.capitalize()} direct chat", {"citizen_id": connection.citizen_id})

    return connection
