from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import CaseNotFound, NotAuthorized
from users.permissions import HasLawyerRole, IsCitizen, IsLawyer

from .models import ChatRoom, DirectConnection
from .serializers import (
    ChatRoomSerializer,
    CreateDirectConnectionSerializer,
    DirectConnectionSerializer,
    MessageSerializer,
)
from .services import mark_read, post_message, request_connection, respond_connection


def _room_for(user, chat_id):
    room = get_object_or_404(ChatRoom.objects.prefetch_related("memberships__user"), chat_id=chat_id)
    if not room.has_participant(user):
        raise NotAuthorized("You are not a participant in this chat.")
    return room


# ============================================================
#   ROOMS / MESSAGES
# ============================================================
class MyRoomsView(generics.ListAPIView):
    serializer_class = ChatRoomSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = ChatRoom.objects.filter(memberships__user=self.request.user).prefetch_related("memberships__user")
        room_status = self.request.query_params.get("status")
        if room_status:
            qs = qs.filter(status=room_status)
        return qs.distinct()


class RoomDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, chat_id):
        return Response(ChatRoomSerializer(_room_for(request.user, chat_id)).data)


class RoomMessagesView(generics.ListCreateAPIView):
    """
    GET  /api/chat/rooms/<chat_id>/messages/   (marks the room read)
    POST /api/chat/rooms/<chat_id>/messages/   {content}
    """
    serializer_class = MessageSerializer
    permission_classes = [IsAuthenticated]
    write_throttle_scope = "messages"

    def get_room(self):
        if not hasattr(self, "_room"):
            self._room = _room_for(self.request.user, self.kwargs["chat_id"])
        return self._room

    def get_queryset(self):
        return self.get_room().messages.filter(is_deleted=False).select_related("sender")

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        mark_read(self.get_room(), request.user)
        return response

    def create(self, request, *args, **kwargs):
        room = self.get_room()
        if room.status != ChatRoom.STATUS_ACTIVE:
            raise PermissionDenied("This chat is not active.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = post_message(room, request.user, serializer.validated_data["content"])
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


class CaseChatView(APIView):
    """Chat room of an assigned case, looked up by case type and id."""
    permission_classes = [IsAuthenticated]

    def get(self, request, case_type, case_id):
        room = ChatRoom.objects.filter(case_id=case_id, chat_type=case_type).first()
        if room is None:
            raise CaseNotFound("No chat exists for this case yet.")
        if not room.has_participant(request.user):
            raise NotAuthorized("You are not a participant in this chat.")
        return Response(ChatRoomSerializer(room).data)


# ============================================================
#   DIRECT CONNECTIONS
# ============================================================
class DirectConnectionCreateView(APIView):
    permission_classes = [IsAuthenticated, IsCitizen]
    throttle_scope = "connections"

    def post(self, request):
        serializer = CreateDirectConnectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        connection = request_connection(
            request.user,
            serializer.validated_data["lawyer_id"],
            serializer.validated_data.get("message", ""),
        )
        return Response(
            {"success": True, "connection": DirectConnectionSerializer(connection).data},
            status=status.HTTP_201_CREATED,
        )


class PendingConnectionsView(generics.ListAPIView):
    serializer_class = DirectConnectionSerializer
    permission_classes = [IsAuthenticated, HasLawyerRole]

    def get_queryset(self):
        return DirectConnection.objects.filter(lawyer=self.request.user, status="pending").select_related(
            "citizen", "lawyer", "room"
        )


class ConnectionRespondView(APIView):
    permission_classes = [IsAuthenticated, IsLawyer]
    accept = True

    def post(self, request, pk):
        connection = respond_connection(pk, request.user, self.accept)
        return Response({"success": True, "connection": DirectConnectionSerializer(connection).data})


class ConnectionAcceptView(ConnectionRespondView):
    accept = True


class ConnectionRejectView(ConnectionRespondView):
    accept = False
