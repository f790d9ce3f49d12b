from django.urls import path

from .views import (
    CaseChatView,
    ConnectionAcceptView,
    ConnectionRejectView,
    DirectConnectionCreateView,
    MyRoomsView,
    PendingConnectionsView,
    RoomDetailView,
    RoomMessagesView,
)

urlpatterns = [
    path('rooms/', MyRoomsView.as_view(), name='chat-rooms'),
    path('rooms/<str:chat_id>/', RoomDetailView.as_view(), name='chat-room-detail'),
    path('rooms/<str:chat_id>/messages/', RoomMessagesView.as_view(), name='chat-messages'),
    path('cases/<str:case_type>/<int:case_id>/', CaseChatView.as_view(), name='case-chat'),

    path('connections/', DirectConnectionCreateView.as_view(), name='connection-create'),
    path('connections/pending/', PendingConnectionsView.as_view(), name='connection-pending'),
    path('connections/<int:pk>/accept/', ConnectionAcceptView.as_view(), name='connection-accept'),
    path('connections/<int:pk>/reject/', ConnectionRejectView.as_view(), name='connection-reject'),
]
