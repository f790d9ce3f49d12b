from django.contrib import admin

from .models import ChatParticipant, ChatRoom, DirectConnection, Message


class ChatParticipantInline(admin.TabularInline):
    model = ChatParticipant
    extra = 0


@admin.register(ChatRoom)
class ChatRoomAdmin(admin.ModelAdmin):
    list_display = ('chat_id', 'chat_type', 'status', 'case', 'last_message_at')
    list_filter = ('chat_type', 'status')
    search_fields = ('chat_id',)
    inlines = [ChatParticipantInline]


admin.site.register(Message)
admin.site.register(DirectConnection)
