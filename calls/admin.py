from django.contrib import admin

from .models import Call, CallParticipant


class CallParticipantInline(admin.TabularInline):
    model = CallParticipant
    extra = 0


@admin.register(Call)
class CallAdmin(admin.ModelAdmin):
    list_display = ('call_id', 'call_type', 'status', 'initiator', 'started_at', 'duration')
    list_filter = ('call_type', 'status')
    search_fields = ('call_id', 'room__chat_id')
    inlines = [CallParticipantInline]
