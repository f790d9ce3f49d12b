from django.contrib import admin

from .models import Case, CaseEvent, MatchEntry


class MatchEntryInline(admin.TabularInline):
    model = MatchEntry
    extra = 0
    fields = ('kind', 'lawyer', 'status', 'proposed_fee', 'created_at', 'responded_at')
    readonly_fields = fields
    can_delete = False


class CaseEventInline(admin.TabularInline):
    model = CaseEvent
    extra = 0
    readonly_fields = ('action', 'description', 'performed_by', 'created_at')
    can_delete = False


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ('id', 'case_type', 'title', 'status', 'created_by', 'assigned_lawyer', 'created_at')
    list_filter = ('case_type', 'status', 'category')
    search_fields = ('title', 'created_by__email')
    # assignment goes through the resolver only
    readonly_fields = ('assigned_lawyer', 'chat_id')
    inlines = [MatchEntryInline, CaseEventInline]


@admin.register(MatchEntry)
class MatchEntryAdmin(admin.ModelAdmin):
    list_display = ('id', 'kind', 'case', 'lawyer', 'status', 'created_at')
    list_filter = ('kind', 'status')
    readonly_fields = ('status', 'responded_at', 'response')
