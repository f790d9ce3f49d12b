from django.contrib import admin

from .models import Consultation


@admin.register(Consultation)
class ConsultationAdmin(admin.ModelAdmin):
    list_display = ('title', 'citizen', 'lawyer', 'consultation_type', 'status', 'scheduled_at')
    list_filter = ('consultation_type', 'status')
    search_fields = ('title', 'citizen__email', 'lawyer__email')
