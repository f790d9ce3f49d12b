from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import LawyerProfile, User


class LawyerProfileInline(admin.StackedInline):
    model = LawyerProfile
    can_delete = False


@admin.register(User)
class ChainVerdictUserAdmin(UserAdmin):
    list_display = ("username", "email", "name", "role", "is_verified", "is_active")
    list_filter = ("role", "is_verified", "is_active")
    fieldsets = UserAdmin.fieldsets + (
        ("ChainVerdict", {"fields": ("role", "name", "phone", "is_verified")}),
    )
    inlines = [LawyerProfileInline]
