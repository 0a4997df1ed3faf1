from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    list_display = ("email", "username", "role", "user_group", "is_active", "date_joined")
    list_filter = ("role", "user_group", "is_active", "is_staff")
    search_fields = ("email", "username")
    ordering = ("-date_joined",)
    raw_id_fields = ("referred_by",)

    fieldsets = UserAdmin.fieldsets + (("Storefront", {"fields": ("role", "user_group", "referred_by")}),)
