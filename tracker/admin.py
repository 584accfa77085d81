from django.contrib import admin
from .models import ActivityType, Property, User, UserActivity

@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "username", "name", "email", "role", "account_status", "status", "score")
    list_filter = ("role", "account_status", "status")
    search_fields = ("username", "name", "email")

@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "address", "latitude", "longitude")
    search_fields = ("name", "address")

@admin.register(ActivityType)
class ActivityTypeAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "weight")

@admin.register(UserActivity)
class UserActivityAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "activity", "property", "created_at")
    list_filter = ("activity",)
    search_fields = ("note", "user__username", "property__name")
