"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import Ride, RideTransition, BlockedNumber, AddressBlacklist


@admin.register(Ride)
class RideAdmin(admin.ModelAdmin):
    """Ride admin"""
    list_display = ['id', 'event', 'patron_name', 'riders', 'status', 'car_number', 'version', 'requested_at']
    list_filter = ['status', 'request_type', 'event']
    search_fields = ['patron_name', 'phone', 'pickup', 'dropoff']
    readonly_fields = ['version', 'requested_at', 'assigned_at', 'picked_up_at', 'completed_at']
    date_hierarchy = 'requested_at'


@admin.register(RideTransition)
class RideTransitionAdmin(admin.ModelAdmin):
    list_display = ("ride", "action", "from_status", "to_status", "version_after", "performed_by", "created_at", "undone_at")
    list_filter = ("action",)
    search_fields = ("ride__id", "performed_by__username")


@admin.register(BlockedNumber)
class BlockedNumberAdmin(admin.ModelAdmin):
    list_display = ("number", "reason", "added_by", "created_at")
    search_fields = ("number",)


@admin.register(AddressBlacklist)
class AddressBlacklistAdmin(admin.ModelAdmin):
    list_display = ("address", "status", "requested_by", "approved_by", "approved_at")
    list_filter = ("status",)
    search_fields = ("address",)
