from django.contrib import admin
from .models import Event, CarAssignment


class CarAssignmentInline(admin.TabularInline):
    model = CarAssignment
    extra = 0
    filter_horizontal = ('members',)


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'event_date', 'status', 'available_cars', 'activated_at', 'ended_at']
    list_filter = ['status', 'event_date']
    search_fields = ['name', 'location']
    readonly_fields = ['created_at', 'activated_at', 'ended_at']
    date_hierarchy = 'event_date'
    inlines = [CarAssignmentInline]
