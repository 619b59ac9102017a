from django.contrib import admin
from .models import CarLocation


@admin.register(CarLocation)
class CarLocationAdmin(admin.ModelAdmin):
    list_display = ("event", "car_number", "latitude", "longitude", "updated_at")
    list_filter = ("event",)
