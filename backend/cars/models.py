from django.db import models
from django.utils import timezone

from events.models import Event


class CarLocation(models.Model):
    """Latest GPS ping of one car during an event"""

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='car_locations')
    car_number = models.PositiveIntegerField()

    latitude = models.DecimalField(max_digits=10, decimal_places=6)
    longitude = models.DecimalField(max_digits=10, decimal_places=6)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'car_locations'
        ordering = ['car_number']
        constraints = [
            models.UniqueConstraint(
                fields=['event', 'car_number'],
                name='unique_event_car_location'
            )
        ]

    def __str__(self):
        return f"Car {self.car_number} @ ({self.latitude}, {self.longitude})"
