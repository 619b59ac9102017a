from django.db import models
from django.conf import settings


class Event(models.Model):
    """One operating night: the window in which rides are taken and dispatched."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('active', 'Active'),
        ('completed', 'Completed'),
    ]

    name = models.CharField(max_length=200)
    event_date = models.DateTimeField()
    location = models.CharField(max_length=255, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    available_cars = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_events'
    )
    activated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activated_events'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'events'
        ordering = ['-event_date']

    def __str__(self):
        return f"{self.name} ({self.status})"

    @property
    def is_active(self):
        return self.status == 'active'

    @property
    def group_name(self):
        return f"event_{self.id}"


class CarAssignment(models.Model):
    """Members riding in one car for one event."""

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='car_assignments')
    car_number = models.PositiveIntegerField()
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='car_assignments'
    )
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driven_cars'
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'car_assignments'
        ordering = ['car_number']
        constraints = [
            models.UniqueConstraint(
                fields=['event', 'car_number'],
                name='unique_event_car'
            )
        ]

    def __str__(self):
        return f"Car {self.car_number} - {self.event}"
