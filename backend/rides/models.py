import re

from django.db import models
from django.conf import settings
from django.utils import timezone

from events.models import Event


class Ride(models.Model):
    """A patron's ride request, dispatched to one car of the active event."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('terminated', 'Terminated'),
    ]

    FINISHED_STATUSES = ('completed', 'cancelled', 'terminated')

    REQUEST_TYPE_CHOICES = [
        ('phone', 'Phone'),
        ('app', 'App'),
        ('walk_on', 'Walk-on'),
    ]

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='rides')

    # Patron
    patron_name = models.CharField(max_length=120)
    phone = models.CharField(max_length=20)

    # Pickup / dropoff
    pickup = models.TextField()
    dropoff = models.TextField()
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    dropoff_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    dropoff_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    riders = models.PositiveIntegerField(default=1)
    request_type = models.CharField(max_length=10, choices=REQUEST_TYPE_CHOICES, default='phone')
    willing_to_combine = models.BooleanField(default=False)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    # Assignment
    car_number = models.PositiveIntegerField(null=True, blank=True)
    assigned_driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driven_rides'
    )
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='submitted_rides'
    )
    parent_ride = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='split_rides'
    )

    # Timestamps
    requested_at = models.DateTimeField(default=timezone.now)
    assigned_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.TextField(null=True, blank=True)
    termination_reason = models.TextField(null=True, blank=True)

    # Optimistic concurrency counter; every accepted state change bumps it
    version = models.PositiveIntegerField(default=1)

    # Estimated pickup, written by services.eta without touching version
    estimated_pickup_minutes = models.PositiveIntegerField(null=True, blank=True)
    fastest_car_number = models.PositiveIntegerField(null=True, blank=True)
    eta_calculated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'rides'
        ordering = ['requested_at']
        indexes = [
            models.Index(fields=['event', 'status'], name='ride_event_status_idx'),
        ]

    def __str__(self):
        return f"Ride #{self.id} - {self.patron_name} - {self.status}"

    @property
    def is_finished(self):
        return self.status in self.FINISHED_STATUSES

    @property
    def has_pickup_coordinates(self):
        return self.pickup_latitude is not None and self.pickup_longitude is not None

    @property
    def has_dropoff_coordinates(self):
        return self.dropoff_latitude is not None and self.dropoff_longitude is not None


class RideTransition(models.Model):
    """One accepted state change of a ride, kept so it can be undone."""

    ACTION_CHOICES = [
        ('assign', 'Assign car'),
        ('reassign', 'Reassign car'),
        ('pickup', 'Picked up'),
        ('complete', 'Complete'),
        ('cancel', 'Cancel'),
        ('terminate', 'Terminate'),
        ('edit', 'Edit details'),
        ('split', 'Split'),
        ('undo', 'Undo'),
    ]

    ride = models.ForeignKey(Ride, on_delete=models.CASCADE, related_name='transitions')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    from_status = models.CharField(max_length=20)
    to_status = models.CharField(max_length=20)

    # Values of the changed fields before the action (JSON-safe)
    previous_state = models.JSONField(default=dict)
    version_before = models.PositiveIntegerField()
    version_after = models.PositiveIntegerField()

    related_ride = models.ForeignKey(
        Ride,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='ride_transitions'
    )

    undoable = models.BooleanField(default=True)
    undone_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'ride_transitions'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.action} ride {self.ride_id} v{self.version_before}->v{self.version_after}"


def normalize_phone(value: str) -> str:
    """Digits only, dropping a leading US country code."""
    digits = re.sub(r"\D", "", value or "")
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits


def normalize_address(value: str) -> str:
    """Lower-case, punctuation-free, single-spaced address for comparisons."""
    cleaned = re.sub(r"[^a-z0-9 ]", " ", (value or "").lower())
    return " ".join(cleaned.split())


class BlockedNumber(models.Model):
    """Phone numbers that may not request rides."""

    number = models.CharField(max_length=20, unique=True)
    reason = models.TextField(blank=True)
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'blocked_numbers'
        ordering = ['-created_at']

    def save(self, *args, **kwargs):
        self.number = normalize_phone(self.number)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.number


class AddressBlacklist(models.Model):
    """Addresses requested for blacklisting; only approved entries block rides."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
    ]

    address = models.TextField()
    normalized_address = models.TextField(db_index=True, editable=False)
    reason = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    requested_at = models.DateTimeField(auto_now_add=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'address_blacklist'
        ordering = ['-requested_at']

    def save(self, *args, **kwargs):
        self.normalized_address = normalize_address(self.address)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.address} ({self.status})"
