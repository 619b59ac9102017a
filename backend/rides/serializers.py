from django.conf import settings
from rest_framework import serializers

from accounts.serializers import MemberBasicSerializer
from common.utils import minutes_between, minutes_since, format_duration, wait_severity
from .models import Ride, RideTransition, BlockedNumber, AddressBlacklist, normalize_phone


class RideSerializer(serializers.ModelSerializer):
    """Serializer for rides on the dispatch board, with computed timing."""
    assigned_driver = MemberBasicSerializer(read_only=True)
    wait_minutes = serializers.SerializerMethodField()
    ride_minutes = serializers.SerializerMethodField()
    total_minutes = serializers.SerializerMethodField()
    current_wait_minutes = serializers.SerializerMethodField()
    wait_display = serializers.SerializerMethodField()
    ride_display = serializers.SerializerMethodField()
    total_display = serializers.SerializerMethodField()
    wait_severity = serializers.SerializerMethodField()

    class Meta:
        model = Ride
        fields = ['id', 'event', 'patron_name', 'phone', 'pickup', 'dropoff',
                  'pickup_latitude', 'pickup_longitude', 'dropoff_latitude',
                  'dropoff_longitude', 'riders', 'request_type', 'willing_to_combine',
                  'status', 'car_number', 'assigned_driver', 'parent_ride',
                  'requested_at', 'assigned_at', 'picked_up_at', 'completed_at',
                  'cancellation_reason', 'termination_reason', 'version',
                  'estimated_pickup_minutes', 'fastest_car_number', 'eta_calculated_at',
                  'wait_minutes', 'ride_minutes', 'total_minutes', 'current_wait_minutes',
                  'wait_display', 'ride_display', 'total_display', 'wait_severity']
        read_only_fields = fields

    def get_wait_minutes(self, obj):
        return minutes_between(obj.requested_at, obj.assigned_at)

    def get_ride_minutes(self, obj):
        return minutes_between(obj.picked_up_at, obj.completed_at)

    def get_total_minutes(self, obj):
        return minutes_between(obj.requested_at, obj.completed_at)

    def get_current_wait_minutes(self, obj):
        if obj.status != 'pending':
            return None
        return minutes_since(obj.requested_at)

    def get_wait_display(self, obj):
        return format_duration(self.get_wait_minutes(obj))

    def get_ride_display(self, obj):
        return format_duration(self.get_ride_minutes(obj))

    def get_total_display(self, obj):
        return format_duration(self.get_total_minutes(obj))

    def get_wait_severity(self, obj):
        if obj.status != 'pending':
            return None
        return wait_severity(minutes_since(obj.requested_at))


class RideRequestCreateSerializer(serializers.Serializer):
    """Serializer for phone-room ride requests"""
    event_id = serializers.IntegerField(required=False)
    patron_name = serializers.CharField(max_length=120)
    phone = serializers.CharField(max_length=20)
    pickup = serializers.CharField()
    dropoff = serializers.CharField()
    riders = serializers.IntegerField(default=1, min_value=1)
    request_type = serializers.ChoiceField(choices=Ride.REQUEST_TYPE_CHOICES, default='phone')
    willing_to_combine = serializers.BooleanField(default=False)
    pickup_latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    pickup_longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    dropoff_latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    dropoff_longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)

    def validate_riders(self, value):
        if value > settings.RIDE_MAX_RIDERS:
            raise serializers.ValidationError(
                f"At most {settings.RIDE_MAX_RIDERS} riders per request"
            )
        return value

    def validate_phone(self, value):
        digits = ''.join(ch for ch in value if ch.isdigit())
        if len(digits) < 10:
            raise serializers.ValidationError("Enter a full phone number")
        return value


class VersionedActionSerializer(serializers.Serializer):
    """Every dispatch action carries the ride version the dispatcher saw."""
    expected_version = serializers.IntegerField(min_value=1)


class AssignCarSerializer(VersionedActionSerializer):
    car_number = serializers.IntegerField(min_value=1)


class BatchAssignItemSerializer(AssignCarSerializer):
    ride_id = serializers.IntegerField()


class BatchAssignSerializer(serializers.Serializer):
    assignments = BatchAssignItemSerializer(many=True, allow_empty=False)


class ReasonSerializer(VersionedActionSerializer):
    """Serializer for ride cancellation and termination"""
    reason = serializers.CharField(required=False, allow_blank=True)


class RideEditSerializer(VersionedActionSerializer):
    patron_name = serializers.CharField(max_length=120, required=False)
    phone = serializers.CharField(max_length=20, required=False)
    pickup = serializers.CharField(required=False)
    dropoff = serializers.CharField(required=False)
    riders = serializers.IntegerField(min_value=1, required=False)
    willing_to_combine = serializers.BooleanField(required=False)
    pickup_latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    pickup_longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    dropoff_latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    dropoff_longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)

    def validate_riders(self, value):
        if value > settings.RIDE_MAX_RIDERS:
            raise serializers.ValidationError(
                f"At most {settings.RIDE_MAX_RIDERS} riders per request"
            )
        return value


class SplitRideSerializer(VersionedActionSerializer):
    riders_to_move = serializers.IntegerField(min_value=1)


class RideTransitionSerializer(serializers.ModelSerializer):
    performed_by = serializers.CharField(source='performed_by.username', read_only=True, default=None)

    class Meta:
        model = RideTransition
        fields = ['id', 'action', 'from_status', 'to_status', 'version_before',
                  'version_after', 'related_ride', 'performed_by', 'undoable',
                  'undone_at', 'created_at']
        read_only_fields = fields


class BlockedNumberSerializer(serializers.ModelSerializer):
    added_by = serializers.CharField(source='added_by.username', read_only=True, default=None)

    class Meta:
        model = BlockedNumber
        fields = ['id', 'number', 'reason', 'added_by', 'created_at']
        read_only_fields = ['id', 'added_by', 'created_at']

    def validate_number(self, value):
        number = normalize_phone(value)
        if len(number) < 10:
            raise serializers.ValidationError("Enter a full phone number")
        if BlockedNumber.objects.filter(number=number).exists():
            raise serializers.ValidationError("This number is already blocked")
        return number


class AddressBlacklistSerializer(serializers.ModelSerializer):
    requested_by = serializers.CharField(source='requested_by.username', read_only=True, default=None)
    approved_by = serializers.CharField(source='approved_by.username', read_only=True, default=None)

    class Meta:
        model = AddressBlacklist
        fields = ['id', 'address', 'normalized_address', 'reason', 'status',
                  'requested_by', 'requested_at', 'approved_by', 'approved_at']
        read_only_fields = ['id', 'normalized_address', 'status', 'requested_by',
                            'requested_at', 'approved_by', 'approved_at']
