from rest_framework import serializers

from accounts.serializers import MemberBasicSerializer
from events.models import Event, CarAssignment


class EventSerializer(serializers.ModelSerializer):
    created_by = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Event
        fields = ['id', 'name', 'event_date', 'location', 'latitude', 'longitude',
                  'status', 'available_cars', 'notes', 'created_by',
                  'created_at', 'activated_at', 'ended_at']
        read_only_fields = ['id', 'status', 'created_by', 'created_at',
                            'activated_at', 'ended_at']


class CarAssignmentSerializer(serializers.ModelSerializer):
    members = MemberBasicSerializer(many=True, read_only=True)
    driver = MemberBasicSerializer(read_only=True)

    class Meta:
        model = CarAssignment
        fields = ['id', 'car_number', 'members', 'driver', 'updated_at']


class AvailableCarsSerializer(serializers.Serializer):
    available_cars = serializers.IntegerField(min_value=0)


class RosterUpdateSerializer(serializers.Serializer):
    member_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
    driver_id = serializers.IntegerField(required=False, allow_null=True)
