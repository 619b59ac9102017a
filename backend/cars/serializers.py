from rest_framework import serializers
from cars.models import CarLocation


class CarLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = CarLocation
        fields = ["car_number", "latitude", "longitude", "updated_at"]
        read_only_fields = fields


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for a car's GPS ping.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=10, decimal_places=6, min_value=-180, max_value=180)
