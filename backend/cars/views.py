from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from cars import services
from cars.models import CarLocation
from cars.serializers import CarLocationSerializer, LocationUpdateSerializer
from events.services import get_event, EventNotFoundError


def _load_event(event_id):
    try:
        return get_event(event_id), None
    except EventNotFoundError:
        return None, Response({"error": "Event not found"}, status=404)


class CarLocationView(APIView):
    """
    GET  -> last known location of one car
    POST -> car crew reports its location (HTTP fallback for the WS ping)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id, car_number):
        event, error = _load_event(event_id)
        if error:
            return error

        location = CarLocation.objects.filter(event=event, car_number=car_number).first()
        if not location:
            return Response({"message": "No location reported yet"}, status=404)
        return Response(CarLocationSerializer(location).data)

    def post(self, request, event_id, car_number):
        event, error = _load_event(event_id)
        if error:
            return error
        if not event.is_active:
            return Response({"error": "Event is not active"}, status=400)

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        try:
            location = services.update_car_location(event, car_number, lat, lon)
        except services.InvalidCarNumberError as e:
            return Response({"error": str(e)}, status=400)

        return Response({
            "message": "Location updated",
            **CarLocationSerializer(location).data,
        })


class EventCarLocationsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error

        fresh = services.get_fresh_car_locations(event)
        locations = CarLocation.objects.filter(event=event)
        data = CarLocationSerializer(locations, many=True).data
        for item in data:
            item["is_fresh"] = item["car_number"] in fresh

        return Response({"count": len(data), "locations": data})
