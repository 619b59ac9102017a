from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsDirector, IsDispatcher
from events import services
from events.models import Event, CarAssignment
from events.serializers import (
    EventSerializer,
    CarAssignmentSerializer,
    AvailableCarsSerializer,
    RosterUpdateSerializer,
)
from services.advisories import get_event_advisory, poll_event_weather
from services.eligibility import get_event_compositions


def _load_event(event_id):
    try:
        return services.get_event(event_id), None
    except services.EventNotFoundError as e:
        return None, Response({"error": str(e)}, status=404)


class EventListView(APIView):
    """
    GET  -> all events, newest first
    POST -> create an event (directors)
    """

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsDirector()]
        return [IsAuthenticated()]

    def get(self, request):
        events = Event.objects.select_related("created_by")
        return Response(EventSerializer(events, many=True).data)

    def post(self, request):
        serializer = EventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = services.create_event(actor=request.user, **serializer.validated_data)
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class EventDetailView(APIView):
    def get_permissions(self):
        if self.request.method == "PATCH":
            return [IsDirector()]
        return [IsAuthenticated()]

    def get(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error
        return Response(EventSerializer(event).data)

    def patch(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error

        serializer = EventSerializer(event, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        # available_cars is changed through AvailableCarsView
        serializer.validated_data.pop("available_cars", None)
        serializer.save()
        return Response(serializer.data)


class ActiveEventView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        event = services.get_active_event()
        if event is None:
            return Response({"active": False, "event": None})
        return Response({"active": True, "event": EventSerializer(event).data})


class ActivateEventView(APIView):
    permission_classes = [IsDirector]

    def post(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error
        try:
            event = services.activate_event(event, request.user)
        except services.EventStateError as e:
            return Response({"error": str(e)}, status=409)
        return Response({"message": "Event activated", "event": EventSerializer(event).data})


class EndEventView(APIView):
    permission_classes = [IsDirector]

    def post(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error
        try:
            event = services.end_event(event)
        except services.EventStateError as e:
            return Response({"error": str(e)}, status=409)
        return Response({
            "message": "Event ended",
            "event": EventSerializer(event).data,
            "report": services.get_event_report(event),
        })


class AvailableCarsView(APIView):
    """PUT -> set how many cars are on the road tonight"""
    permission_classes = [IsDispatcher]

    def put(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error

        serializer = AvailableCarsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            event = services.set_available_cars(event, serializer.validated_data["available_cars"])
        except services.RosterError as e:
            return Response({"error": str(e)}, status=400)
        return Response({"available_cars": event.available_cars})


class CarRosterView(APIView):
    """
    GET -> members of one car
    PUT -> replace the members (and driver) of one car
    """
    permission_classes = [IsDispatcher]

    def get(self, request, event_id, car_number):
        event, error = _load_event(event_id)
        if error:
            return error

        assignment = CarAssignment.objects.filter(event=event, car_number=car_number) \
            .prefetch_related("members").select_related("driver").first()
        if assignment is None:
            return Response({"car_number": car_number, "members": [], "driver": None})
        return Response(CarAssignmentSerializer(assignment).data)

    def put(self, request, event_id, car_number):
        event, error = _load_event(event_id)
        if error:
            return error

        serializer = RosterUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            assignment = services.set_car_roster(
                event,
                car_number,
                serializer.validated_data["member_ids"],
                driver_id=serializer.validated_data.get("driver_id"),
            )
        except services.RosterError as e:
            return Response({"error": str(e)}, status=400)
        return Response(CarAssignmentSerializer(assignment).data)


class CarCompositionsView(APIView):
    """Gender make-up of every car, for the assign dialog"""
    permission_classes = [IsDispatcher]

    def get(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error

        compositions = get_event_compositions(event)
        return Response({
            "event_id": event.id,
            "cars": [c.as_dict() for c in compositions.values()],
        })


class EventAdvisoriesView(APIView):
    """Latest weather advisory; polls on demand when none is cached"""
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error

        weather = get_event_advisory(event) or poll_event_weather(event)
        return Response({"event_id": event.id, "weather": weather})


class EventReportView(APIView):
    permission_classes = [IsDispatcher]

    def get(self, request, event_id):
        event, error = _load_event(event_id)
        if error:
            return error
        return Response(services.get_event_report(event))
