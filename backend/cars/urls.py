from django.urls import path
from .views import CarLocationView, EventCarLocationsView

urlpatterns = [
    path("<int:event_id>/locations/", EventCarLocationsView.as_view(), name="event-car-locations"),
    path("<int:event_id>/<int:car_number>/location/", CarLocationView.as_view(), name="car-location"),
]
