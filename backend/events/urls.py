from django.urls import path

from rides.views import ride_queues
from .views import (
    EventListView,
    EventDetailView,
    ActiveEventView,
    ActivateEventView,
    EndEventView,
    AvailableCarsView,
    CarRosterView,
    CarCompositionsView,
    EventAdvisoriesView,
    EventReportView,
)

urlpatterns = [
    path("", EventListView.as_view(), name="event-list"),
    path("active/", ActiveEventView.as_view(), name="active-event"),
    path("<int:event_id>/", EventDetailView.as_view(), name="event-detail"),
    path("<int:event_id>/activate/", ActivateEventView.as_view(), name="activate-event"),
    path("<int:event_id>/end/", EndEventView.as_view(), name="end-event"),
    path("<int:event_id>/cars/", AvailableCarsView.as_view(), name="available-cars"),
    path("<int:event_id>/cars/<int:car_number>/roster/", CarRosterView.as_view(), name="car-roster"),
    path("<int:event_id>/compositions/", CarCompositionsView.as_view(), name="car-compositions"),
    path("<int:event_id>/advisories/", EventAdvisoriesView.as_view(), name="event-advisories"),
    path("<int:event_id>/report/", EventReportView.as_view(), name="event-report"),
    path("<int:event_id>/queues/", ride_queues, name="event-queues"),
]
