from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # register, login, refresh, me

    # Events, car counts and rosters (at /api/events/)
    path('api/events/', include('events.urls')),

    # Live car locations (at /api/cars/)
    path('api/cars/', include('cars.urls')),

    # Rides endpoints (at /api/rides/)
    path('api/rides/', include('rides.urls')),      # phone room, dispatch board and blacklists
]
