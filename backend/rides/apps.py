"""Rides app: ride store, dispatch endpoints, blacklists and background tasks."""

from django.apps import AppConfig


class RidesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'rides'
    verbose_name = 'Rides and dispatch'
