from django.core.management.base import BaseCommand, CommandError

from events.models import Event
from events.services import get_active_event
from services.eta import refresh_event_etas


class Command(BaseCommand):
    help = "Recompute pickup estimates for pending rides (active event by default)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--event",
            type=int,
            help="Event id to refresh instead of the active event.",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Ignore the refresh rate limit.",
        )

    def handle(self, *args, **options):
        if options["event"]:
            event = Event.objects.filter(id=options["event"]).first()
            if event is None:
                raise CommandError(f"Event {options['event']} not found")
        else:
            event = get_active_event()
            if event is None:
                raise CommandError("No active event")

        result = refresh_event_etas(event, force=options["force"])
        if result.skipped:
            self.stdout.write(self.style.WARNING(f"Skipped: {result.reason}"))
            return

        suffix = " (straight-line fallback)" if result.used_fallback else ""
        self.stdout.write(
            self.style.SUCCESS(f"Updated {result.updated} ride estimates for {event.name}{suffix}")
        )
