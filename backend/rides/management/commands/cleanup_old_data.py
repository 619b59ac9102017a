from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from rides.models import Ride, RideTransition
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Clean up finished rides and action history of completed events."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete data of events that ended more than this many days ago (default: 30).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"]
        dry_run = options["dry_run"]
        cutoff = timezone.now() - timedelta(days=days)

        old_transitions = RideTransition.objects.filter(
            ride__event__status="completed",
            created_at__lt=cutoff,
        )
        transitions_count = old_transitions.count()

        old_rides = Ride.objects.filter(
            event__status="completed",
            event__ended_at__lt=cutoff,
            status__in=Ride.FINISHED_STATUSES,
        )
        rides_count = old_rides.count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {transitions_count} transitions and {rides_count} rides older than {days} days."
                )
            )
        else:
            old_transitions.delete()
            old_rides.delete()
            logger.info("Cleaned up %s old transitions and %s old rides", transitions_count, rides_count)
            self.stdout.write(
                self.style.SUCCESS(
                    f"Deleted {transitions_count} transitions and {rides_count} rides older than {days} days."
                )
            )
