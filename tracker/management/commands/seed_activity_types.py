from django.core.management.base import BaseCommand

from tracker.models import ActivityType

DEFAULT_ACTIVITY_TYPES = (
    ("visit", "Sales rep visited property", 10),
    ("call", "Called property contact", 8),
    ("inspection", "Physical inspection logged", 6),
    ("follow-up", "Follow-up action taken", 4),
    ("note", "Note left about property", 2),
)


class Command(BaseCommand):
    help = "Create the default activity types (existing names are left untouched)."

    def handle(self, *args, **options):
        created = 0
        for name, description, weight in DEFAULT_ACTIVITY_TYPES:
            _, was_created = ActivityType.objects.get_or_create(
                name=name, defaults={"description": description, "weight": weight}
            )
            created += int(was_created)
        self.stdout.write(self.style.SUCCESS(f"{created} activity type(s) created"))
