from django.core.cache import caches
from django.core.management.base import BaseCommand, CommandError

from configuration.models import Configuration
from configuration.utils import (
    CONFIGURATION_KEY_PREFIX,
    cache_configuration_value,
    invalidate_configuration_value,
)


class Command(BaseCommand):
    help = (  # NOQA: A003
        "Show the cached value of a configuration key, optionally reloading it "
        "from the database first."
    )

    def add_arguments(self, parser):
        parser.add_argument("key", type=str, help="The configuration key")
        parser.add_argument(
            "--refresh",
            action="store_true",
            help="Reload the value from the database before showing it",
        )

    def handle(self, *args, key, refresh, **options):
        if refresh:
            invalidate_configuration_value(key)
            try:
                cache_configuration_value(key)
            except Configuration.DoesNotExist as exc:
                raise CommandError(f"There is no configuration key '{key}'") from exc

        value = caches["configuration_cache"].get(f"{CONFIGURATION_KEY_PREFIX}_{key}")

        if value is None:
            self.stdout.write(self.style.WARNING(f"Key '{key}' not found in cache."))
        else:
            self.stdout.write(self.style.SUCCESS(f"Key '{key}' found:"))
            self.stdout.write(repr(value))
