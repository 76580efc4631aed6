from io import StringIO

from django.core.cache import caches
from django.core.management import CommandError, call_command
from django.test import TestCase

from configuration.models import Configuration


class ConfigCacheCommandTests(TestCase):
    def setUp(self):
        caches["configuration_cache"].clear()

    def tearDown(self):
        caches["configuration_cache"].clear()

    def test_reports_missing_key(self):
        out = StringIO()
        call_command("configcache", "not-cached", stdout=out)
        self.assertIn("not found in cache", out.getvalue())

    def test_refresh_loads_value_from_database(self):
        Configuration.objects.bulk_create(
            [Configuration(key="numeric", value="12", data_type="number")]
        )
        out = StringIO()
        call_command("configcache", "numeric", "--refresh", stdout=out)
        self.assertIn("Key 'numeric' found:", out.getvalue())
        self.assertIn("12", out.getvalue())

    def test_refresh_unknown_key_fails(self):
        with self.assertRaises(CommandError):
            call_command("configcache", "unknown", "--refresh")
