import json
from datetime import timedelta

from django.core.cache import caches
from django.core.files.base import ContentFile
from django.utils import timezone

from configuration.models import Configuration
from fitlog.storage import EXERCISE_LIBRARY_STORAGE
from importer.models import ImportJob


def exercise_data(external_id, name=None, **kwargs):
    """An exercise as it appears in the published dataset"""
    data = {
        "id": external_id,
        "name": name or external_id.replace("_", " "),
        "force": "pull",
        "level": "beginner",
        "mechanic": "compound",
        "equipment": "body only",
        "primaryMuscles": ["abdominals"],
        "secondaryMuscles": [],
        "instructions": ["Lie flat on the floor.", "Pedal."],
        "category": "strength",
        "images": [f"{external_id}/0.jpg", f"{external_id}/1.jpg"],
    }
    data.update(kwargs)
    return data


def dataset_bytes(entries):
    return json.dumps(entries, indent=2).encode("utf-8")


def jsonl_bytes(entries):
    return "\n".join(json.dumps(entry) for entry in entries).encode("utf-8")


def chunked(data, size=7):
    """Split bytes into small chunks to exercise incremental parsing"""
    return [data[i : i + size] for i in range(0, len(data), size)]


def store_dataset(name, data):
    if EXERCISE_LIBRARY_STORAGE.exists(name):
        EXERCISE_LIBRARY_STORAGE.delete(name)
    EXERCISE_LIBRARY_STORAGE.save(name, ContentFile(data))
    return name


def delete_dataset(name):
    if EXERCISE_LIBRARY_STORAGE.exists(name):
        EXERCISE_LIBRARY_STORAGE.delete(name)


def create_import_job(
    *, kind=ImportJob.Kind.UPDATE_EXERCISE_LIBRARY, source_reference="", **kwargs
):
    job = ImportJob(kind=kind, source_reference=source_reference, **kwargs)
    job.save()
    return job


def age_job(job, minutes, *fields):
    """Move the given timestamp fields of ``job`` ``minutes`` into the past"""
    then = timezone.now() - timedelta(minutes=minutes)
    ImportJob.objects.filter(pk=job.pk).update(**{field: then for field in fields})
    job.refresh_from_db()
    return job


class ConfigurationCacheMixin:
    """
    Clears the configuration cache around each test, since the cache is not
    rolled back with the database
    """

    def setUp(self):
        super().setUp()
        caches["configuration_cache"].clear()

    def tearDown(self):
        caches["configuration_cache"].clear()
        super().tearDown()


def set_configuration(key, value):
    """Change a seeded configuration value, refreshing its cached copy"""
    config = Configuration.objects.get(key=key)
    config.value = str(value)
    config.save()
