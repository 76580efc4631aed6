import importlib
import logging
import os
import pkgutil

import sentry_sdk
from celery import Celery, current_task
from sentry_sdk.integrations.celery import CeleryIntegration

from fitlog.version import get_fitlog_version

SENTRY_BACKEND_DSN = os.environ.get("SENTRY_BACKEND_DSN", None)

if SENTRY_BACKEND_DSN:
    FITLOG_ENVIRONMENT = os.environ.get("FITLOG_ENVIRONMENT", None)
    sentry_sdk.init(
        SENTRY_BACKEND_DSN,
        environment=FITLOG_ENVIRONMENT,
        release=get_fitlog_version(),
        integrations=[CeleryIntegration()],
    )

app = Celery("fitlog")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()


class CeleryTaskIDFilter(logging.Filter):
    """
    Logging filter which adds the current Celery task id, if any, to each
    record as ``task_id`` so log formats can include it
    """

    def filter(self, record):  # NOQA: A003
        task = current_task
        if task and task.request.id:
            record.task_id = f"/[{task.request.id}]"
        else:
            record.task_id = ""
        return True


def import_all_submodules(package_name: str):
    """
    Import a package and recursively import all submodules.
    Used sparingly at Celery startup to ensure all task modules are loaded.
    """
    pkg = importlib.import_module(package_name)
    if not hasattr(pkg, "__path__"):
        return
    for mod in pkgutil.walk_packages(pkg.__path__, pkg.__name__ + "."):
        importlib.import_module(mod.name)


# Celery autodiscovery only finds tasks.py or tasks/__init__.py, so the
# importer's task submodules are loaded once Django is fully set up
@app.on_after_finalize.connect
def _load_all_task_modules(sender, **kwargs):
    import_all_submodules("importer.tasks")
