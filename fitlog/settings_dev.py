import os

from .settings_template import *  # NOQA ignore=F405
from .settings_template import LOGGING

LOGGING["handlers"]["stream"]["level"] = "DEBUG"
LOGGING["handlers"]["structlog_console"]["formatter"] = "structlog_console"
LOGGING["loggers"] = {
    "django": {"handlers": ["stream"], "level": "DEBUG"},
    "celery": {"handlers": ["stream"], "level": "DEBUG"},
    "fitlog": {"handlers": ["stream"], "level": "DEBUG"},
    "importer": {"handlers": ["stream"], "level": "DEBUG"},
    "exercises": {"handlers": ["stream"], "level": "DEBUG"},
    "django.utils.autoreload": {"level": "INFO"},
    "django.template": {"level": "INFO"},
    "structlog": {
        "handlers": ["structlog_console"],
        "level": "INFO",
        "propagate": False,
    },
    "django_structlog": {
        "handlers": ["structlog_console"],
        "level": "INFO",
        "propagate": False,
    },
}

DEBUG = True

ALLOWED_HOSTS = ["127.0.0.1", "0.0.0.0", "*"]  # nosec

# The upstream dataset is public, so local development can import straight
# from it without configuring any storage
EXERCISE_LIBRARY_IMPORT = {
    "SOURCE": os.getenv(
        "EXERCISE_LIBRARY_SOURCE",
        "https://raw.githubusercontent.com/yuhonas/free-exercise-db/main/dist/exercises.json",
    ),
    "HTTP_TIMEOUT": 30,
    "CHUNK_SIZE": 64 * 1024,
}
