import json
import os

from .secrets import get_secret
from .settings_template import *  # NOQA ignore=F405
from .settings_template import DATABASES, EXERCISE_LIBRARY_IMPORT, STORAGES

if os.getenv("AWS"):
    ENV_NAME = os.getenv("ENV_NAME")

    django_secret_json = get_secret("fitlog/%s/Django/SecretKey" % ENV_NAME)
    django_secret = json.loads(django_secret_json)
    SECRET_KEY = django_secret["DjangoSecretKey"]

    postgres_secret_json = get_secret("fitlog/%s/DB/MasterUserPassword" % ENV_NAME)
    postgres_secret = json.loads(postgres_secret_json)

    DATABASES["default"].update({"PASSWORD": postgres_secret["password"]})

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

CSRF_COOKIE_SECURE = True

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL")
CELERY_RESULT_BACKEND = CELERY_BROKER_URL

EXERCISE_LIBRARY_S3_BUCKET_NAME = os.getenv("EXERCISE_LIBRARY_S3_BUCKET_NAME")

# The dataset bucket is only ever read, and credentials come from the task
# role through boto3's default credential chain
STORAGES = {
    **STORAGES,
    "exercise_library": {
        "BACKEND": "storages.backends.s3boto3.S3Boto3Storage",
        "OPTIONS": {
            "bucket_name": EXERCISE_LIBRARY_S3_BUCKET_NAME,
            "querystring_auth": False,
            "default_acl": None,
        },
    },
}

EXERCISE_LIBRARY_IMPORT = {
    **EXERCISE_LIBRARY_IMPORT,
    "SOURCE": os.getenv("EXERCISE_LIBRARY_SOURCE", "exercises/exercises.json"),
}

if os.getenv("USE_PERSISTENT_DATABASE_CONNECTIONS"):
    DATABASES["default"].update({"CONN_MAX_AGE": 15 * 60})
