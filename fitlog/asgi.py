"""
ASGI entrypoint for the fitlog API and admin
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fitlog.settings_template")

application = get_asgi_application()
