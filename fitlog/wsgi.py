"""
WSGI entrypoint for the fitlog API and admin
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fitlog.settings_template")

application = get_wsgi_application()
