"""WSGI config for the Dapur backend."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dapur_backend.settings")

application = get_wsgi_application()
