"""
WSGI config for the roastery backend.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'roastery.config.settings')

application = get_wsgi_application()
