"""
WSGI config for the ARMS project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'arms.settings')

application = get_wsgi_application()
