"""
WSGI config for the Cidade Conectada project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'cidade.settings')

application = get_wsgi_application()
