"""
WSGI config for palletflow project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "palletflow.settings")

application = get_wsgi_application()
