"""
ASGI config for the chainverdict project.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "chainverdict.settings")

application = get_asgi_application()
