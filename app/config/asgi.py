"""
ASGI config for the webhook hub.

Exposes the ASGI callable as a module-level variable named `application`.
The webhook view is synchronous; Django runs it in a thread under ASGI
servers such as Uvicorn, so dispatch still completes if the client goes
away mid-request.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
