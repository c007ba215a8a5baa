"""
URL configuration for the webhook hub.

URL Structure:
    /health/                       - Health check endpoint (for load balancers, Docker)
    /webhook                       - Payment provider webhook endpoint (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.urls import include, path

from core.views import health_check

urlpatterns = [
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # Webhook receiver
    path("", include("payhooks.urls")),
]
