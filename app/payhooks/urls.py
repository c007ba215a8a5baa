"""
URL configuration for the webhook endpoint.

Included at the site root by config.urls:
    /webhook - Payment provider webhook (POST)
"""

from django.urls import path

from payhooks.views import payment_webhook

app_name = "payhooks"

urlpatterns = [
    path("webhook", payment_webhook, name="payment_webhook"),
]
