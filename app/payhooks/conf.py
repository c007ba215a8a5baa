"""
Typed view of the hub's Django settings.

Settings are read once into an immutable HubSettings object so the rest of
the app never touches ``django.conf.settings`` directly and tests can
build one with explicit values.

Usage:
    from payhooks.conf import HubSettings

    hub_settings = HubSettings.from_settings()
    hub_settings.handler_timeout_seconds  # 10.0
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEDUP_BACKENDS = ("database", "cache")
DEDUP_UNAVAILABLE_POLICIES = ("reject", "process")


@dataclass(frozen=True)
class HubSettings:
    """
    Webhook hub configuration.

    Attributes:
        webhook_secrets: Signing secrets, any of which may have signed a request
        signature_header: Request header carrying the signature
        signature_tolerance_seconds: Replay window for signed timestamps
        dedup_retention: How long processed event ids are remembered
        handler_timeout_ms: Per-handler time budget (0 disables it)
        dedup_backend: "database" or "cache"
        dedup_unavailable_policy: "reject" (503) or "process" (no dedup)
        duplicate_status: HTTP status answered for already-seen events
    """

    webhook_secrets: tuple[str, ...] = ()
    signature_header: str = "Stripe-Signature"
    signature_tolerance_seconds: int = 300
    dedup_retention: timedelta = timedelta(days=14)
    handler_timeout_ms: int = 10_000
    dedup_backend: str = "database"
    dedup_unavailable_policy: str = "reject"
    duplicate_status: int = 200

    def __post_init__(self):
        if self.dedup_backend not in DEDUP_BACKENDS:
            raise ImproperlyConfigured(
                f"WEBHOOK_DEDUP_BACKEND must be one of {DEDUP_BACKENDS}, "
                f"got {self.dedup_backend!r}"
            )
        if self.dedup_unavailable_policy not in DEDUP_UNAVAILABLE_POLICIES:
            raise ImproperlyConfigured(
                "WEBHOOK_DEDUP_UNAVAILABLE_POLICY must be one of "
                f"{DEDUP_UNAVAILABLE_POLICIES}, got {self.dedup_unavailable_policy!r}"
            )
        if self.handler_timeout_ms < 0:
            raise ImproperlyConfigured("WEBHOOK_HANDLER_TIMEOUT_MS must not be negative")

    @property
    def webhook_secret(self) -> str:
        """The current (first) signing secret, or an empty string."""
        return self.webhook_secrets[0] if self.webhook_secrets else ""

    @property
    def handler_timeout_seconds(self) -> float | None:
        """Per-handler timeout in seconds, None when disabled."""
        if not self.handler_timeout_ms:
            return None
        return self.handler_timeout_ms / 1000

    @classmethod
    def from_settings(cls) -> HubSettings:
        """Build from Django settings, falling back to the defaults above."""
        secrets = getattr(settings, "STRIPE_WEBHOOK_SECRET", ())
        if isinstance(secrets, str):
            secrets = [s.strip() for s in secrets.split(",")]

        return cls(
            webhook_secrets=tuple(s for s in secrets if s),
            signature_header=getattr(
                settings, "WEBHOOK_SIGNATURE_HEADER", cls.signature_header
            ),
            signature_tolerance_seconds=getattr(
                settings,
                "WEBHOOK_SIGNATURE_TOLERANCE_SECONDS",
                cls.signature_tolerance_seconds,
            ),
            dedup_retention=timedelta(
                days=getattr(settings, "WEBHOOK_DEDUP_RETENTION_DAYS", 14)
            ),
            handler_timeout_ms=getattr(
                settings, "WEBHOOK_HANDLER_TIMEOUT_MS", cls.handler_timeout_ms
            ),
            dedup_backend=getattr(settings, "WEBHOOK_DEDUP_BACKEND", cls.dedup_backend),
            dedup_unavailable_policy=getattr(
                settings,
                "WEBHOOK_DEDUP_UNAVAILABLE_POLICY",
                cls.dedup_unavailable_policy,
            ),
            duplicate_status=getattr(
                settings, "WEBHOOK_DUPLICATE_STATUS", cls.duplicate_status
            ),
        )
