"""
Payment webhook and metadata-extension hub.

Receives provider webhooks, verifies and deduplicates them, and dispatches
them to registered subscribers. Also lets registered metadata providers
enrich outbound payment objects before they are sent to the provider.

Modules:
    verification: Signature verification
    dedup: Event deduplication (database or cache store)
    dispatcher: Isolated, time-bounded dispatch to handlers
    metadata: Metadata aggregation and deep merge
    registry: Subscriber registry
    services: Webhook pipeline used by the view
    adapters: Stripe create/update with merged metadata
    contrib: Built-in handlers and providers
"""
