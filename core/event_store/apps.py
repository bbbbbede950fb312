"""
Brickflow Core — Event Store App Configuration
===============================================
Holds the append-only event log and the aggregate snapshot table.

This app:
- Persists immutable events
- Persists aggregate snapshots alongside them

This app does NOT:
- Interpret event meaning
- Decide availability or state legality (core.availability, core.lifecycle)
"""

from django.apps import AppConfig


class EventStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.event_store"
    label = "event_store"
    verbose_name = "Brickflow Event Store"
