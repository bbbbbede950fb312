"""
Brickflow Event Store — ORM Models
===================================
Engine: Event Store (Core Infrastructure)

Two tables:
    Event              append-only log, the sole source of truth
    AggregateSnapshot  current status/code/links per aggregate instance

RULES (NON-NEGOTIABLE):
- Events are never updated or deleted; corrections are new events
- Snapshots are never deleted; completed/cancelled are statuses
- Every row carries tenant_id; there are no cross-tenant reads
- The autoincrement id fixes append order within the log

This file contains NO business logic.
"""

import uuid

from django.db import models


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class AggregateTypeChoice(models.TextChoices):
    STOCKPILE = "stockpile", "Stockpile"
    MIX_BATCH = "mix_batch", "Mix batch"
    CRUSH_RUN = "crush_run", "Crush run"
    EXTRUSION_RUN = "extrusion_run", "Extrusion run"
    DRY_LOAD = "dry_load", "Dry load"
    KILN_BATCH = "kiln_batch", "Kiln batch"
    PALLET = "pallet", "Pallet"
    SHIPMENT = "shipment", "Shipment"
    SALES_ORDER = "sales_order", "Sales order"
    INVOICE = "invoice", "Invoice"
    PAYMENT = "payment", "Payment"
    MINING_SHIFT = "mining_shift", "Mining shift"
    ADMIN = "admin", "Admin"


# ══════════════════════════════════════════════════════════════
# EVENT LOG
# ══════════════════════════════════════════════════════════════

class Event(models.Model):
    """
    Brickflow Event Record
    ======================
    One immutable fact about an aggregate.

    Field groups:
        Identity
        Tenant & Actor
        Subject
        Payload
        Causality
        Temporal
    """

    # ── Identity ──────────────────────────────────────────────
    event_id = models.UUIDField(
        unique=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique event identifier.",
    )

    # ── Tenant & Actor ────────────────────────────────────────
    tenant_id = models.UUIDField(
        help_text="Tenant boundary. Always required.",
    )

    actor_id = models.CharField(
        max_length=255,
        help_text="Authenticated actor that caused the event.",
    )

    actor_role = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Tenant membership role of the actor, if known.",
    )

    # ── Subject ───────────────────────────────────────────────
    aggregate_type = models.CharField(
        max_length=32,
        choices=AggregateTypeChoice.choices,
    )

    aggregate_id = models.UUIDField()

    event_type = models.CharField(
        max_length=128,
        help_text="Registered event type, e.g. CRUSH_RUN_STARTED.",
    )

    # ── Payload ───────────────────────────────────────────────
    payload = models.JSONField(
        default=dict,
        help_text="Wire form of the tagged payload record.",
    )

    source = models.CharField(
        max_length=32,
        default="web",
        help_text="Channel that produced the event.",
    )

    # ── Causality ─────────────────────────────────────────────
    correlation_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Shared by events forming one cross-aggregate transaction.",
    )

    causation_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="event_id of the event that directly caused this one.",
    )

    # ── Temporal ──────────────────────────────────────────────
    occurred_at = models.DateTimeField(
        help_text="Logical event time.",
    )

    recorded_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the row was persisted.",
    )

    class Meta:
        db_table = "brickflow_event"
        ordering = ["id"]
        indexes = [
            models.Index(
                fields=["tenant_id", "aggregate_type", "aggregate_id"],
                name="idx_evt_tenant_aggregate",
            ),
            models.Index(
                fields=["tenant_id", "event_type"],
                name="idx_evt_tenant_type",
            ),
            models.Index(
                fields=["correlation_id"],
                name="idx_evt_correlation",
            ),
        ]

    # ══════════════════════════════════════════════════════════
    # IMMUTABILITY GUARDS
    # ══════════════════════════════════════════════════════════

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionError(
                "Events are immutable. Record a compensating event instead."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Events are never deleted.")

    def __str__(self):
        return f"[{self.event_type}] {self.aggregate_type}:{self.aggregate_id}"


# ══════════════════════════════════════════════════════════════
# AGGREGATE SNAPSHOT
# ══════════════════════════════════════════════════════════════

class AggregateSnapshot(models.Model):
    """
    Current-state row for one aggregate or master-data record.

    ``kind`` is an aggregate type (mix_batch, pallet, ...) or a
    master-data kind (dry_rack, customer, ...). ``attributes`` holds
    linked ids and identifying fields as JSON.
    """

    tenant_id = models.UUIDField()
    kind = models.CharField(max_length=32)
    aggregate_id = models.UUIDField()
    code = models.CharField(max_length=128)
    status = models.CharField(max_length=32)
    attributes = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "brickflow_aggregate_snapshot"
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "kind", "aggregate_id"],
                name="uq_snap_tenant_kind_id",
            ),
            models.UniqueConstraint(
                fields=["tenant_id", "kind", "code"],
                name="uq_snap_tenant_kind_code",
            ),
        ]
        indexes = [
            models.Index(
                fields=["tenant_id", "kind", "status"],
                name="idx_snap_tenant_kind_status",
            ),
        ]

    def delete(self, *args, **kwargs):
        raise PermissionError(
            "Snapshots are never deleted. Use a terminal status."
        )

    def __str__(self):
        return f"{self.kind}:{self.code} ({self.status})"
