import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique event identifier.", unique=True)),
                ("tenant_id", models.UUIDField(help_text="Tenant boundary. Always required.")),
                ("actor_id", models.CharField(help_text="Authenticated actor that caused the event.", max_length=255)),
                ("actor_role", models.CharField(blank=True, help_text="Tenant membership role of the actor, if known.", max_length=64, null=True)),
                ("aggregate_type", models.CharField(choices=[
                    ("stockpile", "Stockpile"),
                    ("mix_batch", "Mix batch"),
                    ("crush_run", "Crush run"),
                    ("extrusion_run", "Extrusion run"),
                    ("dry_load", "Dry load"),
                    ("kiln_batch", "Kiln batch"),
                    ("pallet", "Pallet"),
                    ("shipment", "Shipment"),
                    ("sales_order", "Sales order"),
                    ("invoice", "Invoice"),
                    ("payment", "Payment"),
                    ("mining_shift", "Mining shift"),
                    ("admin", "Admin"),
                ], max_length=32)),
                ("aggregate_id", models.UUIDField()),
                ("event_type", models.CharField(help_text="Registered event type, e.g. CRUSH_RUN_STARTED.", max_length=128)),
                ("payload", models.JSONField(default=dict, help_text="Wire form of the tagged payload record.")),
                ("source", models.CharField(default="web", help_text="Channel that produced the event.", max_length=32)),
                ("correlation_id", models.UUIDField(blank=True, help_text="Shared by events forming one cross-aggregate transaction.", null=True)),
                ("causation_id", models.UUIDField(blank=True, help_text="event_id of the event that directly caused this one.", null=True)),
                ("occurred_at", models.DateTimeField(help_text="Logical event time.")),
                ("recorded_at", models.DateTimeField(auto_now_add=True, help_text="When the row was persisted.")),
            ],
            options={
                "db_table": "brickflow_event",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="AggregateSnapshot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tenant_id", models.UUIDField()),
                ("kind", models.CharField(max_length=32)),
                ("aggregate_id", models.UUIDField()),
                ("code", models.CharField(max_length=128)),
                ("status", models.CharField(max_length=32)),
                ("attributes", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(blank=True, null=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "brickflow_aggregate_snapshot",
                "ordering": ["code"],
            },
        ),
        migrations.AddIndex(
            model_name="event",
            index=models.Index(fields=["tenant_id", "aggregate_type", "aggregate_id"], name="idx_evt_tenant_aggregate"),
        ),
        migrations.AddIndex(
            model_name="event",
            index=models.Index(fields=["tenant_id", "event_type"], name="idx_evt_tenant_type"),
        ),
        migrations.AddIndex(
            model_name="event",
            index=models.Index(fields=["correlation_id"], name="idx_evt_correlation"),
        ),
        migrations.AddIndex(
            model_name="aggregatesnapshot",
            index=models.Index(fields=["tenant_id", "kind", "status"], name="idx_snap_tenant_kind_status"),
        ),
        migrations.AddConstraint(
            model_name="aggregatesnapshot",
            constraint=models.UniqueConstraint(fields=("tenant_id", "kind", "aggregate_id"), name="uq_snap_tenant_kind_id"),
        ),
        migrations.AddConstraint(
            model_name="aggregatesnapshot",
            constraint=models.UniqueConstraint(fields=("tenant_id", "kind", "code"), name="uq_snap_tenant_kind_code"),
        ),
    ]
