"""
Brickflow Events — Errors
==========================
Schema errors for tagged event payloads.

These are programming errors (wrong payload for an event type, unknown
event type), not guard failures. They are never downgraded to warnings.
"""


class EventSchemaError(Exception):
    """Base error for event envelope and payload schema problems."""
    pass


class UnknownEventType(EventSchemaError):
    """Event type has no registered payload shape."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(
            f"Event type '{event_type}' is not registered."
        )


class DuplicateEventType(EventSchemaError):
    """Event type registered twice with different shapes."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(
            f"Event type '{event_type}' is already registered "
            f"with a different payload shape."
        )


class PayloadMismatch(EventSchemaError):
    """Payload object or aggregate type does not match the registry."""
    pass


class PayloadFieldError(EventSchemaError):
    """Stored payload is missing a required field or has an unknown one."""

    def __init__(self, payload_type: str, detail: str):
        self.payload_type = payload_type
        super().__init__(f"{payload_type}: {detail}")
