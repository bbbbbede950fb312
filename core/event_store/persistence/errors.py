"""
Brickflow Event Store - Append Warning Codes
============================================
Codes carried on EventLogWarning when an append is reported rather
than raised.
"""


class EventLogWarningCode:
    """Why an event did not reach the log."""

    ATTRIBUTION_MISSING = "ATTRIBUTION_MISSING"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"


class EventLogFailure(RuntimeError):
    """
    An event that IS the mutation could not be appended.

    Raised inside ``store.atomic()`` so the whole operation rolls back.
    Events whose loss only costs an audit row are reported as warnings
    instead.
    """

    def __init__(self, warning):
        self.warning = warning
        super().__init__(warning.message)
