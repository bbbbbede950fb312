"""
Brickflow Core Config — Pipeline Rules
=======================================
Plant-level settings that engines read instead of hardcoding:
currency, invoice terms, the event source label and which engines
enforce operator roles.

Rules come from Django settings (``BRICKFLOW_RULES``) or from an
injected ConfigStore; engines never import settings directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping, Optional, Protocol


# ══════════════════════════════════════════════════════════════
# PIPELINE RULES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PipelineRules:
    """
    Tenant-independent plant rules.

    default_terms_days: invoice due date offset when issuing.
    event_source:       ``source`` stamped on every appended event.
    role_enforced_engines:
                        engines that reject actors lacking the
                        engine's operator role.
    """

    default_currency: str = "ZAR"
    default_terms_days: int = 30
    event_source: str = "web"
    role_enforced_engines: FrozenSet[str] = field(
        default_factory=lambda: frozenset({"mining"})
    )

    def __post_init__(self) -> None:
        if not self.default_currency or len(self.default_currency) != 3:
            raise ValueError("default_currency must be a 3-letter code.")
        if self.default_terms_days < 0:
            raise ValueError("default_terms_days cannot be negative.")
        if not self.event_source:
            raise ValueError("event_source must be non-empty.")
        object.__setattr__(
            self, "role_enforced_engines", frozenset(self.role_enforced_engines)
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PipelineRules":
        known = {
            "default_currency", "default_terms_days",
            "event_source", "role_enforced_engines",
        }
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown pipeline rule(s): {', '.join(unknown)}")
        return cls(**dict(data))


# ══════════════════════════════════════════════════════════════
# CONFIG STORE PROTOCOL
# ══════════════════════════════════════════════════════════════

class ConfigStore(Protocol):
    """Source of PipelineRules (database, file, settings, memory)."""

    def get_rules(self) -> PipelineRules:
        ...  # pragma: no cover


class InMemoryConfigStore:
    """Simple in-memory config store for testing and bootstrap."""

    def __init__(self, rules: Optional[PipelineRules] = None) -> None:
        self._rules = rules or PipelineRules()

    def set_rules(self, rules: PipelineRules) -> None:
        self._rules = rules

    def get_rules(self) -> PipelineRules:
        return self._rules


def rules_from_settings() -> PipelineRules:
    """Read ``settings.BRICKFLOW_RULES`` (missing → defaults)."""
    from django.conf import settings

    return PipelineRules.from_mapping(getattr(settings, "BRICKFLOW_RULES", {}))
