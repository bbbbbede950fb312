"""
Brickflow Core Config — Public API
===================================
"""

from core.config.rules import (
    ConfigStore,
    InMemoryConfigStore,
    PipelineRules,
    rules_from_settings,
)

__all__ = [
    "PipelineRules",
    "ConfigStore",
    "InMemoryConfigStore",
    "rules_from_settings",
]
