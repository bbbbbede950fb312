"""
Brickflow Engines — Shared Service Base
========================================
"""

from core.engines.service import EventBatch, PipelineService

__all__ = ["EventBatch", "PipelineService"]
