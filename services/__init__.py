"""
Services: application-layer operations over the projection engine.
"""

from .projection_service import ProjectionService, QuickProjection

__all__ = ["ProjectionService", "QuickProjection"]
