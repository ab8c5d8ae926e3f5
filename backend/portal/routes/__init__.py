"""Application route blueprints."""

from .portal import portal_bp

__all__ = ["portal_bp"]
