"""API route modules."""

from . import agents, monitoring

__all__ = ["agents", "monitoring"]
