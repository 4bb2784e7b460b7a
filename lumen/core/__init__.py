"""Core orchestration package."""

from lumen.core.engine import Lumen

__all__ = ["Lumen"]
