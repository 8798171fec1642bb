"""Utility functions for image-runner."""

from .digest import short_digest, validate_digest

__all__ = ["short_digest", "validate_digest"]
