"""
Database models for the short link service.

Links hold the slug -> destination mapping and a running hit counter.
Clicks are the append-only visit history the analytics read from.
"""

from .link import Link
from .click import Click

__all__ = ["Link", "Click"]
