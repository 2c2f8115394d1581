"""
Persistence layer for links and clicks.

Store methods only flush. The calling service owns the transaction so a
click insert and its hit counter increment commit or roll back together.
"""

from .links import LinkStore
from .clicks import ClickRecorder, ClickContext

__all__ = [
    "LinkStore",
    "ClickRecorder",
    "ClickContext",
]
