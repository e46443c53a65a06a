"""State management layer for the seller app.

Architecture:
- Store: Service locator holding the session, the order and book
  collections, and their write-through actions
"""

from .store import Store

__all__ = ["Store"]
