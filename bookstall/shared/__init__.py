"""
Bookstall Shared Kernel
=======================

Business logic and infrastructure shared by the Bookstall apps.

Architecture:
- core: EventBus, configuration, errors, logging
- infrastructure: Technical adapters (REST API, key-value storage)
- domain: Client state (session, orders, books)
"""

__version__ = "0.1.0"

__all__ = []
