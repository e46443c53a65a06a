"""
Shared Domain Module
====================

Client-side state for the seller app: session, paginated collections, and the
write-through actions that reconcile them.
"""
