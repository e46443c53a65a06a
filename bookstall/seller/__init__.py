"""Seller app: composition root and headless entry point."""
