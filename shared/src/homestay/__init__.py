"""Homestay booking core: reservations, pricing, availability and payment reconciliation."""

__version__ = "0.1.0"
