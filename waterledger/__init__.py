"""Delivery ledger service for a water-delivery operator."""

__version__ = "0.1.0"
