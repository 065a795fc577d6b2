"""Simpro to HubSpot quote, line item and job synchronisation."""

__version__ = "0.1.0"
