"""Live-synchronised shipment request table."""

__version__ = "0.1.0"
