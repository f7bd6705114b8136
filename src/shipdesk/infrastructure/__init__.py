"""Headless implementations of the table's external collaborators."""

from .memory_store import InMemoryShipmentStore, load_seed
from .memory_transport import InMemoryStreamingTransport, TransportSubscription

__all__ = [
    "InMemoryShipmentStore",
    "InMemoryStreamingTransport",
    "TransportSubscription",
    "load_seed",
]
