from .signal import Signal, ObservableProperty
from .base import BaseViewModel
from .shipment_table_viewmodel import ShipmentTableViewModel

__all__ = [
    "BaseViewModel",
    "ObservableProperty",
    "ShipmentTableViewModel",
    "Signal",
]
