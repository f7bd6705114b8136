"""Custom exception hierarchy for shipdesk."""

from __future__ import annotations


class ShipDeskError(Exception):
    """Base class for all custom errors raised by shipdesk."""


# --- 3-layer hierarchy ---

class DomainError(ShipDeskError):
    """Base class for domain-level errors."""


class InfrastructureError(ShipDeskError):
    """Base class for infrastructure-level errors."""


class ApplicationError(ShipDeskError):
    """Base class for application-level errors."""


# --- Domain errors ---

class RecordNotFoundError(DomainError):
    """Raised when a shipment request cannot be located."""


class ReadOnlyFieldError(DomainError):
    """Raised when a derived, display-only field is staged for persistence."""


# --- Infrastructure errors ---

class DecodeFailure(InfrastructureError):
    """Raised when a change event payload cannot be interpreted."""


class FetchFailure(InfrastructureError):
    """Raised when the bulk query or one of its refreshes fails."""


class PersistenceFailure(InfrastructureError):
    """Raised when a record update is rejected by the persistence backend."""

    def __init__(self, record_id: str, message: str) -> None:
        super().__init__(f"[{record_id}] {message}")
        self.record_id = record_id
        self.message = message


class SubscriptionFailure(InfrastructureError):
    """Raised when the streaming transport refuses a subscribe or unsubscribe."""


# --- Application errors ---

class SeedFormatError(ApplicationError):
    """Raised when a seed or script file for the headless harness is invalid."""


class SettingsError(ShipDeskError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
