from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Union

from shipdesk.domain.models import FetchToken, NavigationTarget, ShipmentRecord

MessageHandler = Callable[[Any], Union[Awaitable[None], None]]
ErrorListener = Callable[[Any], None]


@dataclass
class FetchResult:
    records: List[ShipmentRecord] = field(default_factory=list)
    token: FetchToken = field(default_factory=lambda: FetchToken(query=""))


class BulkFetchService(ABC):
    """Query side of the backend: loads the shipment request list."""

    @abstractmethod
    async def fetch(self) -> FetchResult:
        """Run the list query. Raises on failure."""

    @abstractmethod
    async def refetch(self, token: FetchToken) -> FetchResult:
        """Re-issue the exact query that produced *token*. Raises on failure."""


class PersistenceService(ABC):
    @abstractmethod
    async def persist(self, record_id: str, field_deltas: Dict[str, Any]) -> None:
        """Apply *field_deltas* to the record. Raises on failure."""


class StreamingTransport(ABC):
    """Pub/sub client delivering raw change events."""

    @abstractmethod
    async def subscribe(self, channel: str, replay_from: int, on_message: MessageHandler) -> Any:
        """Return an opaque subscription handle. Raises on failure."""

    @abstractmethod
    async def unsubscribe(self, handle: Any) -> Any:
        """Release *handle* and return the transport's acknowledgement."""

    @abstractmethod
    def on_error(self, listener: ErrorListener) -> None:
        """Register a process-wide listener for streaming errors."""


class NavigationService(ABC):
    @abstractmethod
    def navigate(self, target: NavigationTarget) -> None:
        """Open *target*. Fire-and-forget."""
