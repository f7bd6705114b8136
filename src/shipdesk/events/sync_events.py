from dataclasses import dataclass, field

from .bus import Event


@dataclass(kw_only=True)
class RowSetReplacedEvent(Event):
    row_ids: tuple[str, ...] = ()
    reason: str = ""

    @property
    def row_count(self) -> int:
        return len(self.row_ids)


@dataclass(kw_only=True)
class RefreshRequestedEvent(Event):
    reason: str = ""
    coalesced: bool = False


@dataclass(kw_only=True)
class SubscriptionStateChangedEvent(Event):
    state: str = ""
    channel: str = ""


@dataclass(kw_only=True)
class DiagnosticRecordedEvent(Event):
    kind: str = ""
    severity: str = ""
    context: dict = field(default_factory=dict)
