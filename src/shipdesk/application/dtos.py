"""Signals exchanged with the sync controller and the decisions it returns."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from shipdesk.application.interfaces import FetchResult


@dataclass(frozen=True)
class InitialLoadResult:
    """Outcome of the first bulk fetch after attach."""
    result: Optional[FetchResult] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.result is not None


@dataclass(frozen=True)
class EditOutcome:
    record_id: str
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class EditCommitResult:
    """Settled persistence calls of one commit (status transition or grid save)."""
    outcomes: Tuple[EditOutcome, ...] = ()

    @property
    def succeeded(self) -> Tuple[EditOutcome, ...]:
        return tuple(o for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> Tuple[EditOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.succeeded)


@dataclass(frozen=True)
class ManualRefresh:
    reason: str = "manual"


@dataclass(frozen=True)
class RefreshDecision:
    refresh: bool
    reason: str = ""
    coalesced: bool = field(default=False, compare=False)
