from .change_decoder import ChangeEventDecoder, decode_change_event
from .row_action_dispatcher import RowActionDispatcher, build_field_delta
from .row_cache import RowCache, enrich_record
from .subscription_manager import SubscriptionManager, SubscriptionState
from .sync_controller import SyncController

__all__ = [
    "ChangeEventDecoder",
    "RowActionDispatcher",
    "RowCache",
    "SubscriptionManager",
    "SubscriptionState",
    "SyncController",
    "build_field_delta",
    "decode_change_event",
    "enrich_record",
]
