from .registry import Participant, RegistrationRequest, PendingRequestSlot, SystemState, Sequence
from .custody import Item, HistoryEntry
from .notifications import Notification
from .security import SecurityEvent

__all__ = [
    'Participant', 'RegistrationRequest', 'PendingRequestSlot', 'SystemState', 'Sequence',
    'Item', 'HistoryEntry',
    'Notification',
    'SecurityEvent',
]
