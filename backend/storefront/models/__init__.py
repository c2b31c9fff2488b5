from .catalog import Item
from .accounts import Account
from .orders import Order, Chat, ChatMessage
from .state import StateRecord, IdentifierSequence

__all__ = [
    'Item',
    'Account',
    'Order', 'Chat', 'ChatMessage',
    'StateRecord', 'IdentifierSequence',
]
