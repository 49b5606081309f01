"""observetree: trees of observable nodes with priority-ordered change delivery."""

from importlib.metadata import version as _version

__version__ = _version("observetree")

from observetree._traversal import get_pending_count
from observetree.listener import ListenerEntry, ListenerSet, Priority
from observetree.node import (
    NotificationMode,
    ObservableNode,
    get_default_notification_mode,
    set_default_notification_mode,
)
from observetree.settable import SettableObservableValue, SettableValue
from observetree.action import Transaction, action, transaction

__all__ = [
    "ListenerEntry",
    "ListenerSet",
    "Priority",
    "NotificationMode",
    "ObservableNode",
    "SettableValue",
    "SettableObservableValue",
    "Transaction",
    "action",
    "transaction",
    "get_pending_count",
    "get_default_notification_mode",
    "set_default_notification_mode",
]
