"""Observable nodes — tree participants that record and deliver changes.

A change marks the node and all its ancestors dirty. notify_listeners()
then delivers, once each and in priority order, the listeners of every
dirty node reachable upward or downward from the notifying node.

Tree state lives in _anchor, keyed by the handle's _id; a node's own
listeners live on the handle. Parent/child links are ids, so the tree never
owns its nodes.
"""

from __future__ import annotations

import logging
from enum import Enum

from observetree import _anchor, _traversal
from observetree.listener import Callback, ListenerEntry, ListenerSet, Priority

logger = logging.getLogger("observetree.node")


class NotificationMode(Enum):
    """When listeners of a changed node get delivered."""

    #: Only through an explicit notify_listeners() (multistage changes)
    MANUAL = "manual"
    #: Immediately after the node records a change
    AUTOMATIC = "automatic"


# ─── Defaults ────────────────────────────────────────────────────────────────
_default_mode = NotificationMode.MANUAL


def set_default_notification_mode(mode: NotificationMode) -> None:
    """Set the notification mode new nodes start in.

    Existing nodes keep their mode. Call once at startup:
        observetree.set_default_notification_mode(NotificationMode.AUTOMATIC)
    """
    global _default_mode
    _default_mode = NotificationMode(mode)


def get_default_notification_mode() -> NotificationMode:
    return _default_mode


class ObservableNode:
    """A node in an observable tree."""

    __slots__ = ("_id", "_listeners", "__weakref__")

    def __init__(self, *, notification_mode: NotificationMode | None = None) -> None:
        self._id = _anchor.register(self)
        self._listeners = ListenerSet()
        _anchor.notification_modes[self._id] = (
            _default_mode if notification_mode is None else NotificationMode(notification_mode)
        )

    # --- Listeners ---

    def add_listener(self, callback: Callback, priority: int = Priority.NORMAL) -> bool:
        """Register callback. False if it is already registered at this priority."""
        return self._listeners.add(callback, priority)

    def remove_listener(self, callback: Callback) -> bool:
        """Unregister callback (any priority). False if it was not registered."""
        return self._listeners.remove(callback)

    def copy_listeners(self, target: ObservableNode) -> None:
        """Add a snapshot of this node's listeners to target."""
        for entry in self._listeners:
            target.add_listener(entry.callback, entry.priority)

    def clear_listeners(self) -> None:
        self._listeners.clear()

    @property
    def listeners(self) -> tuple[ListenerEntry, ...]:
        """Registered entries in delivery order."""
        return tuple(self._listeners)

    # --- Tree relations ---

    def bind_child(self, child: ObservableNode) -> None:
        """Make child a sub-observable of this node.

        A child that is already dirty makes its new ancestors dirty too.
        """
        child._bind_parent(self)
        logger.debug("Bound %r under %r", child, self)
        if child.dirty:
            child._on_value_changed()

    def unbind_child(self, child: ObservableNode) -> None:
        """Remove the relation both ways. Dirty flags are left as they are."""
        if child._id in _anchor.children[self._id]:
            child._unbind_parent(self)
            logger.debug("Unbound %r from %r", child, self)

    add_sub_observable = bind_child
    remove_sub_observable = unbind_child

    def _bind_parent(self, parent: ObservableNode) -> None:
        """Link parent -> self. Subclasses extend this to follow their position."""
        _anchor.link(parent._id, self._id)

    def _unbind_parent(self, parent: ObservableNode) -> None:
        _anchor.unlink(parent._id, self._id)

    @property
    def parents(self) -> frozenset[ObservableNode]:
        return _live(_anchor.parents[self._id])

    @property
    def children(self) -> frozenset[ObservableNode]:
        return _live(_anchor.children[self._id])

    # --- Change signaling & delivery ---

    @property
    def notification_mode(self) -> NotificationMode:
        return _anchor.notification_modes[self._id]

    @notification_mode.setter
    def notification_mode(self, mode: NotificationMode) -> None:
        _anchor.notification_modes[self._id] = NotificationMode(mode)

    def _on_value_changed(self) -> None:
        """Record a change. Called by value holders after they mutate.

        Delivery runs right away when this node or any ancestor is automatic.
        """
        marked = _traversal.mark(self._id)
        modes = _anchor.notification_modes
        if any(modes[node_id] is NotificationMode.AUTOMATIC for node_id in marked):
            _traversal.schedule(self._id)

    def notify_listeners(self) -> None:
        """Deliver the listeners of every dirty node connected to this one."""
        _traversal.notify(self._id)

    def set_unchanged(self, traverse_tree: bool = False) -> None:
        """Clear this node's dirty flag, or every ancestor's and descendant's too."""
        if not traverse_tree:
            _anchor.dirty_flags[self._id] = False
            return
        _traversal.clear(self._id, _traversal.Direction.UP)
        _traversal.clear(self._id, _traversal.Direction.DOWN)

    @property
    def dirty(self) -> bool:
        return _anchor.dirty_flags[self._id]

    def is_dirty(self) -> bool:
        return _anchor.dirty_flags[self._id]

    def __repr__(self) -> str:
        state = "dirty" if _anchor.dirty_flags.get(self._id) else "clean"
        return f"{type(self).__name__}#{self._id}({state})"


def _live(ids) -> frozenset:
    found = (_anchor.nodes.get(node_id) for node_id in ids)
    return frozenset(node for node in found if node is not None)
