"""Settable values — nodes that hold a value and signal when it changes.

SettableValue wraps plain data: setting an unequal value records a change.

SettableObservableValue wraps another ObservableNode and keeps that node
positioned wherever the wrapper is positioned in the tree. Static
listeners and static parents belong to the wrapper's slot and move to
whichever value currently occupies it.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

from observetree import _anchor
from observetree.listener import Callback, ListenerEntry, ListenerSet, Priority
from observetree.node import NotificationMode, ObservableNode, _live

logger = logging.getLogger("observetree.settable")

T = TypeVar("T")
N = TypeVar("N", bound=ObservableNode)


class SettableValue(ObservableNode, Generic[T]):
    """An observable node holding a single value."""

    __slots__ = ("_value", "_default_value")

    def __init__(
        self, value: T | None = None, *, notification_mode: NotificationMode | None = None
    ) -> None:
        super().__init__(notification_mode=notification_mode)
        self._value = value
        self._default_value = None

    def present(self) -> bool:
        return self._value is not None

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Store value and record a change, unless it equals the current one."""
        old = self._value
        if old is value or old == value:
            return
        self._replace(value)

    def _replace(self, value: T) -> None:
        self._value = value
        self._on_value_changed()

    def set_and_notify(self, value: T) -> None:
        self.set(value)
        self.notify_listeners()

    def modify(self, fn: Callable[[T], T]) -> None:
        """Set the result of fn applied to the current value."""
        self.set(fn(self.get()))

    @property
    def default_value(self) -> T | None:
        return self._default_value

    @default_value.setter
    def default_value(self, value: T | None) -> None:
        self._default_value = value

    def save_as_default_value(self) -> None:
        self._default_value = self._value

    def reset_to_default_value(self) -> None:
        """Set the recorded default. No-op if no default was recorded."""
        default = self._default_value
        if default is not None:
            self.set(default)

    def __repr__(self) -> str:
        state = "dirty" if _anchor.dirty_flags.get(self._id) else "clean"
        return f"{type(self).__name__}#{self._id}({self._value!r}, {state})"


class SettableObservableValue(SettableValue[N]):
    """A settable slot whose value is itself an ObservableNode.

    The held node is bound under every parent of the wrapper and carries
    every static listener. Replacing the value moves both to the new node:

        slot = SettableObservableValue(first)
        root.bind_child(slot)           # first is now a child of root too
        slot.add_static_listener(on_change)
        slot.set(second)                # second under root, on_change on second

    Only entries the slot itself attached are taken off a replaced value; a
    listener the application registered on that value directly stays.
    """

    __slots__ = ("_static_listeners", "_attached")

    def __init__(
        self, value: N | None = None, *, notification_mode: NotificationMode | None = None
    ) -> None:
        super().__init__(value, notification_mode=notification_mode)
        self._static_listeners = ListenerSet()
        # (callback, priority) keys this slot added to the held value
        self._attached: set[tuple] = set()
        _anchor.static_parents[self._id] = {}

    # --- Static listeners ---

    def add_static_listener(self, callback: Callback, priority: int = Priority.NORMAL) -> bool:
        """Register a listener on the slot, attached to whatever value it holds."""
        added = self._static_listeners.add(callback, priority)
        if added and self._value is not None:
            self._attach(self._value, callback, priority)
        return added

    def remove_static_listener(self, callback: Callback) -> bool:
        entry = next((e for e in self._static_listeners if e.callback == callback), None)
        if entry is None:
            return False
        self._static_listeners.discard(entry.callback, entry.priority)
        if self._value is not None:
            self._detach(self._value, entry.key)
        return True

    def _attach(self, value: N, callback: Callback, priority: int) -> None:
        if value.add_listener(callback, priority):
            self._attached.add((callback, int(priority)))

    def _detach(self, value: N, key: tuple) -> None:
        if key in self._attached:
            self._attached.discard(key)
            value._listeners.discard(*key)

    @property
    def static_listeners(self) -> tuple[ListenerEntry, ...]:
        return tuple(self._static_listeners)

    @property
    def static_parents(self) -> frozenset[ObservableNode]:
        return _live(_anchor.static_parents[self._id])

    # --- Tree position ---

    def _bind_parent(self, parent: ObservableNode) -> None:
        _anchor.static_parents[self._id][parent._id] = None
        super()._bind_parent(parent)
        if self._value is not None:
            parent.bind_child(self._value)

    def _unbind_parent(self, parent: ObservableNode) -> None:
        _anchor.static_parents[self._id].pop(parent._id, None)
        super()._unbind_parent(parent)
        if self._value is not None:
            parent.unbind_child(self._value)

    # --- Value replacement ---

    def set(self, value: N | None) -> None:
        """Replace the held node, moving static parents and listeners onto it."""
        old = self._value
        if old is value:
            return
        parents = [
            node for node in map(_anchor.nodes.get, list(_anchor.static_parents[self._id]))
            if node is not None
        ]
        if old is not None:
            for parent in parents:
                parent.unbind_child(old)
            for key in list(self._attached):
                self._detach(old, key)
        self._attached.clear()
        if value is not None:
            for entry in self._static_listeners:
                self._attach(value, entry.callback, entry.priority)
            for parent in parents:
                parent.bind_child(value)
        logger.debug("Replaced %r with %r in %r", old, value, self)
        self._replace(value)
