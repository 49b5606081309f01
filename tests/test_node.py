"""Tests for a single ObservableNode: listeners, dirty flag, notification modes."""

import logging

import pytest

from observetree import NotificationMode, ObservableNode, Priority
from observetree import node as node_module


class Touchable(ObservableNode):
    """Minimal value holder: touch() records a change."""

    def touch(self):
        self._on_value_changed()


class TestListeners:
    def test_add_remove(self):
        n = Touchable()
        cb = lambda: None
        assert n.add_listener(cb) is True
        assert n.add_listener(cb) is False
        assert len(n.listeners) == 1
        assert n.remove_listener(cb) is True
        assert n.remove_listener(cb) is False

    def test_priority_order(self):
        n = Touchable()
        log = []
        n.add_listener(lambda: log.append(0), Priority.NORMAL)
        n.add_listener(lambda: log.append(-1), Priority.LOW)
        n.add_listener(lambda: log.append(2), Priority.VERY_HIGH)
        n.touch()
        n.notify_listeners()
        assert log == [2, 0, -1]

    def test_two_priorities_fire_twice(self):
        n = Touchable()
        log = []
        cb = lambda: log.append("x")
        n.add_listener(cb, 1)
        n.add_listener(cb, 0)
        n.touch()
        n.notify_listeners()
        assert log == ["x", "x"]

    def test_copy_listeners_is_snapshot(self):
        src, dst = Touchable(), Touchable()
        log = []
        src.add_listener(lambda: log.append("a"), Priority.HIGH)
        src.copy_listeners(dst)
        src.add_listener(lambda: log.append("b"))
        assert [e.priority for e in dst.listeners] == [1]
        dst.touch()
        dst.notify_listeners()
        assert log == ["a"]

    def test_clear_listeners(self):
        n = Touchable()
        log = []
        n.add_listener(lambda: log.append(1))
        n.clear_listeners()
        n.touch()
        n.notify_listeners()
        assert log == []


class TestDirtyFlag:
    def test_starts_clean(self):
        n = Touchable()
        assert n.dirty is False
        assert n.is_dirty() is False

    def test_change_marks_dirty(self):
        n = Touchable()
        n.touch()
        assert n.is_dirty()

    def test_notify_clears(self):
        n = Touchable()
        log = []
        n.add_listener(lambda: log.append(1))
        n.touch()
        n.notify_listeners()
        assert not n.dirty
        n.notify_listeners()
        assert log == [1]  # clean node delivers nothing

    def test_notify_clean_node_is_silent(self):
        n = Touchable()
        log = []
        n.add_listener(lambda: log.append(1))
        n.notify_listeners()
        assert log == []

    def test_set_unchanged(self):
        n = Touchable()
        log = []
        n.add_listener(lambda: log.append(1))
        n.touch()
        n.set_unchanged()
        assert not n.dirty
        n.notify_listeners()
        assert log == []


class TestNotificationMode:
    def test_default_manual(self):
        n = Touchable()
        assert n.notification_mode is NotificationMode.MANUAL
        log = []
        n.add_listener(lambda: log.append(1))
        n.touch()
        assert log == []

    def test_automatic_fires_on_change(self):
        n = Touchable(notification_mode=NotificationMode.AUTOMATIC)
        log = []
        n.add_listener(lambda: log.append(1))
        n.touch()
        assert log == [1]
        assert not n.dirty

    def test_mode_setter(self):
        n = Touchable()
        n.notification_mode = NotificationMode.AUTOMATIC
        assert n.notification_mode is NotificationMode.AUTOMATIC

    def test_set_default_mode(self, monkeypatch):
        monkeypatch.setattr(node_module, "_default_mode", NotificationMode.MANUAL)
        node_module.set_default_notification_mode(NotificationMode.AUTOMATIC)
        assert node_module.get_default_notification_mode() is NotificationMode.AUTOMATIC
        assert Touchable().notification_mode is NotificationMode.AUTOMATIC
        assert Touchable(notification_mode=NotificationMode.MANUAL).notification_mode is NotificationMode.MANUAL


class TestListenerFailure:
    def test_raising_listener_aborts_dispatch(self, caplog):
        n = Touchable()
        log = []

        def boom():
            raise ValueError("boom")

        n.add_listener(lambda: log.append("first"), Priority.HIGH)
        n.add_listener(boom, Priority.NORMAL)
        n.add_listener(lambda: log.append("last"), Priority.LOW)
        n.touch()

        with caplog.at_level(logging.WARNING, logger="observetree._traversal"):
            with pytest.raises(ValueError, match="boom"):
                n.notify_listeners()

        assert log == ["first"]
        assert not n.dirty
        assert "1 remaining listeners skipped" in caplog.text

    def test_automatic_propagates_to_mutator(self):
        n = Touchable(notification_mode=NotificationMode.AUTOMATIC)

        def boom():
            raise RuntimeError("listener")

        n.add_listener(boom)
        with pytest.raises(RuntimeError):
            n.touch()


class TestRepr:
    def test_repr_shows_state(self):
        n = Touchable()
        assert "clean" in repr(n)
        n.touch()
        assert "dirty" in repr(n)
