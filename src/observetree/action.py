"""Actions and transactions — multistage changes delivered once.

Inside an @action or `with transaction()` changes still mark the tree
dirty as they happen, but no listener runs. When the outermost scope exits
every tree that received a change is notified once from its root, so its
listeners see the finished state in a single priority-ordered pass and
never a half-applied change. Changes to trees with no automatic node on
the path are never queued and stay for an explicit notify_listeners().
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from observetree import _anchor, _traversal
from observetree.node import ObservableNode

P = ParamSpec("P")
R = TypeVar("R")


class Transaction:
    """Handle on the open batch, yielded by transaction()."""

    __slots__ = ()

    @property
    def deferred(self) -> tuple[ObservableNode, ...]:
        """Changed nodes whose delivery is waiting for the batch to close."""
        found = (_anchor.nodes.get(node_id) for node_id in _traversal.pending_ids())
        return tuple(node for node in found if node is not None)

    def cancel(self) -> int:
        """Skip delivery of everything queued so far in the outermost batch.

        The changed nodes stay dirty, so a later notify_listeners() still
        delivers them. Returns the number of queued nodes dropped.
        """
        return _traversal.cancel_pending()


@contextmanager
def transaction() -> Iterator[Transaction]:
    """Defer delivery until the outermost scope exits.

    Usage:
        with transaction() as tx:
            width.set(640)
            height.set(480)
            if not valid(width, height):
                tx.cancel()
        # size's listeners fire here once, after both are set
    """
    _traversal.begin_batch()
    try:
        yield Transaction()
    finally:
        _traversal.end_batch()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: run fn inside a transaction.

    Usage:
        size.bind_child(width)
        size.bind_child(height)

        @action
        def resize(w, h):
            width.set(w)
            height.set(h)
            # size's listeners see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def run_in_transaction(*args: P.args, **kwargs: P.kwargs) -> R:
        with transaction():
            return fn(*args, **kwargs)

    return run_in_transaction
