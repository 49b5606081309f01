"""Tree traversal engine — the heart of observetree.

Propagation is a strict two-phase protocol:

1. mark: a changed node and all of its ancestors become dirty (upward only).
2. collect and dispatch: from one node, walk up then down, clear each dirty
   node and merge its listeners into one ListenerSet; then call every merged
   entry once, highest priority first.

Walks run over the arena's id relations and are recursive depth-first; the
tree is assumed acyclic.

Batching: inside an @action or `with transaction()` a change that would be
delivered right away is queued instead. When the outermost scope exits the
queue is flushed once per connected tree: each tree is notified from its
root, so all of its dirty listeners run in one priority-ordered pass.
"""

from __future__ import annotations

import logging
from enum import Enum

from observetree import _anchor
from observetree.listener import ListenerSet

logger = logging.getLogger("observetree._traversal")


class Direction(Enum):
    UP = "up"
    DOWN = "down"


def _relatives(node_id: int, direction: Direction) -> list[int]:
    table = _anchor.parents if direction is Direction.UP else _anchor.children
    return list(table[node_id])


def mark(node_id: int) -> list[int]:
    """Phase 1: mark node_id and every ancestor dirty. Returns the ids marked."""
    marked = [node_id]
    _anchor.dirty_flags[node_id] = True
    for parent_id in _relatives(node_id, Direction.UP):
        marked.extend(mark(parent_id))
    return marked


def collect(node_id: int, direction: Direction, into: ListenerSet) -> None:
    """Clear dirty nodes along direction and merge their listeners into `into`."""
    if _anchor.dirty_flags[node_id]:
        _anchor.dirty_flags[node_id] = False
        node = _anchor.nodes.get(node_id)
        if node is not None:
            into.merge(node._listeners)
    for relative_id in _relatives(node_id, direction):
        collect(relative_id, direction, into)


def clear(node_id: int, direction: Direction) -> None:
    """Clear dirty flags along direction without collecting anything."""
    _anchor.dirty_flags[node_id] = False
    for relative_id in _relatives(node_id, direction):
        clear(relative_id, direction)


def roots(node_id: int) -> list[int]:
    """Ids of the topmost ancestors of node_id (node_id itself if it has no parents)."""
    parent_ids = _relatives(node_id, Direction.UP)
    if not parent_ids:
        return [node_id]
    found: dict[int, None] = {}
    for parent_id in parent_ids:
        found.update(dict.fromkeys(roots(parent_id)))
    return list(found)


def dispatch(entries: ListenerSet) -> None:
    """Call every entry in delivery order.

    A raising callback aborts the rest of the dispatch; its exception
    propagates to the caller unchanged.
    """
    pending = list(entries)
    logger.debug("Dispatching %d listeners", len(pending))
    for index, entry in enumerate(pending):
        try:
            entry.callback()
        except Exception:
            logger.warning(
                "Listener %r failed, %d remaining listeners skipped",
                entry, len(pending) - index - 1,
            )
            raise


def notify(node_id: int) -> None:
    """Phase 2: collect from the whole connected tree of node_id and dispatch."""
    merged = ListenerSet()
    collect(node_id, Direction.UP, merged)
    collect(node_id, Direction.DOWN, merged)
    dispatch(merged)


# ─── Batching ────────────────────────────────────────────────────────────────
# Batch depth counter. When > 0, delivery is deferred.
_batch_depth: int = 0

# Changed nodes awaiting delivery, in the order they first changed.
_pending: dict[int, None] = {}


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush the queue."""
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0:
        _flush_pending()


def schedule(node_id: int) -> None:
    """Deliver a change now, or at the end of the open batch."""
    if _batch_depth > 0:
        _pending[node_id] = None
    else:
        notify(node_id)


def pending_ids() -> list[int]:
    return list(_pending)


def cancel_pending() -> int:
    """Drop every queued delivery. The nodes stay dirty. Returns the count dropped."""
    dropped = len(_pending)
    _pending.clear()
    return dropped


def _flush_pending() -> None:
    while _pending:
        tree_roots: dict[int, None] = {}
        for node_id in _pending:
            # The node may have been collected while the batch was open.
            if node_id in _anchor.dirty_flags:
                tree_roots.update(dict.fromkeys(roots(node_id)))
        _pending.clear()
        logger.debug("Flushing %d trees", len(tree_roots))
        for root_id in tree_roots:
            try:
                notify(root_id)
            except Exception:
                # Undelivered trees stay dirty for a later notify_listeners().
                logger.exception("Failed to deliver batched changes of node #%d", root_id)
                _pending.clear()
                raise


def get_pending_count() -> int:
    """Number of nodes waiting for delivery. Useful for testing."""
    return len(_pending)
