"""Data anchor — plain Python structures that hold the tree's id state.

Nodes are handles holding an _id. Dirty flags, notification modes and
every relation between nodes are stored here as ids, never as node
references, so the tree never keeps a node alive. Anything that can refer
back to a node (listener callbacks, held values) lives on the handle
itself. The only way back from an id to a node is the weak `nodes`
registry; when a handle is collected its finalizer calls release().
"""

import itertools
import weakref

# Node registry — id -> live handle (weak)
nodes: "weakref.WeakValueDictionary[int, object]" = weakref.WeakValueDictionary()

# Node state
dirty_flags: dict[int, bool] = {}
notification_modes: dict[int, object] = {}
parents: dict[int, dict[int, None]] = {}  # insertion-ordered id sets
children: dict[int, dict[int, None]] = {}

# Slot state — SettableObservableValue id -> parent ids
static_parents: dict[int, dict[int, None]] = {}

_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def register(node) -> int:
    """Allocate arena slots for a new node handle and return its id."""
    node_id = new_id()
    nodes[node_id] = node
    dirty_flags[node_id] = False
    parents[node_id] = {}
    children[node_id] = {}
    weakref.finalize(node, release, node_id)
    return node_id


def link(parent_id: int, child_id: int) -> None:
    children[parent_id][child_id] = None
    parents[child_id][parent_id] = None


def unlink(parent_id: int, child_id: int) -> None:
    children[parent_id].pop(child_id, None)
    parents[child_id].pop(parent_id, None)


def release(node_id: int) -> None:
    """Drop all state of a collected node and unlink it from its relatives."""
    for parent_id in parents.pop(node_id, {}):
        if parent_id in children:
            children[parent_id].pop(node_id, None)
    for child_id in children.pop(node_id, {}):
        if child_id in parents:
            parents[child_id].pop(node_id, None)
        if child_id in static_parents:
            static_parents[child_id].pop(node_id, None)
    for table in (dirty_flags, notification_modes, static_parents):
        table.pop(node_id, None)
    nodes.pop(node_id, None)
