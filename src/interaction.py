"""
Click-versus-drag gesture handling for diagram nodes.

Each pointer press on a node opens a drag session. The node only follows the
pointer once the pointer has travelled more than `threshold` world units on
either axis; a press released before that is a click and selects the node.
"""

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable

from models import GraphNode, Person

logger = logging.getLogger("clanscroll.interaction")

DRAG_THRESHOLD = 3.0


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass
class DragSession:
    node_id: str
    start_x: float
    start_y: float
    origin_x: float
    origin_y: float
    moved: bool = False


@dataclass(frozen=True)
class GestureResult:
    """Outcome of one pointer event. `propagate` is False when a node consumed it."""

    handled: bool
    propagate: bool
    selected: Person | None = None
    moved: bool = False


IGNORED = GestureResult(handled=False, propagate=True)


class NodeInteractionController:
    """
    Drag/select state machine over a node arena.

    `nodes` is the live arena (id -> GraphNode) owned by the caller; dragging
    writes straight into the node's position. Sessions are keyed by pointer id
    so separate pointers can drag separate nodes at the same time.
    """

    def __init__(
        self,
        nodes: dict[str, GraphNode],
        on_select: Callable[[Person], None] | None = None,
        threshold: float = DRAG_THRESHOLD,
    ):
        self.nodes = nodes
        self.on_select = on_select
        self.threshold = threshold
        self.sessions: dict[int, DragSession] = {}

    def state(self, node_id: str) -> DragState:
        if any(s.node_id == node_id for s in self.sessions.values()):
            return DragState.DRAGGING
        return DragState.IDLE

    def pointer_down(self, node_id: str, x: float, y: float, pointer_id: int = 0) -> GestureResult:
        node = self.nodes.get(node_id)
        if node is None:
            return IGNORED

        # One drag per node; a second pointer on the same node is swallowed
        if self.state(node_id) is DragState.DRAGGING or pointer_id in self.sessions:
            return GestureResult(handled=True, propagate=False)

        self.sessions[pointer_id] = DragSession(
            node_id=node_id, start_x=x, start_y=y, origin_x=node.x, origin_y=node.y
        )
        return GestureResult(handled=True, propagate=False)

    def pointer_move(self, x: float, y: float, pointer_id: int = 0) -> GestureResult:
        session = self.sessions.get(pointer_id)
        if session is None:
            return IGNORED

        dx = x - session.start_x
        dy = y - session.start_y
        if not session.moved and (abs(dx) > self.threshold or abs(dy) > self.threshold):
            session.moved = True

        if session.moved:
            node = self.nodes.get(session.node_id)
            if node is not None:
                node.x = session.origin_x + dx
                node.y = session.origin_y + dy

        return GestureResult(handled=True, propagate=False, moved=session.moved)

    def pointer_up(self, x: float, y: float, pointer_id: int = 0) -> GestureResult:
        if pointer_id not in self.sessions:
            return IGNORED

        # The release point counts as the last move of the gesture
        self.pointer_move(x, y, pointer_id)
        session = self.sessions.pop(pointer_id)

        if session.moved:
            return GestureResult(handled=True, propagate=False, moved=True)

        node = self.nodes.get(session.node_id)
        if node is None:
            # Node vanished in a relayout during the gesture
            return GestureResult(handled=True, propagate=False)

        if self.on_select is not None:
            self.on_select(node.person)
        return GestureResult(handled=True, propagate=False, selected=node.person)

    def cancel_all(self) -> None:
        """Drop every open session (used when the arena is rebuilt)."""
        self.sessions.clear()
