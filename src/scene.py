"""
Diagram state: the node arena, the viewport and pointer routing.

FamilyCanvas is the single owner of laid-out node positions. Layout passes,
auto-fit and drags all go through it, so nothing else keeps positions.
"""

from dataclasses import dataclass
import logging
from typing import Callable

from interaction import IGNORED, GestureResult, NodeInteractionController
from kinship import relationship_label
from layout import layout_members
from models import GraphNode, Person
from viewport import Viewport

logger = logging.getLogger("clanscroll.scene")

NODE_WIDTH = 120.0
NODE_WIDTH_WITH_SPOUSE = 200.0
NODE_HEIGHT = 220.0


@dataclass
class PanSession:
    """A background press; `x`, `y` track the last applied pan position."""

    pointer_id: int
    x: float
    y: float
    moved: bool = False


def structure_key(members: list[Person]) -> tuple:
    """Everything about the members that affects layout."""
    return tuple((m.id, m.parent_id, m.gender, m.birth_date) for m in members)


def node_extent(node: GraphNode) -> tuple[float, float]:
    width = NODE_WIDTH_WITH_SPOUSE if node.person.spouse_name else NODE_WIDTH
    return width, NODE_HEIGHT


class FamilyCanvas:
    """
    Interactive family diagram.

    `members` passed in must already be the active set. Screen coordinates are
    viewport pixels; node positions are world units.
    """

    def __init__(
        self,
        width: float = 0.0,
        height: float = 0.0,
        on_select: Callable[[Person], None] | None = None,
        on_deselect: Callable[[], None] | None = None,
        node_size: tuple[float, float] = (280.0, 400.0),
        fit_padding: tuple[float, float] = (400.0, 600.0),
        drag_threshold: float = 3.0,
        transition_ms: float = 750.0,
        locale: str = "zh",
    ):
        self.members: list[Person] = []
        self.nodes: dict[str, GraphNode] = {}
        self.viewport = Viewport(width, height)
        self.node_size = node_size
        self.fit_padding = fit_padding
        self.transition_ms = transition_ms
        self.locale = locale
        self.selected_id: str | None = None
        self.on_select = on_select
        self.on_deselect = on_deselect
        self.interaction = NodeInteractionController(self.nodes, self._select_person, drag_threshold)
        self._structure: tuple | None = None
        self._pan: PanSession | None = None

    @classmethod
    def from_settings(cls, settings, width: float = 0.0, height: float = 0.0, **callbacks) -> "FamilyCanvas":
        return cls(
            width,
            height,
            node_size=settings.node_size,
            fit_padding=settings.fit_padding,
            drag_threshold=settings.DRAG_THRESHOLD,
            transition_ms=settings.TRANSITION_MS,
            locale=settings.LOCALE,
            **callbacks,
        )

    # ============================================================================
    # Layout policy
    # ============================================================================

    def relayout(self, fit: bool = True, now: float = 0.0) -> bool:
        """
        Full layout pass: every node goes back to its computed position.

        On failure the previous nodes stay in place and False is returned.
        """
        if not self.members:
            self._replace_nodes({})
            self._structure = ()
            return True
        if self.viewport.width <= 0 or self.viewport.height <= 0:
            logger.debug("Layout deferred until the viewport has a size")
            return False

        nodes = layout_members(self.members, self.node_size)
        if nodes is None:
            return False

        self._replace_nodes(nodes)
        self._structure = structure_key(self.members)
        if fit:
            self.viewport.auto_fit(self.nodes.values(), now, self.fit_padding, self.transition_ms)
        return True

    def _replace_nodes(self, nodes: dict[str, GraphNode]) -> None:
        # Mutate in place: the interaction controller holds this dict
        self.interaction.cancel_all()
        self.nodes.clear()
        self.nodes.update(nodes)

    def set_members(self, members: list[Person], now: float = 0.0) -> bool:
        """
        Replace the active member set.

        A change in ids, parent links, genders or birth dates triggers a full
        relayout and auto-fit. Otherwise only the person records are swapped
        and every node keeps its current (possibly dragged) position.
        """
        members = list(members)
        key = structure_key(members)
        self.members = members

        if self.selected_id is not None and all(m.id != self.selected_id for m in members):
            self.selected_id = None

        if key == self._structure and len(self.nodes) == len(members):
            for m in members:
                self.nodes[m.id].person = m
            return True

        return self.relayout(fit=True, now=now)

    def resize(self, width: float, height: float, now: float = 0.0) -> bool:
        self.viewport.resize(width, height)
        return self.relayout(fit=True, now=now)

    def recenter(self, now: float = 0.0) -> bool:
        """Re-run the layout from scratch and fit it to the viewport."""
        return self.relayout(fit=True, now=now)

    # ============================================================================
    # Pointer routing (screen coordinates)
    # ============================================================================

    def node_at(self, sx: float, sy: float) -> GraphNode | None:
        """Topmost node whose card contains the screen point."""
        wx, wy = self.viewport.transform.invert(sx, sy)
        for node in reversed(list(self.nodes.values())):
            w, h = node_extent(node)
            if abs(wx - node.x) <= w / 2 and abs(wy - node.y) <= h / 2:
                return node
        return None

    def pointer_down(self, sx: float, sy: float, pointer_id: int = 0) -> GestureResult:
        node = self.node_at(sx, sy)
        if node is not None:
            wx, wy = self.viewport.transform.invert(sx, sy)
            return self.interaction.pointer_down(node.id, wx, wy, pointer_id)

        # One background pan at a time
        if self._pan is not None:
            return IGNORED
        self._pan = PanSession(pointer_id, sx, sy)
        return GestureResult(handled=True, propagate=True)

    def pointer_move(self, sx: float, sy: float, pointer_id: int = 0) -> GestureResult:
        if pointer_id in self.interaction.sessions:
            wx, wy = self.viewport.transform.invert(sx, sy)
            return self.interaction.pointer_move(wx, wy, pointer_id)

        pan = self._pan
        if pan is None or pan.pointer_id != pointer_id:
            return IGNORED

        dx = sx - pan.x
        dy = sy - pan.y
        if pan.moved or abs(dx) > self.interaction.threshold or abs(dy) > self.interaction.threshold:
            pan.moved = True
            self.viewport.pan_by(dx, dy)
            pan.x, pan.y = sx, sy
        return GestureResult(handled=True, propagate=True, moved=pan.moved)

    def pointer_up(self, sx: float, sy: float, pointer_id: int = 0) -> GestureResult:
        if pointer_id in self.interaction.sessions:
            wx, wy = self.viewport.transform.invert(sx, sy)
            return self.interaction.pointer_up(wx, wy, pointer_id)

        pan = self._pan
        if pan is None or pan.pointer_id != pointer_id:
            return IGNORED

        self._pan = None
        if not pan.moved:
            self.deselect()
        return GestureResult(handled=True, propagate=True, moved=pan.moved)

    def wheel(self, sx: float, sy: float, factor: float) -> None:
        self.viewport.zoom_by(factor, anchor=(sx, sy))

    # ============================================================================
    # Selection and kinship
    # ============================================================================

    def _select_person(self, person: Person) -> None:
        self.selected_id = person.id
        if self.on_select is not None:
            self.on_select(person)

    def select(self, person_id: str) -> None:
        node = self.nodes.get(person_id)
        if node is None:
            raise KeyError(person_id)
        self._select_person(node.person)

    def deselect(self) -> None:
        if self.selected_id is None:
            return
        self.selected_id = None
        if self.on_deselect is not None:
            self.on_deselect()

    @property
    def selected(self) -> Person | None:
        node = self.nodes.get(self.selected_id) if self.selected_id else None
        return node.person if node else None

    def relationship_between(self, target_id: str, center_id: str) -> str | None:
        by_id = {m.id: m for m in self.members}
        if target_id not in by_id or center_id not in by_id:
            return None
        return relationship_label(by_id[target_id], by_id[center_id], self.members, self.locale)

    def relationship_labels(self) -> dict[str, str]:
        """Kinship term of every node relative to the selected member."""
        center = self.selected
        if center is None:
            return {}
        labels = {}
        for node in self.nodes.values():
            label = relationship_label(node.person, center, self.members, self.locale)
            if label is not None:
                labels[node.id] = label
        return labels

    def links(self) -> list[tuple[GraphNode, GraphNode]]:
        """(parent, child) node pairs for drawing connectors."""
        return [
            (self.nodes[n.person.parent_id], n)
            for n in self.nodes.values()
            if n.person.parent_id is not None and n.person.parent_id in self.nodes
        ]
