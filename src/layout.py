"""
Hierarchical layout of a family forest.

A forest with several roots is joined under a transient virtual root so a
single tidy-tree pass (Reingold-Tilford, in the linear-time formulation of
Buchheim, Juenger and Leipert) places every tree side by side. The virtual
root never appears in the output.
"""

from dataclasses import dataclass, field
import logging

from graph import build_parent_graph
from models import MALE, GraphNode, Person
from parsing import birth_sort_key

logger = logging.getLogger("clanscroll.layout")

VIRTUAL_ROOT_ID = "__virtual_root__"
DEFAULT_NODE_SIZE = (280.0, 400.0)


class LayoutError(Exception):
    """The member set cannot be arranged as a tree."""


@dataclass
class NormalizedForest:
    roots: list[Person]
    children: dict[str, list[Person]]
    virtual_root: bool
    root_count: int = field(init=False)

    def __post_init__(self):
        self.root_count = len(self.roots)

    @property
    def top_id(self) -> str:
        """Id of the single node the layout pass starts from."""
        return VIRTUAL_ROOT_ID if self.virtual_root else self.roots[0].id


def normalize_forest(members: list[Person]) -> NormalizedForest:
    """
    Turn the (possibly multi-root) member set into one rooted tree.

    Roots are members whose parent is null or not in `members`. More than one
    root adds a virtual root above all of them. Raises LayoutError when the set
    has no root at all, contains duplicate ids, or has members that no root
    reaches (parent links forming a cycle).
    """
    seen: set[str] = set()
    for m in members:
        if m.id in seen:
            raise LayoutError(f"duplicate member id: {m.id}")
        seen.add(m.id)

    G = build_parent_graph(members)
    roots = [G.nodes[n]["person"] for n in G if G.in_degree(n) == 0]

    if not roots:
        if members:
            raise LayoutError("no root: every member has a parent, the parent links form a cycle")
        return NormalizedForest(roots=[], children={}, virtual_root=False)

    children = {n: [G.nodes[c]["person"] for c in G.successors(n)] for n in G if G.out_degree(n)}

    reached = sum(1 for _ in _walk(roots, children))
    if reached != len(members):
        raise LayoutError(f"cycle: {len(members) - reached} members are not reachable from any root")

    virtual_root = len(roots) > 1
    if virtual_root:
        children[VIRTUAL_ROOT_ID] = list(roots)

    return NormalizedForest(roots=roots, children=children, virtual_root=virtual_root)


def _walk(roots: list[Person], children: dict[str, list[Person]]):
    stack = list(roots)
    while stack:
        person = stack.pop()
        yield person
        stack.extend(children.get(person.id, []))


def order_children(children: list[Person]) -> list[Person]:
    """
    Display order of a parent's children: sons in birth order, with the
    daughters (and anyone not male) split around them, the elder half on the
    left and the younger half on the right.
    """
    key = lambda m: (birth_sort_key(m), m.id)  # noqa: E731
    males = sorted((c for c in children if c.gender == MALE), key=key)
    females = sorted((c for c in children if c.gender != MALE), key=key)
    half = len(females) // 2
    return females[:half] + males + females[half:]


# ============================================================================
# Tidy tree
# ============================================================================


class _TreeNode:
    """Working state of one node during the tidy-tree pass."""

    __slots__ = ("id", "parent", "children", "index", "depth", "prelim", "mod", "change", "shift",
                 "thread", "ancestor", "default_ancestor", "x")

    def __init__(self, node_id: str, parent: "_TreeNode | None", index: int, depth: int):
        self.id = node_id
        self.parent = parent
        self.children: list[_TreeNode] = []
        self.index = index
        self.depth = depth
        self.prelim = 0.0
        self.mod = 0.0
        self.change = 0.0
        self.shift = 0.0
        self.thread: _TreeNode | None = None
        self.ancestor: _TreeNode = self
        self.default_ancestor: _TreeNode | None = None
        self.x = 0.0


def _separation(a: _TreeNode, b: _TreeNode) -> float:
    return 1.0 if a.parent is b.parent else 2.0


def _next_left(v: _TreeNode) -> _TreeNode | None:
    return v.children[0] if v.children else v.thread


def _next_right(v: _TreeNode) -> _TreeNode | None:
    return v.children[-1] if v.children else v.thread


def _move_subtree(wm: _TreeNode, wp: _TreeNode, shift: float) -> None:
    change = shift / (wp.index - wm.index)
    wp.change -= change
    wp.shift += shift
    wm.change += change
    wp.prelim += shift
    wp.mod += shift


def _execute_shifts(v: _TreeNode) -> None:
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.prelim += shift
        w.mod += shift
        change += w.change
        shift += w.shift + change


def _next_ancestor(vim: _TreeNode, v: _TreeNode, ancestor: _TreeNode) -> _TreeNode:
    return vim.ancestor if vim.ancestor.parent is v.parent else ancestor


def _apportion(v: _TreeNode, w: _TreeNode | None, ancestor: _TreeNode) -> _TreeNode:
    if w is None:
        return ancestor

    vip = vop = v
    vim = w
    vom = v.parent.children[0]
    sip = vip.mod
    sop = vop.mod
    sim = vim.mod
    som = vom.mod

    vim = _next_right(vim)
    vip = _next_left(vip)
    while vim is not None and vip is not None:
        vom = _next_left(vom)
        vop = _next_right(vop)
        vop.ancestor = v
        shift = vim.prelim + sim - vip.prelim - sip + _separation(vim, vip)
        if shift > 0:
            _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
            sip += shift
            sop += shift
        sim += vim.mod
        sip += vip.mod
        som += vom.mod
        sop += vop.mod
        vim = _next_right(vim)
        vip = _next_left(vip)

    if vim is not None and _next_right(vop) is None:
        vop.thread = vim
        vop.mod += sim - sop
    if vip is not None and _next_left(vom) is None:
        vom.thread = vip
        vom.mod += sip - som
        ancestor = v
    return ancestor


def _first_walk(v: _TreeNode) -> None:
    siblings = v.parent.children
    w = siblings[v.index - 1] if v.index else None

    if v.children:
        _execute_shifts(v)
        midpoint = (v.children[0].prelim + v.children[-1].prelim) / 2
        if w is not None:
            v.prelim = w.prelim + _separation(v, w)
            v.mod = v.prelim - midpoint
        else:
            v.prelim = midpoint
    elif w is not None:
        v.prelim = w.prelim + _separation(v, w)

    v.parent.default_ancestor = _apportion(v, w, v.parent.default_ancestor or siblings[0])


def _post_order(root: _TreeNode) -> list[_TreeNode]:
    order: list[_TreeNode] = []
    stack = [root]
    while stack:
        node = stack.pop()
        order.append(node)
        stack.extend(node.children)
    # children were pushed left to right, so reversing gives left-to-right post-order
    order.reverse()
    return order


def _pre_order(root: _TreeNode) -> list[_TreeNode]:
    order: list[_TreeNode] = []
    stack = [root]
    while stack:
        node = stack.pop()
        order.append(node)
        stack.extend(reversed(node.children))
    return order


def tidy_tree(top_id: str, children: dict[str, list[str]]) -> dict[str, tuple[float, int]]:
    """
    Place a rooted tree given as an adjacency map of ordered child ids.

    Returns id -> (x, depth) with x in units of one sibling gap; the top node
    sits at x = 0.
    """
    root = _TreeNode(top_id, None, 0, 0)
    stack = [root]
    while stack:
        node = stack.pop()
        for i, child_id in enumerate(children.get(node.id, [])):
            child = _TreeNode(child_id, node, i, node.depth + 1)
            node.children.append(child)
            stack.append(child)

    # Sentinel above the root so the root has a parent and a sibling list
    sentinel = _TreeNode("", None, 0, -1)
    sentinel.children = [root]
    root.parent = sentinel

    for v in _post_order(root):
        _first_walk(v)
    sentinel.mod = -root.prelim

    for v in _pre_order(root):
        v.x = v.prelim + v.parent.mod
        v.mod += v.parent.mod

    return {v.id: (v.x, v.depth) for v in _pre_order(root)}


# ============================================================================
# Layout entry points
# ============================================================================


def compute_layout(
    members: list[Person], node_size: tuple[float, float] = DEFAULT_NODE_SIZE
) -> dict[str, GraphNode]:
    """
    Assign every member a position.

    `node_size` is (dx, dy): the horizontal gap between adjacent siblings and
    the vertical gap between generations, in world units. Real roots report
    depth 0 whether or not a virtual root was needed. Raises LayoutError.
    """
    forest = normalize_forest(members)
    if not forest.roots:
        return {}

    # The virtual root's children (the true roots) are ordered like any other family
    ordered = {parent_id: [c.id for c in order_children(kids)] for parent_id, kids in forest.children.items()}
    placed = tidy_tree(forest.top_id, ordered)

    dx, dy = node_size
    offset = 1 if forest.virtual_root else 0
    by_id = {m.id: m for m in members}
    nodes: dict[str, GraphNode] = {}
    for node_id, (x, depth) in placed.items():
        if node_id == VIRTUAL_ROOT_ID:
            continue
        real_depth = depth - offset
        nodes[node_id] = GraphNode(id=node_id, x=x * dx, y=real_depth * dy, depth=real_depth, person=by_id[node_id])

    # Keep the arena in member order
    return {m.id: nodes[m.id] for m in members}


def layout_members(
    members: list[Person], node_size: tuple[float, float] = DEFAULT_NODE_SIZE
) -> dict[str, GraphNode] | None:
    """
    Layout boundary: returns None instead of raising when the pass fails, so
    callers can keep showing the previous positions.
    """
    try:
        return compute_layout(members, node_size)
    except LayoutError as e:
        logger.warning(f"Layout skipped: {e}")
    except Exception:
        logger.exception("Layout failed")
    return None
