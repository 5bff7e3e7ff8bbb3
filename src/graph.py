"""NetworkX parent-link graph and ancestry operations."""

import logging

import networkx as nx

from models import Person

logger = logging.getLogger("clanscroll.graph")


def index_members(members: list[Person]) -> dict[str, Person]:
    """Map member id -> member."""
    return {m.id: m for m in members}


def build_parent_graph(members: list[Person]) -> nx.DiGraph:
    """
    Build a directed graph with one node per member and an edge parent -> child
    for every parent link that resolves inside `members`.

    Dangling parent ids produce no edge, so such members become roots.
    """
    G = nx.DiGraph()
    by_id = index_members(members)

    for m in members:
        G.add_node(m.id, person=m)

    for m in members:
        if m.parent_id is not None and m.parent_id in by_id:
            G.add_edge(m.parent_id, m.id)

    return G


def ancestry_path(person: Person, members_by_id: dict[str, Person]) -> list[str]:
    """
    Ids from `person` up to the top of its tree.

    The walk follows parent links while the parent exists in `members_by_id`
    and stops at a root or a dangling reference. A repeated id means the
    parent links form a cycle; the walk stops there.
    """
    path = [person.id]
    seen = {person.id}
    current = person

    while current.parent_id is not None and current.parent_id in members_by_id:
        if current.parent_id in seen:
            logger.warning(f"Cycle in parent links at {current.parent_id}; ancestry of {person.id} cut short")
            break
        current = members_by_id[current.parent_id]
        path.append(current.id)
        seen.add(current.id)

    return path


def generation_of(person: Person, members_by_id: dict[str, Person]) -> int:
    """Generation number of a member inside its tree (roots are generation 1)."""
    return len(ancestry_path(person, members_by_id))


def find_roots(members: list[Person]) -> list[Person]:
    """Members whose parent is missing from `members`, in input order."""
    by_id = index_members(members)
    return [m for m in members if m.parent_id is None or m.parent_id not in by_id]


def collect_descendants(person_id: str, members: list[Person]) -> set[str]:
    """All transitive descendants of `person_id` within `members` (excluding itself)."""
    G = build_parent_graph(members)
    if person_id not in G:
        return set()
    return set(nx.descendants(G, person_id))
