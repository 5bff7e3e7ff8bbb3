"""Consistency checks for a family member collection."""

from collections import Counter

import networkx as nx

from graph import build_parent_graph, index_members
from models import Person
from parsing import parse_birth_date


def validate_members(members: list[Person]) -> list[str]:
    """
    Validate the members for:
    - Duplicate ids
    - Parent links pointing at unknown or deleted members
    - Cycles in parent-child links
    - Impossible ages (child born before parent, parent younger than 12)

    Only active members take part in the structural checks.
    Returns a list of warning messages.
    """
    warnings: list[str] = []

    for member_id, count in Counter(m.id for m in members).items():
        if count > 1:
            warnings.append(f"Duplicate id {member_id} used by {count} members")

    active = [m for m in members if m.is_active]
    by_id = index_members(active)

    for m in active:
        if m.parent_id is not None and m.parent_id not in by_id:
            warnings.append(f"Dangling parent: {m.name} ({m.id}) points at missing {m.parent_id}; shown as a root")

    parent_graph = build_parent_graph(active)

    try:
        cycle = nx.find_cycle(parent_graph, orientation="original")
        cycle_nodes = [edge[0] for edge in cycle]
        warnings.append(f"Cycle detected in parent-child links: {cycle_nodes}")
    except nx.NetworkXNoCycle:
        pass

    for parent_id, child_id in parent_graph.edges():
        parent = by_id[parent_id]
        child = by_id[child_id]

        parent_birth = parse_birth_date(parent.birth_date)
        child_birth = parse_birth_date(child.birth_date)
        if parent_birth is None or child_birth is None:
            continue

        if child_birth < parent_birth:
            warnings.append(f"Impossible: {child.name} born before parent {parent.name}")
        elif child_birth.year - parent_birth.year < 12:
            warnings.append(
                f"Suspicious: {parent.name} was less than 12 years old when {child.name} was born"
            )

    return warnings
