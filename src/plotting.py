"""Visualization of a laid-out family diagram."""

from datetime import date
from pathlib import Path

import matplotlib.pyplot as plt
import networkx as nx
import pydot

from models import FEMALE, MALE, GraphNode
from parsing import calculate_age


def card_label(node: GraphNode, today: date | None = None) -> str:
    """Name, generation and (when the birth date is known) age, one per line."""
    lines = [node.person.name, f"gen {node.generation}"]
    age = calculate_age(node.person.birth_date, today)
    if age is not None:
        lines.append(f"{age} yrs")
    return "\n".join(lines)


def _fill_color(node: GraphNode) -> str:
    if node.person.gender == MALE:
        return "lightblue"
    if node.person.gender == FEMALE:
        return "lightpink"
    return "lightgray"


def layout_graph(nodes: dict[str, GraphNode]) -> nx.DiGraph:
    """Parent -> child graph over the laid-out nodes, carrying their positions."""
    G = nx.DiGraph()
    for node in nodes.values():
        G.add_node(node.id, pos=(node.x, node.y), generation=node.generation, person_name=node.person.name)
    for node in nodes.values():
        parent_id = node.person.parent_id
        if parent_id is not None and parent_id in nodes:
            G.add_edge(parent_id, node.id)
    return G


def plot_layout(
    nodes: dict[str, GraphNode],
    output_path: Path | None = None,
    labels: dict[str, str] | None = None,
):
    """
    Plot the diagram with matplotlib at the computed positions.

    World y grows downwards (ancestors at the top), so it is flipped for
    matplotlib. `labels` (e.g. kinship terms) are appended under the names.
    """
    G = layout_graph(nodes)
    pos = {n: (x, -y) for n, (x, y) in nx.get_node_attributes(G, "pos").items()}

    node_labels = {}
    for node in nodes.values():
        text = card_label(node)
        if labels and node.id in labels:
            text += f"\n[{labels[node.id]}]"
        node_labels[node.id] = text

    width = max(8, len(nodes) * 1.2)
    plt.figure(figsize=(min(width, 40), 10))

    nx.draw(
        G,
        pos,
        node_color=[_fill_color(nodes[n]) for n in G.nodes()],
        edgecolors=["goldenrod" if nodes[n].person.is_highlight else "gray" for n in G.nodes()],
        node_size=900,
        node_shape="s",
        labels=node_labels,
        font_size=7,
        arrows=False,
        edge_color="gray",
        width=1.0,
    )

    plt.title(f"Family Tree ({G.number_of_nodes()} people)")
    plt.tight_layout()

    if output_path:
        plt.savefig(output_path, dpi=150, bbox_inches="tight")
        plt.close()
        print(f"Diagram saved to {output_path}")
    else:
        plt.show()


def build_dot(nodes: dict[str, GraphNode], scale: float = 0.25) -> pydot.Dot:
    """
    Graphviz graph with every node pinned at its computed position.

    Positions are in points (`scale` points per world unit), for rendering
    with `neato -n`.
    """
    P = pydot.Dot(graph_type="digraph")
    P.set("splines", "true")
    P.set("outputorder", "edgesfirst")

    for node in nodes.values():
        P.add_node(
            pydot.Node(
                str(node.id),
                label=card_label(node),
                shape="box",
                style="rounded,filled",
                fillcolor=_fill_color(node),
                fontsize="10",
                pos=f"{node.x * scale:.1f},{-node.y * scale:.1f}!",
            )
        )

    for node in nodes.values():
        parent_id = node.person.parent_id
        if parent_id is not None and parent_id in nodes:
            P.add_edge(pydot.Edge(str(parent_id), str(node.id), dir="none", color="darkgray"))

    return P


def write_dot(nodes: dict[str, GraphNode], output_path: Path) -> None:
    """Write the pinned graph as DOT source, or render it when the extension is an image format."""
    P = build_dot(nodes)
    ext = Path(output_path).suffix.lower().lstrip(".")
    if ext in ("png", "svg", "pdf"):
        P.write(str(output_path), prog=["neato", "-n"], format=ext)
    else:
        P.write(str(output_path), format="raw")
    print(f"Graph saved to {output_path}")
