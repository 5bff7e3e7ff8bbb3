"""Tests for forest normalization and the tidy-tree layout."""

import logging

import pytest

from conftest import person
from layout import (
    DEFAULT_NODE_SIZE,
    VIRTUAL_ROOT_ID,
    LayoutError,
    compute_layout,
    layout_members,
    normalize_forest,
    order_children,
    tidy_tree,
)
from models import FEMALE, OTHER


def positions(nodes):
    return {node_id: (node.x, node.y) for node_id, node in nodes.items()}


# ============================================================================
# Forest normalization
# ============================================================================


class TestNormalizeForest:
    def test_single_root_has_no_virtual_root(self, lineage):
        forest = normalize_forest(lineage)
        assert not forest.virtual_root
        assert forest.root_count == 1
        assert forest.top_id == "root"

    def test_multiple_roots_share_a_virtual_root(self, clan):
        forest = normalize_forest(clan)
        assert forest.virtual_root
        assert forest.root_count == 2
        assert forest.top_id == VIRTUAL_ROOT_ID
        assert {p.id for p in forest.children[VIRTUAL_ROOT_ID]} == {"root", "stranger"}

    def test_dangling_parent_makes_a_root(self):
        members = [person("orphan", "1950", "ghost"), person("kid", "1980", "orphan")]
        forest = normalize_forest(members)
        assert [p.id for p in forest.roots] == ["orphan"]

    def test_empty(self):
        forest = normalize_forest([])
        assert forest.roots == []
        assert forest.root_count == 0

    def test_pure_cycle_has_no_root(self):
        members = [person("a", "1900", "b"), person("b", "1901", "a")]
        with pytest.raises(LayoutError, match="no root"):
            normalize_forest(members)

    def test_cycle_beside_a_root(self):
        members = [person("r", "1900"), person("a", "1900", "b"), person("b", "1901", "a")]
        with pytest.raises(LayoutError, match="cycle"):
            normalize_forest(members)

    def test_duplicate_ids(self):
        with pytest.raises(LayoutError, match="duplicate"):
            normalize_forest([person("a", "1900"), person("a", "1901")])


# ============================================================================
# Child ordering
# ============================================================================


class TestOrderChildren:
    def test_daughters_split_around_sons(self):
        kids = [
            person("f3", "1954", "p", FEMALE),
            person("m2", "1953", "p"),
            person("f1", "1950", "p", FEMALE),
            person("m1", "1951", "p"),
            person("f2", "1952", "p", FEMALE),
        ]
        assert [k.id for k in order_children(kids)] == ["f1", "m1", "m2", "f2", "f3"]

    def test_single_daughter_goes_right(self):
        kids = [person("f", "1940", "p", FEMALE), person("m", "1950", "p")]
        assert [k.id for k in order_children(kids)] == ["m", "f"]

    def test_other_gender_groups_with_daughters(self):
        kids = [person("o", "1940", "p", OTHER), person("f", "1945", "p", FEMALE), person("m", "1950", "p")]
        assert [k.id for k in order_children(kids)] == ["o", "m", "f"]

    def test_ties_broken_by_id(self):
        kids = [person("b", "1950", "p"), person("a", "1950", "p")]
        assert [k.id for k in order_children(kids)] == ["a", "b"]


# ============================================================================
# Tidy tree
# ============================================================================


class TestTidyTree:
    def test_parent_centred_over_children(self):
        placed = tidy_tree("r", {"r": ["a", "b"]})
        assert placed == {"r": (0.0, 0), "a": (-0.5, 1), "b": (0.5, 1)}

    def test_cousins_get_double_gap(self):
        placed = tidy_tree("r", {"r": ["a", "b"], "a": ["a1", "a2"], "b": ["b1", "b2"]})
        assert placed["a1"][0] == pytest.approx(-2.0)
        assert placed["a2"][0] == pytest.approx(-1.0)
        assert placed["b1"][0] == pytest.approx(1.0)
        assert placed["b2"][0] == pytest.approx(2.0)
        assert placed["a"][0] == pytest.approx(-1.5)
        assert placed["b"][0] == pytest.approx(1.5)

    def test_single_node(self):
        assert tidy_tree("only", {}) == {"only": (0.0, 0)}


# ============================================================================
# Full layout
# ============================================================================


class TestComputeLayout:
    def test_reference_family_positions(self, lineage):
        nodes = compute_layout(lineage)
        assert positions(nodes) == {
            "root": (0.0, 0.0),
            "son1": (-140.0, 400.0),
            "son2": (140.0, 400.0),
            "gson1": (-140.0, 800.0),
            "ggson1": (-140.0, 1200.0),
        }
        assert nodes["ggson1"].depth == 3
        assert nodes["ggson1"].generation == 4

    def test_every_member_gets_a_node_in_member_order(self, clan):
        nodes = compute_layout(clan)
        assert list(nodes) == [m.id for m in clan]
        assert VIRTUAL_ROOT_ID not in nodes

    def test_virtual_root_does_not_shift_depths(self):
        members = [person("a", "1900"), person("b", "1910")]
        nodes = compute_layout(members)
        assert positions(nodes) == {"a": (-140.0, 0.0), "b": (140.0, 0.0)}
        assert nodes["a"].depth == nodes["b"].depth == 0

    def test_true_roots_ordered_like_children(self):
        members = [person("f", "1890", gender=FEMALE), person("m2", "1910"), person("m1", "1900")]
        nodes = compute_layout(members)
        xs = sorted(nodes, key=lambda i: nodes[i].x)
        assert xs == ["m1", "m2", "f"]

    def test_depth_matches_generation_count(self, clan):
        nodes = compute_layout(clan)
        assert nodes["root"].y == 0
        assert nodes["stranger"].y == 0
        assert nodes["gdau2"].y == 2 * DEFAULT_NODE_SIZE[1]

    def test_no_overlap_within_a_generation(self, clan):
        nodes = compute_layout(clan)
        by_depth: dict[int, list[float]] = {}
        for node in nodes.values():
            by_depth.setdefault(node.depth, []).append(node.x)
        for xs in by_depth.values():
            xs.sort()
            for left, right in zip(xs, xs[1:]):
                assert right - left >= DEFAULT_NODE_SIZE[0] - 1e-9

    def test_positions_are_unique(self, clan):
        nodes = compute_layout(clan)
        coords = list(positions(nodes).values())
        assert len(set(coords)) == len(coords)

    def test_deterministic(self, clan):
        assert positions(compute_layout(clan)) == positions(compute_layout(list(clan)))

    def test_custom_node_size(self, lineage):
        nodes = compute_layout(lineage, (100.0, 50.0))
        assert (nodes["son2"].x, nodes["son2"].y) == (50.0, 50.0)

    def test_empty(self):
        assert compute_layout([]) == {}

    def test_deep_chain(self):
        """Long ancestral lines do not hit the recursion limit."""
        chain = [person("n0", "1000")]
        for i in range(1, 3000):
            chain.append(person(f"n{i}", "", f"n{i - 1}"))
        nodes = compute_layout(chain)
        assert nodes["n2999"].depth == 2999
        assert nodes["n2999"].x == 0


class TestLayoutMembers:
    def test_failure_returns_none(self, caplog):
        members = [person("a", "1900", "b"), person("b", "1901", "a")]
        with caplog.at_level(logging.WARNING, logger="clanscroll.layout"):
            assert layout_members(members) is None
        assert "Layout skipped" in caplog.text

    def test_success(self, lineage):
        assert set(layout_members(lineage)) == {m.id for m in lineage}
