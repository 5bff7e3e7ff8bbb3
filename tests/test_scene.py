"""Tests for the interactive diagram: relayout policy, pointer routing and selection."""

import pytest

from config import Settings
from conftest import person
from interaction import IGNORED
from layout import compute_layout
from scene import FamilyCanvas, structure_key


@pytest.fixture
def events():
    return {"selected": [], "deselected": 0}


@pytest.fixture
def canvas(lineage, events):
    def on_deselect():
        events["deselected"] += 1

    c = FamilyCanvas(1280, 800, on_select=events["selected"].append, on_deselect=on_deselect)
    assert c.set_members(lineage)
    c.viewport.finish()
    return c


def screen_pos(canvas, node_id):
    node = canvas.nodes[node_id]
    return canvas.viewport.transform.apply(node.x, node.y)


# ============================================================================
# Layout policy
# ============================================================================


class TestRelayoutPolicy:
    def test_initial_layout_and_fit(self, canvas, lineage):
        expected = compute_layout(lineage)
        assert {i: (n.x, n.y) for i, n in canvas.nodes.items()} == {i: (n.x, n.y) for i, n in expected.items()}
        assert canvas.viewport.transform.k == pytest.approx(800 / 1800)

    def test_auto_fit_is_animated(self, lineage):
        c = FamilyCanvas(1280, 800)
        c.set_members(lineage, now=100)
        assert c.viewport.transition is not None
        assert c.viewport.transition.started_at == 100
        assert c.viewport.transition.duration == 750

    def test_data_only_update_keeps_dragged_positions(self, canvas, lineage):
        canvas.nodes["son1"].x += 500
        dragged = canvas.nodes["son1"].x

        renamed = [m.with_changes(name="Renamed") if m.id == "son1" else m for m in lineage]
        assert canvas.set_members(renamed)

        assert canvas.nodes["son1"].x == dragged
        assert canvas.nodes["son1"].person.name == "Renamed"
        assert canvas.viewport.transition is None

    def test_structural_change_resets_positions(self, canvas, lineage):
        canvas.nodes["son1"].x += 500
        grown = lineage + [person("son3", "1940-01-01", "root")]
        assert canvas.set_members(grown)

        expected = compute_layout(grown)
        assert canvas.nodes["son1"].x == expected["son1"].x
        assert "son3" in canvas.nodes
        assert canvas.viewport.transition is not None

    def test_birth_date_change_is_structural(self, lineage):
        changed = [m.with_changes(birth_date="1800-01-01") if m.id == "son2" else m for m in lineage]
        assert structure_key(changed) != structure_key(lineage)

    def test_layout_failure_keeps_previous_nodes(self, canvas):
        before = {i: (n.x, n.y) for i, n in canvas.nodes.items()}
        broken = [person("a", "1900", "b"), person("b", "1901", "a")]
        assert canvas.set_members(broken) is False
        assert {i: (n.x, n.y) for i, n in canvas.nodes.items()} == before

    def test_zero_sized_viewport_defers_layout(self, lineage):
        c = FamilyCanvas()
        assert c.set_members(lineage) is False
        assert c.nodes == {}
        assert c.resize(800, 600) is True
        assert set(c.nodes) == {m.id for m in lineage}

    def test_empty_member_set(self, canvas):
        assert canvas.set_members([]) is True
        assert canvas.nodes == {}

    def test_recenter_undoes_drags(self, canvas, lineage):
        canvas.nodes["gson1"].y = -999
        canvas.recenter()
        assert canvas.nodes["gson1"].y == compute_layout(lineage)["gson1"].y

    def test_from_settings(self):
        c = FamilyCanvas.from_settings(Settings(), 640, 480)
        assert c.node_size == (280.0, 400.0)
        assert c.interaction.threshold == 3.0
        assert c.viewport.width == 640


# ============================================================================
# Pointer routing
# ============================================================================


class TestPointerRouting:
    def test_click_on_node_selects(self, canvas, events):
        sx, sy = screen_pos(canvas, "son2")
        assert canvas.node_at(sx, sy).id == "son2"

        down = canvas.pointer_down(sx, sy)
        up = canvas.pointer_up(sx, sy)
        assert not down.propagate and not up.propagate
        assert canvas.selected_id == "son2"
        assert [p.id for p in events["selected"]] == ["son2"]
        assert events["deselected"] == 0

    def test_drag_node_in_screen_space(self, canvas, events):
        node = canvas.nodes["son2"]
        ox = node.x
        k = canvas.viewport.transform.k
        sx, sy = screen_pos(canvas, "son2")

        canvas.pointer_down(sx, sy)
        canvas.pointer_move(sx + 50, sy)
        canvas.pointer_up(sx + 50, sy)

        assert node.x == pytest.approx(ox + 50 / k)
        assert canvas.selected_id is None
        assert events["selected"] == []

    def test_background_click_deselects(self, canvas, events):
        canvas.select("root")
        assert canvas.node_at(5, 5) is None

        result = canvas.pointer_down(5, 5)
        assert result.propagate
        canvas.pointer_up(5, 5)

        assert canvas.selected_id is None
        assert events["deselected"] == 1

    def test_background_click_without_selection_is_quiet(self, canvas, events):
        canvas.pointer_down(5, 5)
        canvas.pointer_up(5, 5)
        assert events["deselected"] == 0

    def test_background_drag_pans(self, canvas, events):
        canvas.select("root")
        before = canvas.viewport.transform
        canvas.pointer_down(5, 5)
        canvas.pointer_move(105, 25)
        canvas.pointer_up(105, 25)

        after = canvas.viewport.transform
        assert (after.x - before.x, after.y - before.y) == pytest.approx((100, 20))
        assert canvas.selected_id == "root"
        assert events["deselected"] == 0

    def test_second_background_pointer_is_ignored(self, canvas, events):
        canvas.select("root")
        before = canvas.viewport.transform
        canvas.pointer_down(5, 5, pointer_id=1)
        canvas.pointer_move(55, 5, pointer_id=1)

        assert canvas.pointer_down(10, 10, pointer_id=2) is IGNORED
        assert canvas.pointer_up(10, 10, pointer_id=2) is IGNORED
        assert canvas.selected_id == "root"

        canvas.pointer_move(105, 5, pointer_id=1)
        canvas.pointer_up(105, 5, pointer_id=1)
        after = canvas.viewport.transform
        assert after.x - before.x == pytest.approx(100)
        assert events["deselected"] == 0

    def test_wheel_zooms_around_pointer(self, canvas):
        anchor = (300.0, 200.0)
        world = canvas.viewport.transform.invert(*anchor)
        canvas.wheel(*anchor, 2.0)
        assert canvas.viewport.transform.invert(*anchor) == pytest.approx(world)


# ============================================================================
# Selection and kinship
# ============================================================================


class TestSelection:
    def test_select_unknown(self, canvas):
        with pytest.raises(KeyError):
            canvas.select("ghost")

    def test_selection_dropped_when_member_removed(self, canvas, lineage):
        canvas.select("ggson1")
        canvas.set_members([m for m in lineage if m.id != "ggson1"])
        assert canvas.selected_id is None
        assert canvas.selected is None

    def test_relationship_labels_follow_selection(self, canvas):
        assert canvas.relationship_labels() == {}
        canvas.select("son2")
        assert canvas.relationship_labels() == {
            "root": "父亲",
            "son1": "大兄",
            "son2": "本尊",
            "gson1": "侄子",
            "ggson1": "族亲",
        }

    def test_relationship_between(self, canvas):
        assert canvas.relationship_between("root", "ggson1") == "曾祖"
        assert canvas.relationship_between("root", "ghost") is None

    def test_links(self, canvas):
        pairs = {(p.id, c.id) for p, c in canvas.links()}
        assert pairs == {("root", "son1"), ("root", "son2"), ("son1", "gson1"), ("gson1", "ggson1")}
