"""Tests for floating dialog drag/resize geometry."""
import pytest

from ui.dialogs import DialogGeometry, load_geometry, save_geometry


def make_geometry():
    return DialogGeometry(x=100, y=100, width=1000, height=700)


class TestDrag:
    def test_moves_origin_by_pointer_delta(self):
        g = make_geometry()
        g.begin_drag((500, 120))
        g.move_to((530, 100))
        assert (g.x, g.y) == (130, 80)
        assert (g.width, g.height) == (1000, 700)

    def test_moves_outside_interaction_are_ignored(self):
        g = make_geometry()
        g.move_to((900, 900))
        assert (g.x, g.y) == (100, 100)

    def test_state_exists_only_between_begin_and_end(self):
        g = make_geometry()
        assert not g.is_dragging
        g.begin_drag((0, 0))
        assert g.is_dragging
        assert g.end_interaction() is True
        assert not g.is_dragging
        assert g.end_interaction() is False
        g.move_to((50, 50))
        assert (g.x, g.y) == (100, 100)


class TestResize:
    def test_east_and_south_grow(self):
        g = make_geometry()
        g.begin_resize((1100, 800), "se")
        g.move_to((1150, 840))
        assert (g.width, g.height) == (1050, 740)
        assert (g.x, g.y) == (100, 100)

    def test_clamped_to_minimum(self):
        g = make_geometry()
        g.begin_resize((1100, 800), "se")
        g.move_to((0, 0))
        assert (g.width, g.height) == (900, 600)

    def test_west_edge_moves_origin(self):
        g = make_geometry()
        g.begin_resize((100, 400), "w")
        g.move_to((40, 400))
        assert g.width == 1060
        assert g.x == 40

    def test_west_edge_stops_at_minimum(self):
        g = make_geometry()
        g.begin_resize((100, 400), "w")
        g.move_to((400, 400))
        assert g.width == 900
        # Right edge stays where it was
        assert g.x + g.width == 1100

    def test_north_edge_stops_at_minimum(self):
        g = make_geometry()
        g.begin_resize((500, 100), "n")
        g.move_to((500, 500))
        assert g.height == 600
        assert g.y + g.height == 800

    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            make_geometry().begin_resize((0, 0), "up")


class TestPersistence:
    def test_from_dict_clamps_to_minimum(self):
        g = DialogGeometry.from_dict({"x": 0, "y": 0, "width": 300, "height": 200})
        assert (g.width, g.height) == (900, 600)

    def test_centered_default(self):
        g = DialogGeometry.centered(1600, 950)
        assert (g.x, g.y, g.width, g.height) == (200, 100, 1200, 750)

    async def test_save_and_load(self, preferences):
        g = make_geometry()
        await save_geometry(preferences, "deal", g)
        loaded = await load_geometry(preferences, "deal", 1600, 950)
        assert loaded == g

    async def test_load_without_saved_bounds_centers(self, preferences):
        loaded = await load_geometry(preferences, "fresh", 1600, 950)
        assert (loaded.x, loaded.y) == (200, 100)
