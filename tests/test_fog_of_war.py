import pytest

from penumbra.dungeon.tiles import TileGrid
from penumbra.fov import FogOfWar, FogTileState


def corridor():
    return TileGrid.from_ascii([
        "###########",
        "#.........#",
        "###########",
    ])


def test_update_marks_visible_and_remembers():
    fow = FogOfWar(corridor(), vision_radius=2)
    fow.update((1, 1))
    assert fow.get_state(2, 1) is FogTileState.VISIBLE
    assert fow.get_state(8, 1) is FogTileState.UNSEEN

    fow.update((8, 1))
    assert fow.get_state(2, 1) is FogTileState.SEEN
    assert fow.get_state(8, 1) is FogTileState.VISIBLE
    assert (2, 1) in fow.explored
    assert (2, 1) not in fow.visible


def test_radius_override():
    fow = FogOfWar(corridor(), vision_radius=1)
    visible = fow.update((5, 1), radius=3)
    assert (8, 1) in visible


def test_reveal_all_marks_everything_explored():
    grid = corridor()
    fow = FogOfWar(grid, vision_radius=2)
    fow.reveal_all()
    assert len(fow.explored) == grid.width * grid.height
    assert fow.get_state(9, 1) is FogTileState.SEEN


def test_explored_memory_can_be_seeded():
    fow = FogOfWar(corridor(), vision_radius=2, explored=[(4, 1)])
    assert fow.get_state(4, 1) is FogTileState.SEEN
    assert fow.explored_list() == [[4, 1]]


def test_invalid_inputs():
    with pytest.raises(ValueError):
        FogOfWar(corridor(), vision_radius=-1)
    fow = FogOfWar(corridor())
    with pytest.raises(IndexError):
        fow.get_state(50, 0)
