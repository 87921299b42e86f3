import pytest

from bastion.sim.cells import OUT_OF_BOUNDS, CellState
from bastion.sim.contracts import CellChanged, StructureChanged, StructureKind
from bastion.sim.grid_map import GridMap, InvalidCoordinateError


def snapshot(grid_map: GridMap) -> list[tuple[int, int, CellState]]:
    return list(grid_map.iter_cells())


def build_corridor_map() -> GridMap:
    grid_map = GridMap(3, 3, 10)
    grid_map.register_base(2, 1)
    grid_map.register_spawn(0, 1)
    grid_map.register_obstacle(1, 0)
    grid_map.register_obstacle(1, 2)
    return grid_map


def test_empty_grid_path_length_is_manhattan_plus_one() -> None:
    grid_map = GridMap(7, 5, 10)
    pairs = [((0, 0), (6, 4)), ((3, 2), (3, 2)), ((6, 0), (0, 4)), ((2, 4), (5, 1))]

    for (sx, sy), (ex, ey) in pairs:
        path = grid_map.find_path(sx, sy, ex, ey)
        assert path is not None
        assert len(path) == 1 + abs(sx - ex) + abs(sy - ey)
        assert path[0] == (sx, sy)
        assert path[-1] == (ex, ey)
        for (ax, ay), (bx, by) in zip(path, path[1:]):
            assert abs(ax - bx) + abs(ay - by) == 1


def test_straight_corridor_path() -> None:
    grid_map = GridMap(5, 1, 10)
    grid_map.register_spawn(0, 0)
    grid_map.register_base(4, 0)

    path = grid_map.find_path(0, 0, 4, 0)

    assert path == ((0, 0), (1, 0), (2, 0), (3, 0), (4, 0))


def test_cached_path_is_returned_without_recomputation() -> None:
    grid_map = GridMap(6, 6, 10)
    first = grid_map.find_path(0, 0, 5, 5)
    searches = grid_map.search_stats.searches

    second = grid_map.find_path(0, 0, 5, 5)

    assert second is first
    assert grid_map.search_stats.searches == searches
    assert grid_map.path_cache_size == 1


def test_cached_no_path_is_returned_without_recomputation() -> None:
    grid_map = GridMap(3, 1, 10)
    grid_map.register_obstacle(1, 0)

    assert grid_map.find_path(0, 0, 2, 0) is None
    searches = grid_map.search_stats.searches
    assert grid_map.find_path(0, 0, 2, 0) is None
    assert grid_map.search_stats.searches == searches


def test_bypassed_lookup_neither_reads_nor_writes_cache() -> None:
    grid_map = GridMap(4, 4, 10)
    cached = grid_map.find_path(0, 0, 3, 3)
    searches = grid_map.search_stats.searches

    bypassed = grid_map.find_path(0, 0, 3, 3, bypass_cache=True)
    fresh = grid_map.find_path(0, 3, 3, 0, bypass_cache=True)

    assert bypassed == cached
    assert bypassed is not cached
    assert fresh is not None
    assert grid_map.search_stats.searches == searches + 2
    assert grid_map.path_cache_size == 1


def test_out_of_bounds_path_queries_return_none() -> None:
    grid_map = GridMap(3, 3, 10)

    assert grid_map.find_path(-1, 0, 2, 2) is None
    assert grid_map.find_path(0, 0, 3, 0) is None
    assert grid_map.path_cache_size == 0


def test_cell_queries_fail_closed() -> None:
    grid_map = GridMap(2, 2, 10)

    assert grid_map.cell_state(0, 0) is CellState.EMPTY
    assert grid_map.cell_state(2, 0) is OUT_OF_BOUNDS
    assert grid_map.cell_state(0, -1) is OUT_OF_BOUNDS
    assert not grid_map.is_valid_coord(-1, 1)
    assert not grid_map.is_passable(5, 5)
    assert not grid_map.is_passable(5, 5, for_pathing=False)


def test_passability_differs_for_pathing_and_building() -> None:
    grid_map = GridMap(5, 1, 10)
    grid_map.register_spawn(0, 0)
    grid_map.register_base(1, 0)
    grid_map.register_obstacle(3, 0)
    grid_map.set_cell_state(4, 0, CellState.TOWER)

    expected = {
        0: (True, False),
        1: (True, False),
        2: (True, True),
        3: (False, False),
        4: (False, False),
    }
    for x, (pathing, building) in expected.items():
        assert grid_map.is_passable(x, 0, for_pathing=True) is pathing
        assert grid_map.is_passable(x, 0, for_pathing=False) is building


def test_can_place_tower_leaves_grid_and_cache_untouched() -> None:
    events: list[CellChanged] = []
    grid_map = GridMap(5, 4, 10, on_cell_changed=[events.append])
    grid_map.register_base(4, 3)
    grid_map.register_spawn(0, 0)
    grid_map.register_spawn(0, 3)
    grid_map.register_obstacle(2, 1)
    grid_map.find_path(0, 0, 4, 3)
    before = snapshot(grid_map)
    cache_size = grid_map.path_cache_size
    events.clear()

    for _ in range(3):
        for x in range(-1, grid_map.width + 1):
            for y in range(-1, grid_map.height + 1):
                grid_map.can_place_tower(x, y)
                assert snapshot(grid_map) == before

    assert grid_map.path_cache_size == cache_size
    assert events == []


def test_speculative_cell_is_restored_when_check_raises(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    grid_map = GridMap(3, 3, 10)
    grid_map.register_base(2, 2)
    grid_map.register_spawn(0, 0)

    def failing_find_path(*args, **kwargs):
        assert grid_map.cell_state(1, 1) is CellState.TOWER
        raise RuntimeError("search failed")

    monkeypatch.setattr(grid_map, "find_path", failing_find_path)

    with pytest.raises(RuntimeError):
        grid_map.can_place_tower(1, 1)
    assert grid_map.cell_state(1, 1) is CellState.EMPTY


def test_tower_that_severs_only_corridor_is_rejected() -> None:
    grid_map = build_corridor_map()

    assert grid_map.can_place_tower(1, 1) is False
    assert grid_map.place_tower(1, 1) is False
    assert grid_map.cell_state(1, 1) is CellState.EMPTY
    assert grid_map.find_path(0, 1, 2, 1) == ((0, 1), (1, 1), (2, 1))


def test_tower_with_alternate_route_is_allowed() -> None:
    grid_map = GridMap(3, 3, 10)
    grid_map.register_base(2, 2)
    grid_map.register_spawn(0, 0)

    assert grid_map.can_place_tower(1, 1) is True

    assert grid_map.register_obstacle(1, 1) is True
    path = grid_map.find_path(0, 0, 2, 2)
    assert path is not None
    assert (1, 1) not in path
    assert len(path) == 5


def test_can_place_tower_rejects_occupied_cells() -> None:
    grid_map = GridMap(4, 4, 10)
    grid_map.register_base(3, 3)
    grid_map.register_spawn(0, 0)
    grid_map.register_obstacle(2, 0)
    grid_map.set_cell_state(0, 2, CellState.TOWER)

    assert grid_map.can_place_tower(3, 3) is False
    assert grid_map.can_place_tower(0, 0) is False
    assert grid_map.can_place_tower(2, 0) is False
    assert grid_map.can_place_tower(0, 2) is False
    assert grid_map.can_place_tower(9, 9) is False


def test_can_place_tower_without_base_fails() -> None:
    grid_map = GridMap(3, 3, 10)
    grid_map.register_spawn(0, 0)

    assert grid_map.can_place_tower(1, 1) is False
    assert grid_map.place_tower(1, 1) is False
    assert grid_map.cell_state(1, 1) is CellState.EMPTY


def test_place_and_remove_tower_notify_and_invalidate() -> None:
    cell_events: list[CellChanged] = []
    structure_events: list[StructureChanged] = []
    grid_map = GridMap(
        5,
        3,
        10,
        on_cell_changed=[cell_events.append],
        on_structure_changed=[structure_events.append],
    )
    grid_map.register_spawn(0, 1)
    grid_map.register_base(4, 1)
    straight = grid_map.find_path(0, 1, 4, 1)
    assert straight is not None and (2, 1) in straight
    cell_events.clear()

    owner = object()
    assert grid_map.place_tower(2, 1, owner=owner) is True
    assert grid_map.path_cache_size == 0
    assert grid_map.tower_owner(2, 1) is owner
    detour = grid_map.find_path(0, 1, 4, 1)
    assert detour is not None
    assert (2, 1) not in detour
    assert len(detour) == 7

    assert grid_map.remove_tower(2, 1) is True
    assert grid_map.cell_state(2, 1) is CellState.EMPTY
    assert grid_map.tower_owner(2, 1) is None
    assert grid_map.find_path(0, 1, 4, 1) == straight

    assert cell_events == [
        CellChanged(x=2, y=1, state=CellState.TOWER),
        CellChanged(x=2, y=1, state=CellState.EMPTY),
    ]
    assert structure_events == [
        StructureChanged(kind=StructureKind.PLACED, x=2, y=1),
        StructureChanged(kind=StructureKind.REMOVED, x=2, y=1),
    ]


def test_remove_tower_requires_tower_cell() -> None:
    grid_map = GridMap(3, 1, 10)
    grid_map.register_obstacle(1, 0)

    assert grid_map.remove_tower(0, 0) is False
    assert grid_map.remove_tower(1, 0) is False
    assert grid_map.remove_tower(7, 0) is False
    assert grid_map.cell_state(1, 0) is CellState.OBSTACLE


@pytest.mark.parametrize(
    "mutate",
    [
        lambda grid_map: grid_map.set_cell_state(2, 1, CellState.OBSTACLE),
        lambda grid_map: grid_map.register_obstacle(2, 1),
        lambda grid_map: grid_map.place_tower(2, 1),
    ],
)
def test_mutation_through_cached_route_forces_recompute(mutate) -> None:
    grid_map = GridMap(5, 3, 10)
    grid_map.register_spawn(0, 1)
    grid_map.register_base(4, 1)
    cached = grid_map.find_path(0, 1, 4, 1)
    assert cached is not None and (2, 1) in cached

    mutate(grid_map)

    recomputed = grid_map.find_path(0, 1, 4, 1)
    assert recomputed is not None
    assert (2, 1) not in recomputed


def test_register_obstacle_requires_empty_cell() -> None:
    grid_map = GridMap(3, 1, 10)
    grid_map.register_base(0, 0)

    assert grid_map.register_obstacle(0, 0) is False
    assert grid_map.register_obstacle(1, 0) is True
    assert grid_map.register_obstacle(1, 0) is False
    assert grid_map.register_obstacle(3, 0) is False
    assert grid_map.cell_state(0, 0) is CellState.BASE


@pytest.mark.parametrize("coord", [(-1, 0), (0, -1), (4, 0), (0, 3)])
def test_out_of_bounds_registration_raises(coord: tuple[int, int]) -> None:
    events: list[CellChanged] = []
    grid_map = GridMap(4, 3, 10, on_cell_changed=[events.append])
    before = snapshot(grid_map)

    with pytest.raises(InvalidCoordinateError) as base_error:
        grid_map.register_base(*coord)
    with pytest.raises(InvalidCoordinateError):
        grid_map.register_spawn(*coord)

    assert (base_error.value.x, base_error.value.y) == coord
    assert snapshot(grid_map) == before
    assert grid_map.base is None
    assert grid_map.spawns == ()
    assert events == []


def test_out_of_bounds_set_cell_state_is_ignored() -> None:
    events: list[CellChanged] = []
    grid_map = GridMap(2, 2, 10, on_cell_changed=[events.append])
    grid_map.find_path(0, 0, 1, 1)

    grid_map.set_cell_state(2, 2, CellState.OBSTACLE)

    assert events == []
    assert grid_map.path_cache_size == 1


def test_registry_tracks_base_and_spawns() -> None:
    grid_map = GridMap(4, 4, 10)
    spawn_owner = object()
    grid_map.register_spawn(0, 0, owner=spawn_owner)
    grid_map.register_spawn(0, 3)
    grid_map.register_spawn(0, 0, owner=spawn_owner)
    grid_map.register_base(3, 3, owner="base")

    assert grid_map.spawn_coords == [(0, 0), (0, 3)]
    assert grid_map.spawns[0].owner is spawn_owner
    assert grid_map.base_coord == (3, 3)
    assert grid_map.base is not None and grid_map.base.owner == "base"

    grid_map.register_base(2, 2)
    assert grid_map.base_coord == (2, 2)
    assert grid_map.cell_state(3, 3) is CellState.EMPTY
    base_cells = [
        (x, y) for x, y, state in grid_map.iter_cells() if state is CellState.BASE
    ]
    assert base_cells == [(2, 2)]

    grid_map.set_cell_state(0, 3, CellState.OBSTACLE)
    assert grid_map.spawn_coords == [(0, 0)]


def test_coordinate_conversion() -> None:
    grid_map = GridMap(20, 15, 40)

    assert grid_map.world_width == 800
    assert grid_map.world_height == 600
    assert grid_map.grid_to_world(3, 2) == (120, 80)
    assert grid_map.grid_to_world(3, 2, centered=True) == (140, 100)
    assert grid_map.world_to_grid(139.9, 80) == (3, 2)
    assert grid_map.world_to_grid(-1, 0) == (-1, 0)


@pytest.mark.parametrize("dims", [(0, 3, 10), (3, -1, 10), (3, 3, 0)])
def test_invalid_dimensions_raise(dims: tuple[int, int, int]) -> None:
    with pytest.raises(ValueError):
        GridMap(*dims)


def test_invalidate_path_cache_forces_fresh_search() -> None:
    grid_map = GridMap(4, 1, 10)
    first = grid_map.find_path(0, 0, 3, 0)

    grid_map.invalidate_path_cache()
    second = grid_map.find_path(0, 0, 3, 0)

    assert grid_map.path_cache_size == 1
    assert grid_map.search_stats.searches == 2
    assert second == first


def test_subscribed_cell_handler_sees_later_writes() -> None:
    grid_map = GridMap(3, 1, 10)
    grid_map.register_obstacle(0, 0)
    seen: list[CellChanged] = []

    grid_map.subscribe_cell_changed(seen.append)
    grid_map.set_cell_state(1, 0, CellState.TOWER)
    grid_map.set_cell_state(5, 0, CellState.TOWER)

    assert seen == [CellChanged(x=1, y=0, state=CellState.TOWER)]
