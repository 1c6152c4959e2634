from voxterrain.world.mc_tables import EDGE_TABLE, EDGES, POINT_OFFSETS, TRI_TABLE


def _row_edges(row):
    out = []
    for e in row:
        if e == -1:
            break
        out.append(e)
    return out


def test_table_shapes():
    assert len(TRI_TABLE) == 256
    assert len(EDGE_TABLE) == 256
    assert all(len(row) == 16 for row in TRI_TABLE)
    assert len(EDGES) == 12
    assert len(POINT_OFFSETS) == 8
    assert len(set(POINT_OFFSETS)) == 8


def test_rows_are_terminated_triangle_lists():
    for row in TRI_TABLE:
        edges = _row_edges(row)
        assert len(edges) % 3 == 0
        assert len(edges) <= 15
        assert all(0 <= e < 12 for e in edges)
        # nothing but padding after the terminator
        assert all(e == -1 for e in row[len(edges):])


def test_edges_join_adjacent_corners():
    for a, b in EDGES:
        pa, pb = POINT_OFFSETS[a], POINT_OFFSETS[b]
        assert sum(abs(i - j) for i, j in zip(pa, pb)) == 1


def test_edge_table_matches_corner_bits():
    for config in range(256):
        expected = 0
        for e, (a, b) in enumerate(EDGES):
            if ((config >> a) & 1) != ((config >> b) & 1):
                expected |= 1 << e
        assert EDGE_TABLE[config] == expected, config


def test_triangle_table_uses_exactly_the_crossed_edges():
    for config in range(256):
        crossed = {e for e in range(12) if (EDGE_TABLE[config] >> e) & 1}
        assert set(_row_edges(TRI_TABLE[config])) == crossed, config


def test_trivial_and_single_corner_cases():
    assert _row_edges(TRI_TABLE[0]) == []
    assert _row_edges(TRI_TABLE[255]) == []
    for corner in range(8):
        assert len(_row_edges(TRI_TABLE[1 << corner])) == 3
        assert len(_row_edges(TRI_TABLE[255 ^ (1 << corner)])) == 3
    assert _row_edges(TRI_TABLE[1]) == [0, 8, 3]
