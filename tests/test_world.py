import logging
import time

import numpy as np
import pytest

from voxterrain.world.mesh_builder import generate_chunk
from voxterrain.world.noise import NoiseConfig
from voxterrain.world.world import World, WorldParams


def _params(**kwargs):
    base = dict(seed=99, chunks=(2, 1, 2), chunk_size=8, chunk_span=7.0, workers=2,
                noise=NoiseConfig(frequency=0.25))
    base.update(kwargs)
    return WorldParams(**base)


def _run(world, timeout=30.0):
    world.start()
    deadline = time.monotonic() + timeout
    while not world.done:
        assert time.monotonic() < deadline, "world did not finish"
        world.tick()
        time.sleep(0.001)


def test_world_installs_every_chunk_once(caplog):
    seen = []
    world = World(_params(), on_install=seen.append)
    try:
        with caplog.at_level(logging.INFO, logger="voxterrain.world.world"):
            _run(world)
    finally:
        world.shutdown()

    assert sorted(world.chunks) == [(0, 0, 0), (0, 0, 1), (1, 0, 0), (1, 0, 1)]
    assert len(seen) == 4
    for coord, chunk in world.chunks.items():
        assert chunk.coord == coord
        assert np.allclose(chunk.offset, np.array(coord, dtype=np.float32) * 7.0)
    assert world.chunks_left == 0
    assert world.elapsed_ms is not None and world.elapsed_ms >= 0
    assert "World generation done" in caplog.text
    stats = world.stats()
    assert stats["installed"] == 4 and stats["failed"] == 0 and stats["pending"] == 0


def test_installed_chunk_matches_direct_generation():
    params = _params(chunks=(1, 1, 1))
    world = World(params)
    try:
        _run(world)
    finally:
        world.shutdown()
    direct = generate_chunk(params.seed, (0.0, 0.0, 0.0), params.chunk_size, noise_cfg=params.noise)
    mesh = world.chunks[(0, 0, 0)].mesh
    assert np.array_equal(mesh.positions, direct.mesh.positions)
    assert np.array_equal(mesh.indices, direct.mesh.indices)


def test_one_failing_chunk_is_isolated():
    def flaky(seed, offset, size, **kwargs):
        if kwargs["coord"] == (1, 0, 0):
            raise RuntimeError("worker exploded")
        return generate_chunk(seed, offset, size, **kwargs)

    world = World(_params(), generate_fn=flaky)
    try:
        _run(world)
    finally:
        world.shutdown()
    assert len(world.chunks) == 3
    assert (1, 0, 0) not in world.chunks
    assert world.stats()["failed"] == 1
    assert world.elapsed_ms is not None


def test_max_per_tick_limits_installs():
    world = World(_params(max_per_tick=1))
    try:
        world.start()
        deadline = time.monotonic() + 30
        while not world.done:
            assert time.monotonic() < deadline
            assert len(world.tick()) <= 1
            time.sleep(0.001)
    finally:
        world.shutdown()
    assert len(world.chunks) == 4


def test_export_writes_one_file_per_chunk(tmp_path):
    world = World(_params())
    try:
        _run(world)
    finally:
        world.shutdown()
    assert world.export(tmp_path / "out") == 4
    with np.load(tmp_path / "out" / "chunk_1_0_1.npz") as data:
        mesh = world.chunks[(1, 0, 1)].mesh
        assert np.array_equal(data["positions"], mesh.positions)
        assert np.array_equal(data["indices"], mesh.indices)
        assert data["triangles"].shape == (mesh.triangle_count, 3)
        assert np.allclose(data["offset"], (7.0, 0.0, 7.0))


def test_params_fold_seed_to_64_bits():
    assert WorldParams(seed=2**64 + 5).seed == 5
    assert WorldParams(seed=-1).seed == 2**64 - 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"chunks": (0, 1, 1)},
        {"chunks": (1, 1)},
        {"chunk_size": 1},
        {"chunk_span": 0.0},
        {"tolerance": 0.0},
    ],
)
def test_params_validation(kwargs):
    with pytest.raises(ValueError):
        WorldParams(**kwargs)


def test_start_schedules_the_whole_range():
    world = World(_params(chunks=(1, 1, 1), chunk_size=4, workers=1))
    try:
        world.start()
        assert len(world.scheduler.jobs) == 1
        assert world.chunks_left == 1
    finally:
        world.shutdown()


def test_failing_install_callback_still_finishes():
    def on_install(chunk):
        if chunk.coord == (0, 0, 1):
            raise RuntimeError("consumer broke")

    world = World(_params(), on_install=on_install)
    try:
        _run(world)
    finally:
        world.shutdown()
    assert (0, 0, 1) not in world.chunks
    assert len(world.chunks) == 3
    assert world.stats()["failed"] == 1
    assert world.chunks_left == 0
    assert world.elapsed_ms is not None
