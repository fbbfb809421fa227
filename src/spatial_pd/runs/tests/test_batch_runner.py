import logging
import os
import numpy as np
import pandas as pd
from spatial_pd.runs.queue import RunQueue
from spatial_pd.runs.runner import BatchRunner, PROGRESS_COLUMNS, main
from spatial_pd.world.config import WorldConfig
from spatial_pd.world.core import World
from spatial_pd.world.geometry import build_neighbor_graph


def _runner(num_runs=2, step=2, E=5, snapshot_dir=None):
    cfg = WorldConfig(r=0.3, u=0.1, N=20, E=E, seed=6)
    world = World(cfg)
    queue = RunQueue()
    queue.add_runs(cfg, num_runs)
    return BatchRunner(world, queue, step=step, snapshot_dir=snapshot_dir), world, queue


def test_tick_on_empty_queue_is_idle():
    runner = BatchRunner(World(r=0.2, N=5, E=1), RunQueue())
    assert runner.tick() is None
    assert runner.progress_frame().empty


def test_tick_advances_front_run():
    runner, world, queue = _runner(step=2, E=5)
    run = runner.tick()
    assert run.id == 0
    assert run.cur_epoch == 2
    assert world.get_epoch() == 2
    assert run.num_coop == world.count_coop()
    assert run.num_coop + run.num_defect == 20
    assert queue.runs_remaining() == 2


def test_run_all_processes_every_run():
    runner, world, queue = _runner(num_runs=3, step=2, E=5)
    table = runner.run_all()
    assert queue.is_empty()
    assert list(table.columns) == PROGRESS_COLUMNS
    assert table['id'].tolist() == [0, 1, 2]
    assert (table['epoch'] == 5).all()
    assert ((table['num_coop'] + table['num_defect']) == 20).all()


def test_each_run_gets_a_fresh_population():
    runner, world, queue = _runner(num_runs=2, step=5, E=5)
    runner.tick()
    first_x = world.x.copy()
    runner.tick()
    assert world.get_epoch() == 5
    assert not (world.x == first_x).all()


def test_zero_epoch_run_finishes():
    runner, world, queue = _runner(num_runs=1, step=1, E=0)
    run = runner.tick()
    assert run.cur_epoch == 0
    assert queue.is_empty()


def test_snapshots_written(tmp_path):
    runner, world, queue = _runner(num_runs=1, step=2, E=5, snapshot_dir=str(tmp_path))
    runner.run_all()
    run_dir = tmp_path / 'run_000'
    lines = (run_dir / 'index.txt').read_text().splitlines()
    # initial population plus one snapshot per tick (2, 4, 5)
    assert [line.split(',')[0] for line in lines] == ['0', '2', '4', '5']
    assert os.path.exists(run_dir / 'epoch_000005.npz')


def test_main_writes_outputs(tmp_path, capsys):
    out = tmp_path / 'progress.csv'
    hist = tmp_path / 'hist.txt'
    rc = main(['--r', '0.3', '--u', '0.1', '--N', '20', '--E', '3', '--runs', '2',
               '--step', '2', '--seed', '1', '--out', str(out), '--histogram', str(hist)])
    assert rc == 0
    table = pd.read_csv(out)
    assert len(table) == 2
    assert (table['epoch'] == 3).all()
    assert hist.read_text().splitlines()[0] == 'neighbors,count'
    assert 'num_coop' in capsys.readouterr().out


def test_main_legacy_wrap(tmp_path):
    out = tmp_path / 'legacy.csv'
    rc = main(['--r', '0.3', '--N', '15', '--E', '2', '--runs', '1', '--legacy-wrap', '--out', str(out)])
    assert rc == 0
    assert len(pd.read_csv(out)) == 1


def test_each_run_uses_its_own_wrap_rule():
    world = World(WorldConfig(r=0.3, N=20, E=1, seed=6))
    queue = RunQueue()
    queue.add_run(WorldConfig(r=0.3, N=20, E=1, wrap_y=False))
    queue.add_run(WorldConfig(r=0.3, N=20, E=1, wrap_y=True))
    runner = BatchRunner(world, queue, step=1)

    runner.tick()
    assert world.active.wrap_y is False
    legacy = build_neighbor_graph(world.x, world.y, 0.3, wrap_y=False, method='pairwise')
    assert np.array_equal(world.graph.indices, legacy.indices)
    assert np.array_equal(world.graph.indptr, legacy.indptr)

    runner.tick()
    assert world.active.wrap_y is True
    full = build_neighbor_graph(world.x, world.y, 0.3, wrap_y=True, method='pairwise')
    assert np.array_equal(world.graph.indices, full.indices)
    assert queue.is_empty()


def test_run_start_logs_degree_summary(caplog):
    runner, world, queue = _runner(num_runs=1, step=5, E=5)
    with caplog.at_level(logging.INFO, logger='spatial_pd.runs.runner'):
        runner.tick()
    degrees = world.graph.degrees
    assert f'degree min {degrees.min()} max {degrees.max()}' in caplog.text
