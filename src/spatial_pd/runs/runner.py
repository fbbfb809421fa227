"""
runner.py

Headless batch driver: works through a queue of run configurations on one
`World`, advancing a fixed number of epochs per tick and recording progress
(epoch, cooperators, defectors) for every run it has touched.

Usage:
------
    spatial-pd --r 0.05 --u 0.1 --N 400 --E 200 --runs 3 --out progress.csv

or from Python:

    world = World(seed=7)
    queue = RunQueue()
    queue.add_runs(WorldConfig(r=0.05, N=400, E=200), 3)
    table = BatchRunner(world, queue, step=10).run_all()
"""
import argparse
import logging
import os
import sys
from collections import OrderedDict
from typing import Optional

import pandas as pd

from spatial_pd.io.log_writer import LogWriter, snapshot_arrays
from spatial_pd.runs.queue import RunInfo, RunQueue
from spatial_pd.world.config import QUEUE_DEFAULTS, WORLD_DEFAULTS, WorldConfig
from spatial_pd.world.core import World
from spatial_pd.world.geometry import METHODS
from spatial_pd.world.metrics import degree_summary

log = logging.getLogger(__name__)

PROGRESS_COLUMNS = ['id', 'r', 'u', 'N', 'E', 'epoch', 'num_coop', 'num_defect']


class BatchRunner:
    """Drive `world` through every run in `queue`.

    - step: epochs advanced per tick
    - snapshot_dir: when set, a population snapshot is written after every
      tick to `<snapshot_dir>/run_<id>/`
    """

    def __init__(self, world: World, queue: RunQueue, step: int = QUEUE_DEFAULTS['step'],
                 snapshot_dir: Optional[str] = None):
        assert step > 0, "step must be positive"
        self.world = world
        self.queue = queue
        self.step = step
        self.snapshot_dir = snapshot_dir
        self._seen = OrderedDict()
        self._writer = None

    def _start(self, run: RunInfo) -> None:
        cfg = run.config
        self.world.setup(cfg.r, cfg.u, cfg.N, cfg.E, cfg.use_average, cfg.wrap_y)
        run.started = True
        self._seen[run.id] = run
        deg = degree_summary(self.world.graph.degrees)
        log.info('run %d started: r=%g u=%g N=%d E=%d wrap_y=%s, degree min %d max %d mean %.2f',
                 run.id, cfg.r, cfg.u, cfg.N, cfg.E, cfg.wrap_y, deg['min'], deg['max'], deg['mean'])
        if self.snapshot_dir is not None:
            self._writer = LogWriter(os.path.join(self.snapshot_dir, f'run_{run.id:03d}'))
            self._writer.append(self.world.get_epoch(), snapshot_arrays(self.world))

    def _finish(self, run: RunInfo) -> None:
        self.queue.remove_run()
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        log.info('run %d finished at epoch %d: %d cooperators, %d defectors',
                 run.id, run.cur_epoch, run.num_coop, run.num_defect)

    def tick(self) -> Optional[RunInfo]:
        """Advance the front run by `step` epochs.

        Returns the run that was advanced, or None when the queue is empty.
        """
        if self.queue.is_empty():
            return None
        run = self.queue.front_run()
        if not run.started:
            self._start(run)

        self.world.run(self.step)
        run.cur_epoch = self.world.get_epoch()
        run.num_coop = self.world.count_coop()
        run.num_defect = run.config.N - run.num_coop
        if self._writer is not None:
            self._writer.append(run.cur_epoch, snapshot_arrays(self.world))

        if run.config.E <= run.cur_epoch:
            self._finish(run)
        return run

    def run_all(self) -> pd.DataFrame:
        """Tick until the queue is empty; return the progress table."""
        while self.tick() is not None:
            pass
        return self.progress_frame()

    def progress_frame(self) -> pd.DataFrame:
        """One row per started run with its latest progress."""
        rows = [run.as_row() for run in self._seen.values()]
        return pd.DataFrame(rows, columns=PROGRESS_COLUMNS)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='spatial-pd',
                                description="Queue and run spatial Prisoner's Dilemma populations headlessly")
    p.add_argument('--r', type=float, default=WORLD_DEFAULTS['r'], help='neighbourhood radius')
    p.add_argument('--u', type=float, default=WORLD_DEFAULTS['u'], help='cost / benefit ratio')
    p.add_argument('--N', type=int, default=WORLD_DEFAULTS['N'], help='population size')
    p.add_argument('--E', type=int, default=WORLD_DEFAULTS['E'], help='epochs per run')
    p.add_argument('--runs', type=int, default=QUEUE_DEFAULTS['num_runs'], help='number of runs to queue')
    p.add_argument('--average', action='store_true', help='average payoffs over neighbours')
    p.add_argument('--seed', type=int, default=WORLD_DEFAULTS['seed'], help='random seed')
    p.add_argument('--step', type=int, default=QUEUE_DEFAULTS['step'], help='epochs per tick')
    p.add_argument('--legacy-wrap', action='store_true',
                   help='wrap only the first axis when building neighbour graphs')
    p.add_argument('--graph-method', choices=METHODS, default='auto')
    p.add_argument('--out', default=None, help='CSV file for the progress table')
    p.add_argument('--histogram', default=None, help='text file for the neighbour-degree histogram of the last run')
    p.add_argument('--snapshots', default=None, help='directory for per-tick population snapshots')
    p.add_argument('--verbose', '-v', action='store_true', help='debug logging')
    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.N <= 0:
        parser.error('--N must be positive')
    if args.E < 0 or args.runs < 0:
        parser.error('--E and --runs must be non-negative')
    if args.step <= 0:
        parser.error('--step must be positive')

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
    )

    config = WorldConfig.from_mapping({
        'r': args.r, 'u': args.u, 'N': args.N, 'E': args.E,
        'use_average': args.average, 'seed': args.seed, 'wrap_y': not args.legacy_wrap,
    })
    world = World(config, num_runs=args.runs, graph_method=args.graph_method)
    queue = RunQueue()
    queue.add_runs(config, world.get_num_runs())

    runner = BatchRunner(world, queue, step=args.step, snapshot_dir=args.snapshots)
    table = runner.run_all()

    if args.out:
        table.to_csv(args.out, index=False)
        log.info('progress table written to %s', args.out)
    if args.histogram:
        with open(args.histogram, 'w') as fh:
            world.write_neighbor_info(fh)
        log.info('neighbour histogram written to %s', args.histogram)

    print(table.to_string(index=False))
    return 0


if __name__ == '__main__':
    sys.exit(main())
