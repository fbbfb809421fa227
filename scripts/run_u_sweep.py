"""
Sweep the cost / benefit ratio `u` (and optionally the radius `r`) and record
how many cooperators survive each run.

Every combination is queued `RUNS` times on one World and processed by the
batch runner. The combined progress table is written to
scripts/sweep_u_summary.csv, followed by the mean final cooperator share per
configuration.

Adjust the 'u_values' and 'r_values' lists below to explore different values.
"""
import itertools
import logging
from pathlib import Path

from spatial_pd.runs.queue import RunQueue
from spatial_pd.runs.runner import BatchRunner
from spatial_pd.world.config import WorldConfig
from spatial_pd.world.core import World

ROOT = Path(__file__).resolve().parent
OUT_CSV = ROOT / 'sweep_u_summary.csv'

u_values = [0.0, 0.05, 0.1, 0.175, 0.25]
r_values = [0.05, 0.1]
N = 400
E = 200
RUNS = 3


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(message)s')
    world = World(WorldConfig(N=N, E=E, seed=2024))
    queue = RunQueue()
    for r, u in itertools.product(r_values, u_values):
        queue.add_runs(WorldConfig(r=r, u=u, N=N, E=E), RUNS)

    print(f"Running {queue.runs_remaining()} runs")
    table = BatchRunner(world, queue, step=50).run_all()
    table.to_csv(OUT_CSV, index=False)

    table['coop_share'] = table['num_coop'] / table['N']
    summary = table.groupby(['r', 'u'])['coop_share'].mean().reset_index()
    print(summary.to_string(index=False))
    print('Saved summary to', OUT_CSV)


if __name__ == '__main__':
    main()
