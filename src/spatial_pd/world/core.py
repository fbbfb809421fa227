"""
core.py

The population engine for the spatial Prisoner's Dilemma.

A `World` owns a fixed-size population scattered on the unit torus, the
neighbour graph linking agents closer than `r`, the payoff table and its own
random number generator. Each agent plays a one-shot Prisoner's Dilemma
against all of its neighbours; strategies spread by fitness-proportional
imitation, one randomly chosen agent at a time.

Usage:
------
    from spatial_pd.world.core import World

    world = World(r=0.05, N=400, E=100, seed=1)
    world.run(10)           # ten epochs, N reproduction steps each
    world.count_coop()
    world.reset()           # same parameters, fresh random population

Notes:
------
- Positions, strategies and fitness are stored as parallel numpy arrays; the
  neighbour graph is kept in CSR form (see `geometry.NeighborGraph`).
- Setters only change the stored parameters. The live population keeps the
  parameters it was set up with until the next `setup()` or `reset()`.
- The engine is single threaded. `setup`, `run` and `reset` mutate the whole
  population; callers must not read from it while a `run` is in progress.
"""
import logging
from typing import Optional, TextIO, Tuple

import numpy as np
import pandas as pd

from spatial_pd.world.agents import Agent
from spatial_pd.world.config import QUEUE_DEFAULTS, WorldConfig
from spatial_pd.world.fitness import calc_all_fitness, calc_fitness
from spatial_pd.world.geometry import build_neighbor_graph
from spatial_pd.world import metrics

logger = logging.getLogger(__name__)

UNINITIALIZED = 'uninitialized'
READY = 'ready'
RUNNING = 'running'


def _read_only(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.setflags(write=False)
    return view


class World:
    """Spatial Prisoner's Dilemma population.

    Parameters
    - config: `WorldConfig` with r, u, N, E, use_average, seed and wrap_y
    - num_runs: how many runs a batch driver should queue for this configuration
    - graph_method: neighbour graph construction ('auto', 'pairwise', 'kdtree')
    - overrides: individual `WorldConfig` fields applied on top of `config`

    The constructor seeds the generator from ``config.seed`` and performs an
    initial `setup()`, so a new world is immediately ready to run.
    """

    def __init__(self, config: Optional[WorldConfig] = None, num_runs: int = QUEUE_DEFAULTS['num_runs'],
                 graph_method: str = 'auto', **overrides):
        cfg = config if config is not None else WorldConfig()
        if overrides:
            cfg = cfg.replace(**overrides)
        self.config = cfg
        self.num_runs = num_runs
        self.graph_method = graph_method

        # one generator per world; never shared, never reseeded
        self.random = np.random.default_rng(cfg.seed)

        self.state = UNINITIALIZED
        self.epoch = 0
        self.repro_calls = 0
        self.active = cfg
        self.graph = None
        self.payoffs = cfg.payoffs
        self._x = np.zeros(0)
        self._y = np.zeros(0)
        self._coop = np.zeros(0, dtype=bool)
        self._fitness = np.zeros(0)
        self._adjacency = None

        self.setup()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def setup(self, r: Optional[float] = None, u: Optional[float] = None, N: Optional[int] = None,
              E: Optional[int] = None, use_average: Optional[bool] = None,
              wrap_y: Optional[bool] = None, positions=None, strategies=None) -> None:
        """Store the given parameters and build a fresh population.

        Any parameter left as None keeps its stored value. `positions` (N, 2)
        and `strategies` (N,) replace the random draw for that part of the
        population; when `positions` is given and `N` is not, N follows it.
        """
        changes = {k: v for k, v in (('r', r), ('u', u), ('N', N), ('E', E),
                                     ('use_average', use_average), ('wrap_y', wrap_y))
                   if v is not None}
        if positions is not None and N is None:
            changes['N'] = len(positions)
        cfg = self.config.replace(**changes)
        assert cfg.N > 0, "population size N must be positive"
        assert cfg.r >= 0.0, "neighbour radius r must be non-negative"
        assert cfg.E >= 0, "epoch budget E must be non-negative"

        n = int(cfg.N)
        if positions is None:
            pos = self.random.random((n, 2))
        else:
            pos = np.array(positions, dtype=float)
            if pos.shape != (n, 2):
                raise ValueError(f'positions must have shape ({n}, 2), got {pos.shape}')
        if strategies is None:
            coop = self.random.random(n) < 0.5
        else:
            coop = np.array(strategies, dtype=bool)
            if coop.shape != (n,):
                raise ValueError(f'strategies must have shape ({n},), got {coop.shape}')

        self.config = cfg
        self.active = cfg
        self.payoffs = cfg.payoffs
        self.epoch = 0
        self.repro_calls = 0
        self._x = pos[:, 0].copy()
        self._y = pos[:, 1].copy()
        self._coop = coop

        self.graph = build_neighbor_graph(self._x, self._y, cfg.r, wrap_y=cfg.wrap_y, method=self.graph_method)
        self._adjacency = self.graph.to_sparse()
        self._fitness = calc_all_fitness(self._coop, self._adjacency, self.payoffs, cfg.use_average)
        self.state = READY
        logger.debug('setup: N=%d r=%g u=%g E=%d use_average=%s, %d cooperators, %d edges',
                     n, cfg.r, cfg.u, cfg.E, cfg.use_average, self.count_coop(), self.graph.edge_count)

    def reset(self) -> None:
        """Set up again with the stored parameters and a new random draw."""
        self.setup()

    def run(self, steps: Optional[int] = None) -> int:
        """Advance up to `steps` epochs, never past the epoch budget E.

        `steps=None` consumes whatever budget remains. Returns the number of
        epochs executed.
        """
        assert self.state == READY, f"cannot run a world in state {self.state!r}"
        remaining = max(int(self.active.E) - self.epoch, 0)
        n_epochs = remaining if steps is None else min(max(int(steps), 0), remaining)

        self.state = RUNNING
        try:
            for _ in range(n_epochs):
                for _ in range(self.active.N):
                    self.reproduce()
                self.epoch += 1
        finally:
            self.state = READY
        logger.debug('ran %d epochs, now at epoch %d/%d with %d cooperators',
                     n_epochs, self.epoch, self.active.E, self.count_coop())
        return n_epochs

    # ------------------------------------------------------------------
    # dynamics
    # ------------------------------------------------------------------
    def calc_fitness(self, idx: int) -> float:
        """Fitness of agent `idx` from the current strategies."""
        return calc_fitness(self._coop, self.graph.indptr, self.graph.indices, idx,
                            self.payoffs, self.active.use_average)

    def reproduce(self) -> int:
        """One reproduction step on a uniformly chosen agent; returns its index.

        The focal agent keeps its strategy with weight equal to its own
        fitness, or copies a neighbour's with weight equal to that neighbour's
        fitness. Fitness is only recomputed when the strategy flips.
        """
        self.repro_calls += 1
        coop = self._coop
        fitness = self._fitness
        idx = int(self.random.integers(self.active.N))
        start_coop = bool(coop[idx])

        nbr_arr = self.graph.indices[self.graph.indptr[idx]:self.graph.indptr[idx + 1]]
        nbrs = nbr_arr.tolist()
        nbr_fitness = fitness[nbr_arr].tolist()
        total = 0.0
        for f in nbr_fitness:
            total += f

        if total > 0:
            choice = self.random.uniform(0.0, total + fitness[idx])
            if choice < total:
                for n, f in zip(nbrs, nbr_fitness):
                    if choice < f:
                        coop[idx] = coop[n]
                        break
                    choice -= f

        if bool(coop[idx]) == start_coop:
            return idx

        fitness[idx] = self.calc_fitness(idx)
        for n in nbrs:
            fitness[n] = self.calc_fitness(n)
        return idx

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------
    def count_coop(self) -> int:
        return metrics.count_coop(self._coop)

    def count_defect(self) -> int:
        return len(self._coop) - self.count_coop()

    def neighbor_histogram(self):
        """(degree, count) pairs for every degree from 0 to the maximum."""
        return metrics.neighbor_histogram(self.graph.degrees)

    def write_neighbor_info(self, stream: TextIO) -> None:
        """Write the neighbour-degree histogram as `neighbors,count` text."""
        metrics.write_neighbor_histogram(self.neighbor_histogram(), stream)

    # ------------------------------------------------------------------
    # population views
    # ------------------------------------------------------------------
    @property
    def x(self) -> np.ndarray:
        return _read_only(self._x)

    @property
    def y(self) -> np.ndarray:
        return _read_only(self._y)

    @property
    def coop(self) -> np.ndarray:
        return _read_only(self._coop)

    @property
    def fitness(self) -> np.ndarray:
        return _read_only(self._fitness)

    def get_pop(self) -> Tuple[Agent, ...]:
        """Snapshot of every agent in index order."""
        nbr_lists = self.graph.as_lists()
        return tuple(
            Agent(float(self._x[i]), float(self._y[i]), bool(self._coop[i]), float(self._fitness[i]), nbr_lists[i])
            for i in range(len(self._x))
        )

    def population_frame(self) -> pd.DataFrame:
        """Population as a DataFrame (x, y, coop, fitness, degree), one row per agent."""
        return pd.DataFrame({
            'x': self._x.copy(),
            'y': self._y.copy(),
            'coop': self._coop.copy(),
            'fitness': self._fitness.copy(),
            'degree': self.graph.degrees,
        })

    # ------------------------------------------------------------------
    # stored parameters
    # ------------------------------------------------------------------
    def get_r(self) -> float:
        return self.config.r

    def get_u(self) -> float:
        return self.config.u

    def get_n(self) -> int:
        return self.config.N

    def get_e(self) -> int:
        return self.config.E

    def get_epoch(self) -> int:
        return self.epoch

    def get_num_runs(self) -> int:
        return self.num_runs

    def set_r(self, r: float) -> None:
        self.config = self.config.replace(r=r)

    def set_u(self, u: float) -> None:
        self.config = self.config.replace(u=u)

    def set_n(self, N: int) -> None:
        self.config = self.config.replace(N=N)

    def set_e(self, E: int) -> None:
        self.config = self.config.replace(E=E)

    def set_num_runs(self, n: int) -> None:
        self.num_runs = n

    def use_ave(self, flag: bool = True) -> None:
        self.config = self.config.replace(use_average=flag)
