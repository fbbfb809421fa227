"""Payoff table and fitness evaluation.

Fitness is a pure function of an agent's own strategy and the strategies of
its neighbours. The same arithmetic is used for a single agent and for the
whole population so both paths produce bit-identical values.
"""
from typing import NamedTuple

import numpy as np


class PayoffTable(NamedTuple):
    """One-shot Prisoner's Dilemma payouts, row player first."""
    CC: float
    CD: float
    DC: float
    DD: float


def fitness_from_counts(coop, n_coop, n_defect, payoffs: PayoffTable, use_average: bool = False):
    """Fitness from neighbour strategy counts.

    Accepts scalars or equal-length arrays. Cooperators score
    ``n_coop*CC + n_defect*CD``, defectors ``n_coop*DC + n_defect*DD``.
    With ``use_average`` the score is divided by the neighbour count; an agent
    without neighbours has played no games and scores 0.0.
    """
    coop = np.asarray(coop, dtype=bool)
    n_coop = np.asarray(n_coop, dtype=float)
    n_defect = np.asarray(n_defect, dtype=float)

    value_c = np.where(coop, payoffs.CC, payoffs.DC)
    value_d = np.where(coop, payoffs.CD, payoffs.DD)
    fitness = value_c * n_coop + value_d * n_defect

    if use_average:
        n = n_coop + n_defect
        fitness = np.divide(fitness, n, out=np.zeros_like(fitness), where=n > 0)
    return fitness


def calc_fitness(coop: np.ndarray, indptr: np.ndarray, indices: np.ndarray, idx: int,
                 payoffs: PayoffTable, use_average: bool = False) -> float:
    """Fitness of agent `idx` given CSR neighbour arrays."""
    nbrs = indices[indptr[idx]:indptr[idx + 1]]
    n_coop = int(np.count_nonzero(coop[nbrs]))
    n_defect = len(nbrs) - n_coop
    return float(fitness_from_counts(coop[idx], n_coop, n_defect, payoffs, use_average))


def calc_all_fitness(coop: np.ndarray, adjacency, payoffs: PayoffTable, use_average: bool = False) -> np.ndarray:
    """Fitness of every agent.

    - adjacency: scipy CSR (N, N) matrix with unit weights on every edge
    """
    coop = np.asarray(coop, dtype=bool)
    degrees = np.diff(adjacency.indptr).astype(float)
    n_coop = np.rint(adjacency @ coop.astype(float))
    n_defect = degrees - n_coop
    return np.asarray(fitness_from_counts(coop, n_coop, n_defect, payoffs, use_average), dtype=float)
