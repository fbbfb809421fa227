import math
import numpy as np
from spatial_pd.world.config import payoff_table
from spatial_pd.world.fitness import PayoffTable, fitness_from_counts, calc_fitness, calc_all_fitness
from spatial_pd.world.geometry import build_neighbor_graph


def test_payoff_table_layout():
    p = payoff_table(0.175)
    assert p.CC == 1.0
    assert p.CD == 0.0
    assert abs(p.DC - 1.175) < 1e-12
    assert abs(p.DD - 0.175) < 1e-12


def test_fitness_rows_by_strategy():
    p = PayoffTable(CC=1.0, CD=0.0, DC=1.5, DD=0.5)
    # cooperator: 3 cooperating, 2 defecting neighbours
    assert float(fitness_from_counts(True, 3, 2, p)) == 3.0
    # defector with the same neighbourhood
    assert float(fitness_from_counts(False, 3, 2, p)) == 3 * 1.5 + 2 * 0.5


def test_fitness_average():
    p = PayoffTable(CC=1.0, CD=0.0, DC=1.5, DD=0.5)
    assert float(fitness_from_counts(False, 3, 1, p, use_average=True)) == (4.5 + 0.5) / 4


def test_isolated_agent_average_is_zero():
    p = payoff_table(0.3)
    out = fitness_from_counts(np.array([True, False]), np.zeros(2), np.zeros(2), p, use_average=True)
    assert np.all(out == 0.0)
    assert not np.any(np.isnan(out))
    single = float(fitness_from_counts(True, 0, 0, p, use_average=True))
    assert single == 0.0 and not math.isnan(single)


def test_calc_all_matches_single_agent():
    rng = np.random.default_rng(8)
    x, y = rng.random(50), rng.random(50)
    coop = rng.random(50) < 0.5
    g = build_neighbor_graph(x, y, 0.2)
    p = payoff_table(0.2)
    for use_average in (False, True):
        all_fit = calc_all_fitness(coop, g.to_sparse(), p, use_average)
        for i in range(50):
            assert all_fit[i] == calc_fitness(coop, g.indptr, g.indices, i, p, use_average)


def test_calc_fitness_pure():
    rng = np.random.default_rng(1)
    x, y = rng.random(30), rng.random(30)
    coop = rng.random(30) < 0.5
    g = build_neighbor_graph(x, y, 0.3)
    p = payoff_table(0.1)
    before = coop.copy()
    a = calc_fitness(coop, g.indptr, g.indices, 4, p)
    b = calc_fitness(coop, g.indptr, g.indices, 4, p)
    assert a == b
    assert np.array_equal(coop, before)
