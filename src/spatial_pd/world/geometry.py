"""Torus geometry and neighbour graph construction.

Agents live on the unit torus [0, 1)^2. Two distinct agents are neighbours
when their squared toroidal distance is strictly below r^2. The graph is
stored in compressed sparse row form (`indptr`, `indices`) with every
neighbour list in ascending index order, which is the order the classic
double loop (outer i ascending, inner j < i ascending) discovers them in.

Two construction paths produce identical edge sets:

- ``'pairwise'``: every unordered pair is tested, one numpy row at a time.
- ``'kdtree'``: a periodic cKDTree proposes candidate pairs which are then
  re-tested with exactly the same arithmetic as the pairwise path.

With ``wrap_y=False`` only the first axis is wrapped, which reproduces the
neighbour sets of the historical implementation. The kd-tree path only
supports the fully periodic metric.
"""
import logging
from typing import List, Tuple

import numpy as np
from scipy import sparse

from spatial_pd.world.utils import safe_build_periodic_kdtree

logger = logging.getLogger(__name__)

METHODS = ('auto', 'pairwise', 'kdtree')

# candidate radius slack for the kd-tree query; candidates are re-filtered exactly
_KDTREE_SLACK = 1e-9


def torus_delta(a, b):
    """Shortest separation between coordinates on a unit circle.

    Accepts scalars or arrays; returns a numpy value of the broadcast shape.
    """
    d = np.abs(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))
    return np.where(d > 1.0 - d, 1.0 - d, d)


def _axis_deltas(x_i, y_i, x_j, y_j, wrap_y: bool):
    dx = torus_delta(x_i, x_j)
    if wrap_y:
        dy = torus_delta(y_i, y_j)
    else:
        dy = np.abs(np.asarray(y_i, dtype=float) - np.asarray(y_j, dtype=float))
    return dx, dy


def pair_dist_sqr(x: np.ndarray, y: np.ndarray, i: int, j: int, wrap_y: bool = True) -> float:
    """Squared toroidal distance between agents `i` and `j`."""
    dx, dy = _axis_deltas(x[i], y[i], x[j], y[j], wrap_y)
    return float(dx * dx + dy * dy)


class NeighborGraph:
    """Symmetric neighbour lists in CSR form.

    The graph is immutable once built; the engine rebuilds it on every setup.
    """

    def __init__(self, indptr: np.ndarray, indices: np.ndarray):
        self.indptr = np.asarray(indptr, dtype=np.int64)
        self.indices = np.asarray(indices, dtype=np.int64)
        self.indptr.setflags(write=False)
        self.indices.setflags(write=False)

    def __len__(self) -> int:
        return len(self.indptr) - 1

    @property
    def degrees(self) -> np.ndarray:
        return np.diff(self.indptr)

    @property
    def edge_count(self) -> int:
        """Number of undirected edges."""
        return int(len(self.indices) // 2)

    def neighbors(self, i: int) -> np.ndarray:
        return self.indices[self.indptr[i]:self.indptr[i + 1]]

    def as_lists(self) -> List[Tuple[int, ...]]:
        return [tuple(int(j) for j in self.neighbors(i)) for i in range(len(self))]

    def to_sparse(self) -> sparse.csr_matrix:
        """Unit-weight adjacency matrix."""
        n = len(self)
        data = np.ones(len(self.indices), dtype=float)
        return sparse.csr_matrix((data, self.indices.copy(), self.indptr.copy()), shape=(n, n))

    def is_symmetric(self) -> bool:
        adj = self.to_sparse()
        return (adj != adj.T).nnz == 0

    def edges(self) -> np.ndarray:
        """(M, 2) array of undirected edges with i < j, sorted."""
        rows = np.repeat(np.arange(len(self)), self.degrees)
        mask = rows < self.indices
        return np.column_stack([rows[mask], self.indices[mask]])


def _csr_from_edges(n: int, first: np.ndarray, second: np.ndarray) -> NeighborGraph:
    """Symmetric CSR graph from undirected edge endpoint arrays."""
    rows = np.concatenate([first, second]).astype(np.int64)
    cols = np.concatenate([second, first]).astype(np.int64)
    order = np.lexsort((cols, rows))
    rows = rows[order]
    cols = cols[order]
    counts = np.bincount(rows, minlength=n)
    indptr = np.zeros(n + 1, dtype=np.int64)
    np.cumsum(counts, out=indptr[1:])
    return NeighborGraph(indptr, cols)


def _pairwise_edges(x: np.ndarray, y: np.ndarray, r_sqr: float, wrap_y: bool):
    firsts = []
    seconds = []
    for i in range(1, len(x)):
        dx, dy = _axis_deltas(x[i], y[i], x[:i], y[:i], wrap_y)
        dist_sqr = dx * dx + dy * dy
        js = np.nonzero(dist_sqr < r_sqr)[0]
        if len(js):
            firsts.append(np.full(len(js), i, dtype=np.int64))
            seconds.append(js)
    if not firsts:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    return np.concatenate(firsts), np.concatenate(seconds)


def _kdtree_edges(x: np.ndarray, y: np.ndarray, r: float, r_sqr: float):
    tree = safe_build_periodic_kdtree(np.column_stack([x, y]), boxsize=1.0, name='neighbor graph')
    if tree is None:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    pairs = tree.query_pairs(r * (1.0 + _KDTREE_SLACK) + _KDTREE_SLACK, output_type='ndarray')
    pairs = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
    # query_pairs yields i < j; orient as (larger, smaller) like the pairwise loop
    first = pairs.max(axis=1)
    second = pairs.min(axis=1)
    dx, dy = _axis_deltas(x[first], y[first], x[second], y[second], True)
    keep = (dx * dx + dy * dy) < r_sqr
    return first[keep], second[keep]


def build_neighbor_graph(x, y, r: float, wrap_y: bool = True, method: str = 'auto') -> NeighborGraph:
    """Build the neighbour graph for agents at (x, y).

    Parameters
    - x, y: (N,) coordinates on the unit torus
    - r: neighbour radius; pairs with squared distance strictly below r^2 are linked
    - wrap_y: wrap the second axis as well as the first
    - method: 'auto', 'pairwise' or 'kdtree'
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.ndim != 1 or x.shape != y.shape:
        raise ValueError('x and y must be 1-D arrays of equal length')
    if method not in METHODS:
        raise ValueError(f'unknown graph method {method!r}; expected one of {METHODS}')
    if method == 'kdtree' and not wrap_y:
        raise ValueError("the 'kdtree' method requires wrap_y=True")
    if method == 'auto':
        method = 'kdtree' if wrap_y else 'pairwise'

    n = len(x)
    r_sqr = r * r
    if n < 2 or r <= 0.0:
        first = second = np.zeros(0, dtype=np.int64)
    elif method == 'kdtree':
        first, second = _kdtree_edges(x, y, r, r_sqr)
    else:
        first, second = _pairwise_edges(x, y, r_sqr, wrap_y)

    graph = _csr_from_edges(n, first, second)
    logger.debug('neighbor graph (%s, wrap_y=%s): %d agents, %d edges, mean degree %.2f',
                 method, wrap_y, n, graph.edge_count, graph.degrees.mean() if n else 0.0)
    return graph
