"""Population statistics: cooperator counts and neighbour-degree histograms.

All helpers are read-only over the arrays they are given.
"""
from typing import Dict, Iterable, List, TextIO, Tuple
import io

import numpy as np

HISTOGRAM_HEADER = 'neighbors,count'


def count_coop(coop: np.ndarray) -> int:
    """Number of cooperating agents."""
    return int(np.count_nonzero(np.asarray(coop, dtype=bool)))


def neighbor_histogram(degrees: np.ndarray) -> List[Tuple[int, int]]:
    """Return (degree, count) pairs for every degree from 0 to the observed maximum.

    An empty population yields an empty list.
    """
    degrees = np.asarray(degrees, dtype=np.int64)
    if degrees.size == 0:
        return []
    counts = np.bincount(degrees, minlength=int(degrees.max()) + 1)
    return [(int(d), int(c)) for d, c in enumerate(counts)]


def write_neighbor_histogram(hist: Iterable[Tuple[int, int]], stream: TextIO) -> None:
    """Write the histogram as `neighbors,count` text, one line per degree."""
    stream.write(HISTOGRAM_HEADER + '\n')
    for degree, count in hist:
        stream.write(f'{degree},{count}\n')
    stream.flush()


def format_neighbor_histogram(hist: Iterable[Tuple[int, int]]) -> str:
    buf = io.StringIO()
    write_neighbor_histogram(hist, buf)
    return buf.getvalue()


def degree_summary(degrees: np.ndarray) -> Dict[str, float]:
    """Min, max, mean and total neighbour count. Zeros for an empty population."""
    degrees = np.asarray(degrees, dtype=np.int64)
    if degrees.size == 0:
        return {'min': 0, 'max': 0, 'mean': 0.0, 'total': 0}
    return {
        'min': int(degrees.min()),
        'max': int(degrees.max()),
        'mean': float(degrees.mean()),
        'total': int(degrees.sum()),
    }
